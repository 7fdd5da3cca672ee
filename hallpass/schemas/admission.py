# hallpass/schemas/admission.py
from typing import Optional
from pydantic import BaseModel, Field

from hallpass.constants.waitlist import CheckoutOutcome


class CheckoutResult(BaseModel):
    """
    Outcome of an admission decision.

    - admitted: a CheckInRecord was opened (check_in_id is set)
    - waitlisted: a new waiting entry was queued at `position`
    - already_waiting: the student was already queued at `position`; nothing changed
    """
    outcome: CheckoutOutcome
    destination: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=1)
    check_in_id: Optional[str] = None
    entry_id: Optional[str] = None

    @classmethod
    def admitted(cls, *, check_in_id: str, destination: Optional[str]) -> "CheckoutResult":
        return cls(outcome=CheckoutOutcome.ADMITTED, check_in_id=check_in_id, destination=destination)

    @classmethod
    def waitlisted(cls, *, entry_id: str, position: int, destination: str) -> "CheckoutResult":
        return cls(
            outcome=CheckoutOutcome.WAITLISTED,
            entry_id=entry_id,
            position=position,
            destination=destination,
        )

    @classmethod
    def already_waiting(cls, *, entry_id: str, position: int, destination: Optional[str]) -> "CheckoutResult":
        return cls(
            outcome=CheckoutOutcome.ALREADY_WAITING,
            entry_id=entry_id,
            position=position,
            destination=destination,
        )


class CheckInResult(BaseModel):
    """Outcome of a completed check-in (return to the classroom)."""
    check_in_id: str
    destination: Optional[str] = None
    promoted_entry_id: Optional[str] = None
