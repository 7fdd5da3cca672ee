# hallpass/schemas/waitlist.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hallpass.constants.waitlist import WaitlistAction


class WaitlistEntryResponse(BaseModel):
    id: str
    student_id: str
    classroom_id: str
    destination_id: str
    destination_name: Optional[str] = None
    position: int
    status: str
    created_at: datetime
    approved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_entry(cls, entry) -> "WaitlistEntryResponse":
        response = cls.model_validate(entry)
        if entry.destination is not None:
            response.destination_name = entry.destination.name
        return response


class WaitlistActionRequest(BaseModel):
    """Teacher action against one waitlist entry."""
    entry_id: str = Field(..., min_length=1)
    # Kept as a plain string so unknown actions surface as InvalidAction
    action: str = Field(..., description=f"One of: {', '.join(a.value for a in WaitlistAction)}")
