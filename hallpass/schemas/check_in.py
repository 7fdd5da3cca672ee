# hallpass/schemas/check_in.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from hallpass.constants.waitlist import CheckInAction


class CheckInRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    action: CheckInAction
    destination: Optional[str] = None
    manual_override: bool = False
    bypass_waitlist: bool = False


class CheckedOutStudent(BaseModel):
    """A student currently out of the classroom."""
    check_in_id: str
    student_id: str
    destination: Optional[str] = None
    check_out_at: datetime
    duration_minutes: int
    manual_override: bool


class QueueResponse(BaseModel):
    classroom_id: str
    checked_out: List[CheckedOutStudent]
