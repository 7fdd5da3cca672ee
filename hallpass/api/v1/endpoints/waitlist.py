# hallpass/api/v1/endpoints/waitlist.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hallpass.api import deps
from hallpass.models.classroom import Classroom
from hallpass.schemas.token import TokenPayload
from hallpass.schemas.waitlist import WaitlistActionRequest, WaitlistEntryResponse
from hallpass.services.waitlist_queue import waitlist_queue

router = APIRouter(tags=["Waitlist"])
logger = logging.getLogger(__name__)


@router.get("/classrooms/{classroom_id}/waitlist", response_model=List[WaitlistEntryResponse])
def list_waitlist(
    classroom_id: str,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
):
    """Waiting and approved entries, grouped by destination in queue order."""
    entries = waitlist_queue.list_entries(db, classroom_id=classroom.id)
    return [WaitlistEntryResponse.from_entry(entry) for entry in entries]


@router.post("/classrooms/{classroom_id}/waitlist", response_model=WaitlistEntryResponse)
def apply_waitlist_action(
    classroom_id: str,
    request: WaitlistActionRequest,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Apply a teacher action to one entry.

    **Actions**:
    - skip: move to the back of the line as waiting
    - remove: cancel the entry
    - approve: let the student go now, regardless of position

    **Errors**:
    - 400: Unknown action
    - 404: Entry not found in this classroom
    """
    entry = waitlist_queue.apply_action(
        db,
        entry_id=request.entry_id,
        classroom_id=classroom.id,
        action=request.action,
        actor_id=current_user.sub,
    )
    logger.info(f"Teacher {current_user.sub} applied '{request.action}' to entry {entry.id}")
    return WaitlistEntryResponse.from_entry(entry)
