# hallpass/api/v1/endpoints/checkin.py
from datetime import datetime, timezone
from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hallpass.api import deps
from hallpass.constants.waitlist import CheckInAction
from hallpass.crud.crud_check_in import check_in_crud
from hallpass.models.classroom import Classroom
from hallpass.schemas.admission import CheckInResult, CheckoutResult
from hallpass.schemas.check_in import CheckedOutStudent, CheckInRequest, QueueResponse
from hallpass.services.admission import admission_controller

router = APIRouter(tags=["Check-in"])


def _minutes_since(moment: datetime, now: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(0, int((now - moment).total_seconds() // 60))


@router.post("/classrooms/{classroom_id}/checkin", response_model=None)
def check_in_or_out(
    classroom_id: str,
    request: CheckInRequest,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
) -> Union[CheckoutResult, CheckInResult]:
    """
    Record a student leaving (`out`) or returning to (`in`) the classroom.

    `out` may admit the student, queue them for a full destination, or
    report the position they already hold.

    **Errors**:
    - 400: Missing destination, not enrolled, already out / not out
    - 404: Destination not found
    - 423: Destination busy, retry
    """
    if request.action is CheckInAction.OUT:
        return admission_controller.attempt_checkout(
            db,
            student_id=request.student_id,
            classroom_id=classroom.id,
            destination_name=request.destination,
            manual_override=request.manual_override,
            bypass_waitlist=request.bypass_waitlist,
        )
    return admission_controller.complete_check_in(
        db,
        student_id=request.student_id,
        classroom_id=classroom.id,
        manual_override=request.manual_override,
    )


@router.get("/classrooms/{classroom_id}/queue", response_model=QueueResponse)
def get_checked_out_queue(
    classroom_id: str,
    db: Session = Depends(deps.get_db),
    classroom: Classroom = Depends(deps.get_owned_classroom),
):
    """Students currently out of the classroom, earliest first, with minutes elapsed."""
    now = datetime.now(timezone.utc)
    records = check_in_crud.list_open(db, classroom_id=classroom.id)
    return QueueResponse(
        classroom_id=classroom.id,
        checked_out=[
            CheckedOutStudent(
                check_in_id=record.id,
                student_id=record.student_id,
                destination=record.destination,
                check_out_at=record.check_out_at,
                duration_minutes=_minutes_since(record.check_out_at, now),
                manual_override=record.manual_override,
            )
            for record in records
        ],
    )
