# hallpass/services/admission.py
"""
Checkout Admission Controller.

The decision point for every checkout and check-in attempt:
- grant immediate occupancy (open a CheckInRecord)
- queue the student when a capacity-limited destination is full
- resume a student who already holds a waitlist entry

Each compound operation runs under the student's lock and, where the queue
or occupancy of a capacity-limited destination is involved, that
destination's lock, and commits exactly once. Any failure rolls the whole
unit back.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hallpass.constants.waitlist import WaitlistStatus
from hallpass.core.exceptions import (
    AlreadyCheckedOut,
    DestinationNotFound,
    DestinationRequired,
    NotCheckedOut,
    NotEnrolled,
    ValidationError,
)
from hallpass.core.locks import destination_lock, student_lock
from hallpass.crud.crud_check_in import check_in_crud
from hallpass.crud.crud_classroom import classroom_crud
from hallpass.crud.crud_destination import destination_crud
from hallpass.crud.crud_waitlist_entry import waitlist_entry_crud
from hallpass.models.destination import Destination
from hallpass.schemas.admission import CheckInResult, CheckoutResult
from hallpass.services.destination_registry import destination_registry
from hallpass.services.waitlist_queue import waitlist_queue

logger = logging.getLogger(__name__)

EnrollmentCheck = Callable[[Session, str, str], bool]


def _default_enrollment_check(db: Session, student_id: str, classroom_id: str) -> bool:
    return classroom_crud.is_enrolled(db, student_id=student_id, classroom_id=classroom_id)


class AdmissionController:

    def __init__(self, enrollment_check: Optional[EnrollmentCheck] = None):
        # Roster ownership lives outside the engine; anything answering
        # "is this student enrolled in this classroom" can be plugged in.
        self.enrollment_check = enrollment_check or _default_enrollment_check

    # ==================== Checkout ====================

    def attempt_checkout(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        destination_name: Optional[str] = None,
        manual_override: bool = False,
        bypass_waitlist: bool = False,
    ) -> CheckoutResult:
        """
        Decide whether a checkout proceeds now, is queued, or resumes a queue entry.

        Order of resolution:
        1. An approved entry is redeemed for *its* destination, whatever was asked.
        2. A waiting entry returns its position unchanged (idempotent).
        3. A full capacity-limited destination queues the student at the tail.
        4. Everything else opens a CheckInRecord directly.

        **Errors**:
        - ValidationError: missing student id
        - DestinationRequired: no destination and no manual override
        - NotEnrolled / AlreadyCheckedOut / DestinationNotFound
        """
        if not student_id:
            raise ValidationError("Student ID is required")
        if isinstance(destination_name, str):
            destination_name = destination_name.strip() or None
        if not destination_name and not manual_override:
            raise DestinationRequired()

        if not self.enrollment_check(db, student_id, classroom_id):
            raise NotEnrolled(student_id, classroom_id)

        with student_lock(student_id):
            db.expire_all()
            if check_in_crud.find_open(db, student_id=student_id) is not None:
                raise AlreadyCheckedOut(student_id)

            entry = waitlist_entry_crud.get_active_for_student(
                db, student_id=student_id, classroom_id=classroom_id
            )
            if entry is not None:
                result = self._resume_entry(
                    db,
                    student_id=student_id,
                    classroom_id=classroom_id,
                    entry_id=entry.id,
                    destination_id=entry.destination_id,
                    manual_override=manual_override,
                )
                if result is not None:
                    return result
                # The entry was removed while we waited for its lock; treat as a fresh request.

            if not destination_name:
                return self._admit_direct(
                    db,
                    student_id=student_id,
                    classroom_id=classroom_id,
                    destination_name=None,
                    manual_override=manual_override,
                )

            destination = destination_registry.resolve(
                db, classroom_id=classroom_id, name=destination_name
            )
            if not destination.has_capacity:
                return self._admit_direct(
                    db,
                    student_id=student_id,
                    classroom_id=classroom_id,
                    destination_name=destination.name,
                    manual_override=manual_override,
                )
            return self._admit_or_enqueue(
                db,
                student_id=student_id,
                classroom_id=classroom_id,
                destination=destination,
                manual_override=manual_override,
                bypass_waitlist=bypass_waitlist,
            )

    def _resume_entry(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        entry_id: str,
        destination_id: str,
        manual_override: bool,
    ) -> Optional[CheckoutResult]:
        with destination_lock(classroom_id, destination_id):
            db.expire_all()
            destination = destination_crud.get_for_update(db, destination_id)
            entry = waitlist_entry_crud.get(db, entry_id)
            if destination is None or entry is None or entry.status not in WaitlistStatus.active_values():
                return None

            if entry.status == WaitlistStatus.WAITING.value:
                return CheckoutResult.already_waiting(
                    entry_id=entry.id, position=entry.position, destination=destination.name
                )

            # Approved: redeem the reservation for the entry's destination.
            try:
                record = check_in_crud.create_open(
                    db,
                    student_id=student_id,
                    classroom_id=classroom_id,
                    destination=destination.name,
                    manual_override=manual_override,
                )
                waitlist_queue.complete_reservation(db, entry=entry)
                db.commit()
            except IntegrityError:
                db.rollback()
                raise AlreadyCheckedOut(student_id)
            except Exception as e:
                logger.error(
                    f"Failed to redeem waitlist entry {entry_id} for student {student_id}: {str(e)}",
                    exc_info=True,
                    extra={"student_id": student_id, "entry_id": entry_id},
                )
                db.rollback()
                raise

            logger.info(
                f"Student {student_id} checked out to '{destination.name}' using approved entry {entry_id}"
            )
            return CheckoutResult.admitted(check_in_id=record.id, destination=destination.name)

    def _admit_or_enqueue(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        destination: Destination,
        manual_override: bool,
        bypass_waitlist: bool,
    ) -> CheckoutResult:
        destination_id = destination.id
        destination_name = destination.name

        with destination_lock(classroom_id, destination_id):
            db.expire_all()
            destination = destination_crud.get_for_update(db, destination_id)
            if destination is None or not destination.is_active:
                raise DestinationNotFound(destination_name)

            try:
                if destination.capacity is not None and not bypass_waitlist:
                    occupancy = waitlist_queue.occupancy(db, destination=destination)
                    if occupancy >= destination.capacity:
                        entry = waitlist_queue.enqueue(
                            db,
                            student_id=student_id,
                            classroom_id=classroom_id,
                            destination_id=destination.id,
                        )
                        db.commit()
                        logger.info(
                            f"'{destination.name}' full ({occupancy}/{destination.capacity}); "
                            f"student {student_id} waitlisted at position {entry.position}"
                        )
                        return CheckoutResult.waitlisted(
                            entry_id=entry.id, position=entry.position, destination=destination.name
                        )

                record = check_in_crud.create_open(
                    db,
                    student_id=student_id,
                    classroom_id=classroom_id,
                    destination=destination.name,
                    manual_override=manual_override,
                )
                db.commit()
            except IntegrityError:
                db.rollback()
                raise AlreadyCheckedOut(student_id)
            except Exception as e:
                logger.error(
                    f"Failed to admit student {student_id} to destination {destination_id}: {str(e)}",
                    exc_info=True,
                    extra={"student_id": student_id, "destination_id": destination_id},
                )
                db.rollback()
                raise

            if bypass_waitlist:
                logger.info(f"Student {student_id} bypassed the waitlist for '{destination.name}'")
            return CheckoutResult.admitted(check_in_id=record.id, destination=destination.name)

    def _admit_direct(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        destination_name: Optional[str],
        manual_override: bool,
    ) -> CheckoutResult:
        try:
            record = check_in_crud.create_open(
                db,
                student_id=student_id,
                classroom_id=classroom_id,
                destination=destination_name,
                manual_override=manual_override,
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AlreadyCheckedOut(student_id)

        logger.info(f"Student {student_id} checked out to '{destination_name}' in classroom {classroom_id}")
        return CheckoutResult.admitted(check_in_id=record.id, destination=destination_name)

    # ==================== Check-in ====================

    def complete_check_in(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        manual_override: bool = False,
    ) -> CheckInResult:
        """
        Close the student's open interval and free its slot.

        A capacity-limited destination promotes at most one waiting entry per
        check-in, inside the same transaction as the close, and only when the
        close left a slot free.
        """
        if not student_id:
            raise ValidationError("Student ID is required")

        with student_lock(student_id):
            db.expire_all()
            record = check_in_crud.find_open(db, student_id=student_id)
            if record is None or record.classroom_id != classroom_id:
                raise NotCheckedOut(student_id)

            destination = None
            if record.destination:
                destination = destination_crud.get_by_name(
                    db, classroom_id=classroom_id, name=record.destination, active_only=False
                )

            if destination is None or not destination.has_capacity:
                try:
                    check_in_crud.close(db, record=record, manual_override=manual_override)
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
                logger.info(f"Student {student_id} checked in to classroom {classroom_id}")
                return CheckInResult(check_in_id=record.id, destination=record.destination)

            destination_id = destination.id
            with destination_lock(classroom_id, destination_id):
                db.expire_all()
                destination = destination_crud.get_for_update(db, destination_id)
                record = check_in_crud.find_open(db, student_id=student_id)
                if record is None:
                    raise NotCheckedOut(student_id)
                try:
                    check_in_crud.close(db, record=record, manual_override=manual_override)
                    promoted = None
                    if destination is not None:
                        promoted = waitlist_queue.fill_free_slot(db, destination=destination)
                    db.commit()
                except Exception as e:
                    logger.error(
                        f"Failed to check in student {student_id}: {str(e)}",
                        exc_info=True,
                        extra={"student_id": student_id, "destination_id": destination_id},
                    )
                    db.rollback()
                    raise

            logger.info(
                f"Student {student_id} checked in from '{record.destination}'; "
                f"promoted entry {promoted.id if promoted else None}"
            )
            return CheckInResult(
                check_in_id=record.id,
                destination=record.destination,
                promoted_entry_id=promoted.id if promoted else None,
            )


# Singleton instance
admission_controller = AdmissionController()
