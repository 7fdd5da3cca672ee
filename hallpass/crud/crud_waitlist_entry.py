# hallpass/crud/crud_waitlist_entry.py
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_, func

from hallpass.constants.waitlist import WaitlistStatus, VALID_TRANSITIONS
from hallpass.models.waitlist_entry import WaitListEntry, WaitlistEvent


class CRUDWaitListEntry:
    """
    Row-level operations for WaitListEntry.

    Ordering, compaction and promotion policy live in the queue manager;
    this class only reads and writes rows and never commits.
    """

    def get(self, db: Session, entry_id: str) -> Optional[WaitListEntry]:
        return db.query(WaitListEntry).filter(WaitListEntry.id == entry_id).first()

    def get_active_in_classroom(
        self, db: Session, *, entry_id: str, classroom_id: str
    ) -> Optional[WaitListEntry]:
        return db.query(WaitListEntry).filter(
            and_(
                WaitListEntry.id == entry_id,
                WaitListEntry.classroom_id == classroom_id,
                WaitListEntry.status.in_(WaitlistStatus.active_values()),
            )
        ).first()

    def get_active_for_student(
        self, db: Session, *, student_id: str, classroom_id: str
    ) -> Optional[WaitListEntry]:
        """Get the student's WAITING or APPROVED entry in the classroom, whatever the destination."""
        return db.query(WaitListEntry).filter(
            and_(
                WaitListEntry.student_id == student_id,
                WaitListEntry.classroom_id == classroom_id,
                WaitListEntry.status.in_(WaitlistStatus.active_values()),
            )
        ).first()

    def list_active_for_destination(
        self, db: Session, *, destination_id: str
    ) -> List[WaitListEntry]:
        return db.query(WaitListEntry).filter(
            and_(
                WaitListEntry.destination_id == destination_id,
                WaitListEntry.status.in_(WaitlistStatus.active_values()),
            )
        ).order_by(
            WaitListEntry.position.asc(),
            WaitListEntry.created_at.asc(),
            WaitListEntry.id.asc(),
        ).all()

    def list_active_for_classroom(
        self, db: Session, *, classroom_id: str
    ) -> List[WaitListEntry]:
        return db.query(WaitListEntry).options(
            joinedload(WaitListEntry.destination)
        ).filter(
            and_(
                WaitListEntry.classroom_id == classroom_id,
                WaitListEntry.status.in_(WaitlistStatus.active_values()),
            )
        ).order_by(
            WaitListEntry.destination_id.asc(),
            WaitListEntry.position.asc(),
        ).all()

    def first_waiting(self, db: Session, *, destination_id: str) -> Optional[WaitListEntry]:
        return db.query(WaitListEntry).filter(
            and_(
                WaitListEntry.destination_id == destination_id,
                WaitListEntry.status == WaitlistStatus.WAITING.value,
            )
        ).order_by(
            WaitListEntry.position.asc(),
            WaitListEntry.created_at.asc(),
        ).first()

    def max_active_position(self, db: Session, *, destination_id: str) -> int:
        max_position = db.query(func.max(WaitListEntry.position)).filter(
            and_(
                WaitListEntry.destination_id == destination_id,
                WaitListEntry.status.in_(WaitlistStatus.active_values()),
            )
        ).scalar()
        return max_position or 0

    def count_approved(self, db: Session, *, destination_id: str) -> int:
        return db.query(func.count(WaitListEntry.id)).filter(
            and_(
                WaitListEntry.destination_id == destination_id,
                WaitListEntry.status == WaitlistStatus.APPROVED.value,
            )
        ).scalar() or 0

    def list_waiting_queued_before(
        self, db: Session, *, cutoff: datetime
    ) -> List[WaitListEntry]:
        return db.query(WaitListEntry).filter(
            and_(
                WaitListEntry.status == WaitlistStatus.WAITING.value,
                WaitListEntry.queued_at < cutoff,
            )
        ).order_by(WaitListEntry.destination_id.asc(), WaitListEntry.position.asc()).all()

    def create_waiting(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        destination_id: str,
        position: int,
    ) -> WaitListEntry:
        now = datetime.now(timezone.utc)
        entry = WaitListEntry(
            student_id=student_id,
            classroom_id=classroom_id,
            destination_id=destination_id,
            position=position,
            status=WaitlistStatus.WAITING.value,
            created_at=now,
            queued_at=now,
        )
        db.add(entry)
        db.flush()
        return entry

    def set_status(
        self, db: Session, *, entry: WaitListEntry, status: WaitlistStatus
    ) -> WaitListEntry:
        """Update entry status with transition validation."""
        if status.value not in VALID_TRANSITIONS[entry.status]:
            raise ValueError(f"Invalid waitlist transition {entry.status} -> {status.value}")

        entry.status = status.value
        if status == WaitlistStatus.APPROVED:
            entry.approved_at = datetime.now(timezone.utc)
        elif status == WaitlistStatus.WAITING:
            entry.approved_at = None
            entry.queued_at = datetime.now(timezone.utc)

        db.flush()
        return entry


class CRUDWaitlistEvent:
    """Append-only waitlist activity log."""

    def log_event(
        self,
        db: Session,
        *,
        waitlist_entry_id: str,
        event_type: str,
        metadata: Optional[dict] = None,
    ) -> WaitlistEvent:
        event = WaitlistEvent(
            waitlist_entry_id=waitlist_entry_id,
            event_type=event_type,
            event_data=metadata or {},
            created_at=datetime.now(timezone.utc),
        )
        db.add(event)
        db.flush()
        return event

    def get_entry_events(self, db: Session, *, waitlist_entry_id: str) -> List[WaitlistEvent]:
        return db.query(WaitlistEvent).filter(
            WaitlistEvent.waitlist_entry_id == waitlist_entry_id
        ).order_by(WaitlistEvent.created_at.asc(), WaitlistEvent.id.asc()).all()


# Instantiate CRUD objects
waitlist_entry_crud = CRUDWaitListEntry()
waitlist_event = CRUDWaitlistEvent()
