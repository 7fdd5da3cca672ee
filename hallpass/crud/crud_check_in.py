# hallpass/crud/crud_check_in.py
"""
Check-in record store: open/closed occupancy intervals per student.

The admission engine needs only count, find, create and update over these
rows. Helpers flush but never commit.
"""

from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy import and_, func

from hallpass.models.check_in import CheckInRecord


class CRUDCheckIn:
    """CRUD operations for CheckInRecord."""

    def find_open(self, db: Session, *, student_id: str) -> Optional[CheckInRecord]:
        """The student's currently open interval, if any."""
        return db.query(CheckInRecord).filter(
            and_(
                CheckInRecord.student_id == student_id,
                CheckInRecord.check_in_at.is_(None),
            )
        ).first()

    def count_open_for_destination(
        self, db: Session, *, classroom_id: str, destination_name: str
    ) -> int:
        return db.query(func.count(CheckInRecord.id)).filter(
            and_(
                CheckInRecord.classroom_id == classroom_id,
                CheckInRecord.destination == destination_name,
                CheckInRecord.check_in_at.is_(None),
            )
        ).scalar() or 0

    def list_open(self, db: Session, *, classroom_id: str) -> List[CheckInRecord]:
        """Students currently out of the classroom, earliest checkout first."""
        return db.query(CheckInRecord).filter(
            and_(
                CheckInRecord.classroom_id == classroom_id,
                CheckInRecord.check_in_at.is_(None),
            )
        ).order_by(CheckInRecord.check_out_at.asc()).all()

    def create_open(
        self,
        db: Session,
        *,
        student_id: str,
        classroom_id: str,
        destination: Optional[str],
        manual_override: bool = False,
    ) -> CheckInRecord:
        record = CheckInRecord(
            student_id=student_id,
            classroom_id=classroom_id,
            destination=destination,
            manual_override=bool(manual_override),
            check_out_at=datetime.now(timezone.utc),
        )
        db.add(record)
        db.flush()
        return record

    def close(
        self, db: Session, *, record: CheckInRecord, manual_override: bool = False
    ) -> CheckInRecord:
        record.check_in_at = datetime.now(timezone.utc)
        record.manual_override = bool(manual_override or record.manual_override)
        db.flush()
        return record

    def rename_open_destination(
        self, db: Session, *, classroom_id: str, old_name: str, new_name: str
    ) -> int:
        """Carry open intervals along when their destination is renamed."""
        updated = db.query(CheckInRecord).filter(
            and_(
                CheckInRecord.classroom_id == classroom_id,
                CheckInRecord.destination == old_name,
                CheckInRecord.check_in_at.is_(None),
            )
        ).update({CheckInRecord.destination: new_name}, synchronize_session="fetch")
        db.flush()
        return updated


# Singleton instance
check_in_crud = CRUDCheckIn()
