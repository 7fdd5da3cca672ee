# hallpass/models/check_in.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, text, false

from hallpass.db.base_class import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckInRecord(Base):
    """
    One occupancy interval: opened at checkout, closed at check-in.

    A NULL check_in_at means the student is currently out. A student has at
    most one open interval at a time, enforced by a partial unique index.
    """
    __tablename__ = "check_ins"

    id = Column(String, primary_key=True, default=lambda: f"chk_{uuid.uuid4().hex[:12]}")
    student_id = Column(String, nullable=False, index=True)
    classroom_id = Column(
        String, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False
    )
    # Denormalized free text so history survives destination renames/deletes
    destination = Column(String, nullable=True)
    check_out_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    check_in_at = Column(DateTime(timezone=True), nullable=True)
    manual_override = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        Index("idx_check_ins_classroom_open", "classroom_id", "check_in_at"),
        Index(
            "uq_check_ins_open_per_student",
            "student_id",
            unique=True,
            postgresql_where=text("check_in_at IS NULL"),
            sqlite_where=text("check_in_at IS NULL"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.check_in_at is None
