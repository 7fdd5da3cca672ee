# hallpass/models/waitlist_entry.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Index, CheckConstraint, JSON, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from hallpass.db.base_class import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WaitListEntry(Base):
    """
    A queued request to occupy a capacity-limited destination.

    Features:
    - Dense per-destination positions (1..N over waiting/approved entries)
    - Status tracking (waiting, approved, checked_out, cancelled)
    - One active entry per student per classroom, whatever the destination
    """
    __tablename__ = "waitlist_entries"

    id = Column(String, primary_key=True, default=lambda: f"wle_{uuid.uuid4().hex[:12]}")
    student_id = Column(String, nullable=False)
    classroom_id = Column(
        String, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False
    )
    destination_id = Column(
        String, ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False
    )

    # Queue Management
    position = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="waiting", server_default="waiting")

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    # Restarted when a skip sends the entry back to the tail; the expiry TTL runs from here
    queued_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    destination = relationship("Destination")

    __table_args__ = (
        CheckConstraint("position > 0", name="check_waitlist_position_positive"),
        CheckConstraint(
            "status IN ('waiting', 'approved', 'checked_out', 'cancelled')",
            name="check_waitlist_status",
        ),
        Index("idx_waitlist_classroom_destination_status", "classroom_id", "destination_id", "status"),
        Index("idx_waitlist_student_classroom", "student_id", "classroom_id"),
        Index(
            "uq_waitlist_active_student",
            "student_id",
            "classroom_id",
            unique=True,
            postgresql_where=text("status IN ('waiting', 'approved')"),
            sqlite_where=text("status IN ('waiting', 'approved')"),
        ),
    )


class WaitlistEvent(Base):
    """
    Append-only log of waitlist activity.

    Event types:
    - JOINED: entry created because the destination was full
    - PROMOTED: earliest waiting entry approved after a slot freed
    - APPROVED: teacher force-approved the entry
    - SKIPPED: teacher moved the entry to the tail
    - REMOVED: teacher cancelled the entry
    - CHECKED_OUT: student used the approved reservation
    - EXPIRED: entry cancelled by the expiry sweep
    """
    __tablename__ = "waitlist_events"

    id = Column(String, primary_key=True, default=lambda: f"wev_{uuid.uuid4().hex[:12]}")
    waitlist_entry_id = Column(
        String, ForeignKey("waitlist_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type = Column(String(50), nullable=False)
    event_data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
