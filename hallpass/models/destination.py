# hallpass/models/destination.py
import uuid
from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, ForeignKey, UniqueConstraint, CheckConstraint, true
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from hallpass.db.base_class import Base


class Destination(Base):
    """
    A named place a student may check out to.

    Features:
    - Optional capacity (NULL = unlimited); a capacity turns the destination
      into a "waiting room" backed by the waitlist
    - Per-classroom unique name
    - Soft deactivation and display ordering
    """
    __tablename__ = "destinations"

    id = Column(String, primary_key=True, default=lambda: f"dst_{uuid.uuid4().hex[:12]}")
    classroom_id = Column(
        String, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    capacity = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    sort_order = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    classroom = relationship("Classroom", back_populates="destinations")

    __table_args__ = (
        UniqueConstraint("classroom_id", "name", name="unique_classroom_destination_name"),
        CheckConstraint("capacity IS NULL OR capacity > 0", name="check_destination_capacity_positive"),
    )

    @property
    def has_capacity(self) -> bool:
        return self.capacity is not None
