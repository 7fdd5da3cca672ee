# hallpass/models/classroom.py
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint, true
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from hallpass.db.base_class import Base


class Classroom(Base):
    """
    A teacher-owned room. Owns destinations, enrollments, check-in records
    and waitlist entries; deleting a classroom cascades to all of them.
    """
    __tablename__ = "classrooms"

    id = Column(String, primary_key=True, default=lambda: f"cls_{uuid.uuid4().hex[:12]}")
    name = Column(String, nullable=False)
    teacher_id = Column(String, nullable=False, index=True)  # No FK - users live in the auth service
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    enrollments = relationship(
        "ClassroomStudent", back_populates="classroom", cascade="all, delete-orphan"
    )
    destinations = relationship(
        "Destination", back_populates="classroom", cascade="all, delete-orphan"
    )


class ClassroomStudent(Base):
    __tablename__ = "classroom_students"

    id = Column(String, primary_key=True, default=lambda: f"enr_{uuid.uuid4().hex[:12]}")
    student_id = Column(String, nullable=False, index=True)  # No FK - roster import owns students
    classroom_id = Column(
        String, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enrolled_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    classroom = relationship("Classroom", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("student_id", "classroom_id", name="unique_classroom_student"),
    )
