# hallpass/crud/crud_classroom.py
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from hallpass.models.classroom import Classroom, ClassroomStudent


class CRUDClassroom:
    """Classroom lookups and the enrollment check used by the admission engine."""

    def get_owned(self, db: Session, *, classroom_id: str, teacher_id: str) -> Optional[Classroom]:
        """Get a classroom only if it belongs to the given teacher."""
        return db.query(Classroom).filter(
            and_(
                Classroom.id == classroom_id,
                Classroom.teacher_id == teacher_id,
            )
        ).first()

    def create(self, db: Session, *, name: str, teacher_id: str) -> Classroom:
        classroom = Classroom(name=name, teacher_id=teacher_id)
        db.add(classroom)
        db.commit()
        db.refresh(classroom)
        return classroom

    def enroll(self, db: Session, *, classroom_id: str, student_id: str) -> ClassroomStudent:
        enrollment = ClassroomStudent(classroom_id=classroom_id, student_id=student_id)
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    def is_enrolled(self, db: Session, *, student_id: str, classroom_id: str) -> bool:
        return db.query(ClassroomStudent.id).filter(
            and_(
                ClassroomStudent.student_id == student_id,
                ClassroomStudent.classroom_id == classroom_id,
            )
        ).first() is not None


# Singleton instance
classroom_crud = CRUDClassroom()
