# hallpass/crud/crud_destination.py
"""
Query helpers for Destination rows.

Helpers here only flush; the registry and admission services own the
transaction and decide when to commit.
"""

from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy import and_, func

from hallpass.models.destination import Destination


class CRUDDestination:
    """CRUD operations for Destination."""

    def get_for_update(self, db: Session, destination_id: str) -> Optional[Destination]:
        """
        Lock the destination row for the rest of the transaction.

        Serializes queue mutation across processes on PostgreSQL; SQLite
        ignores FOR UPDATE and relies on the in-process destination lock.
        """
        return db.query(Destination).filter(
            Destination.id == destination_id
        ).with_for_update().first()

    def get_by_name(
        self,
        db: Session,
        *,
        classroom_id: str,
        name: str,
        active_only: bool = True,
    ) -> Optional[Destination]:
        query = db.query(Destination).filter(
            and_(
                Destination.classroom_id == classroom_id,
                Destination.name == name,
            )
        )
        if active_only:
            query = query.filter(Destination.is_active.is_(True))
        return query.first()

    def name_taken(
        self, db: Session, *, classroom_id: str, name: str, exclude_id: Optional[str] = None
    ) -> bool:
        query = db.query(Destination.id).filter(
            and_(
                Destination.classroom_id == classroom_id,
                Destination.name == name,
            )
        )
        if exclude_id:
            query = query.filter(Destination.id != exclude_id)
        return query.first() is not None

    def list_active(self, db: Session, *, classroom_id: str) -> List[Destination]:
        return db.query(Destination).filter(
            and_(
                Destination.classroom_id == classroom_id,
                Destination.is_active.is_(True),
            )
        ).order_by(Destination.sort_order.asc()).all()

    def find_other_with_capacity(
        self, db: Session, *, classroom_id: str, exclude_id: Optional[str] = None
    ) -> Optional[Destination]:
        """Find an active capacity-limited destination other than `exclude_id`."""
        query = db.query(Destination).filter(
            and_(
                Destination.classroom_id == classroom_id,
                Destination.is_active.is_(True),
                Destination.capacity.isnot(None),
            )
        )
        if exclude_id:
            query = query.filter(Destination.id != exclude_id)
        return query.first()

    def next_sort_order(self, db: Session, *, classroom_id: str) -> int:
        max_order = db.query(func.max(Destination.sort_order)).filter(
            Destination.classroom_id == classroom_id
        ).scalar()
        return 0 if max_order is None else max_order + 1

    def create(
        self,
        db: Session,
        *,
        classroom_id: str,
        name: str,
        sort_order: int,
        capacity: Optional[int] = None,
    ) -> Destination:
        destination = Destination(
            classroom_id=classroom_id,
            name=name,
            sort_order=sort_order,
            capacity=capacity,
            is_active=True,
        )
        db.add(destination)
        db.flush()
        return destination


# Singleton instance
destination_crud = CRUDDestination()
