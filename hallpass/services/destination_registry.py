# hallpass/services/destination_registry.py
"""
Destination Registry.

Owns destination configuration (name, capacity, active flag, display order)
and the classroom-wide rule that at most one active destination carries a
capacity limit (the "waiting room").
"""

import logging
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hallpass.constants.waitlist import DEFAULT_DESTINATIONS
from hallpass.core.exceptions import (
    CapacityConflict,
    DestinationNotFound,
    DuplicateDestination,
    ValidationError,
)
from hallpass.core.locks import classroom_lock, destination_lock
from hallpass.crud.crud_check_in import check_in_crud
from hallpass.crud.crud_destination import destination_crud
from hallpass.models.destination import Destination
from hallpass.models.waitlist_entry import WaitListEntry, WaitlistEvent
from hallpass.services.waitlist_queue import waitlist_queue

logger = logging.getLogger(__name__)

# Sentinel so update() can tell "capacity not given" from "capacity=None"
UNSET: Any = object()


def normalize_capacity(capacity: Any) -> Optional[int]:
    """
    Normalize a requested capacity.

    None, 0 and "" mean unlimited (stored as NULL). A positive integer, or a
    string holding one, is a limit. Anything else is rejected.
    """
    if isinstance(capacity, bool):
        raise ValidationError("Capacity must be a positive integer")
    if capacity is None:
        return None
    if isinstance(capacity, str):
        stripped = capacity.strip()
        if not stripped:
            return None
        if not stripped.isdigit():
            raise ValidationError("Capacity must be a positive integer")
        capacity = int(stripped)
    if not isinstance(capacity, int) or capacity < 0:
        raise ValidationError("Capacity must be a positive integer")
    return capacity or None


def normalize_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Destination name is required")
    return name.strip()


class DestinationRegistry:

    # ==================== Reads ====================

    def resolve(self, db: Session, *, classroom_id: str, name: str) -> Destination:
        """Active destination by name within a classroom."""
        destination = destination_crud.get_by_name(db, classroom_id=classroom_id, name=name)
        if destination is None:
            raise DestinationNotFound(name)
        return destination

    def list_destinations(self, db: Session, *, classroom_id: str) -> List[Destination]:
        """Active destinations by sort order; seeds the defaults for a new classroom."""
        destinations = destination_crud.list_active(db, classroom_id=classroom_id)
        if destinations:
            return destinations

        with classroom_lock(classroom_id):
            db.expire_all()
            destinations = destination_crud.list_active(db, classroom_id=classroom_id)
            if destinations:
                return destinations
            try:
                for default in DEFAULT_DESTINATIONS:
                    # An inactive destination may already hold a default name.
                    if destination_crud.name_taken(db, classroom_id=classroom_id, name=default["name"]):
                        continue
                    destination_crud.create(
                        db,
                        classroom_id=classroom_id,
                        name=default["name"],
                        sort_order=default["sort_order"],
                    )
                db.commit()
            except Exception:
                db.rollback()
                raise
            logger.info(f"Seeded default destinations for classroom {classroom_id}")

        return destination_crud.list_active(db, classroom_id=classroom_id)

    # ==================== Capacity rule ====================

    def _check_capacity_conflict(
        self, db: Session, *, classroom_id: str, destination_id: Optional[str]
    ) -> None:
        existing = destination_crud.find_other_with_capacity(
            db, classroom_id=classroom_id, exclude_id=destination_id
        )
        if existing is not None:
            logger.warning(
                f"Capacity rejected for destination {destination_id} in classroom {classroom_id}: "
                f"'{existing.name}' already has a waiting room"
            )
            raise CapacityConflict(existing.id, existing.name)

    def set_capacity(
        self, db: Session, *, classroom_id: str, destination_id: str, capacity: Any
    ) -> Destination:
        """
        Set or clear a destination's capacity.

        Clearing (None / 0 / "") always succeeds. A positive limit fails with
        CapacityConflict if another active destination already has one.
        """
        return self.update(
            db, classroom_id=classroom_id, destination_id=destination_id, capacity=capacity
        )

    # ==================== Writes ====================

    def create_destination(
        self, db: Session, *, classroom_id: str, name: Any, capacity: Any = None
    ) -> Destination:
        clean_name = normalize_name(name)
        clean_capacity = normalize_capacity(capacity)

        with classroom_lock(classroom_id):
            db.expire_all()
            if destination_crud.name_taken(db, classroom_id=classroom_id, name=clean_name):
                raise DuplicateDestination(str(clean_name))
            if clean_capacity is not None:
                self._check_capacity_conflict(db, classroom_id=classroom_id, destination_id=None)

            try:
                destination = destination_crud.create(
                    db,
                    classroom_id=classroom_id,
                    name=clean_name,
                    sort_order=destination_crud.next_sort_order(db, classroom_id=classroom_id),
                    capacity=clean_capacity,
                )
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateDestination(str(clean_name))

        db.refresh(destination)
        logger.info(
            f"Created destination {destination.id} '{destination.name}' "
            f"(capacity={destination.capacity}) in classroom {classroom_id}"
        )
        return destination

    def rename(
        self, db: Session, *, classroom_id: str, destination_id: str, name: Any
    ) -> Destination:
        return self.update(db, classroom_id=classroom_id, destination_id=destination_id, name=name)

    def update(
        self,
        db: Session,
        *,
        classroom_id: str,
        destination_id: str,
        name: Any = UNSET,
        sort_order: Any = UNSET,
        is_active: Any = UNSET,
        capacity: Any = UNSET,
    ) -> Destination:
        """
        Partial update. Only the fields that are passed change.

        Runs under the classroom lock (capacity rule) and the destination lock
        (open check-ins and the queue may be touched).
        """
        clean_name = normalize_name(name) if name is not UNSET else UNSET
        clean_capacity = normalize_capacity(capacity) if capacity is not UNSET else UNSET
        if sort_order is not UNSET and (not isinstance(sort_order, int) or isinstance(sort_order, bool)):
            raise ValidationError("Sort order must be a number")
        if is_active is not UNSET and not isinstance(is_active, bool):
            raise ValidationError("isActive must be a boolean")

        with classroom_lock(classroom_id), destination_lock(classroom_id, destination_id):
            db.expire_all()
            destination = destination_crud.get_for_update(db, destination_id)
            if destination is None or destination.classroom_id != classroom_id:
                raise DestinationNotFound(destination_id)

            final_capacity = destination.capacity if clean_capacity is UNSET else clean_capacity
            final_active = destination.is_active if is_active is UNSET else is_active
            if final_capacity is not None and final_active:
                self._check_capacity_conflict(db, classroom_id=classroom_id, destination_id=destination_id)

            try:
                if clean_name is not UNSET and clean_name != destination.name:
                    if destination_crud.name_taken(
                        db, classroom_id=classroom_id, name=clean_name, exclude_id=destination_id
                    ):
                        raise DuplicateDestination(str(clean_name))
                    check_in_crud.rename_open_destination(
                        db, classroom_id=classroom_id, old_name=destination.name, new_name=clean_name
                    )
                    destination.name = clean_name
                if sort_order is not UNSET:
                    destination.sort_order = sort_order
                if is_active is not UNSET:
                    destination.is_active = is_active

                capacity_changed = clean_capacity is not UNSET and clean_capacity != destination.capacity
                if clean_capacity is not UNSET:
                    destination.capacity = clean_capacity
                db.flush()

                promoted = []
                if capacity_changed:
                    promoted = waitlist_queue.rebalance(db, destination=destination)
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateDestination(str(clean_name))
            except Exception:
                db.rollback()
                raise

        db.refresh(destination)
        logger.info(
            f"Updated destination {destination_id} in classroom {classroom_id} "
            f"(capacity={destination.capacity}, promoted={len(promoted)})"
        )
        return destination

    def delete_destination(self, db: Session, *, classroom_id: str, destination_id: str) -> None:
        """
        Delete a destination together with its queue.

        Check-in history keeps the destination name as free text and is untouched.
        """
        with classroom_lock(classroom_id), destination_lock(classroom_id, destination_id):
            db.expire_all()
            destination = destination_crud.get_for_update(db, destination_id)
            if destination is None or destination.classroom_id != classroom_id:
                raise DestinationNotFound(destination_id)

            try:
                entry_ids = select(WaitListEntry.id).where(
                    WaitListEntry.destination_id == destination_id
                )
                db.query(WaitlistEvent).filter(
                    WaitlistEvent.waitlist_entry_id.in_(entry_ids)
                ).delete(synchronize_session=False)
                db.query(WaitListEntry).filter(
                    WaitListEntry.destination_id == destination_id
                ).delete(synchronize_session=False)
                db.delete(destination)
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info(f"Deleted destination {destination_id} from classroom {classroom_id}")


# Singleton instance
destination_registry = DestinationRegistry()
