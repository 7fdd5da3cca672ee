# hallpass/services/waitlist_queue.py
"""
Waitlist Queue Manager.

Owns the ordered, per-destination queue of waitlist entries:
- position assignment (next_position / enqueue)
- canonical compaction back to a dense 1..N range
- FIFO promotion of the earliest waiting entry when a slot frees
- the teacher actions skip / remove / approve

Methods whose names start with an underscore, plus next_position, enqueue,
compact, fill_free_slot, rebalance, complete_reservation and expire_entry,
expect the caller to already hold `destination_lock` for the entry's
destination and to commit.
The public action methods (promote_next, skip, remove, approve,
apply_action) take the lock and commit themselves.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from hallpass.constants.waitlist import WaitlistAction, WaitlistEventType, WaitlistStatus
from hallpass.core.exceptions import EntryNotFound, InvalidAction
from hallpass.core.locks import destination_lock
from hallpass.crud.crud_check_in import check_in_crud
from hallpass.crud.crud_destination import destination_crud
from hallpass.crud.crud_waitlist_entry import waitlist_entry_crud, waitlist_event
from hallpass.models.destination import Destination
from hallpass.models.waitlist_entry import WaitListEntry

logger = logging.getLogger(__name__)


class WaitlistQueueManager:

    # ==================== Queue state ====================

    def next_position(self, db: Session, *, destination_id: str) -> int:
        """1 + max(position) over waiting/approved entries, or 1 for an empty queue."""
        return waitlist_entry_crud.max_active_position(db, destination_id=destination_id) + 1

    def occupancy(self, db: Session, *, destination: Destination) -> int:
        """Students currently out to the destination plus approved reservations for it."""
        open_count = check_in_crud.count_open_for_destination(
            db, classroom_id=destination.classroom_id, destination_name=destination.name
        )
        approved_count = waitlist_entry_crud.count_approved(db, destination_id=destination.id)
        return open_count + approved_count

    def list_entries(self, db: Session, *, classroom_id: str) -> List[WaitListEntry]:
        """All waiting/approved entries in a classroom, by destination then position."""
        return waitlist_entry_crud.list_active_for_classroom(db, classroom_id=classroom_id)

    # ==================== Lock-held building blocks ====================

    def enqueue(
        self, db: Session, *, student_id: str, classroom_id: str, destination_id: str
    ) -> WaitListEntry:
        """Append a waiting entry at the tail of the destination's queue."""
        position = self.next_position(db, destination_id=destination_id)
        entry = waitlist_entry_crud.create_waiting(
            db,
            student_id=student_id,
            classroom_id=classroom_id,
            destination_id=destination_id,
            position=position,
        )
        waitlist_event.log_event(
            db,
            waitlist_entry_id=entry.id,
            event_type=WaitlistEventType.JOINED.value,
            metadata={"position": position},
        )
        logger.info(
            f"Student {student_id} joined waitlist for destination {destination_id} at position {position}"
        )
        return entry

    def compact(self, db: Session, *, destination_id: str) -> int:
        """
        Canonical compaction: renumber waiting/approved entries to 1..N.

        Current relative order is kept (position, then created_at). Runs
        after every skip, remove, expiry and reservation checkout.
        Returns the number of entries whose position changed.
        """
        entries = waitlist_entry_crud.list_active_for_destination(db, destination_id=destination_id)

        updated_count = 0
        for idx, entry in enumerate(entries, start=1):
            if entry.position != idx:
                entry.position = idx
                updated_count += 1

        if updated_count:
            db.flush()
            logger.debug(f"Compacted {updated_count} positions for destination {destination_id}")
        return updated_count

    def _promote_next(self, db: Session, *, destination_id: str) -> Optional[WaitListEntry]:
        entry = waitlist_entry_crud.first_waiting(db, destination_id=destination_id)
        if entry is None:
            return None

        waitlist_entry_crud.set_status(db, entry=entry, status=WaitlistStatus.APPROVED)
        waitlist_event.log_event(
            db,
            waitlist_entry_id=entry.id,
            event_type=WaitlistEventType.PROMOTED.value,
            metadata={"position": entry.position},
        )
        logger.info(
            f"Promoted student {entry.student_id} (position {entry.position}) "
            f"for destination {destination_id}"
        )
        return entry

    def fill_free_slot(self, db: Session, *, destination: Destination) -> Optional[WaitListEntry]:
        """
        Promote the next waiting entry only if the destination has a free slot.

        A destination still at or over capacity (after a bypass admission or
        a capacity decrease) promotes nobody.
        """
        if destination.capacity is not None and self.occupancy(db, destination=destination) >= destination.capacity:
            return None
        return self._promote_next(db, destination_id=destination.id)

    def rebalance(self, db: Session, *, destination: Destination) -> List[WaitListEntry]:
        """
        Promote waiting entries while the destination has free slots.

        Used after a capacity change. An unlimited destination promotes every
        waiting entry so nobody is stranded in a queue that no longer exists.
        """
        promoted = []
        while True:
            entry = self.fill_free_slot(db, destination=destination)
            if entry is None:
                break
            promoted.append(entry)
        return promoted

    def complete_reservation(self, db: Session, *, entry: WaitListEntry) -> WaitListEntry:
        """
        approved -> checked_out, then compact.

        The reserved slot is consumed rather than freed, so nobody is promoted.
        """
        waitlist_entry_crud.set_status(db, entry=entry, status=WaitlistStatus.CHECKED_OUT)
        waitlist_event.log_event(
            db,
            waitlist_entry_id=entry.id,
            event_type=WaitlistEventType.CHECKED_OUT.value,
            metadata={"position": entry.position},
        )
        self.compact(db, destination_id=entry.destination_id)
        return entry

    def expire_entry(self, db: Session, *, entry: WaitListEntry) -> WaitListEntry:
        """Cancel a stale entry through the same path as remove."""
        return self._cancel(db, entry=entry, event_type=WaitlistEventType.EXPIRED)

    def _cancel(
        self,
        db: Session,
        *,
        entry: WaitListEntry,
        event_type: WaitlistEventType,
        actor_id: Optional[str] = None,
    ) -> WaitListEntry:
        was_approved = entry.status == WaitlistStatus.APPROVED.value
        original_position = entry.position

        waitlist_entry_crud.set_status(db, entry=entry, status=WaitlistStatus.CANCELLED)
        self.compact(db, destination_id=entry.destination_id)
        waitlist_event.log_event(
            db,
            waitlist_entry_id=entry.id,
            event_type=event_type.value,
            metadata={
                "position": original_position,
                "was_approved": was_approved,
                "actor_id": actor_id,
            },
        )
        logger.info(
            f"Waitlist entry {entry.id} cancelled ({event_type.value}) "
            f"from position {original_position} for destination {entry.destination_id}"
        )

        if was_approved:
            self.fill_free_slot(db, destination=entry.destination)
        return entry

    def _skip(self, db: Session, *, entry: WaitListEntry, actor_id: Optional[str] = None) -> WaitListEntry:
        was_approved = entry.status == WaitlistStatus.APPROVED.value
        original_position = entry.position

        entry.position = self.next_position(db, destination_id=entry.destination_id)
        # Re-queued at the tail, so the expiry clock restarts
        waitlist_entry_crud.set_status(db, entry=entry, status=WaitlistStatus.WAITING)
        self.compact(db, destination_id=entry.destination_id)
        waitlist_event.log_event(
            db,
            waitlist_entry_id=entry.id,
            event_type=WaitlistEventType.SKIPPED.value,
            metadata={
                "from_position": original_position,
                "to_position": entry.position,
                "was_approved": was_approved,
                "actor_id": actor_id,
            },
        )
        logger.info(
            f"Waitlist entry {entry.id} skipped from position {original_position} "
            f"to {entry.position} for destination {entry.destination_id}"
        )

        if was_approved:
            self.fill_free_slot(db, destination=entry.destination)
        return entry

    def _approve(self, db: Session, *, entry: WaitListEntry, actor_id: Optional[str] = None) -> WaitListEntry:
        # Force-approval ignores position and occupancy on purpose.
        if entry.status == WaitlistStatus.APPROVED.value:
            return entry

        waitlist_entry_crud.set_status(db, entry=entry, status=WaitlistStatus.APPROVED)
        waitlist_event.log_event(
            db,
            waitlist_entry_id=entry.id,
            event_type=WaitlistEventType.APPROVED.value,
            metadata={"position": entry.position, "actor_id": actor_id},
        )
        logger.info(f"Waitlist entry {entry.id} force-approved at position {entry.position}")
        return entry

    # ==================== Public, self-locking operations ====================

    def promote_next(
        self, db: Session, *, classroom_id: str, destination_id: str
    ) -> Optional[WaitListEntry]:
        """
        Approve the smallest-position waiting entry for the destination.

        Exactly one promotion per call; no-op when nobody is waiting.
        """
        with destination_lock(classroom_id, destination_id):
            db.expire_all()
            destination_crud.get_for_update(db, destination_id)
            try:
                entry = self._promote_next(db, destination_id=destination_id)
                db.commit()
            except Exception as e:
                logger.error(
                    f"Failed to promote next entry for destination {destination_id}: {str(e)}",
                    exc_info=True,
                )
                db.rollback()
                raise
        return entry

    def skip(
        self, db: Session, *, entry_id: str, classroom_id: str, actor_id: Optional[str] = None
    ) -> WaitListEntry:
        """Move an entry to the tail of its destination's queue as `waiting`."""
        return self._mutate_entry(
            db, entry_id=entry_id, classroom_id=classroom_id,
            operation=lambda entry: self._skip(db, entry=entry, actor_id=actor_id),
        )

    def remove(
        self, db: Session, *, entry_id: str, classroom_id: str, actor_id: Optional[str] = None
    ) -> WaitListEntry:
        """Cancel an entry; re-fill its slot if it had been approved."""
        return self._mutate_entry(
            db, entry_id=entry_id, classroom_id=classroom_id,
            operation=lambda entry: self._cancel(
                db, entry=entry, event_type=WaitlistEventType.REMOVED, actor_id=actor_id
            ),
        )

    def approve(
        self, db: Session, *, entry_id: str, classroom_id: str, actor_id: Optional[str] = None
    ) -> WaitListEntry:
        """Force-approve an entry regardless of position or occupancy."""
        return self._mutate_entry(
            db, entry_id=entry_id, classroom_id=classroom_id,
            operation=lambda entry: self._approve(db, entry=entry, actor_id=actor_id),
        )

    @staticmethod
    def parse_action(action: object) -> WaitlistAction:
        """Parse a caller-supplied action string into the closed WaitlistAction set."""
        allowed = [member.value for member in WaitlistAction]
        if isinstance(action, WaitlistAction):
            return action
        if not isinstance(action, str):
            raise InvalidAction(str(action), allowed)
        try:
            return WaitlistAction(action)
        except ValueError:
            raise InvalidAction(action, allowed)

    def apply_action(
        self,
        db: Session,
        *,
        entry_id: str,
        classroom_id: str,
        action: object,
        actor_id: Optional[str] = None,
    ) -> WaitListEntry:
        """Dispatch a teacher action; every WaitlistAction member is handled."""
        parsed = self.parse_action(action)
        if parsed is WaitlistAction.SKIP:
            return self.skip(db, entry_id=entry_id, classroom_id=classroom_id, actor_id=actor_id)
        if parsed is WaitlistAction.REMOVE:
            return self.remove(db, entry_id=entry_id, classroom_id=classroom_id, actor_id=actor_id)
        if parsed is WaitlistAction.APPROVE:
            return self.approve(db, entry_id=entry_id, classroom_id=classroom_id, actor_id=actor_id)
        raise AssertionError(f"Unhandled waitlist action {parsed!r}")

    def _mutate_entry(
        self,
        db: Session,
        *,
        entry_id: str,
        classroom_id: str,
        operation: Callable[[WaitListEntry], WaitListEntry],
    ) -> WaitListEntry:
        entry = waitlist_entry_crud.get_active_in_classroom(
            db, entry_id=entry_id, classroom_id=classroom_id
        )
        if entry is None:
            raise EntryNotFound(entry_id)
        destination_id = entry.destination_id

        with destination_lock(classroom_id, destination_id):
            # Re-read under the lock; a concurrent action may have changed the entry.
            db.expire_all()
            destination_crud.get_for_update(db, destination_id)
            entry = waitlist_entry_crud.get_active_in_classroom(
                db, entry_id=entry_id, classroom_id=classroom_id
            )
            if entry is None:
                db.rollback()
                raise EntryNotFound(entry_id)

            try:
                result = operation(entry)
                db.commit()
            except Exception as e:
                logger.error(
                    f"Waitlist action failed for entry {entry_id}: {str(e)}",
                    exc_info=True,
                    extra={"entry_id": entry_id, "classroom_id": classroom_id},
                )
                db.rollback()
                raise

        db.refresh(result)
        return result


# Singleton instance
waitlist_queue = WaitlistQueueManager()
