# hallpass/background_tasks/waitlist_tasks.py
"""
Background tasks for waitlist management.

- expire_stale_entries(): every EXPIRY_SWEEP_MINUTES when the scheduler is on

Entries only expire when WAITLIST_ENTRY_TTL_MINUTES is configured.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from hallpass.constants.waitlist import WaitlistStatus
from hallpass.core.config import settings
from hallpass.core.exceptions import DestinationBusy
from hallpass.core.locks import destination_lock
from hallpass.crud.crud_destination import destination_crud
from hallpass.crud.crud_waitlist_entry import waitlist_entry_crud
from hallpass.db.session import SessionLocal
from hallpass.services.waitlist_queue import waitlist_queue

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def expire_stale_entries(
    db: Optional[Session] = None,
    now: Optional[datetime] = None,
    ttl_minutes: Optional[int] = None,
) -> int:
    """
    Background task: cancel `waiting` entries queued longer than the configured TTL.

    Process, per destination:
    1. Take the destination lock and re-read the stale entries
    2. Cancel each through the same path as a teacher remove (logged EXPIRED)
    3. Commit

    A destination whose lock is busy is skipped until the next sweep.
    Returns the number of entries expired.
    """
    ttl = settings.WAITLIST_ENTRY_TTL_MINUTES if ttl_minutes is None else ttl_minutes
    if not ttl:
        return 0

    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=ttl)

    owns_session = db is None
    if owns_session:
        db = SessionLocal()

    expired = 0
    try:
        stale = waitlist_entry_crud.list_waiting_queued_before(db, cutoff=cutoff)
        by_destination = defaultdict(list)
        for entry in stale:
            by_destination[(entry.classroom_id, entry.destination_id)].append(entry.id)

        for (classroom_id, destination_id), entry_ids in by_destination.items():
            try:
                with destination_lock(classroom_id, destination_id):
                    db.expire_all()
                    destination_crud.get_for_update(db, destination_id)
                    try:
                        for entry_id in entry_ids:
                            entry = waitlist_entry_crud.get(db, entry_id)
                            # Promoted, removed or re-queued since the first read
                            if entry is None or entry.status != WaitlistStatus.WAITING.value:
                                continue
                            if _as_utc(entry.queued_at) >= cutoff:
                                continue
                            waitlist_queue.expire_entry(db, entry=entry)
                            expired += 1
                        db.commit()
                    except Exception as e:
                        logger.error(
                            f"Error expiring waitlist entries for destination {destination_id}: {e}",
                            exc_info=True,
                        )
                        db.rollback()
                        raise
            except DestinationBusy:
                logger.warning(f"Skipping expiry for busy destination {destination_id}")

        if expired:
            logger.info(f"Expired {expired} stale waitlist entries (ttl={ttl} minutes)")
        return expired

    finally:
        if owns_session:
            db.close()
