# hallpass/core/locks.py
"""
Per-destination critical sections.

Every mutation of a destination's queue (position assignment, promotion,
skip, remove, approve, reservation checkout) runs while holding the lock for
its (classroom_id, destination_id) pair. Different destinations never share
a lock, so they stay fully concurrent. Two more scopes share the same
registry: one per classroom for destination configuration, and one per
student for that student's own checkout/check-in requests.

Two backends:
- local: one threading.Lock per key, for a single API process
- redis: a redis-py Lock per key, for several API processes or workers

Acquisition is bounded by LOCK_TIMEOUT_SECONDS; on timeout DestinationBusy
is raised and nothing has been written.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

import redis

from hallpass.core.config import settings
from hallpass.core.exceptions import DestinationBusy

logger = logging.getLogger(__name__)

# Pseudo destination id guarding classroom-wide registry changes
CLASSROOM_SCOPE = "__classroom__"
# Pseudo classroom id for per-student locks
STUDENT_SCOPE = "__student__"

LockKey = Tuple[str, str]


class LocalLockRegistry:
    """In-process lock per (classroom_id, destination_id)."""

    def __init__(self):
        self._locks: Dict[LockKey, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: LockKey, timeout: float) -> Iterator[None]:
        lock = self._lock_for(key)
        if not lock.acquire(timeout=timeout):
            logger.warning(f"Timed out after {timeout}s waiting for lock {key}")
            raise DestinationBusy(*key)
        try:
            yield
        finally:
            lock.release()


class RedisLockRegistry:
    """Distributed lock per (classroom_id, destination_id) backed by Redis."""

    def __init__(self, redis_client: redis.Redis, lease_seconds: int = 30):
        self.redis = redis_client
        # Lease outlives any single operation; it only matters if a holder dies.
        self.lease_seconds = lease_seconds

    @staticmethod
    def lock_name(key: LockKey) -> str:
        classroom_id, destination_id = key
        return f"hallpass:lock:{classroom_id}:{destination_id}"

    @contextmanager
    def hold(self, key: LockKey, timeout: float) -> Iterator[None]:
        lock = self.redis.lock(
            self.lock_name(key),
            timeout=self.lease_seconds,
            blocking_timeout=timeout,
        )
        if not lock.acquire():
            logger.warning(f"Timed out after {timeout}s waiting for redis lock {key}")
            raise DestinationBusy(*key)
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError as e:
                # The lease expired while we held it; the write already committed or rolled back.
                logger.warning(f"Redis lock {key} was lost before release: {e}")


_registry = None


def get_lock_registry():
    """Build the configured lock registry once per process."""
    global _registry
    if _registry is None:
        if settings.LOCK_BACKEND == "redis":
            from hallpass.db.redis import get_redis_client
            _registry = RedisLockRegistry(get_redis_client())
        elif settings.LOCK_BACKEND == "local":
            _registry = LocalLockRegistry()
        else:
            raise ValueError(f"Unknown LOCK_BACKEND '{settings.LOCK_BACKEND}'")
        logger.info(f"Destination locks using '{settings.LOCK_BACKEND}' backend")
    return _registry


def set_lock_registry(registry) -> None:
    """Replace the process-wide registry (used by tests and workers)."""
    global _registry
    _registry = registry


@contextmanager
def destination_lock(
    classroom_id: str, destination_id: str, timeout: Optional[float] = None
) -> Iterator[None]:
    """Serialize all queue mutation for one destination."""
    wait = settings.LOCK_TIMEOUT_SECONDS if timeout is None else timeout
    with get_lock_registry().hold((classroom_id, destination_id), wait):
        yield


@contextmanager
def classroom_lock(classroom_id: str, timeout: Optional[float] = None) -> Iterator[None]:
    """
    Serialize destination configuration changes within a classroom.

    Always taken before any destination lock, never after.
    """
    with destination_lock(classroom_id, CLASSROOM_SCOPE, timeout=timeout):
        yield


@contextmanager
def student_lock(student_id: str, timeout: Optional[float] = None) -> Iterator[None]:
    """
    Serialize one student's own checkout/check-in requests.

    Lock order is student, then classroom, then destination.
    """
    wait = settings.LOCK_TIMEOUT_SECONDS if timeout is None else timeout
    with get_lock_registry().hold((STUDENT_SCOPE, student_id), wait):
        yield
