# hallpass/db/redis.py
import redis
from hallpass.core.config import settings


def get_redis_client() -> redis.Redis:
    """
    Creates and returns a new Redis client instance.

    The client connects lazily, so building one does not require a running
    server until the first command is issued.
    """
    return redis.from_url(settings.REDIS_URL, decode_responses=True)
