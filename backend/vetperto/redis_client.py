# backend/vetperto/redis_client.py

import redis
from redis import Redis

from .config import settings

# Connection is opened lazily on the first command.
redis_client: Redis = redis.Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_timeout=2.0,
)


def get_redis() -> Redis:
    """Shared client. Also used as a FastAPI dependency."""
    return redis_client
