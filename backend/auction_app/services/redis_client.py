import redis

from auction_app.core.config import get_settings


def get_redis_client() -> redis.Redis | None:
    settings = get_settings()
    if not settings.room_snapshots_enabled:
        return None
    try:
        return redis.Redis.from_url(settings.redis_url, decode_responses=True)
    except (redis.RedisError, ValueError):
        return None
