import asyncio
import json
import logging
from threading import Lock

import redis

from auction_app.services.auction_state import AuctionState, deserialize_state, serialize_state
from auction_app.services.redis_client import get_redis_client

logger = logging.getLogger(__name__)

ROOM_SNAPSHOT_KEY = "auction:rooms"


class RoomStore:
    """Room code to authoritative state, with one asyncio lock per room.

    Callers mutate a room only while holding ``lock(room_code)``. The thread
    lock below only guards the dictionaries themselves.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self._rooms: dict[str, AuctionState] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}
        self._lock = Lock()
        self._redis = redis_client

    def _persist(self, state: AuctionState) -> None:
        if self._redis is None:
            return
        try:
            self._redis.hset(
                ROOM_SNAPSHOT_KEY,
                state.room_code,
                json.dumps(serialize_state(state)),
            )
        except redis.RedisError as exc:
            logger.warning("room snapshot write failed room=%s error=%s", state.room_code, exc)

    def _load_snapshot(self, room_code: str) -> AuctionState | None:
        if self._redis is None:
            return None
        try:
            raw = self._redis.hget(ROOM_SNAPSHOT_KEY, room_code)
        except redis.RedisError as exc:
            logger.warning("room snapshot read failed room=%s error=%s", room_code, exc)
            return None
        if not raw:
            return None
        try:
            return deserialize_state(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("discarding unreadable room snapshot room=%s error=%s", room_code, exc)
            return None

    def lock(self, room_code: str) -> asyncio.Lock:
        with self._lock:
            return self._room_locks.setdefault(room_code, asyncio.Lock())

    def get(self, room_code: str) -> AuctionState | None:
        with self._lock:
            state = self._rooms.get(room_code)
        if state is not None:
            return state
        restored = self._load_snapshot(room_code)
        if restored is None:
            return None
        with self._lock:
            state = self._rooms.setdefault(room_code, restored)
        logger.info("restored room from snapshot room=%s status=%s", room_code, state.status)
        return state

    def save(self, state: AuctionState) -> None:
        with self._lock:
            self._rooms[state.room_code] = state
        self._persist(state)

    def room_codes(self) -> list[str]:
        with self._lock:
            return list(self._rooms)

    def forget(self, room_code: str) -> bool:
        with self._lock:
            self._room_locks.pop(room_code, None)
            return self._rooms.pop(room_code, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._rooms.clear()
            self._room_locks.clear()


room_store = RoomStore(redis_client=get_redis_client())
