import asyncio
import logging
from typing import Awaitable, Callable

from auction_app.services.auction_state import STATUS_RESULTS, STATUS_ROUND_END

logger = logging.getLogger(__name__)

# Both callbacks return the room status after the dispatch, or None when the
# room no longer exists.
RoomDispatch = Callable[[str], Awaitable[str | None]]
Spawn = Callable[..., asyncio.Task]


def _create_task(func: Callable[..., Awaitable[None]], *args) -> asyncio.Task:
    return asyncio.create_task(func(*args))


class RoundTimer:
    """Per-room countdown task.

    The loop ticks once per ``tick_seconds``; after a tick that leaves the room
    in ROUND_END it waits out the dwell and dispatches the advance. It stops on
    its own once the room reaches RESULTS.
    """

    def __init__(
        self,
        room_code: str,
        tick: RoomDispatch,
        advance: RoomDispatch,
        tick_seconds: float,
        dwell_seconds: float,
        on_finished: Callable[[str], None] | None = None,
        spawn: Spawn | None = None,
    ) -> None:
        self.room_code = room_code
        self._tick = tick
        self._advance = advance
        self._tick_seconds = tick_seconds
        self._dwell_seconds = dwell_seconds
        self._on_finished = on_finished
        self._spawn = spawn or _create_task
        self._task: asyncio.Task | None = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> bool:
        if self.armed:
            return False
        self._task = self._spawn(self._run)
        logger.debug("round timer armed room=%s", self.room_code)
        return True

    def disarm(self) -> bool:
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("round timer disarmed room=%s", self.room_code)
        return True

    async def _step(self) -> str | None:
        status = await self._tick(self.room_code)
        if status == STATUS_ROUND_END:
            await asyncio.sleep(self._dwell_seconds)
            status = await self._advance(self.room_code)
        return status

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._tick_seconds)
            try:
                status = await self._step()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("round timer step failed room=%s", self.room_code)
                continue
            if status is None or status == STATUS_RESULTS:
                break
        self._task = None
        logger.info("round timer finished room=%s status=%s", self.room_code, status)
        if self._on_finished is not None:
            self._on_finished(self.room_code)


class RoundTimerRegistry:
    def __init__(
        self,
        tick: RoomDispatch,
        advance: RoomDispatch,
        tick_seconds: float,
        dwell_seconds: float,
        spawn: Spawn | None = None,
    ) -> None:
        self._tick = tick
        self._advance = advance
        self.tick_seconds = tick_seconds
        self.dwell_seconds = dwell_seconds
        self._spawn = spawn
        self._timers: dict[str, RoundTimer] = {}

    def _forget(self, room_code: str) -> None:
        timer = self._timers.get(room_code)
        if timer is not None and not timer.armed:
            self._timers.pop(room_code, None)

    def is_armed(self, room_code: str) -> bool:
        timer = self._timers.get(room_code)
        return bool(timer and timer.armed)

    def arm(self, room_code: str) -> bool:
        timer = self._timers.get(room_code)
        if timer is None:
            timer = RoundTimer(
                room_code,
                tick=self._tick,
                advance=self._advance,
                tick_seconds=self.tick_seconds,
                dwell_seconds=self.dwell_seconds,
                on_finished=self._forget,
                spawn=self._spawn,
            )
            self._timers[room_code] = timer
        return timer.arm()

    def disarm(self, room_code: str) -> bool:
        timer = self._timers.pop(room_code, None)
        if timer is None:
            return False
        return timer.disarm()

    def disarm_all(self) -> int:
        return sum(1 for room_code in list(self._timers) if self.disarm(room_code))
