import logging
import random
from typing import Awaitable, Callable

from auction_app.core.config import get_settings
from auction_app.services.auction_engine import (
    TARGET_ROOM,
    AdvanceRound,
    ClockTick,
    EngineContext,
    Intent,
    JoinRoom,
    PlaceBid,
    RoomEvent,
    SendChat,
    StartAuction,
    TogglePause,
    Transition,
    UpdateSettings,
    apply_intent,
)
from auction_app.services.auction_state import (
    STATUS_AUCTION,
    STATUS_ROUND_END,
    AuctionRules,
    AuctionState,
    create_initial_state,
    serialize_state,
)
from auction_app.services.catalog import FRANCHISES, PLAYER_POOL, Item, franchise_ids
from auction_app.services.round_timer import RoundTimerRegistry, Spawn
from auction_app.services.room_store import RoomStore

logger = logging.getLogger(__name__)

Publisher = Callable[[str, list[RoomEvent]], Awaitable[None]]


async def _discard(_room_code: str, _events: list[RoomEvent]) -> None:
    return None


class AuctionRoomService:
    """Authoritative shell around ``apply_intent``.

    Every intent and every timer dispatch for a room runs read, transition,
    save and publish while holding that room's lock, so a room sees one total
    order of changes and observers receive events in that order.
    """

    def __init__(
        self,
        store: RoomStore,
        publisher: Publisher | None = None,
        rules: AuctionRules | None = None,
        pool: tuple[Item, ...] = PLAYER_POOL,
        franchises: list[str] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        tick_seconds: float = 1.0,
        dwell_seconds: float = 3.0,
        spawn: Spawn | None = None,
    ) -> None:
        self.store = store
        self.franchise_ids = franchises or franchise_ids(FRANCHISES)
        self.context = EngineContext(pool=pool, rules=rules or AuctionRules())
        if rng is not None:
            self.context.rng = rng
        if clock is not None:
            self.context.clock = clock
        self._publisher = publisher or _discard
        self.timers = RoundTimerRegistry(
            tick=self.tick,
            advance=self.advance,
            tick_seconds=tick_seconds,
            dwell_seconds=dwell_seconds,
            spawn=spawn,
        )

    def set_publisher(self, publisher: Publisher) -> None:
        self._publisher = publisher

    async def _commit(self, room_code: str, transition: Transition) -> None:
        if not transition.accepted:
            logger.debug("intent rejected room=%s reason=%s", room_code, transition.reason)
            return
        self.store.save(transition.state)
        room_events = [event for event in transition.events if event.target == TARGET_ROOM]
        if room_events:
            await self._publisher(room_code, room_events)

    async def _dispatch(
        self,
        room_code: str,
        build_intent: Callable[[AuctionState], Intent],
    ) -> Transition | None:
        # only join may create a room, and with it the room's lock
        if self.store.get(room_code) is None:
            logger.debug("intent for unknown room=%s ignored", room_code)
            return None
        async with self.store.lock(room_code):
            state = self.store.get(room_code)
            if state is None:
                logger.debug("intent for disposed room=%s ignored", room_code)
                return None
            transition = apply_intent(state, build_intent(state), self.context)
            await self._commit(room_code, transition)
            return transition

    async def join(
        self,
        room_code: str,
        franchise_id: str,
        display_name: str,
        mode: str | None = None,
    ) -> Transition | None:
        if franchise_id not in self.franchise_ids or not display_name.strip():
            logger.debug("malformed join room=%s franchise=%s ignored", room_code, franchise_id)
            return None
        async with self.store.lock(room_code):
            state = self.store.get(room_code)
            if state is None:
                kwargs = {"mode": mode} if mode else {}
                state = create_initial_state(
                    room_code,
                    franchise_id,
                    self.context.pool,
                    self.franchise_ids,
                    self.context.rules,
                    **kwargs,
                )
                self.store.save(state)
                logger.info("room created room=%s host=%s", room_code, franchise_id)
            transition = apply_intent(
                state, JoinRoom(franchise_id=franchise_id, display_name=display_name), self.context
            )
            await self._commit(room_code, transition)
        # a room restored from a snapshot mid-auction needs its clock back
        if transition.accepted and transition.state.status in (STATUS_AUCTION, STATUS_ROUND_END):
            self.timers.arm(room_code)
        return transition

    async def start(self, room_code: str, requester_id: str | None) -> Transition | None:
        transition = await self._dispatch(
            room_code, lambda _state: StartAuction(requester_id=requester_id)
        )
        if transition and transition.accepted:
            self.timers.arm(room_code)
            logger.info("auction started room=%s", room_code)
        return transition

    async def bid(self, room_code: str, franchise_id: str, amount: int) -> Transition | None:
        return await self._dispatch(
            room_code, lambda _state: PlaceBid(franchise_id=franchise_id, amount=amount)
        )

    async def toggle_pause(self, room_code: str, requester_id: str | None = None) -> Transition | None:
        return await self._dispatch(room_code, lambda _state: TogglePause(requester_id=requester_id))

    async def update_settings(
        self,
        room_code: str,
        requester_id: str | None,
        min_increment: int | None = None,
        timer_duration: int | None = None,
        mode: str | None = None,
    ) -> Transition | None:
        return await self._dispatch(
            room_code,
            lambda _state: UpdateSettings(
                requester_id=requester_id,
                min_increment=min_increment,
                timer_duration=timer_duration,
                mode=mode,
            ),
        )

    async def chat(
        self, room_code: str, sender: str, franchise_id: str, text: str
    ) -> Transition | None:
        return await self._dispatch(
            room_code,
            lambda _state: SendChat(sender=sender, franchise_id=franchise_id, text=text),
        )

    async def tick(self, room_code: str) -> str | None:
        transition = await self._dispatch(
            room_code, lambda state: ClockTick(player_index=state.current_player_index)
        )
        if transition is None:
            return None
        if transition.resolved_round:
            outcome = transition.state.last_outcome
            logger.info(
                "round resolved room=%s player=%s status=%s",
                room_code,
                outcome.player_name if outcome else None,
                outcome.status if outcome else None,
            )
        return transition.state.status

    async def advance(self, room_code: str) -> str | None:
        transition = await self._dispatch(
            room_code, lambda state: AdvanceRound(player_index=state.current_player_index)
        )
        if transition is None:
            return None
        return transition.state.status

    def snapshot(self, room_code: str) -> dict | None:
        state = self.store.get(room_code)
        return serialize_state(state) if state else None

    def dispose(self, room_code: str) -> bool:
        self.timers.disarm(room_code)
        return self.store.forget(room_code)

    def shutdown(self) -> int:
        return self.timers.disarm_all()


def build_room_service(store: RoomStore, spawn: Spawn | None = None) -> AuctionRoomService:
    settings = get_settings()
    return AuctionRoomService(
        store=store,
        rules=AuctionRules.from_settings(settings),
        tick_seconds=max(0.05, settings.auction_timer_tick_seconds),
        dwell_seconds=max(0.0, settings.auction_round_dwell_seconds),
        spawn=spawn,
    )
