"""Offline stand-in for the authoritative room service.

A ``DetachedAuctionSession`` runs the same ``apply_intent`` and the same
``RoundTimer`` as the server, but keeps the room on this device: the state is
mirrored to ``auction_{room_code}.json`` after every accepted change so that a
reload resumes where it left off, and unclaimed franchises are played by a
``SyntheticBidder``.
"""

import json
import logging
import random
from pathlib import Path
from typing import Callable

from auction_app.core.config import get_settings
from auction_app.services.auction_engine import (
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
    deserialize_state,
    serialize_state,
)
from auction_app.services.bid_validator import validate_bid
from auction_app.services.catalog import FRANCHISES, PLAYER_POOL, Item, franchise_ids
from auction_app.services.round_timer import RoundTimer

logger = logging.getLogger(__name__)

Listener = Callable[[RoomEvent], None]


class SyntheticBidder:
    def __init__(self, probability: float) -> None:
        self.probability = max(0.0, min(1.0, probability))

    def propose(
        self,
        state: AuctionState,
        context: EngineContext,
        exclude: set[str] | None = None,
    ) -> PlaceBid | None:
        if state.status != STATUS_AUCTION or state.is_paused:
            return None
        if context.rng.random() >= self.probability:
            return None
        amount = state.current_bid + state.min_increment
        excluded = exclude or set()
        candidates = [
            franchise.id
            for franchise in state.franchises.values()
            if franchise.joined_by is None
            and franchise.id not in excluded
            and validate_bid(state, franchise.id, amount, context.pool, context.rules).accepted
        ]
        if not candidates:
            return None
        return PlaceBid(franchise_id=context.rng.choice(candidates), amount=amount)


class DetachedAuctionSession:
    def __init__(
        self,
        room_code: str,
        franchise_id: str,
        display_name: str,
        state_dir: str | Path | None = None,
        rules: AuctionRules | None = None,
        pool: tuple[Item, ...] = PLAYER_POOL,
        franchises: list[str] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        bot_probability: float = 0.1,
        tick_seconds: float = 1.0,
        dwell_seconds: float = 3.0,
    ) -> None:
        self.room_code = room_code
        self.franchise_id = franchise_id
        self.display_name = display_name
        self.context = EngineContext(pool=pool, rules=rules or AuctionRules())
        if rng is not None:
            self.context.rng = rng
        if clock is not None:
            self.context.clock = clock
        self.bidder = SyntheticBidder(bot_probability)
        self._path = Path(state_dir) / f"auction_{room_code}.json" if state_dir else None
        self._listeners: list[Listener] = []
        self.state = self._restore() or create_initial_state(
            room_code,
            franchise_id,
            pool,
            franchises or franchise_ids(FRANCHISES),
            self.context.rules,
        )
        self.timer = RoundTimer(
            room_code,
            tick=self._timer_tick,
            advance=self._timer_advance,
            tick_seconds=tick_seconds,
            dwell_seconds=dwell_seconds,
        )

    def _restore(self) -> AuctionState | None:
        if self._path is None or not self._path.exists():
            return None
        try:
            return deserialize_state(json.loads(self._path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("ignoring unreadable local room state path=%s error=%s", self._path, exc)
            return None

    def _persist(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(serialize_state(self.state)), encoding="utf-8")
        except OSError as exc:
            logger.warning("local room state write failed path=%s error=%s", self._path, exc)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, events: list[RoomEvent]) -> None:
        for event in events:
            for listener in list(self._listeners):
                listener(event)

    def _apply(self, intent: Intent) -> Transition:
        transition = apply_intent(self.state, intent, self.context)
        if transition.accepted:
            self.state = transition.state
            self._persist()
        else:
            logger.debug("local intent rejected room=%s reason=%s", self.room_code, transition.reason)
        self._notify(transition.events)
        return transition

    def join(self) -> Transition:
        transition = self._apply(
            JoinRoom(franchise_id=self.franchise_id, display_name=self.display_name)
        )
        # a room reloaded mid-auction needs its clock back
        if transition.accepted and self.state.status in (STATUS_AUCTION, STATUS_ROUND_END):
            self.arm()
        return transition

    def start(self) -> Transition:
        transition = self._apply(StartAuction(requester_id=self.franchise_id))
        if transition.accepted:
            self.arm()
        return transition

    def bid(self, amount: int, franchise_id: str | None = None) -> Transition:
        return self._apply(PlaceBid(franchise_id=franchise_id or self.franchise_id, amount=amount))

    def toggle_pause(self) -> Transition:
        return self._apply(TogglePause(requester_id=self.franchise_id))

    def update_settings(
        self,
        min_increment: int | None = None,
        timer_duration: int | None = None,
        mode: str | None = None,
    ) -> Transition:
        return self._apply(
            UpdateSettings(
                requester_id=self.franchise_id,
                min_increment=min_increment,
                timer_duration=timer_duration,
                mode=mode,
            )
        )

    def send_chat(self, text: str) -> Transition:
        return self._apply(
            SendChat(sender=self.display_name, franchise_id=self.franchise_id, text=text)
        )

    def tick(self) -> Transition:
        transition = self._apply(ClockTick(player_index=self.state.current_player_index))
        if transition.accepted:
            proposal = self.bidder.propose(self.state, self.context, exclude={self.franchise_id})
            if proposal is not None:
                self._apply(proposal)
        return transition

    def advance(self) -> Transition:
        return self._apply(AdvanceRound(player_index=self.state.current_player_index))

    async def _timer_tick(self, _room_code: str) -> str | None:
        self.tick()
        return self.state.status

    async def _timer_advance(self, _room_code: str) -> str | None:
        self.advance()
        return self.state.status

    def arm(self) -> bool:
        return self.timer.arm()

    def close(self) -> None:
        self.timer.disarm()


def build_detached_session(
    room_code: str,
    franchise_id: str,
    display_name: str,
) -> DetachedAuctionSession:
    settings = get_settings()
    return DetachedAuctionSession(
        room_code=room_code,
        franchise_id=franchise_id,
        display_name=display_name,
        state_dir=settings.detached_state_dir,
        rules=AuctionRules.from_settings(settings),
        bot_probability=settings.detached_bot_bid_probability,
        tick_seconds=max(0.05, settings.auction_timer_tick_seconds),
        dwell_seconds=max(0.0, settings.auction_round_dwell_seconds),
    )
