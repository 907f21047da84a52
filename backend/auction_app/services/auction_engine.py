"""Pure room transition function shared by the server and the detached engine.

``apply_intent`` never mutates its input: it works on a deep copy and returns a
``Transition`` holding the next state and the events that observers of the room
should receive. A rejected intent returns the original state untouched and, with
the single exception of a slot conflict, no events at all.
"""

import copy
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Union

from auction_app.services.auction_state import (
    ACTIVITY_BID,
    ACTIVITY_JOIN,
    ACTIVITY_SOLD,
    ACTIVITY_UNSOLD,
    MAX_TIMER_DURATION,
    MIN_TIMER_DURATION,
    MODES,
    OUTCOME_SOLD,
    OUTCOME_UNSOLD,
    STATUS_AUCTION,
    STATUS_LOBBY,
    STATUS_RESULTS,
    STATUS_ROUND_END,
    ActivityRecord,
    AuctionRules,
    AuctionState,
    ChatMessage,
    RoundOutcome,
    serialize_state,
)
from auction_app.services.bid_validator import REASON_UNKNOWN_FRANCHISE, validate_bid
from auction_app.services.catalog import Item

EVENT_STATE_UPDATED = "state_updated"
EVENT_TIMER_TICK = "timer_tick"
EVENT_SOUND_CUE = "sound_cue"
EVENT_CHAT_MESSAGE = "chat_message"
EVENT_ERROR = "error"

CUE_BID = "bid"
CUE_SOLD = "sold"
CUE_UNSOLD = "unsold"
CUE_WARNING = "warning"

TARGET_ROOM = "room"
TARGET_SENDER = "sender"

REASON_SLOT_TAKEN = "SlotTaken"
REASON_NOT_HOST = "not_host"
REASON_INVALID_STATUS = "invalid_status"
REASON_EMPTY_POOL = "empty_pool"
REASON_INVALID_SETTINGS = "invalid_settings"
REASON_EMPTY_MESSAGE = "empty_message"
REASON_INVALID_NAME = "invalid_name"
REASON_CLOCK_IDLE = "clock_idle"
REASON_STALE_ROUND = "stale_round"
REASON_UNKNOWN_INTENT = "unknown_intent"


@dataclass(frozen=True)
class JoinRoom:
    franchise_id: str
    display_name: str


@dataclass(frozen=True)
class StartAuction:
    requester_id: str | None


@dataclass(frozen=True)
class PlaceBid:
    franchise_id: str
    amount: int


@dataclass(frozen=True)
class TogglePause:
    requester_id: str | None = None


@dataclass(frozen=True)
class UpdateSettings:
    requester_id: str | None
    min_increment: int | None = None
    timer_duration: int | None = None
    mode: str | None = None


@dataclass(frozen=True)
class SendChat:
    sender: str
    franchise_id: str
    text: str


@dataclass(frozen=True)
class ClockTick:
    player_index: int


@dataclass(frozen=True)
class AdvanceRound:
    player_index: int


Intent = Union[
    JoinRoom,
    StartAuction,
    PlaceBid,
    TogglePause,
    UpdateSettings,
    SendChat,
    ClockTick,
    AdvanceRound,
]


@dataclass(frozen=True)
class RoomEvent:
    name: str
    payload: dict
    target: str = TARGET_ROOM


def _epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class EngineContext:
    pool: tuple[Item, ...]
    rules: AuctionRules
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], int] = _epoch_millis

    def new_id(self) -> str:
        return f"{self.rng.getrandbits(64):016x}"


@dataclass
class Transition:
    state: AuctionState
    accepted: bool
    reason: str | None = None
    events: list[RoomEvent] = field(default_factory=list)

    @property
    def resolved_round(self) -> bool:
        return self.accepted and self.state.status == STATUS_ROUND_END


def _state_event(state: AuctionState) -> RoomEvent:
    return RoomEvent(EVENT_STATE_UPDATED, serialize_state(state))


def _cue_event(state: AuctionState, cue: str) -> RoomEvent:
    return RoomEvent(EVENT_SOUND_CUE, {"room_code": state.room_code, "cue": cue})


def _push_activity(state: AuctionState, record: ActivityRecord, limit: int) -> None:
    state.activity.insert(0, record)
    del state.activity[limit:]


def _handle_join(
    state: AuctionState, intent: JoinRoom, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    franchise = state.franchises.get(intent.franchise_id)
    if franchise is None:
        return REASON_UNKNOWN_FRANCHISE
    display_name = intent.display_name.strip()
    if not display_name:
        return REASON_INVALID_NAME
    if franchise.joined_by and franchise.joined_by != display_name:
        events.append(
            RoomEvent(
                EVENT_ERROR,
                {"room_code": state.room_code, "reason": REASON_SLOT_TAKEN},
                target=TARGET_SENDER,
            )
        )
        return REASON_SLOT_TAKEN
    if franchise.joined_by is None:
        franchise.joined_by = display_name
        _push_activity(
            state,
            ActivityRecord(
                id=context.new_id(),
                type=ACTIVITY_JOIN,
                timestamp=context.clock(),
                franchise_id=franchise.id,
                message=f"{display_name} joined as {franchise.id}",
            ),
            context.rules.activity_limit,
        )
    events.append(_state_event(state))
    return None


def _handle_start(
    state: AuctionState, intent: StartAuction, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    if intent.requester_id != state.host_id:
        return REASON_NOT_HOST
    if state.status != STATUS_LOBBY:
        return REASON_INVALID_STATUS
    if state.current_player_index >= len(context.pool):
        return REASON_EMPTY_POOL
    state.status = STATUS_AUCTION
    state.timer = state.timer_duration
    state.current_bid = context.pool[state.current_player_index].base_price
    state.current_bidder = None
    events.append(_state_event(state))
    return None


def _handle_bid(
    state: AuctionState, intent: PlaceBid, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    decision = validate_bid(state, intent.franchise_id, intent.amount, context.pool, context.rules)
    if not decision.accepted:
        return decision.reason
    state.current_bid = intent.amount
    state.current_bidder = intent.franchise_id
    state.timer = state.timer_duration
    _push_activity(
        state,
        ActivityRecord(
            id=context.new_id(),
            type=ACTIVITY_BID,
            timestamp=context.clock(),
            franchise_id=intent.franchise_id,
            amount=intent.amount,
        ),
        context.rules.activity_limit,
    )
    events.append(_state_event(state))
    events.append(_cue_event(state, CUE_BID))
    return None


def _handle_toggle_pause(
    state: AuctionState, intent: TogglePause, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    if intent.requester_id is not None and intent.requester_id not in state.franchises:
        return REASON_UNKNOWN_FRANCHISE
    if state.status == STATUS_RESULTS:
        return REASON_INVALID_STATUS
    state.is_paused = not state.is_paused
    events.append(_state_event(state))
    return None


def _handle_update_settings(
    state: AuctionState, intent: UpdateSettings, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    if intent.requester_id != state.host_id:
        return REASON_NOT_HOST
    if state.status == STATUS_RESULTS:
        return REASON_INVALID_STATUS
    if intent.min_increment is None and intent.timer_duration is None and intent.mode is None:
        return REASON_INVALID_SETTINGS
    if intent.min_increment is not None and intent.min_increment < 1:
        return REASON_INVALID_SETTINGS
    if intent.timer_duration is not None and not (
        MIN_TIMER_DURATION <= intent.timer_duration <= MAX_TIMER_DURATION
    ):
        return REASON_INVALID_SETTINGS
    if intent.mode is not None and intent.mode not in MODES:
        return REASON_INVALID_SETTINGS

    if intent.min_increment is not None:
        state.min_increment = intent.min_increment
    if intent.mode is not None:
        state.mode = intent.mode
    if intent.timer_duration is not None:
        state.timer_duration = intent.timer_duration
        if state.status in (STATUS_LOBBY, STATUS_AUCTION):
            state.timer = intent.timer_duration
    events.append(_state_event(state))
    return None


def _handle_chat(
    state: AuctionState, intent: SendChat, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    franchise = state.franchises.get(intent.franchise_id)
    if franchise is None:
        return REASON_UNKNOWN_FRANCHISE
    text = intent.text.strip()[: context.rules.chat_max_length]
    if not text:
        return REASON_EMPTY_MESSAGE
    sender = intent.sender.strip() or franchise.joined_by or franchise.id
    message = ChatMessage(
        id=context.new_id(),
        sender=sender,
        franchise_id=franchise.id,
        text=text,
        timestamp=context.clock(),
    )
    state.messages.append(message)
    if len(state.messages) > context.rules.chat_limit:
        state.messages = state.messages[-context.rules.chat_limit :]
    events.append(
        RoomEvent(
            EVENT_CHAT_MESSAGE,
            {
                "room_code": state.room_code,
                "id": message.id,
                "sender": message.sender,
                "franchise_id": message.franchise_id,
                "text": message.text,
                "timestamp": message.timestamp,
            },
        )
    )
    events.append(_state_event(state))
    return None


def _resolve_round(state: AuctionState, context: EngineContext, events: list[RoomEvent]) -> None:
    item = context.pool[state.current_player_index]
    now = context.clock()
    if state.current_bidder:
        winner = state.franchises[state.current_bidder]
        winner.purse -= state.current_bid
        winner.squad.append(item.id)
        if item.overseas:
            winner.overseas_count += 1
        state.last_outcome = RoundOutcome(
            player_name=item.name,
            franchise_id=winner.id,
            amount=state.current_bid,
            status=OUTCOME_SOLD,
        )
        _push_activity(
            state,
            ActivityRecord(
                id=context.new_id(),
                type=ACTIVITY_SOLD,
                timestamp=now,
                franchise_id=winner.id,
                player_name=item.name,
                amount=state.current_bid,
            ),
            context.rules.activity_limit,
        )
        cue = CUE_SOLD
    else:
        state.unsold_players.append(item.id)
        state.last_outcome = RoundOutcome(
            player_name=item.name,
            franchise_id=None,
            amount=0,
            status=OUTCOME_UNSOLD,
        )
        _push_activity(
            state,
            ActivityRecord(
                id=context.new_id(),
                type=ACTIVITY_UNSOLD,
                timestamp=now,
                player_name=item.name,
            ),
            context.rules.activity_limit,
        )
        cue = CUE_UNSOLD
    state.status = STATUS_ROUND_END
    events.append(_state_event(state))
    events.append(_cue_event(state, cue))


def _handle_tick(
    state: AuctionState, intent: ClockTick, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    if state.status != STATUS_AUCTION or state.is_paused:
        return REASON_CLOCK_IDLE
    if intent.player_index != state.current_player_index:
        return REASON_STALE_ROUND
    if state.timer > 0:
        state.timer -= 1
        events.append(
            RoomEvent(EVENT_TIMER_TICK, {"room_code": state.room_code, "timer": state.timer})
        )
        warning_mark = context.rules.warning_seconds
        if state.timer == warning_mark and state.timer_duration > warning_mark:
            events.append(_cue_event(state, CUE_WARNING))
    if state.timer == 0:
        _resolve_round(state, context, events)
    return None


def _handle_advance(
    state: AuctionState, intent: AdvanceRound, context: EngineContext, events: list[RoomEvent]
) -> str | None:
    if state.status != STATUS_ROUND_END:
        return REASON_INVALID_STATUS
    if intent.player_index != state.current_player_index:
        return REASON_STALE_ROUND
    state.last_outcome = None
    state.current_player_index += 1
    state.current_bidder = None
    if state.current_player_index >= len(context.pool):
        state.status = STATUS_RESULTS
        state.timer = 0
    else:
        state.status = STATUS_AUCTION
        state.current_bid = context.pool[state.current_player_index].base_price
        state.timer = state.timer_duration
    events.append(_state_event(state))
    return None


_HANDLERS: dict[type, Callable[..., str | None]] = {
    JoinRoom: _handle_join,
    StartAuction: _handle_start,
    PlaceBid: _handle_bid,
    TogglePause: _handle_toggle_pause,
    UpdateSettings: _handle_update_settings,
    SendChat: _handle_chat,
    ClockTick: _handle_tick,
    AdvanceRound: _handle_advance,
}


def apply_intent(state: AuctionState, intent: Intent, context: EngineContext) -> Transition:
    handler = _HANDLERS.get(type(intent))
    if handler is None:
        return Transition(state=state, accepted=False, reason=REASON_UNKNOWN_INTENT)
    next_state = copy.deepcopy(state)
    events: list[RoomEvent] = []
    reason = handler(next_state, intent, context, events)
    if reason is not None:
        return Transition(state=state, accepted=False, reason=reason, events=events)
    return Transition(state=next_state, accepted=True, events=events)
