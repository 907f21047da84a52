from dataclasses import asdict, dataclass, field

from auction_app.core.config import Settings
from auction_app.services.catalog import Item

STATUS_LOBBY = "LOBBY"
STATUS_AUCTION = "AUCTION"
STATUS_ROUND_END = "ROUND_END"
STATUS_RESULTS = "RESULTS"

MODE_MEGA = "MEGA"
MODE_MOCK = "MOCK"
MODES = (MODE_MEGA, MODE_MOCK)

ACTIVITY_BID = "BID"
ACTIVITY_SOLD = "SOLD"
ACTIVITY_UNSOLD = "UNSOLD"
ACTIVITY_JOIN = "JOIN"

OUTCOME_SOLD = "SOLD"
OUTCOME_UNSOLD = "UNSOLD"

MIN_TIMER_DURATION = 5
MAX_TIMER_DURATION = 60


@dataclass(frozen=True)
class AuctionRules:
    initial_purse: int = 12000
    squad_cap: int = 25
    overseas_cap: int = 8
    timer_seconds: int = 15
    min_increment: int = 10
    warning_seconds: int = 5
    activity_limit: int = 50
    chat_limit: int = 100
    chat_max_length: int = 240

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuctionRules":
        return cls(
            initial_purse=settings.auction_initial_purse,
            squad_cap=settings.auction_squad_cap,
            overseas_cap=settings.auction_overseas_cap,
            timer_seconds=settings.auction_timer_seconds,
            min_increment=settings.auction_min_increment,
            warning_seconds=settings.auction_warning_seconds,
            activity_limit=settings.auction_activity_limit,
            chat_limit=settings.auction_chat_limit,
            chat_max_length=settings.chat_max_message_length,
        )


@dataclass
class FranchiseState:
    id: str
    purse: int
    squad: list[int] = field(default_factory=list)
    overseas_count: int = 0
    joined_by: str | None = None


@dataclass
class ActivityRecord:
    id: str
    type: str
    timestamp: int
    franchise_id: str | None = None
    player_name: str | None = None
    amount: int | None = None
    message: str | None = None


@dataclass
class ChatMessage:
    id: str
    sender: str
    franchise_id: str
    text: str
    timestamp: int


@dataclass
class RoundOutcome:
    player_name: str
    franchise_id: str | None
    amount: int
    status: str


@dataclass
class AuctionState:
    room_code: str
    host_id: str
    status: str = STATUS_LOBBY
    mode: str = MODE_MEGA
    current_player_index: int = 0
    current_bid: int = 0
    current_bidder: str | None = None
    timer: int = 15
    timer_duration: int = 15
    min_increment: int = 10
    is_paused: bool = False
    activity: list[ActivityRecord] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=list)
    franchises: dict[str, FranchiseState] = field(default_factory=dict)
    unsold_players: list[int] = field(default_factory=list)
    last_outcome: RoundOutcome | None = None


def create_initial_state(
    room_code: str,
    host_id: str,
    pool: tuple[Item, ...],
    franchise_ids: list[str],
    rules: AuctionRules,
    mode: str = MODE_MEGA,
) -> AuctionState:
    return AuctionState(
        room_code=room_code,
        host_id=host_id,
        mode=mode if mode in MODES else MODE_MEGA,
        current_bid=pool[0].base_price if pool else 0,
        timer=rules.timer_seconds,
        timer_duration=rules.timer_seconds,
        min_increment=rules.min_increment,
        franchises={
            franchise_id: FranchiseState(id=franchise_id, purse=rules.initial_purse)
            for franchise_id in franchise_ids
        },
    )


def serialize_state(state: AuctionState) -> dict:
    return asdict(state)


def deserialize_state(payload: dict) -> AuctionState:
    franchises = {
        franchise_id: FranchiseState(
            id=entry["id"],
            purse=int(entry["purse"]),
            squad=[int(item_id) for item_id in entry.get("squad", [])],
            overseas_count=int(entry.get("overseas_count", 0)),
            joined_by=entry.get("joined_by"),
        )
        for franchise_id, entry in payload.get("franchises", {}).items()
    }
    last_outcome = payload.get("last_outcome")
    return AuctionState(
        room_code=payload["room_code"],
        host_id=payload["host_id"],
        status=payload.get("status", STATUS_LOBBY),
        mode=payload.get("mode", MODE_MEGA),
        current_player_index=int(payload.get("current_player_index", 0)),
        current_bid=int(payload.get("current_bid", 0)),
        current_bidder=payload.get("current_bidder"),
        timer=int(payload.get("timer", 0)),
        timer_duration=int(payload.get("timer_duration", 15)),
        min_increment=int(payload.get("min_increment", 10)),
        is_paused=bool(payload.get("is_paused", False)),
        activity=[ActivityRecord(**entry) for entry in payload.get("activity", [])],
        messages=[ChatMessage(**entry) for entry in payload.get("messages", [])],
        franchises=franchises,
        unsold_players=[int(item_id) for item_id in payload.get("unsold_players", [])],
        last_outcome=RoundOutcome(**last_outcome) if last_outcome else None,
    )
