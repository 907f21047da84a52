from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

ROOM_CODE_PATTERN = r"^[A-Za-z0-9_-]{3,16}$"

AuctionMode = Literal["MEGA", "MOCK"]


class RoomIntentRequest(BaseModel):
    room_code: str = Field(pattern=ROOM_CODE_PATTERN)

    @field_validator("room_code")
    @classmethod
    def normalize_room_code(cls, value: str) -> str:
        return value.upper()


class JoinRoomRequest(RoomIntentRequest):
    franchise_id: str = Field(min_length=1, max_length=8)
    display_name: str = Field(min_length=1, max_length=40)
    mode: AuctionMode | None = None


class StartAuctionRequest(RoomIntentRequest):
    requester_id: str | None = Field(default=None, max_length=8)


class PlaceBidRequest(RoomIntentRequest):
    franchise_id: str = Field(min_length=1, max_length=8)
    amount: int = Field(gt=0)


class TogglePauseRequest(RoomIntentRequest):
    requester_id: str | None = Field(default=None, max_length=8)


class UpdateSettingsRequest(RoomIntentRequest):
    requester_id: str | None = Field(default=None, max_length=8)
    min_increment: int | None = Field(default=None, ge=1)
    timer_duration: int | None = Field(default=None, ge=5, le=60)
    mode: AuctionMode | None = None

    @model_validator(mode="before")
    @classmethod
    def flatten_settings(cls, data):
        if isinstance(data, dict) and isinstance(data.get("settings"), dict):
            merged = {key: value for key, value in data.items() if key != "settings"}
            for key, value in data["settings"].items():
                merged.setdefault(key, value)
            return merged
        return data


class SendChatRequest(RoomIntentRequest):
    sender: str = Field(default="", max_length=40)
    franchise_id: str = Field(min_length=1, max_length=8)
    text: str = Field(min_length=1, max_length=1000)

    @model_validator(mode="before")
    @classmethod
    def flatten_message(cls, data):
        if isinstance(data, dict) and isinstance(data.get("message"), dict):
            merged = {key: value for key, value in data.items() if key != "message"}
            for key, value in data["message"].items():
                merged.setdefault(key, value)
            return merged
        return data


class FranchiseRead(BaseModel):
    id: str
    name: str
    short_name: str
    color: str
    secondary_color: str


class PlayerRead(BaseModel):
    id: int
    name: str
    country: str
    role: str
    base_price: int
    set_code: str
    overseas: bool


class FranchiseStateRead(BaseModel):
    id: str
    purse: int
    squad: list[int]
    overseas_count: int
    joined_by: str | None = None


class ActivityRecordRead(BaseModel):
    id: str
    type: str
    timestamp: int
    franchise_id: str | None = None
    player_name: str | None = None
    amount: int | None = None
    message: str | None = None


class ChatMessageRead(BaseModel):
    id: str
    sender: str
    franchise_id: str
    text: str
    timestamp: int


class RoundOutcomeRead(BaseModel):
    player_name: str
    franchise_id: str | None = None
    amount: int
    status: str


class RoomStateRead(BaseModel):
    room_code: str
    host_id: str
    status: str
    mode: str
    current_player_index: int
    current_bid: int
    current_bidder: str | None = None
    timer: int
    timer_duration: int
    min_increment: int
    is_paused: bool
    activity: list[ActivityRecordRead]
    messages: list[ChatMessageRead]
    franchises: dict[str, FranchiseStateRead]
    unsold_players: list[int]
    last_outcome: RoundOutcomeRead | None = None
