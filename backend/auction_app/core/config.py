from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "IPL Auction Room API"
    debug: bool = True
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    redis_url: str = "redis://localhost:6379/0"
    room_snapshots_enabled: bool = False

    auction_initial_purse: int = 12000
    auction_squad_cap: int = 25
    auction_overseas_cap: int = 8
    auction_timer_seconds: int = 15
    auction_min_increment: int = 10
    auction_warning_seconds: int = 5
    auction_round_dwell_seconds: float = 3.0
    auction_timer_tick_seconds: float = 1.0
    auction_activity_limit: int = 50
    auction_chat_limit: int = 100
    chat_max_message_length: int = 240

    detached_bot_bid_probability: float = 0.1
    detached_state_dir: str = ".auction_rooms"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
