"""Peer settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Peer configuration.

    All settings can be overridden via environment variables prefixed with
    NAVALPEER_. For example, NAVALPEER_FIRE_TIMEOUT_SECONDS=30 bounds how long a
    shot may stay unanswered.
    """

    model_config = SettingsConfigDict(env_prefix="NAVALPEER_")

    nickname: str = "navalpeer"
    host: str = "127.0.0.1"
    port: int = 54321

    # Sent in reply to the opponent's Header
    protocol_version: str = "0.1.0"
    client_name: str = "KBattleship"
    client_version: str = "4"
    client_description: str = "The Naval Battle game"

    fire_timeout_seconds: float | None = None
    read_chunk_size: int = 4096
    max_frame_bytes: int = 65536
    log_level: str = "INFO"


settings = Settings()
