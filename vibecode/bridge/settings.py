"""Service configuration loaded from VIBE_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeSettings(BaseSettings):
    """Communication bridge settings.

    All fields are read from environment variables with the ``VIBE_`` prefix.
    For example, ``VIBE_HISTORY_SIZE=50`` maps to ``history_size``.
    """

    model_config = SettingsConfigDict(
        env_prefix="VIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 4567

    # -- Conversation ----------------------------------------------------------
    history_size: int = Field(default=20, ge=1)
    """Messages retained in the conversation log."""

    replay_size: int = Field(default=10, ge=0)
    """Messages replayed to a newly registered agent in its state snapshot."""

    # -- Questions -------------------------------------------------------------
    question_ttl: float = 600.0
    """Seconds a question stays answerable.  ``0`` keeps questions forever."""

    expiry_sweep_interval: float = Field(default=30.0, gt=0)

    # -- Connections -----------------------------------------------------------
    register_timeout: float = Field(default=10.0, gt=0)
    """Seconds a new connection may stay unregistered before it is closed."""

    outbox_size: int = Field(default=256, ge=1)
    """Per-connection outbound queue bound.  Overflowing messages are dropped."""

    # -- Client ----------------------------------------------------------------
    bridge_url: str = "ws://127.0.0.1:4567/ws"
    """Default bridge endpoint for ``vibecode student`` and other clients."""


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return BridgeSettings()
