"""
Runtime configuration for the sync server.

Values come from ``PLCTAGS_*`` environment variables or a ``.env`` file::

    PLCTAGS_JWT_SECRET=change-me
    PLCTAGS_DEFAULT_DEBOUNCE_MS=250
    PLCTAGS_PORT=8081
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Vendor


class SyncSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PLCTAGS_",
        case_sensitive=False,
        extra="ignore",
    )

    # JWT verification at handshake
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_user_claim: str = "userId"

    # Debounce window for sync_tags, in milliseconds
    default_debounce_ms: int = 500
    max_debounce_ms: int = 10_000

    # Used when a project has no stored vendor
    default_vendor: str = "rockwell"

    # Transport
    ws_path: str = "/ws/tags"
    host: str = "0.0.0.0"
    port: int = 8081
    log_level: str = "INFO"

    @field_validator("default_vendor")
    @classmethod
    def check_vendor(cls, v: str) -> str:
        return Vendor.parse(v).value

    @field_validator("default_debounce_ms", "max_debounce_ms")
    @classmethod
    def non_negative(cls, v: int) -> int:
        return max(0, v)

    def clamp_debounce(self, value) -> int:
        """Return *value* (ms) clamped into ``[0, max_debounce_ms]``.

        ``None``, a non-numeric or a non-finite value (``Infinity``, ``NaN``)
        yields ``default_debounce_ms``.
        """
        if value is None or isinstance(value, bool):
            return min(self.default_debounce_ms, self.max_debounce_ms)
        try:
            ms = int(value)
        except (TypeError, ValueError, OverflowError):
            return min(self.default_debounce_ms, self.max_debounce_ms)
        return max(0, min(ms, self.max_debounce_ms))


@lru_cache
def get_settings() -> SyncSettings:
    return SyncSettings()
