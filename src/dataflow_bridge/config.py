"""Runtime settings, overridable through ``DATAFLOW_BRIDGE_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_LIMIT = 2**32 - 1


class BridgeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DATAFLOW_BRIDGE_", extra="ignore")

    default_limit: int = Field(default=MAX_LIMIT, gt=0, le=MAX_LIMIT)
    pretty_print_rows: int = Field(default=20, ge=0)
    initial_capacity: int = Field(default=16, gt=0)
    growth_factor: int = Field(default=2, ge=2)
    log_level: str = "WARNING"


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Return the process-wide settings, read once from the environment."""
    return BridgeSettings()


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
