"""Configuration schema.

Sections are pydantic models grouped by concern under one ``Config``
settings class. ``load_config`` reads an optional JSON file (sections
nested by name); ``ECHOROOM_<SECTION>__<FIELD>`` environment variables
override it, e.g. ``ECHOROOM_GATEWAY__PORT=8080``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class ModerationConfig(BaseModel):
    """Timings and thresholds for the per-room moderation engine (seconds)."""
    tick_interval: float = 60.0            # How often the inactivity check runs
    inactivity_threshold: float = 180.0    # Idle time before the moderator speaks
    empty_room_grace: float = 60.0         # Room age before an opening prompt
    moderator_cooldown: float = 300.0      # Quiet time after a moderator message
    tick_history_window: int = 10          # Messages fetched per inactivity tick
    summon_history_window: int = 5         # Messages fetched per @mod summon
    strike_threshold: int = Field(default=3, ge=1)
    summon_marker: str = "@mod"
    oracle_turn_window: int = 5            # Participant turns sent to the model


class ProviderConfig(BaseModel):
    """Completion provider settings."""
    model: str = "mistral/mistral-medium-latest"
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = 0.7
    max_tokens: int = 300
    timeout: float = 15.0


class StoreConfig(BaseModel):
    backend: Literal["memory", "sqlite"] = "sqlite"
    sqlite_path: str = str(Path.home() / ".echoroom" / "echoroom.db")


class GatewayConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=5000, ge=0, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])


class Config(BaseSettings):
    """Root configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ECHOROOM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    moderation: ModerationConfig = Field(default_factory=ModerationConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats file values passed in as init kwargs
        return (env_settings, init_settings)

    @model_validator(mode="after")
    def fallback_api_key(self) -> Config:
        if not self.provider.api_key and os.environ.get("MISTRAL_API_KEY"):
            self.provider.api_key = os.environ["MISTRAL_API_KEY"]
        return self


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.warning(f"Config: {path} not found, using defaults")
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Config: failed to read {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.error(f"Config: {path} must hold a JSON object, ignoring it")
        return {}
    logger.debug(f"Config: loaded {path}")
    return data


def load_config(path: Path | str | None = None) -> Config:
    """Load config from an optional JSON file, with environment overrides on top.

    Raises pydantic's ValidationError when a value has the wrong type.
    """
    data = _read_file(Path(path)) if path is not None else {}
    try:
        return Config(**data)
    except ValidationError as e:
        logger.error(f"Config: invalid configuration: {e}")
        raise
