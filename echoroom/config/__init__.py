"""Configuration."""

from echoroom.config.schema import (
    Config,
    GatewayConfig,
    ModerationConfig,
    ProviderConfig,
    StoreConfig,
    load_config,
)

__all__ = [
    "Config",
    "GatewayConfig",
    "ModerationConfig",
    "ProviderConfig",
    "StoreConfig",
    "load_config",
]
