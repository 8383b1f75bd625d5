"""Configuration utilities for the route finder."""

from .loader import (
    ApiUrlsConfig,
    ChainConfig,
    ConfigError,
    DEFAULT_CONFIG,
    DefaultsConfig,
    RouterConfig,
    StaticFee,
    default_config,
    load_config,
    parse_config,
)

__all__ = [
    "ApiUrlsConfig",
    "ChainConfig",
    "ConfigError",
    "DEFAULT_CONFIG",
    "DefaultsConfig",
    "RouterConfig",
    "StaticFee",
    "default_config",
    "load_config",
    "parse_config",
]
