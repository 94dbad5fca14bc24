"""Tether configuration - models and YAML loader."""

from .loader import ConfigLoader, deep_merge, load_config, resolve_env_vars
from .models import (
    HandshakeConfig,
    LoggingComponentsConfig,
    LoggingConfig,
    ProxyConfig,
    RESTConfig,
    StoreConfig,
    TetherConfig,
)

__all__ = [
    # Loader
    "ConfigLoader",
    "load_config",
    "resolve_env_vars",
    "deep_merge",
    # Models
    "TetherConfig",
    "ProxyConfig",
    "HandshakeConfig",
    "StoreConfig",
    "LoggingConfig",
    "LoggingComponentsConfig",
    "RESTConfig",
]
