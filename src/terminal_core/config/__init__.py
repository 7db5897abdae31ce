"""Terminal configuration — YAML file plus TERMINAL_* environment overrides."""

from terminal_core.config.loader import load_config
from terminal_core.config.schema import (
    AppConfig,
    LedgerConfig,
    OracleConfig,
    PollingConfig,
    PresenceConfig,
    SignalConfig,
)

__all__ = [
    "AppConfig",
    "LedgerConfig",
    "OracleConfig",
    "PollingConfig",
    "PresenceConfig",
    "SignalConfig",
    "load_config",
]
