"""Settings package exports."""

from .loader import (
    CONFIG_ENV_VAR,
    AppConfig,
    LoggingSettings,
    MultiSettings,
    TransferSettings,
    load_config,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "AppConfig",
    "LoggingSettings",
    "MultiSettings",
    "TransferSettings",
    "load_config",
]
