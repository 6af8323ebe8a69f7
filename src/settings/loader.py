"""Helpers for loading configuration."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_NAME = "config.toml"
CONFIG_ENV_VAR = "CURLKIT_CONFIG"


@dataclass(slots=True)
class TransferSettings:
    """Defaults applied to every new transfer."""

    connect_timeout: float = 10.0
    timeout: float | None = None
    follow_redirects: bool = False
    max_redirects: int | None = None
    user_agent: str | None = None
    verify_tls: bool = True


@dataclass(slots=True)
class MultiSettings:
    select_timeout: float = 1.0
    idle_sleep: float = 0.0001


@dataclass(slots=True)
class LoggingSettings:
    level: str = "INFO"
    structured: bool = True


@dataclass(slots=True)
class AppConfig:
    transfer: TransferSettings = field(default_factory=TransferSettings)
    multi: MultiSettings = field(default_factory=MultiSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: Path | None = None


def _config_path(explicit: str | os.PathLike[str] | None = None) -> tuple[Path, bool]:
    if explicit:
        candidate, required = Path(explicit), True
    else:
        env_value = os.environ.get(CONFIG_ENV_VAR)
        if env_value:
            candidate, required = Path(env_value), True
        else:
            candidate, required = PROJECT_ROOT / DEFAULT_CONFIG_NAME, False
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate, required


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _build_transfer(data: dict[str, Any]) -> TransferSettings:
    defaults = TransferSettings()
    user_agent = data.get("user_agent")
    return TransferSettings(
        connect_timeout=float(data.get("connect_timeout", defaults.connect_timeout)),
        timeout=_optional_float(data.get("timeout")),
        follow_redirects=bool(data.get("follow_redirects", defaults.follow_redirects)),
        max_redirects=_optional_int(data.get("max_redirects")),
        user_agent=str(user_agent) if user_agent else None,
        verify_tls=bool(data.get("verify_tls", defaults.verify_tls)),
    )


def _build_multi(data: dict[str, Any]) -> MultiSettings:
    defaults = MultiSettings()
    return MultiSettings(
        select_timeout=float(data.get("select_timeout", defaults.select_timeout)),
        idle_sleep=float(data.get("idle_sleep", defaults.idle_sleep)),
    )


def _build_logging(data: dict[str, Any]) -> LoggingSettings:
    defaults = LoggingSettings()
    return LoggingSettings(
        level=str(data.get("level", defaults.level)),
        structured=bool(data.get("structured", defaults.structured)),
    )


def load_config(config_path: str | os.PathLike[str] | None = None) -> AppConfig:
    path, required = _config_path(config_path)
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        return AppConfig()

    data = _load_toml(path)
    return AppConfig(
        transfer=_build_transfer(data.get("transfer", {})),
        multi=_build_multi(data.get("multi", {})),
        logging=_build_logging(data.get("logging", {})),
        source=path,
    )
