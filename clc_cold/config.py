"""
TOML-based configuration for the CLC cold wallet.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values; command-line
flags are applied on top by the CLI.

Usage:
    from clc_cold.config import load_config
    cfg = load_config("~/.clc-cold.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]

from clc_cold.errors import ConfigError
from clc_cold.ledger_client import DEFAULT_LEDGER_URL
from clc_cold.session import DEFAULT_SESSION_PATH

DEFAULT_CONFIG_PATH = "~/.clc-cold.toml"


@dataclass
class SessionConfig:
    """Where the decrypted wallet lives while logged in."""
    path: str = DEFAULT_SESSION_PATH


@dataclass
class LedgerConfig:
    """Remote ledger endpoint."""
    base_url: str = DEFAULT_LEDGER_URL
    timeout_seconds: float = 0.0   # 0 = wait forever


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "WARNING"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class ColdWalletConfig:
    """Top-level configuration container."""
    session: SessionConfig = field(default_factory=SessionConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def _float_env(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


def load_config(path: str | None = None) -> ColdWalletConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    When *path* is None, ``CLC_COLD_CONFIG`` or ``~/.clc-cold.toml`` is
    used if present.  An explicitly named file that does not exist is an
    error.

    Env-var mapping:
        CLC_COLD_SESSION     -> session.path
        CLC_COLD_LEDGER_URL  -> ledger.base_url
        CLC_COLD_TIMEOUT     -> ledger.timeout_seconds
        CLC_COLD_LOG_LEVEL   -> logging.level
        CLC_COLD_LOG_FMT     -> logging.format
    """
    cfg = ColdWalletConfig()

    # ── TOML file ────────────────────────────────────────────────
    explicit = path is not None or "CLC_COLD_CONFIG" in os.environ
    path = path or os.environ.get("CLC_COLD_CONFIG") or DEFAULT_CONFIG_PATH
    p = Path(path).expanduser()
    if p.exists():
        try:
            with open(p, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid config file {p}: {exc}") from exc
        for section_name, section_dc in [
            ("session", cfg.session),
            ("ledger", cfg.ledger),
            ("logging", cfg.logging),
        ]:
            if isinstance(data.get(section_name), dict):
                _merge(section_dc, data[section_name])
    elif explicit:
        raise ConfigError(f"Config file not found: {p}")

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("CLC_COLD_SESSION"):
        cfg.session.path = v
    if v := os.environ.get("CLC_COLD_LEDGER_URL"):
        cfg.ledger.base_url = v
    if v := os.environ.get("CLC_COLD_TIMEOUT"):
        cfg.ledger.timeout_seconds = _float_env("CLC_COLD_TIMEOUT", v)
    if v := os.environ.get("CLC_COLD_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("CLC_COLD_LOG_FMT"):
        cfg.logging.format = v

    if cfg.ledger.timeout_seconds < 0:
        raise ConfigError("ledger.timeout_seconds must not be negative")
    if cfg.logging.format not in ("human", "json"):
        raise ConfigError(f"logging.format must be 'human' or 'json', got {cfg.logging.format!r}")
    return cfg
