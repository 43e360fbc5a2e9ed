"""Configuration loading for relaytop.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/relaytop/config.toml → defaults only.
Command-line arguments override whatever the file provides.
"""

from __future__ import annotations

import argparse
import math
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

DEFAULT_CONFIG: dict[str, Any] = {
    "host": "localhost",
    "port": 22070,
    "interval": 10.0,
    "history": {"size": 24},
    "graph": {"rows": 5},
    "panel": {"width": 78},
}

_DEFAULT_PATH = Path.home() / ".config" / "relaytop" / "config.toml"

# Left margin plus room for the "<max>/s" label to the right of the bars
_GRAPH_GUTTER = 16


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings for one dashboard session."""

    host: str = "localhost"
    port: int = 22070
    interval: float = 10.0
    history_size: int = 24
    bar_rows: int = 5
    panel_width: int = 78

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/relaytop/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"relaytop: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"relaytop: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"relaytop: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def _fail(message: str) -> NoReturn:
    print(f"relaytop: {message}", file=sys.stderr)
    raise SystemExit(1)


def settings_from_config(
    config: dict[str, Any], args: argparse.Namespace | None = None
) -> Settings:
    """Resolve CLI overrides over config values and validate the result.

    Raises:
        SystemExit: If a value has the wrong type or is out of range.
    """
    overrides: dict[str, Any] = {}
    if args is not None:
        overrides = {k: v for k, v in vars(args).items() if v is not None}

    try:
        settings = Settings(
            host=str(overrides.get("host", config["host"])),
            port=int(overrides.get("port", config["port"])),
            interval=float(overrides.get("interval", config["interval"])),
            history_size=int(overrides.get("history", config["history"]["size"])),
            bar_rows=int(config["graph"]["rows"]),
            panel_width=int(config["panel"]["width"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        _fail(f"invalid configuration value: {e}")

    if not 0 < settings.port < 65536:
        _fail(f"port out of range: {settings.port}")
    if not math.isfinite(settings.interval) or settings.interval <= 0:
        _fail(f"interval must be a positive number: {settings.interval}")
    if settings.history_size < 1:
        _fail(f"history size must be at least 1: {settings.history_size}")
    if settings.bar_rows < 1:
        _fail(f"graph rows must be at least 1: {settings.bar_rows}")
    if settings.history_size * 2 + _GRAPH_GUTTER > settings.panel_width:
        _fail(
            f"history size {settings.history_size} does not fit a "
            f"{settings.panel_width}-column panel "
            f"(max {(settings.panel_width - _GRAPH_GUTTER) // 2})"
        )
    return settings


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# relaytop configuration",
        "# Place this file at ~/.config/relaytop/config.toml",
        "",
        f'host = "{DEFAULT_CONFIG["host"]}"',
        f"port = {DEFAULT_CONFIG['port']}",
        f"interval = {DEFAULT_CONFIG['interval']}",
        "",
    ]

    for table in ("history", "graph", "panel"):
        lines.append(f"[{table}]")
        for key, value in DEFAULT_CONFIG[table].items():
            lines.append(f"{key} = {value}")
        lines.append("")

    return "\n".join(lines) + "\n"
