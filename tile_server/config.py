from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

ENV_VAR_LOG_DIR = "EXE_UNIT_LOG_DIR"
LOG_LEVELS = ("error", "warn", "warning", "info", "debug", "trace")


class ConfigError(ValueError):
    """Raised when startup settings are unusable."""


@dataclass(frozen=True)
class ServerConfig:
    """
    Startup settings, built once and shared read-only by every request.

    Attributes:
        tiles_dir: root directory holding `{z}/{x}/{y}.png`. Not checked for
            existence here; each request finds out by trying to open its tile.
        host, port: bind address for the HTTP server.
        log_level: error/warn/info/debug/trace.
        log_dir: directory for the rotating log file.
    """
    tiles_dir: str = "Tiles"
    host: str = "localhost"
    port: int = 5000
    log_level: str = "info"
    log_dir: str = "logs"

    def __post_init__(self) -> None:
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ConfigError(f"port must be an integer, got {self.port!r}")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        if str(self.log_level).lower() not in LOG_LEVELS:
            raise ConfigError(f"unknown log level {self.log_level!r} (expected one of {', '.join(LOG_LEVELS)})")


TileRootConfig = ServerConfig


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return data


def _from_yaml(data: Mapping[str, Any]) -> Dict[str, Any]:
    server = data.get("server") or {}
    logging_cfg = data.get("logging") or {}
    for name, section in (("server", server), ("logging", logging_cfg)):
        if not isinstance(section, dict):
            raise ConfigError(f"'{name}' section must be a mapping, got {section!r}")
    out = {
        "tiles_dir": server.get("tiles_dir"),
        "host": server.get("host"),
        "port": server.get("port"),
        "log_level": logging_cfg.get("level"),
        "log_dir": logging_cfg.get("dir"),
    }
    return {k: v for k, v in out.items() if v is not None}


def load_config(path: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> ServerConfig:
    """
    Build the config. Later sources win:
      1) defaults
      2) YAML file at `path` (skipped if it does not exist)
      3) env EXE_UNIT_LOG_DIR (log directory only)
      4) `overrides` (command-line flags; None values ignored)
    """
    values: Dict[str, Any] = {}
    if path and Path(path).exists():
        values.update(_from_yaml(_read_yaml(path)))
    if os.environ.get(ENV_VAR_LOG_DIR):
        values["log_dir"] = os.environ[ENV_VAR_LOG_DIR]
    if overrides:
        known = {f.name for f in fields(ServerConfig)}
        values.update({k: v for k, v in overrides.items() if k in known and v is not None})

    if "port" in values:
        if isinstance(values["port"], (bool, float)):
            raise ConfigError(f"port must be an integer, got {values['port']!r}")
        try:
            values["port"] = int(values["port"])
        except (TypeError, ValueError):
            raise ConfigError(f"port must be an integer, got {values['port']!r}") from None
    for key in ("tiles_dir", "host", "log_level", "log_dir"):
        if key in values:
            values[key] = str(values[key])
    return replace(ServerConfig(), **values)
