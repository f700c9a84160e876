"""Configuration loader for ghost evaluation sessions."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft7Validator

from .errors import ConfigError

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "stale_time_sec": {"type": ["number", "null"], "minimum": 0},
        "key_separator": {"type": "string", "minLength": 1},
        "hash_digest_bytes": {"type": "integer", "minimum": 1, "maximum": 8},
        "log_level": {
            "type": ["string", "null"],
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", None],
        },
    },
}

_validator = Draft7Validator(CONFIG_SCHEMA)


def validate_config(payload: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ConfigError(f"ghost config validation failed: {messages}")


@dataclass(frozen=True)
class GhostConfig:
    stale_time_sec: Optional[float] = None
    key_separator: str = "."
    hash_digest_bytes: int = 8
    log_level: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GhostConfig":
        validate_config(data)
        stale_time = data.get("stale_time_sec")
        return cls(
            stale_time_sec=float(stale_time) if stale_time is not None else None,
            key_separator=data.get("key_separator", "."),
            hash_digest_bytes=int(data.get("hash_digest_bytes", 8)),
            log_level=data.get("log_level"),
        )

    def apply_log_level(self) -> None:
        if self.log_level is None:
            return
        for name in ("ghost", "cache"):
            logging.getLogger(name).setLevel(self.log_level)


ENV_MAP = {
    "stale_time_sec": "GHOST_STALE_TIME_SEC",
    "key_separator": "GHOST_KEY_SEPARATOR",
    "hash_digest_bytes": "GHOST_HASH_DIGEST_BYTES",
    "log_level": "GHOST_LOG_LEVEL",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        try:
            if key == "hash_digest_bytes":
                value = int(value)
            elif key == "stale_time_sec":
                value = None if value.lower() in {"", "none", "null"} else float(value)
        except ValueError as exc:
            raise ConfigError(f"invalid {env_name}={value!r}: {exc}") from exc
        if key == "log_level":
            value = value.upper()
        merged[key] = value

    return merged


def load_config(config_path: str | Path | None = None) -> GhostConfig:
    """Load config from YAML (optional) plus GHOST_* environment overrides."""
    data: Dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = load_yaml(path)

    data = merge_env_overrides(data)
    return GhostConfig.from_dict(data)
