from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shared.protocol import MAX_NAME_LENGTH, encoded_length
from shared.utils import default_display_name

ENV_PREFIX = "PEERCHAT_"

DEFAULT_CONFIG: Dict[str, Any] = {
    "address": "127.0.0.1",
    "port": 0,
    "server": False,
    "name": "",
    "bind_host": "0.0.0.0",
    "log_level": "WARNING",
    "log_file": "",
}

PEER_CONFIG: Dict[str, Any] = DEFAULT_CONFIG.copy()


class ConfigError(Exception):
    """Raised when configuration values are invalid."""

    pass


def load_config(env_path: str = ".env", overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Load peer configuration. Precedence, lowest first: DEFAULT_CONFIG, the
    .env file, PEERCHAT_* environment variables, then explicit overrides
    (command-line flags). `None` overrides are ignored.
    """
    if os.path.exists(env_path):
        load_dotenv(env_path)

    for key, default_value in DEFAULT_CONFIG.items():
        env_key = f"{ENV_PREFIX}{key.upper()}"
        value = os.getenv(env_key, default_value)
        PEER_CONFIG[key] = _coerce_type(value, type(default_value))

    for key, value in (overrides or {}).items():
        if key not in DEFAULT_CONFIG:
            raise ConfigError(f"Unknown config key {key}")
        if value is not None:
            PEER_CONFIG[key] = _coerce_type(value, type(DEFAULT_CONFIG[key]))

    if not PEER_CONFIG["name"]:
        PEER_CONFIG["name"] = default_display_name()

    _validate_config()
    logging.getLogger().setLevel(PEER_CONFIG["log_level"])
    return PEER_CONFIG


def _coerce_type(value: Any, target_type: type) -> Any:
    if isinstance(value, target_type):
        return value
    try:
        if target_type is bool:
            return str(value).lower() in ("1", "true", "yes", "on")
        return target_type(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Cannot convert {value} to {target_type}") from exc


def _validate_config() -> None:
    port = int(PEER_CONFIG["port"])
    if port == 0:
        raise ConfigError("Port is required")
    if not (1 <= port <= 65535):
        raise ConfigError("port must be between 1 and 65535")
    if encoded_length(PEER_CONFIG["name"]) > MAX_NAME_LENGTH:
        raise ConfigError(f"name must encode to at most {MAX_NAME_LENGTH} bytes")
    PEER_CONFIG["log_level"] = str(PEER_CONFIG["log_level"]).upper()
    if PEER_CONFIG["log_level"] not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown log level {PEER_CONFIG['log_level']}")


__all__ = ["PEER_CONFIG", "DEFAULT_CONFIG", "ConfigError", "load_config"]
