"""
Centralized configuration loader.

Loads non-sensitive config from notebook.toml (required, no fallback defaults).
Secrets and processor endpoints come from .env via os.environ and are only
read once, when GatewaySettings is built at startup.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(
    os.environ.get(
        "NOTEBOOK_CONFIG_PATH", Path(__file__).resolve().parents[2] / "notebook.toml"
    )
)

if not _CONFIG_PATH.exists():
    raise RuntimeError(f"Configuration file not found: {_CONFIG_PATH}")

with open(_CONFIG_PATH, "rb") as _f:
    _CONFIG = tomllib.load(_f)


def get(*keys: str) -> Any:
    """Traverse nested TOML config by keys.

    Example: get("dispatch", "content_max_length") -> 5000
    Raises RuntimeError if any key is missing.
    """
    current = _CONFIG
    path = ".".join(keys)
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            raise RuntimeError(
                f"Missing required config key '{path}' in notebook.toml"
            )
        current = current[key]
    return current


def require_env(name: str) -> str:
    """Get a required environment variable. Raises RuntimeError if missing or empty."""
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(
            f"Required environment variable '{name}' is not set. "
            f"Add it to your .env file."
        )
    return value


def get_env(name: str) -> str | None:
    """Get an optional environment variable (None if unset or empty)."""
    return os.environ.get(name) or None
