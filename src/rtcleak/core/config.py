"""Configuration loading — optional TOML config file plus environment overrides."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from rtcleak.core.errors import ConfigError
from rtcleak.core.paths import CONFIG_DIR, DEFAULT_STATE_PATH

DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / "config.toml",
    Path("rtcleak.toml"),
]

DEFAULT_LOOKUP_URL = "https://ipinfo.io"


class Settings(BaseModel):
    """Resolved runtime settings."""

    lookup_url: str = DEFAULT_LOOKUP_URL
    token: str | None = None
    timeout: float = Field(default=10.0, gt=0)
    history_size: int = Field(default=5, ge=1)
    state_path: Path = DEFAULT_STATE_PATH


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from a TOML file.

    Searches default paths if no explicit path is given.
    Returns an empty dict if no config file is found.
    """
    paths = [path] if path is not None else DEFAULT_CONFIG_PATHS

    for p in paths:
        if p.exists():
            try:
                with open(p, "rb") as f:
                    return tomllib.load(f)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid config file {p}: {exc}") from exc

    return {}


def get_token(config: dict[str, Any] | None = None) -> str | None:
    """Get the lookup token: RTCLEAK_TOKEN env var → keyring → config.toml."""
    env = os.environ.get("RTCLEAK_TOKEN")
    if env:
        return env

    from rtcleak.core.tokens import TokenStore

    stored = TokenStore.load()
    if stored:
        return stored

    if config is None:
        config = load_config()
    return config.get("lookup", {}).get("token") or None


def load_settings(path: Path | None = None, state_path: Path | None = None) -> Settings:
    """Build Settings from config file, environment, and explicit overrides."""
    config = load_config(path)
    lookup = config.get("lookup", {})
    history = config.get("history", {})

    values: dict[str, Any] = {
        "lookup_url": os.environ.get("RTCLEAK_LOOKUP_URL")
        or lookup.get("url", DEFAULT_LOOKUP_URL),
        "token": get_token(config),
        "timeout": lookup.get("timeout", 10.0),
        "history_size": history.get("size", 5),
    }

    env_state = os.environ.get("RTCLEAK_STATE")
    if state_path is not None:
        values["state_path"] = state_path
    elif env_state:
        values["state_path"] = Path(env_state).expanduser()
    elif "path" in history:
        values["state_path"] = Path(history["path"]).expanduser()

    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
