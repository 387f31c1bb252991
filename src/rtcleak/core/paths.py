"""Default filesystem locations."""

from __future__ import annotations

from pathlib import Path

CONFIG_DIR = Path.home() / ".config" / "rtcleak"
DATA_DIR = Path.home() / ".local" / "share" / "rtcleak"
DEFAULT_STATE_PATH = DATA_DIR / "state.json"

# Bundled reference data (country names)
PACKAGE_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
