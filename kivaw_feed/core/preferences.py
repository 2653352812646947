"""Client-local persisted state: the preferred view mode.

Stored in a small JSON file under a single stable key, read at start-up and
written on every explicit toggle.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from kivaw_feed.utils.logging_config import get_logger

logger = get_logger(__name__)

VIEW_MODE_KEY = "kivaw_page_mode_v1"


class ViewMode(str, Enum):
    EXPLORE = "explore"
    FEED = "feed"


DEFAULT_VIEW_MODE = ViewMode.FEED


class LocalState:
    """Key/value JSON file for client-side preferences."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable local state, ignoring", path=str(self.path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def read_view_mode(self) -> ViewMode:
        raw = self.get(VIEW_MODE_KEY)
        if raw is None:
            return DEFAULT_VIEW_MODE
        try:
            return ViewMode(raw)
        except ValueError:
            return DEFAULT_VIEW_MODE

    def write_view_mode(self, mode: ViewMode) -> None:
        self.set(VIEW_MODE_KEY, ViewMode(mode).value)
