"""Cross-life progress: a string key/value store and its three known keys.

The ending resolver and session bootstrap receive a ProgressStore by
reference. Values are always strings; bonusPoints is a stringified integer.
Writes are last-writer-wins per key, with no transaction across keys.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from otherworld.models import PersistedProgress

from .core import data_dir

logger = logging.getLogger(__name__)

KEY_BONUS_POINTS = "bonusPoints"
KEY_SCRIPTURE = "scriptureText"  # 宇外荒经, written by the unawakened ending
KEY_RECORD = "recordText"        # 天外异闻箓, written by the awakened ending


class ProgressStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryProgressStore:
    """Dict-backed store. Used in tests and by the MCP server by default."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonProgressStore:
    """Flat JSON file of string values, re-read on every access."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def _read(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Progress file {self._path} is corrupt, treating as empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._path.write_text(json.dumps(data, indent=2, ensure_ascii=False))


def default_progress_store() -> JsonProgressStore:
    return JsonProgressStore(data_dir() / "progress.json")


def read_bonus_points(store: ProgressStore) -> int:
    """Stored max bonus, or 0 if absent or unparsable."""
    raw = store.get(KEY_BONUS_POINTS)
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring unparsable {KEY_BONUS_POINTS} value {raw!r}")
        return 0


def load_progress(store: ProgressStore) -> PersistedProgress:
    """Read all inheritance keys. Missing keys mean "no prior progress"."""
    return PersistedProgress(
        bonus_points=read_bonus_points(store),
        scripture_text=store.get(KEY_SCRIPTURE) or "",
        record_text=store.get(KEY_RECORD) or "",
    )
