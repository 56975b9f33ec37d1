"""File-backed key-value store holding a learner's locally persisted state."""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

FLASHCARDS_KEY = "flashcards"
PROGRAMS_KEY = "programs"
CATEGORIES_KEY = "categories"
USER_STATS_KEY = "userStats"
USAGE_KEY = "learny_usage"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

T = TypeVar("T")


class LocalStore:
    """String-keyed store with one JSON document per key.

    Keys are independent: a corrupt or invalid document only affects its own
    key, which then falls back to the caller's default. Writes replace the
    whole document and are serialised through a per-store lock; there is no
    transaction spanning several keys.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root)
        self._lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid local store key: {key!r}")
        return self._root / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            path.unlink(missing_ok=True)

    def load(
        self,
        key: str,
        adapter: TypeAdapter[T],
        default: Callable[[], T],
        *,
        persist_default: bool = False,
    ) -> T:
        """Read ``key`` and validate it, substituting ``default()`` on any failure."""
        with self._lock:
            raw = self.get_item(key)
            if raw is None:
                value = default()
                if persist_default:
                    self.save(key, value, adapter)
                return value
            try:
                return adapter.validate_json(raw)
            except (ValidationError, ValueError):
                logger.exception("Failed to parse locally stored %s; using defaults", key)
                return default()

    def save(self, key: str, value: T, adapter: TypeAdapter[T]) -> None:
        payload = adapter.dump_python(value, mode="json", by_alias=True)
        self.set_item(key, json.dumps(payload, ensure_ascii=False, indent=2))


__all__ = [
    "CATEGORIES_KEY",
    "FLASHCARDS_KEY",
    "LocalStore",
    "PROGRAMS_KEY",
    "USAGE_KEY",
    "USER_STATS_KEY",
]
