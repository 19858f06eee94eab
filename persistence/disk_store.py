from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar

from json_store import atomic_write_json, read_json

from .interfaces import KeyValueDocumentStore
from .locks import GLOBAL_PATH_LOCKS

T = TypeVar("T")


class DiskJsonDocumentStore(KeyValueDocumentStore):
    """
    Stores a single JSON object on disk at a fixed path.

    - Always returns a dict (empty dict on missing/invalid JSON).
    - Writes atomically.
    - update() runs a read-modify-write under one lock, so concurrent callers
      touching different keys of the same file cannot drop each other's writes.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        raw = read_json(self._path)
        return raw if isinstance(raw, dict) else {}

    def load(self) -> dict[str, Any]:
        with GLOBAL_PATH_LOCKS.lock_for_path(self._path):
            return self._read()

    def update(self, mutate: Callable[[dict[str, Any]], T]) -> T:
        """
        Apply `mutate` to the loaded document and persist the result.

        The callback's return value is passed through.
        """
        with GLOBAL_PATH_LOCKS.lock_for_path(self._path):
            doc = self._read()
            result = mutate(doc)
            atomic_write_json(self._path, doc)
            return result
