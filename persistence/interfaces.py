from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

T = TypeVar("T")


class KeyValueDocumentStore(Protocol):
    """
    A single JSON document persisted under a fixed key (file path).
    """

    def load(self) -> dict[str, Any]:
        """Load and return the full document (never None)."""
        ...

    def update(self, mutate: Callable[[dict[str, Any]], T]) -> T:
        """Mutate the loaded document in place and persist it atomically."""
        ...


class DocumentStore(Protocol):
    """
    Per-user project document storage.

    Implementations: FileDocumentStore (single file, single tenant) and
    SqlDbClient (one row per user). Callers never know which is active.
    """

    def read(self, user_id: str) -> list[Any]:
        """Return the user's document, or [] if none has been written yet."""
        ...

    def replace(self, user_id: str, document: list[Any]) -> None:
        """Atomically overwrite the user's document."""
        ...

    def create_empty(self, user_id: str) -> None:
        """Store [] for the user unless a document already exists."""
        ...
