from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, TypeAdapter, ValidationError

from errors import InvalidInput
from json_store import atomic_write_json, filesystem_timestamp, load_json

from .interfaces import DocumentStore
from .locks import GLOBAL_PATH_LOCKS

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "projects-"


class IssueRecord(BaseModel):
    # Unknown keys are carried through untouched so documents round-trip losslessly.
    model_config = ConfigDict(extra="allow")

    issue: StrictStr
    statuses: list[StrictStr]
    closed: StrictBool = False


class ProjectRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: StrictStr
    issues: list[IssueRecord] = Field(default_factory=list)


_DOCUMENT_ADAPTER = TypeAdapter(list[ProjectRecord])


def _format_location(loc: tuple[Any, ...]) -> str:
    out = ""
    for part in loc:
        out += f"[{part}]" if isinstance(part, int) else f".{part}"
    return out.lstrip(".")


def validate_document(raw: Any) -> list[dict[str, Any]]:
    """
    Check that `raw` is a list of Project-shaped values and return it as plain JSON data.

    Only keys that were present are emitted, so a valid document comes back
    deeply equal to its input. Empty `statuses` lists are kept as-is.
    """
    if not isinstance(raw, list):
        raise InvalidInput("Document must be an array of projects")
    try:
        projects = _DOCUMENT_ADAPTER.validate_python(raw)
    except ValidationError as e:
        first = e.errors()[0]
        raise InvalidInput(f"Invalid project data at {_format_location(first['loc'])}: {first['msg']}") from e
    return [p.model_dump(mode="json", exclude_unset=True) for p in projects]


class FileDocumentStore(DocumentStore):
    """
    Single-tenant store: one JSON file holds the only document in the system.

    `user_id` is accepted for interface compatibility but ignored; this store is
    only wired up together with the single-user identity service. Every replace
    also writes a timestamped snapshot into `backups_dir`, keeping the `keep`
    most recent.
    """

    def __init__(self, *, path: Path, backups_dir: Path, keep: int = 20):
        self._path = path
        self._backups_dir = backups_dir
        self._keep = max(1, int(keep))

    @property
    def path(self) -> Path:
        return self._path

    def read(self, user_id: str) -> list[Any]:
        with GLOBAL_PATH_LOCKS.lock_for_path(self._path):
            doc = load_json(self._path, default=[])
        if not isinstance(doc, list):
            raise ValueError(f"{self._path.name} does not hold a JSON array")
        return doc

    def replace(self, user_id: str, document: list[Any]) -> None:
        with GLOBAL_PATH_LOCKS.lock_for_path(self._path):
            atomic_write_json(self._path, document, sort_keys=False)
            try:
                self._snapshot(document)
            except OSError as e:
                # The document itself is safely written; only the safety net failed.
                logger.warning("PROJECTS SNAPSHOT: failed to write backup in %s: %r", self._backups_dir, e)

    def create_empty(self, user_id: str) -> None:
        with GLOBAL_PATH_LOCKS.lock_for_path(self._path):
            if not self._path.exists():
                atomic_write_json(self._path, [], sort_keys=False)

    def list_snapshots(self) -> list[Path]:
        """Snapshot files, oldest first."""
        if not self._backups_dir.exists():
            return []
        return sorted(self._backups_dir.glob(f"{SNAPSHOT_PREFIX}*.json"))

    def _snapshot(self, document: list[Any]) -> None:
        stamp = filesystem_timestamp()
        target = self._backups_dir / f"{SNAPSHOT_PREFIX}{stamp}.json"
        n = 1
        while target.exists():
            target = self._backups_dir / f"{SNAPSHOT_PREFIX}{stamp}-{n}.json"
            n += 1
        atomic_write_json(target, document, sort_keys=False)
        self._prune()

    def _prune(self) -> None:
        snapshots = self.list_snapshots()
        for old in snapshots[: max(0, len(snapshots) - self._keep)]:
            old.unlink(missing_ok=True)
            logger.debug("PROJECTS SNAPSHOT: pruned %s", old.name)
