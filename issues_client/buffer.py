"""
Client-side edit buffer for the project document.

All edits mutate the in-memory document synchronously and notify listeners;
persistence is a debounced full-document PUT once edits go quiet.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Protocol

import httpx

from services.backup import backup_filename

from .api import ApiError
from .debounce import Debouncer

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DELAY = 0.8

Listener = Callable[["EditBuffer"], None]
Confirm = Callable[[str], bool]

# Transport and API failures are reported, never retried.
REQUEST_ERRORS = (ApiError, httpx.HTTPError)


class ProjectsApi(Protocol):
    async def me(self) -> dict[str, Any]: ...
    async def logout(self) -> None: ...
    async def get_projects(self) -> list[Any]: ...
    async def put_projects(self, projects: list[Any]) -> None: ...
    async def get_backup(self) -> dict[str, Any]: ...
    async def restore(self, artifact: Any) -> None: ...


def today_prefix(today: date | None = None) -> str:
    return f"{(today or date.today()).isoformat()}: "


def new_issue(prefix: str) -> dict[str, Any]:
    return {"issue": prefix, "statuses": [prefix], "closed": False}


def new_project(prefix: str) -> dict[str, Any]:
    return {"name": "", "issues": [new_issue(prefix)]}


class EditBuffer:
    def __init__(
        self,
        api: ProjectsApi,
        *,
        delay: float = DEFAULT_SAVE_DELAY,
        confirm: Confirm | None = None,
        prefix: Callable[[], str] = today_prefix,
    ):
        self.api = api
        self.projects: list[dict[str, Any]] = []
        self.identity: dict[str, Any] | None = None
        self.loaded = False
        self.loading = False
        self.last_error: Exception | None = None
        # Deletions are refused unless a confirmation hook says yes.
        self._confirm: Confirm = confirm or (lambda message: False)
        self._prefix = prefix
        self._listeners: list[Listener] = []
        self._saves_in_flight = 0
        self._debouncer = Debouncer(delay, self._save)

    # -- observation -------------------------------------------------------

    @property
    def saving(self) -> bool:
        return self._saves_in_flight > 0

    @property
    def save_pending(self) -> bool:
        return self._debouncer.pending

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- session / loading -------------------------------------------------

    async def start(self) -> bool:
        """Confirm the session, then load. Anonymous or failed checks leave an empty buffer."""
        try:
            me = await self.api.me()
        except REQUEST_ERRORS as e:
            logger.error("Session check failed: %r", e)
            self.last_error = e
            self.reset()
            return False
        if not me.get("userId"):
            self.reset()
            return False
        self.identity = me
        await self.load()
        return self.loaded

    async def load(self) -> None:
        self._debouncer.cancel()
        self.loaded = False
        self.loading = True
        self._notify()
        try:
            data = await self.api.get_projects()
        except REQUEST_ERRORS as e:
            logger.error("Failed to load projects: %r", e)
            self.last_error = e
            self.loading = False
            # Whatever was shown before may belong to another user.
            self.projects = []
            self._notify()
            return
        self.loading = False

        seeded = not data
        self.projects = data if data else [new_project(self._prefix())]
        self.loaded = True
        if seeded:
            self._touch()
        else:
            self._notify()

    def reset(self) -> None:
        self._debouncer.cancel()
        self.projects = []
        self.identity = None
        self.loaded = False
        self._notify()

    async def logout(self) -> None:
        await self.flush()
        try:
            await self.api.logout()
        finally:
            self.reset()

    # -- persistence -------------------------------------------------------

    def _touch(self) -> None:
        self._notify()
        # Never persist before the initial load; it would overwrite server state.
        if self.loaded:
            self._debouncer.trigger()

    async def _save(self) -> None:
        snapshot = copy.deepcopy(self.projects)
        self._saves_in_flight += 1
        self._notify()
        try:
            await self.api.put_projects(snapshot)
            self.last_error = None
        except REQUEST_ERRORS as e:
            logger.error("Failed to save projects: %r", e)
            self.last_error = e
        finally:
            self._saves_in_flight -= 1
            self._notify()

    async def flush(self) -> None:
        await self._debouncer.flush()

    # -- field edits -------------------------------------------------------

    def set_project_name(self, project_index: int, value: str) -> None:
        self.projects[project_index]["name"] = value
        self._touch()

    def set_issue_text(self, project_index: int, issue_index: int, value: str) -> None:
        self.projects[project_index]["issues"][issue_index]["issue"] = value
        self._touch()

    def set_status(self, project_index: int, issue_index: int, status_index: int, value: str) -> None:
        issue = self.projects[project_index]["issues"][issue_index]
        statuses = issue["statuses"]
        statuses[status_index] = value
        # Filling in the last line of an open issue opens a fresh one.
        if status_index == len(statuses) - 1 and value.strip() and not issue.get("closed", False):
            statuses.append(self._prefix())
        self._touch()

    def toggle_closed(self, project_index: int, issue_index: int) -> None:
        issue = self.projects[project_index]["issues"][issue_index]
        issue["closed"] = not issue.get("closed", False)
        self._touch()

    # -- structural edits --------------------------------------------------

    def add_project(self) -> None:
        self.projects.append(new_project(self._prefix()))
        self._touch()

    def add_issue(self, project_index: int) -> None:
        self.projects[project_index]["issues"].append(new_issue(self._prefix()))
        self._touch()

    def add_status(self, project_index: int, issue_index: int) -> None:
        self.projects[project_index]["issues"][issue_index]["statuses"].append(self._prefix())
        self._touch()

    def remove_status(self, project_index: int, issue_index: int, status_index: int) -> bool:
        statuses = self.projects[project_index]["issues"][issue_index]["statuses"]
        if len(statuses) <= 1:
            return False
        if not self._confirm("Delete this status update?"):
            return False
        del statuses[status_index]
        self._touch()
        return True

    def delete_project(self, project_index: int) -> bool:
        name = self.projects[project_index].get("name") or "this project"
        if not self._confirm(f"Delete {name} and all of its issues?"):
            return False
        del self.projects[project_index]
        self._touch()
        return True

    def delete_issue(self, project_index: int, issue_index: int) -> bool:
        if not self._confirm("Delete this issue and its status history?"):
            return False
        del self.projects[project_index]["issues"][issue_index]
        self._touch()
        return True

    # -- backup / restore --------------------------------------------------

    async def download_backup(self, directory: Path | str) -> Path:
        artifact = await self.api.get_backup()
        target = Path(directory) / backup_filename()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(artifact, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        return target

    async def restore_backup(self, path: Path | str) -> None:
        """
        Replace the server document with a backup file, then reload.

        Errors from the restore itself propagate and leave the buffer as it was.
        A failed reload afterwards empties it.
        """
        artifact = json.loads(Path(path).read_text(encoding="utf-8"))
        had_pending = self._debouncer.pending
        # A pending save of the old buffer must not land after the restore.
        self._debouncer.cancel()
        await self._debouncer.wait_idle()
        try:
            await self.api.restore(artifact)
        except Exception:
            if had_pending:
                self._debouncer.trigger()
            raise
        await self.load()
