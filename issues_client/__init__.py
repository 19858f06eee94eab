from __future__ import annotations

from .api import ApiError, IssuesApiClient
from .buffer import EditBuffer, new_issue, new_project, today_prefix
from .debounce import Debouncer

__all__ = [
    "ApiError",
    "IssuesApiClient",
    "EditBuffer",
    "new_issue",
    "new_project",
    "today_prefix",
    "Debouncer",
]
