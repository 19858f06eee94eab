from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any | None:
    """
    Read JSON from disk.

    Returns None for missing files, empty files, or invalid JSON.
    """
    try:
        if not path.exists():
            return None
        raw = path.read_text(encoding="utf-8")
        if not raw.strip():
            return None
        return json.loads(raw)
    except (OSError, ValueError):
        return None


def load_json(path: Path, default: Any) -> Any:
    """
    Read JSON from disk, returning `default` only when the file is missing.

    Unlike read_json, unreadable or corrupt files raise so callers never mistake
    damaged data for an empty document.
    """
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))


def atomic_write_json(path: Path, payload: Any, *, indent: int = 2, sort_keys: bool = True) -> None:
    """
    Atomically write JSON to disk by writing to a temp file then replacing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=indent, sort_keys=sort_keys, ensure_ascii=False)
        f.write("\n")
    tmp_path.replace(path)


def filesystem_timestamp(now: datetime | None = None) -> str:
    """
    ISO-8601 UTC timestamp with millisecond precision, made safe for file names.

    2025-03-04T05:06:07.089Z -> 2025-03-04T05-06-07-089Z
    """
    ts = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = ts.strftime("%Y-%m-%dT%H:%M:%S") + f".{ts.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")
