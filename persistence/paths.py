from __future__ import annotations

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def auth_dir(data_dir: Path) -> Path:
    return ensure_dir(data_dir / "auth")


def backups_dir(data_dir: Path) -> Path:
    return ensure_dir(data_dir / "backups")


def projects_file(data_dir: Path) -> Path:
    return ensure_dir(data_dir) / "projects.json"
