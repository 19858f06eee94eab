from __future__ import annotations

from pathlib import Path
import sys

import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Point every storage path at a temp directory so tests never touch real ./data,
    and make bcrypt cheap.
    """
    import dependencies

    monkeypatch.setenv("STORAGE_BACKEND", "sql")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'issues.db'}")
    monkeypatch.setenv("CLIENT_DIST_DIR", str(tmp_path / "client"))
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("SESSION_TTL_SECONDS", raising=False)
    monkeypatch.delenv("BACKUP_KEEP", raising=False)

    dependencies.reset_dependencies()
    yield tmp_path
    dependencies.reset_dependencies()


@pytest.fixture(params=["sql", "file"])
def backend(request: pytest.FixtureRequest, sandbox_env: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Run the test once per storage backend."""
    import dependencies

    monkeypatch.setenv("STORAGE_BACKEND", request.param)
    dependencies.reset_dependencies()
    return request.param


@pytest.fixture
def make_client(sandbox_env: Path):
    """
    Build a fresh app (after any env tweaks) and return a TestClient for it.
    Each call is an independent browser with its own cookie jar.
    """
    from fastapi.testclient import TestClient

    import app as app_module

    def _make() -> TestClient:
        return TestClient(app_module.create_app())

    return _make


@pytest.fixture
def client(make_client, backend):
    return make_client()
