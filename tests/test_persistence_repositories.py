from __future__ import annotations

import asyncio
import json
import time

import pytest
from sqlalchemy import func, select

from errors import Conflict, Internal, InvalidInput
from persistence.auth_state import (
    LOCAL_USER_ID,
    DiskAccountRepository,
    DiskSessionRepository,
    SessionRecord,
    UserRecord,
)
from persistence.project_state import FileDocumentStore, validate_document
from persistence.repositories import AsyncAuthRepository, AsyncProjectRepository
from persistence.sql_store import SessionRow, SqlDbClient

SAMPLE_DOC = [
    {
        "name": "Harbour lease",
        "issues": [
            {"issue": "2025-01-02: rent review", "statuses": ["2025-01-03: sent letter", "2025-01-09: "], "closed": False},
            {"issue": "keys", "statuses": [], "closed": True},
        ],
    },
    {"name": "", "issues": []},
]


@pytest.fixture(params=["file", "sql"])
def store(request, tmp_path):
    if request.param == "file":
        yield FileDocumentStore(path=tmp_path / "projects.json", backups_dir=tmp_path / "backups", keep=3)
        return
    client = SqlDbClient("sqlite+pysqlite:///:memory:")
    yield client
    client.dispose()


def test_read_without_document_is_empty(store):
    assert store.read("u1") == []


def test_replace_then_read_round_trips(store):
    store.replace("u1", SAMPLE_DOC)
    assert store.read("u1") == SAMPLE_DOC


def test_replace_is_a_full_overwrite(store):
    store.replace("u1", SAMPLE_DOC)
    second = [{"name": "only", "issues": [{"issue": "x", "statuses": ["y"], "closed": True}]}]
    store.replace("u1", second)
    assert store.read("u1") == second


def test_create_empty_keeps_existing_document(store):
    store.create_empty("u1")
    assert store.read("u1") == []
    store.replace("u1", SAMPLE_DOC)
    store.create_empty("u1")
    assert store.read("u1") == SAMPLE_DOC


def test_sql_documents_are_per_user():
    db = SqlDbClient("sqlite+pysqlite:///:memory:")
    db.replace("u1", SAMPLE_DOC)
    db.replace("u2", [])
    assert db.read("u1") == SAMPLE_DOC
    assert db.read("u2") == []
    assert db.read("u3") == []


def test_file_store_keeps_rotating_snapshots(tmp_path):
    store = FileDocumentStore(path=tmp_path / "projects.json", backups_dir=tmp_path / "backups", keep=3)
    for n in range(5):
        store.replace("local", [{"name": f"p{n}", "issues": []}])
        time.sleep(0.002)

    snapshots = store.list_snapshots()
    assert len(snapshots) == 3
    assert [json.loads(p.read_text(encoding="utf-8"))[0]["name"] for p in snapshots] == ["p2", "p3", "p4"]
    assert all(":" not in p.name for p in snapshots)


def test_file_store_refuses_corrupt_document(tmp_path):
    path = tmp_path / "projects.json"
    path.write_text("{not json", encoding="utf-8")
    store = FileDocumentStore(path=path, backups_dir=tmp_path / "backups")
    with pytest.raises(ValueError):
        store.read("local")


def test_validate_document_preserves_shape():
    doc = [{"name": "p", "issues": [{"issue": "i", "statuses": ["a"], "extra": {"k": 1}}], "color": "red"}]
    assert validate_document(doc) == doc
    assert validate_document([]) == []


@pytest.mark.parametrize(
    "bad",
    [
        {},
        "x",
        None,
        [1],
        [{"issues": []}],
        [{"name": 3, "issues": []}],
        [{"name": "p", "issues": [{"issue": "i", "statuses": "nope"}]}],
        [{"name": "p", "issues": [{"issue": "i", "statuses": ["a"], "closed": "yes"}]}],
    ],
)
def test_validate_document_rejects_malformed(bad):
    with pytest.raises(InvalidInput):
        validate_document(bad)


def test_async_disk_auth_repository_roundtrip(tmp_path):
    async def _run():
        repo = AsyncAuthRepository(
            DiskAccountRepository(auth_dir=tmp_path),
            DiskSessionRepository(auth_dir=tmp_path),
        )

        # sessions
        now = int(time.time())
        await repo.put_session("s1", SessionRecord(user_id=LOCAL_USER_ID, created_at=now, expires_at=now + 60))
        sess = await repo.get_session("s1")
        assert sess is not None
        assert sess.user_id == LOCAL_USER_ID
        await repo.delete_session("s1")
        assert await repo.get_session("s1") is None

        # expired sessions vanish on read
        await repo.put_session("old", SessionRecord(user_id=LOCAL_USER_ID, created_at=1, expires_at=2))
        assert await repo.get_session("old") is None

        # the single account
        user = UserRecord(id="ignored", email="alice@example.com", password_hash="h", created_at=now)
        await repo.create_user(user)
        got = await repo.get_user_by_email("alice@example.com")
        assert got is not None
        assert got.id == LOCAL_USER_ID
        with pytest.raises(Conflict):
            await repo.create_user(user.model_copy(update={"email": "bob@example.com"}))

        await repo.set_display_name(LOCAL_USER_ID, "Alice")
        assert (await repo.get_user(LOCAL_USER_ID)).display_name == "Alice"

    asyncio.run(_run())


def test_sql_users_and_sessions(tmp_path):
    async def _run():
        db = SqlDbClient(f"sqlite:///{tmp_path / 'db.sqlite'}")
        repo = AsyncAuthRepository(db, db)
        now = int(time.time())

        await repo.create_user(UserRecord(id="u1", email="alice@example.com", password_hash="h1", created_at=now))
        with pytest.raises(Conflict):
            await repo.create_user(UserRecord(id="u2", email="alice@example.com", password_hash="h2", created_at=now))
        assert (await repo.get_user("u1")).password_hash == "h1"

        await repo.set_password_hash("u1", "h3")
        assert (await repo.get_user_by_email("alice@example.com")).password_hash == "h3"

        await repo.put_session("s1", SessionRecord(user_id="u1", created_at=now, expires_at=now + 60))
        assert (await repo.get_session("s1")).user_id == "u1"
        await repo.put_session("s2", SessionRecord(user_id="u1", created_at=1, expires_at=2))
        assert await repo.get_session("s2") is None
        await repo.delete_session("s1")
        await repo.delete_session("s1")
        assert await repo.get_session("s1") is None

        docs = AsyncProjectRepository(db)
        await docs.replace("u1", SAMPLE_DOC)
        assert await docs.read("u1") == SAMPLE_DOC
        db.dispose()

    asyncio.run(_run())


def _session_rows(db: SqlDbClient) -> int:
    with db.Session() as session:
        return session.scalar(select(func.count()).select_from(SessionRow))


def test_sql_put_session_prunes_expired_rows():
    db = SqlDbClient("sqlite+pysqlite:///:memory:")
    for n in range(50):
        db.put_session(f"old{n}", SessionRecord(user_id="u1", created_at=1, expires_at=2))
    now = int(time.time())
    db.put_session("live", SessionRecord(user_id="u1", created_at=now, expires_at=now + 60))
    assert _session_rows(db) == 1
    assert db.get_session("live") is not None
    db.dispose()


def test_sql_delete_expired_sessions_keeps_live_ones():
    db = SqlDbClient("sqlite+pysqlite:///:memory:")
    now = int(time.time())
    db.put_session("live", SessionRecord(user_id="u1", created_at=now, expires_at=now + 60))
    with db.Session() as session:
        session.add_all(
            [SessionRow(session_id=f"old{n}", user_id="u1", created_at=1, expires_at=2) for n in range(3)]
        )
        session.commit()
    assert db.delete_expired_sessions() == 3
    assert _session_rows(db) == 1
    db.dispose()


def test_disk_put_session_prunes_expired_entries(tmp_path):
    repo = DiskSessionRepository(auth_dir=tmp_path)
    for n in range(5):
        repo.put_session(f"old{n}", SessionRecord(user_id=LOCAL_USER_ID, created_at=1, expires_at=2))
    now = int(time.time())
    repo.put_session("live", SessionRecord(user_id=LOCAL_USER_ID, created_at=now, expires_at=now + 60))
    stored = json.loads((tmp_path / "sessions.json").read_text(encoding="utf-8"))
    assert list(stored) == ["live"]


def test_async_project_repository_reports_storage_failure_as_internal(tmp_path):
    path = tmp_path / "projects.json"
    path.write_text("[1,", encoding="utf-8")
    repo = AsyncProjectRepository(FileDocumentStore(path=path, backups_dir=tmp_path / "backups"))
    with pytest.raises(Internal):
        asyncio.run(repo.read("local"))
