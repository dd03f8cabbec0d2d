"""Shared fixtures: an in-memory SQLite record store and a temp-dir local store."""
from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool

from fileshare.reactions import ReactionType
from fileshare.schemas.file import FileEntry
from fileshare.schemas.snapshot import Snapshot
from fileshare.stores.local import LocalRecordStore
from fileshare.stores.relational import SqlRecordStore

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def make_sql_store() -> SqlRecordStore:
    """A store on a private in-memory database. No connection is opened until first use."""
    return SqlRecordStore.from_url(
        SQLITE_MEMORY_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def make_entry(file_id: str = "f1", **overrides) -> FileEntry:
    fields = {
        "file_id": file_id,
        "name": f"{file_id}.txt",
        "type": "text/plain",
        "size": 11,
        "content": "data:text/plain;base64,aGVsbG8gd29ybGQ=",
        "text_content": "hello world",
        "caption": "",
        "upload_date": datetime(2024, 5, 1, 12, 0, 0),
        "uploader_id": "user_uploader000",
    }
    fields.update(overrides)
    return FileEntry(**fields)


def reaction_count(snapshot: Snapshot, file_id: str, reaction: ReactionType) -> int:
    """Number of users holding ``reaction`` on ``file_id``."""
    return sum(
        1 for reactions in snapshot.user_reactions.values()
        if reactions.get(file_id) == reaction
    )


async def assert_counters_match_records(store, file_id):
    snapshot = await store.export_snapshot()
    entry = await store.get_file(file_id)
    assert entry.likes == reaction_count(snapshot, file_id, ReactionType.LIKE)
    assert entry.dislikes == reaction_count(snapshot, file_id, ReactionType.DISLIKE)


@pytest.fixture
async def sql_store():
    store = make_sql_store()
    await store.create_schema()
    yield store
    await store.close()


@pytest.fixture
async def file_sql_store(tmp_path):
    """A store on a SQLite file, so each session gets its own connection."""
    store = SqlRecordStore.from_url(f"sqlite+aiosqlite:///{tmp_path}/fileshare.db")
    await store.create_schema()
    yield store
    await store.close()


@pytest.fixture
def local_store(tmp_path):
    return LocalRecordStore(tmp_path / "local_store.json")


@pytest.fixture
def unreachable_sql_store(tmp_path):
    """A relational store whose database file can never be opened."""
    return SqlRecordStore.from_url(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/db.sqlite")


@pytest.fixture(params=["sql", "local"])
async def store(request, tmp_path):
    """Each record store backend in turn, for contract tests."""
    if request.param == "sql":
        sql = make_sql_store()
        await sql.create_schema()
        yield sql
        await sql.close()
    else:
        yield LocalRecordStore(tmp_path / "local_store.json")
