"""HTTP record store against a live FileShare server."""
import asyncio
import socket

import pytest
import uvicorn

from fileshare.errors import InvalidArgumentError, NotFoundError
from fileshare.main import create_app
from fileshare.reactions import ReactionType
from fileshare.schemas.file import FileUpload
from fileshare.schemas.snapshot import Snapshot
from fileshare.services import file_engine, reaction_engine
from fileshare.services.session import Session
from fileshare.stores.http import HttpRecordStore
from fileshare.stores.local import LocalRecordStore

from conftest import make_entry, make_sql_store

LIKE = ReactionType.LIKE
DISLIKE = ReactionType.DISLIKE

NOTES = FileUpload(name="notes.txt", type="text/plain", size=5, content="data:text/plain;base64,aGVsbG8=")


class LiveServer:
    """Serves create_app() with uvicorn on a free loopback port, in the test's event loop."""

    def __init__(self, session: Session):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.bind(("127.0.0.1", 0))
        self.url = f"http://127.0.0.1:{self._sock.getsockname()[1]}"
        config = uvicorn.Config(create_app(session), log_level="warning", lifespan="on")
        self._server = uvicorn.Server(config)
        self._task = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._server.serve(sockets=[self._sock]))
        while not self._server.started:
            if self._task.done():
                self._task.result()
            await asyncio.sleep(0.01)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None
        self._sock.close()


@pytest.fixture
async def live_server(tmp_path):
    session = Session(remote=make_sql_store(), local=LocalRecordStore(tmp_path / "server_local.json"))
    server = LiveServer(session)
    await server.start()
    yield server
    await server.stop()


@pytest.mark.asyncio
async def test_reaction_scenario_over_http(live_server):
    async with HttpRecordStore(live_server.url) as remote:
        await remote.ping()
        stored = await remote.insert_file(make_entry("client-id", caption="holiday"))

        # The server assigns the id; the rest of the record carries over
        assert stored.file_id.startswith("file_")
        assert stored.caption == "holiday"
        assert stored.uploader_id == "user_uploader000"
        assert stored.text_content == "hello world"

        outcome = await remote.apply_reaction_transaction(stored.file_id, "u1", LIKE)
        assert outcome.reaction is LIKE
        assert (outcome.like_delta, outcome.likes, outcome.dislikes) == (1, 1, 0)

        outcome = await remote.apply_reaction_transaction(stored.file_id, "u1", LIKE)
        assert outcome.reaction is None
        assert (outcome.likes, outcome.dislikes) == (0, 0)

        outcome = await remote.apply_reaction_transaction(stored.file_id, "u1", DISLIKE)
        assert (outcome.reaction, outcome.likes, outcome.dislikes) == (DISLIKE, 0, 1)

        assert await remote.get_reactions_for_user("u1") == {stored.file_id: DISLIKE}
        assert (await remote.increment_views(stored.file_id)).views == 1
        stats = await remote.get_aggregate_stats()
        assert (stats.total_files, stats.total_views, stats.total_likes) == (1, 1, 0)


@pytest.mark.asyncio
async def test_http_errors_map_to_store_errors(live_server):
    async with HttpRecordStore(live_server.url) as remote:
        with pytest.raises(NotFoundError, match="file_0_missing"):
            await remote.get_file("file_0_missing")
        with pytest.raises(NotFoundError):
            await remote.apply_reaction_transaction("file_0_missing", "u1", LIKE)
        with pytest.raises(NotFoundError):
            await remote.delete_file("file_0_missing")
        with pytest.raises(InvalidArgumentError, match="not supported"):
            await remote.insert_file(make_entry("bad", type="application/x-msdownload"))


@pytest.mark.asyncio
async def test_export_import_and_delete_over_http(live_server):
    async with HttpRecordStore(live_server.url) as remote:
        kept = await remote.insert_file(make_entry("one"))
        await remote.apply_reaction_transaction(kept.file_id, "u7", LIKE)

        snapshot = await remote.export_snapshot()
        assert [f.file_id for f in snapshot.files] == [kept.file_id]
        assert snapshot.user_reactions == {"u7": {kept.file_id: LIKE}}

        await remote.import_snapshot(Snapshot(files=[make_entry("f9", likes=1)], user_reactions={"u1": {"f9": LIKE}}))
        assert [f.file_id for f in await remote.get_all_files()] == ["f9"]
        assert await remote.get_reactions_for_user("u7") == {}

        await remote.delete_file("f9")
        assert await remote.get_all_files() == []
        assert await remote.get_reactions_for_user("u1") == {}


@pytest.mark.asyncio
async def test_client_keeps_working_when_server_goes_away(live_server, tmp_path):
    local = LocalRecordStore(tmp_path / "client_local.json")
    async with HttpRecordStore(live_server.url, timeout=2) as remote:
        session = Session.create(local=local, remote=remote, user_id="u1")
        entry = await file_engine.upload_file(session, NOTES)
        outcome = await reaction_engine.toggle_like(session, entry.file_id)
        assert outcome.likes == 1

        await live_server.stop()

        assert [f.file_id for f in await file_engine.list_files(session)] == [entry.file_id]
        outcome = await reaction_engine.toggle_like(session, entry.file_id)
        assert (outcome.reaction, outcome.likes) == (None, 0)
        assert await local.get_reactions_for_user("u1") == {}
