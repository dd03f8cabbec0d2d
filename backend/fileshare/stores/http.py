"""Record store that talks to a running FileShare server over HTTP.

This is what the browser client did: the server is the remote store, and the
caller keeps a LocalRecordStore to fall back on. Transport errors and
timeouts surface as ConnectionFailureError so the availability selector and
the engines treat them as "remote unreachable".
"""
import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from fileshare.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    FileShareError,
    InvalidArgumentError,
    NotFoundError,
    TransactionFailureError,
)
from fileshare.reactions import ReactionType
from fileshare.schemas.file import AggregateStats, FileEntry
from fileshare.schemas.reaction import ReactionOutcome
from fileshare.schemas.snapshot import Snapshot
from fileshare.stores.base import RecordStore

logger = logging.getLogger(__name__)


class HttpRecordStore(RecordStore):
    """Async HTTP client for the FileShare API.

    Supports async context manager for connection pooling across calls.
    Falls back to a per-call session if used without ``async with``.
    """

    name = "server"

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def open(self) -> None:
        """Open a persistent session for connection pooling."""
        if not self._session:
            self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        """Close the persistent session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpRecordStore":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _request(
        self, method: str, path: str,
        payload: Optional[dict] = None,
        file_id: Optional[str] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/api{path}"
        try:
            if self._session:
                return await self._send(self._session, method, url, payload, file_id)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, method, url, payload, file_id)
        except FileShareError:
            raise
        except asyncio.TimeoutError as e:
            raise ConnectionFailureError(f"Request to {url} timed out") from e
        except aiohttp.ClientError as e:
            raise ConnectionFailureError(f"Connection error for {url}: {str(e) or type(e).__name__}") from e

    async def _send(
        self, session: aiohttp.ClientSession, method: str, url: str,
        payload: Optional[dict], file_id: Optional[str],
    ) -> dict[str, Any]:
        async with session.request(method, url, json=payload, timeout=self._timeout) as resp:
            try:
                data = await resp.json(content_type=None)
            except (json.JSONDecodeError, ValueError):
                data = None
            if not isinstance(data, dict):
                data = {}
            if resp.status < 400 and data.get("success", False):
                return data

            message = data.get("error") or resp.reason or f"HTTP {resp.status}"
            if resp.status == 404:
                raise NotFoundError(file_id or url)
            if resp.status in (400, 422):
                raise InvalidArgumentError(message)
            if resp.status == 409:
                raise ConstraintViolationError(message)
            if resp.status == 503:
                raise ConnectionFailureError(message)
            raise TransactionFailureError(f"HTTP {resp.status} from {url}: {message}")

    async def ping(self) -> None:
        await self._request("GET", "/stats")

    async def get_all_files(self) -> list[FileEntry]:
        data = await self._request("GET", "/files")
        return [FileEntry.model_validate(f) for f in data.get("files", [])]

    async def get_file(self, file_id: str) -> FileEntry:
        data = await self._request("GET", f"/files/{file_id}", file_id=file_id)
        return FileEntry.model_validate(data["file"])

    async def insert_file(self, record: FileEntry) -> FileEntry:
        file_data = {
            "name": record.name,
            "type": record.type,
            "size": record.size,
            "content": record.content,
            "textContent": record.text_content,
            "uploaderId": record.uploader_id,
        }
        data = await self._request(
            "POST", "/upload",
            payload={"fileData": json.dumps(file_data), "caption": record.caption},
        )
        # The server assigns its own id; uploader, caption and content carry over
        return await self.get_file(data["fileId"])

    async def delete_file(self, file_id: str) -> None:
        await self._request("DELETE", f"/files/{file_id}", file_id=file_id)

    async def increment_views(self, file_id: str) -> FileEntry:
        await self._request("POST", f"/files/{file_id}/view", file_id=file_id)
        return await self.get_file(file_id)

    async def get_reactions_for_user(self, user_id: str) -> dict[str, ReactionType]:
        data = await self._request("GET", f"/reactions/{user_id}")
        return {file_id: ReactionType(r) for file_id, r in data.get("reactions", {}).items()}

    async def apply_reaction_transaction(
        self, file_id: str, user_id: str, desired: ReactionType
    ) -> ReactionOutcome:
        data = await self._request(
            "POST", f"/files/{file_id}/reaction",
            payload={"reaction": desired.value, "userId": user_id},
            file_id=file_id,
        )
        return ReactionOutcome.model_validate(data)

    async def get_aggregate_stats(self) -> AggregateStats:
        data = await self._request("GET", "/stats")
        return AggregateStats.model_validate(data["stats"])

    async def export_snapshot(self) -> Snapshot:
        data = await self._request("GET", "/export")
        return Snapshot.model_validate(data["snapshot"])

    async def import_snapshot(self, snapshot: Snapshot) -> None:
        await self._request("POST", "/import", payload=snapshot.model_dump(mode="json"))
        logger.info(f"Imported {len(snapshot.files)} file(s) into {self.base_url}")
