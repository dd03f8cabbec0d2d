"""Local key-value record store.

Plays the part browser local storage plays for the web client: a single
JSON document holding two fixed keys, the files collection and the
per-user reactions mapping. Every mutation loads the document, computes the
complete new state in memory and writes both keys back in one atomic file
replace, so readers never observe a half-applied reaction.
"""
import asyncio
import errno
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from fileshare.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    NotFoundError,
    QuotaExceededError,
    TransactionFailureError,
)
from fileshare.reactions import ReactionType, transition
from fileshare.schemas.file import AggregateStats, FileEntry, StorageInfo
from fileshare.schemas.reaction import ReactionOutcome
from fileshare.schemas.snapshot import Snapshot
from fileshare.stores.base import RecordStore

logger = logging.getLogger(__name__)

FILES_KEY = "fileshare_files"
USER_REACTIONS_KEY = "fileshare_user_reactions"

# Rough estimate of what browsers grant local storage
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class LocalRecordStore(RecordStore):
    """Record store persisted as one JSON document on local disk."""

    name = "local storage"

    def __init__(self, path: str | Path, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self.path = Path(path)
        self.quota_bytes = quota_bytes
        self._lock = asyncio.Lock()

    # ── Document I/O ────────────────────────────────────────────────

    async def _read_document(self) -> dict:
        if not await aiofiles.os.path.exists(self.path):
            return {}
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            raise ConnectionFailureError(f"Cannot read local store {self.path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            # Keep the unreadable copy aside instead of overwriting it on the next write
            backup = self.path.with_name(self.path.name + ".corrupt")
            await aiofiles.os.replace(self.path, backup)
            logger.error(f"Local store {self.path} is not valid JSON ({e}); moved to {backup}")
            return {}
        return document if isinstance(document, dict) else {}

    async def _load(self) -> Snapshot:
        document = await self._read_document()

        files = []
        for raw in document.get(FILES_KEY) or []:
            try:
                files.append(FileEntry.model_validate(raw))
            except ValidationError as e:
                file_id = raw.get("file_id") if isinstance(raw, dict) else None
                logger.warning(f"Dropping invalid local file record {file_id!r}: {e.error_count()} error(s)")

        user_reactions: dict[str, dict[str, ReactionType]] = {}
        for user_id, reactions in (document.get(USER_REACTIONS_KEY) or {}).items():
            for file_id, reaction in reactions.items():
                try:
                    user_reactions.setdefault(user_id, {})[file_id] = ReactionType(reaction)
                except ValueError:
                    logger.warning(f"Dropping invalid local reaction {reaction!r} of {user_id} on {file_id}")

        return Snapshot(files=files, user_reactions=user_reactions)

    async def _save(self, state: Snapshot) -> None:
        document = {
            FILES_KEY: [f.model_dump(mode="json") for f in state.files],
            USER_REACTIONS_KEY: {
                user_id: {file_id: r.value for file_id, r in reactions.items()}
                for user_id, reactions in state.user_reactions.items()
                if reactions
            },
        }
        payload = json.dumps(document)
        required = len(payload.encode("utf-8"))
        if required > self.quota_bytes:
            used = (await aiofiles.os.stat(self.path)).st_size if await aiofiles.os.path.exists(self.path) else 0
            raise QuotaExceededError(self.quota_bytes, used, required)

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self.path)
        except OSError as e:
            if e.errno == errno.ENOSPC:
                raise QuotaExceededError(self.quota_bytes, 0, required) from e
            raise TransactionFailureError(f"Writing local store {self.path} failed: {e}") from e

    @asynccontextmanager
    async def _mutate(self):
        """Yield the loaded state; persist it only if the body completes."""
        async with self._lock:
            state = await self._load()
            yield state
            await self._save(state)

    @staticmethod
    def _find(state: Snapshot, file_id: str) -> FileEntry:
        for entry in state.files:
            if entry.file_id == file_id:
                return entry
        raise NotFoundError(file_id)

    # ── RecordStore ─────────────────────────────────────────────────

    async def ping(self) -> None:
        await self._read_document()

    async def get_all_files(self) -> list[FileEntry]:
        state = await self._load()
        return sorted(state.files, key=lambda f: f.uploaded_at(), reverse=True)

    async def get_file(self, file_id: str) -> FileEntry:
        return self._find(await self._load(), file_id)

    async def insert_file(self, record: FileEntry) -> FileEntry:
        async with self._mutate() as state:
            if any(f.file_id == record.file_id for f in state.files):
                raise ConstraintViolationError(f"File id already exists: {record.file_id}")
            # Newest first, like the gallery shows them
            state.files.insert(0, record)
        logger.info(f"Stored file {record.file_id} ({record.name}) in local storage")
        return record

    async def delete_file(self, file_id: str) -> None:
        async with self._mutate() as state:
            entry = self._find(state, file_id)
            state.files.remove(entry)
            for reactions in state.user_reactions.values():
                reactions.pop(file_id, None)
        logger.info(f"Deleted file {file_id} from local storage")

    async def increment_views(self, file_id: str) -> FileEntry:
        async with self._mutate() as state:
            entry = self._find(state, file_id)
            entry.views += 1
        return entry

    async def get_reactions_for_user(self, user_id: str) -> dict[str, ReactionType]:
        state = await self._load()
        return dict(state.user_reactions.get(user_id, {}))

    async def apply_reaction_transaction(
        self, file_id: str, user_id: str, desired: ReactionType
    ) -> ReactionOutcome:
        async with self._mutate() as state:
            entry = self._find(state, file_id)
            reactions = state.user_reactions.setdefault(user_id, {})
            step = transition(reactions.get(file_id), desired)

            likes = entry.likes + step.like_delta
            dislikes = entry.dislikes + step.dislike_delta
            if likes < 0 or dislikes < 0:
                raise ConstraintViolationError(
                    f"Counters for {file_id} would go negative (likes={likes}, dislikes={dislikes})"
                )
            entry.likes, entry.dislikes = likes, dislikes
            if step.new_state is None:
                reactions.pop(file_id, None)
            else:
                reactions[file_id] = step.new_state

        return ReactionOutcome(
            reaction=step.new_state,
            like_delta=step.like_delta,
            dislike_delta=step.dislike_delta,
            likes=entry.likes,
            dislikes=entry.dislikes,
        )

    async def get_aggregate_stats(self) -> AggregateStats:
        files = await self.get_all_files()
        return AggregateStats(
            total_files=len(files),
            total_views=sum(f.views for f in files),
            total_likes=sum(f.likes for f in files),
        )

    async def export_snapshot(self) -> Snapshot:
        return await self._load()

    async def import_snapshot(self, snapshot: Snapshot) -> None:
        async with self._lock:
            await self._save(snapshot)
        logger.info(f"Imported {len(snapshot.files)} file(s) into local storage")

    # ── Offline copy of the remote ──────────────────────────────────

    async def mirror_files(self, entries: list[FileEntry]) -> None:
        if not entries:
            return
        async with self._mutate() as state:
            incoming = {e.file_id: e for e in entries}
            state.files = [incoming.pop(f.file_id, f) for f in state.files]
            state.files[:0] = incoming.values()
        logger.debug(f"Mirrored {len(entries)} remote file record(s) into local storage")

    async def mirror_deletion(self, file_id: str) -> None:
        async with self._mutate() as state:
            state.files = [f for f in state.files if f.file_id != file_id]
            for reactions in state.user_reactions.values():
                reactions.pop(file_id, None)

    async def mirror_reaction(self, file_id: str, user_id: str, outcome: ReactionOutcome) -> None:
        async with self._mutate() as state:
            for entry in state.files:
                if entry.file_id == file_id:
                    entry.likes, entry.dislikes = outcome.likes, outcome.dislikes
            reactions = state.user_reactions.setdefault(user_id, {})
            if outcome.reaction is None:
                reactions.pop(file_id, None)
            else:
                reactions[file_id] = outcome.reaction

    async def mirror_user_reactions(self, user_id: str, reactions: dict[str, ReactionType]) -> None:
        # Merged, not replaced: reactions made here while offline stay put
        async with self._mutate() as state:
            state.user_reactions.setdefault(user_id, {}).update(reactions)

    # ── Housekeeping ────────────────────────────────────────────────

    async def storage_info(self) -> StorageInfo:
        """How much of the quota the stored files and reactions take."""
        document = await self._read_document()
        files_bytes = len(json.dumps(document[FILES_KEY]).encode("utf-8")) if FILES_KEY in document else 0
        reactions_bytes = (
            len(json.dumps(document[USER_REACTIONS_KEY]).encode("utf-8"))
            if USER_REACTIONS_KEY in document else 0
        )
        total = files_bytes + reactions_bytes
        return StorageInfo(
            files_bytes=files_bytes,
            reactions_bytes=reactions_bytes,
            total_bytes=total,
            quota_bytes=self.quota_bytes,
            percentage_used=total / self.quota_bytes * 100,
        )

    async def clear(self) -> None:
        """Delete every stored file and reaction."""
        async with self._lock:
            try:
                if await aiofiles.os.path.exists(self.path):
                    await aiofiles.os.remove(self.path)
            except OSError as e:
                raise TransactionFailureError(f"Clearing local store {self.path} failed: {e}") from e
        logger.info(f"Cleared local store {self.path}")
