"""Relational record store: ``files`` and ``user_reactions`` tables.

Runs on PostgreSQL (asyncpg) in production and SQLite (aiosqlite) in tests.
The unique constraint on (user_id, file_id) is enforced by the database
itself; the reaction transaction additionally locks the file row so that
concurrent reactions on one file serialize.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from fileshare.database import build_engine, build_session_factory
from fileshare.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    FileShareError,
    NotFoundError,
    TransactionFailureError,
)
from fileshare.models import Base, FileRecord, UserReaction
from fileshare.reactions import ReactionType, transition
from fileshare.schemas.file import AggregateStats, FileEntry
from fileshare.schemas.reaction import ReactionOutcome
from fileshare.schemas.snapshot import Snapshot
from fileshare.stores.base import RecordStore

logger = logging.getLogger(__name__)

# Reaction -> counter column. Reaction names never reach SQL text.
_COUNTER_COLUMNS = {
    ReactionType.LIKE: FileRecord.likes,
    ReactionType.DISLIKE: FileRecord.dislikes,
}


class SqlRecordStore(RecordStore):
    """Record store backed by an async SQLAlchemy engine."""

    name = "database"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs) -> "SqlRecordStore":
        return cls(build_engine(database_url, **engine_kwargs))

    async def create_schema(self) -> None:
        """Create tables if missing."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (OperationalError, InterfaceError, OSError) as e:
            raise ConnectionFailureError(f"Database unreachable while creating tables: {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self, action: str, transactional: bool = False):
        """Open a session and translate driver errors into the store taxonomy.

        With ``transactional`` the body runs in one begin/commit unit and any
        exception rolls the whole unit back.
        """
        try:
            async with self._session_factory() as db:
                if transactional:
                    async with db.begin():
                        yield db
                else:
                    yield db
        except FileShareError:
            raise
        except IntegrityError as e:
            raise ConstraintViolationError(f"Constraint violated during {action}: {e.orig}") from e
        except (OperationalError, InterfaceError, OSError) as e:
            raise ConnectionFailureError(f"Database unreachable during {action}: {e}") from e
        except SQLAlchemyError as e:
            raise TransactionFailureError(f"Transaction failed during {action}, rolled back: {e}") from e

    @staticmethod
    async def _get_row(db: AsyncSession, file_id: str, for_update: bool = False) -> FileRecord:
        query = select(FileRecord).where(FileRecord.file_id == file_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        row = result.scalar_one_or_none()
        if not row:
            raise NotFoundError(file_id)
        return row

    async def ping(self) -> None:
        async with self._session("ping") as db:
            await db.execute(text("SELECT 1"))

    async def get_all_files(self) -> list[FileEntry]:
        async with self._session("list files") as db:
            result = await db.execute(
                select(FileRecord).order_by(FileRecord.upload_date.desc(), FileRecord.id.desc())
            )
            return [FileEntry.model_validate(row) for row in result.scalars().all()]

    async def get_file(self, file_id: str) -> FileEntry:
        async with self._session("get file") as db:
            return FileEntry.model_validate(await self._get_row(db, file_id))

    async def insert_file(self, record: FileEntry) -> FileEntry:
        async with self._session("insert file", transactional=True) as db:
            row = FileRecord(**record.model_dump())
            db.add(row)
        logger.info(f"Stored file {record.file_id} ({record.name}) in database")
        return FileEntry.model_validate(row)

    async def delete_file(self, file_id: str) -> None:
        async with self._session("delete file", transactional=True) as db:
            row = await self._get_row(db, file_id)
            await db.execute(delete(UserReaction).where(UserReaction.file_id == file_id))
            await db.delete(row)
        logger.info(f"Deleted file {file_id} from database")

    async def increment_views(self, file_id: str) -> FileEntry:
        async with self._session("increment views", transactional=True) as db:
            result = await db.execute(
                update(FileRecord)
                .where(FileRecord.file_id == file_id)
                .values(views=FileRecord.views + 1)
            )
            if result.rowcount == 0:
                raise NotFoundError(file_id)
            row = await self._get_row(db, file_id)
            return FileEntry.model_validate(row)

    async def get_reactions_for_user(self, user_id: str) -> dict[str, ReactionType]:
        async with self._session("get reactions") as db:
            result = await db.execute(
                select(UserReaction.file_id, UserReaction.reaction)
                .where(UserReaction.user_id == user_id)
            )
            return {file_id: ReactionType(reaction) for file_id, reaction in result.all()}

    async def apply_reaction_transaction(
        self, file_id: str, user_id: str, desired: ReactionType
    ) -> ReactionOutcome:
        async with self._session("reaction", transactional=True) as db:
            # Lock the file row first so concurrent reactions on it serialize
            await self._get_row(db, file_id, for_update=True)

            result = await db.execute(
                select(UserReaction)
                .where(UserReaction.user_id == user_id, UserReaction.file_id == file_id)
                .with_for_update()
            )
            existing: Optional[UserReaction] = result.scalar_one_or_none()
            current = ReactionType(existing.reaction) if existing else None
            step = transition(current, desired)

            if step.record_action == "insert":
                db.add(UserReaction(user_id=user_id, file_id=file_id, reaction=desired.value))
            elif step.record_action == "delete":
                await db.delete(existing)
            else:
                existing.reaction = desired.value
            await db.flush()

            counter_values = {}
            for reaction, column in _COUNTER_COLUMNS.items():
                delta = step.delta_for(reaction)
                if delta:
                    counter_values[column] = column + delta
            result = await db.execute(
                update(FileRecord)
                .where(FileRecord.file_id == file_id)
                .values(counter_values)
            )
            if result.rowcount != 1:
                raise TransactionFailureError(
                    f"Counter update for {file_id} touched {result.rowcount} rows, rolled back"
                )

            result = await db.execute(
                select(FileRecord.likes, FileRecord.dislikes).where(FileRecord.file_id == file_id)
            )
            likes, dislikes = result.one()

        logger.debug(
            f"Reaction {step.record_action} by {user_id} on {file_id}: "
            f"{current and current.value} -> {step.new_state and step.new_state.value}"
        )
        return ReactionOutcome(
            reaction=step.new_state,
            like_delta=step.like_delta,
            dislike_delta=step.dislike_delta,
            likes=likes,
            dislikes=dislikes,
        )

    async def get_aggregate_stats(self) -> AggregateStats:
        async with self._session("stats") as db:
            result = await db.execute(
                select(
                    func.count(FileRecord.id),
                    func.coalesce(func.sum(FileRecord.views), 0),
                    func.coalesce(func.sum(FileRecord.likes), 0),
                )
            )
            total_files, total_views, total_likes = result.one()
        return AggregateStats(
            total_files=int(total_files),
            total_views=int(total_views),
            total_likes=int(total_likes),
        )

    async def export_snapshot(self) -> Snapshot:
        files = await self.get_all_files()
        async with self._session("export reactions") as db:
            result = await db.execute(
                select(UserReaction.user_id, UserReaction.file_id, UserReaction.reaction)
            )
            user_reactions: dict[str, dict[str, ReactionType]] = {}
            for user_id, file_id, reaction in result.all():
                user_reactions.setdefault(user_id, {})[file_id] = ReactionType(reaction)
        return Snapshot(files=files, user_reactions=user_reactions)

    async def import_snapshot(self, snapshot: Snapshot) -> None:
        known_ids = {f.file_id for f in snapshot.files}
        async with self._session("import", transactional=True) as db:
            await db.execute(delete(UserReaction))
            await db.execute(delete(FileRecord))
            db.add_all([FileRecord(**f.model_dump()) for f in snapshot.files])
            await db.flush()
            for user_id, reactions in snapshot.user_reactions.items():
                for file_id, reaction in reactions.items():
                    if file_id not in known_ids:
                        logger.warning(f"Skipping imported reaction on unknown file {file_id}")
                        continue
                    db.add(UserReaction(user_id=user_id, file_id=file_id, reaction=reaction.value))
        logger.info(f"Imported {len(snapshot.files)} file(s) into database")
