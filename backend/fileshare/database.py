"""Async SQLAlchemy engine and session factory.

Usage:
    from fileshare.database import build_engine, build_session_factory

    engine = build_engine(settings.DATABASE_URL)
    async_session = build_session_factory(engine)
    async with async_session() as db:
        result = await db.execute(select(FileRecord))
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine. Pool sizing only applies to server databases."""
    is_sqlite = database_url.startswith("sqlite")
    if not is_sqlite:
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 20)
    engine = create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        **kwargs,
    )
    if is_sqlite:
        _use_immediate_transactions(engine)
    return engine


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """Take SQLite's write lock when a transaction begins.

    SQLite has no row locks and ignores FOR UPDATE, and pysqlite only opens a
    transaction at the first write. BEGIN IMMEDIATE makes read-then-write
    transactions serialize the way FOR UPDATE does on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
