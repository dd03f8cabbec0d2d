"""Relational store specifics: schema constraints, locking and error translation."""
import asyncio

import pytest
from sqlalchemy import func, select

from fileshare.database import build_session_factory
from fileshare.errors import ConnectionFailureError, ConstraintViolationError
from fileshare.models import FileRecord, UserReaction
from fileshare.reactions import ReactionType

from conftest import assert_counters_match_records, make_entry


@pytest.mark.asyncio
async def test_reaction_rows_track_state(sql_store):
    await sql_store.insert_file(make_entry("f1"))
    session_factory = build_session_factory(sql_store.engine)

    await sql_store.apply_reaction_transaction("f1", "u1", ReactionType.LIKE)
    await sql_store.apply_reaction_transaction("f1", "u1", ReactionType.DISLIKE)

    async with session_factory() as db:
        rows = (await db.execute(select(UserReaction.user_id, UserReaction.reaction))).all()
        assert rows == [("u1", "dislike")]
        counts = (await db.execute(select(FileRecord.likes, FileRecord.dislikes))).one()
        assert tuple(counts) == (0, 1)

    await sql_store.apply_reaction_transaction("f1", "u1", ReactionType.DISLIKE)

    async with session_factory() as db:
        assert (await db.execute(select(func.count(UserReaction.id)))).scalar_one() == 0


@pytest.mark.asyncio
async def test_unique_user_file_pair_is_enforced_by_database(sql_store):
    await sql_store.insert_file(make_entry("f1"))
    session_factory = build_session_factory(sql_store.engine)
    await sql_store.apply_reaction_transaction("f1", "u1", ReactionType.LIKE)

    with pytest.raises(ConstraintViolationError):
        async with sql_store._session("duplicate reaction", transactional=True) as db:
            db.add(UserReaction(user_id="u1", file_id="f1", reaction="dislike"))

    async with session_factory() as db:
        assert (await db.execute(select(func.count(UserReaction.id)))).scalar_one() == 1


@pytest.mark.asyncio
async def test_reaction_check_constraint(sql_store):
    await sql_store.insert_file(make_entry("f1"))

    with pytest.raises(ConstraintViolationError):
        async with sql_store._session("bad reaction", transactional=True) as db:
            db.add(UserReaction(user_id="u1", file_id="f1", reaction="love"))


@pytest.mark.asyncio
async def test_unreachable_database_raises_connection_failure(unreachable_sql_store):
    with pytest.raises(ConnectionFailureError):
        await unreachable_sql_store.ping()
    with pytest.raises(ConnectionFailureError):
        await unreachable_sql_store.apply_reaction_transaction("f1", "u1", ReactionType.LIKE)
    await unreachable_sql_store.close()


@pytest.mark.asyncio
async def test_concurrent_reactions_serialize(file_sql_store):
    await file_sql_store.insert_file(make_entry("f1"))

    same_pair = [
        file_sql_store.apply_reaction_transaction("f1", "u1", ReactionType.LIKE)
        for _ in range(7)
    ]
    other_users = [
        file_sql_store.apply_reaction_transaction("f1", f"u{i}", ReactionType.DISLIKE)
        for i in range(2, 6)
    ]
    outcomes = await asyncio.gather(*same_pair, *other_users)

    # Seven toggles by one user leave one like; each other user holds one dislike
    assert sum(o.like_delta for o in outcomes[:7]) == 1
    entry = await file_sql_store.get_file("f1")
    assert (entry.likes, entry.dislikes) == (1, 4)
    assert await file_sql_store.get_reactions_for_user("u1") == {"f1": ReactionType.LIKE}
    await assert_counters_match_records(file_sql_store, "f1")


@pytest.mark.asyncio
async def test_concurrent_reactions_on_different_files(file_sql_store):
    for file_id in ("f1", "f2"):
        await file_sql_store.insert_file(make_entry(file_id))

    await asyncio.gather(*[
        file_sql_store.apply_reaction_transaction(file_id, f"u{i}", ReactionType.LIKE)
        for i in range(5)
        for file_id in ("f1", "f2")
    ])

    for file_id in ("f1", "f2"):
        assert (await file_sql_store.get_file(file_id)).likes == 5
        await assert_counters_match_records(file_sql_store, file_id)
