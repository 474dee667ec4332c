"""Tests for the media repository."""

import pytest

from mediahub.repositories.media import (
    create_media,
    find_by_hash,
    get_media_by_id,
    list_media_for_user,
)


@pytest.fixture
def add(session_factory):
    async def _add(user_id, name, file_hash=None):
        async with session_factory() as session:
            async with session.begin():
                return await create_media(
                    session,
                    user_id=user_id,
                    name=name,
                    original_name=name,
                    path=f"u/{name}",
                    directory="u",
                    disk="public",
                    size=10,
                    mime_type="image/png",
                    metadata={"k": "v"},
                    file_hash=file_hash,
                )

    return _add


async def test_create_assigns_id_and_timestamps(add):
    media = await add(1, "a.png")
    assert media.id is not None
    assert media.created_at is not None
    assert media.to_dict()["metadata"] == {"k": "v"}


async def test_get_by_id(add, session_factory):
    media = await add(1, "a.png")
    async with session_factory() as session:
        found = await get_media_by_id(session, media.id)
        assert found.name == "a.png"
        assert await get_media_by_id(session, 999) is None


async def test_find_by_hash_returns_oldest(add, session_factory):
    first = await add(1, "a.png", "h1")
    await add(1, "b.png", "h1")

    async with session_factory() as session:
        found = await find_by_hash(session, "h1")
    assert found.id == first.id


async def test_find_by_hash_scoped_to_user(add, session_factory):
    await add(2, "a.png", "h1")

    async with session_factory() as session:
        assert await find_by_hash(session, "h1", user_id=1) is None
        assert (await find_by_hash(session, "h1", user_id=2)).user_id == 2
        assert await find_by_hash(session, "missing") is None


async def test_list_for_user(add, session_factory):
    await add(1, "a.png")
    await add(1, "b.png")
    await add(2, "c.png")

    async with session_factory() as session:
        media = await list_media_for_user(session, 1)
    assert sorted(m.name for m in media) == ["a.png", "b.png"]


async def test_flush_without_commit_is_rolled_back(session_factory):
    async with session_factory() as session:
        await create_media(
            session, user_id=1, name="tmp.png", original_name="tmp.png", path="tmp.png",
            directory="", disk="public", size=1, mime_type="image/png",
        )
        await session.rollback()

    async with session_factory() as session:
        assert await list_media_for_user(session, 1) == []
