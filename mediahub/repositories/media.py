"""
Media repository containing all data-access operations for the media table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.db.models.media import Media


async def create_media(
    db: AsyncSession,
    *,
    user_id: int,
    name: str,
    original_name: str,
    path: str,
    directory: str,
    disk: str,
    size: int,
    mime_type: str,
    is_public: bool = True,
    url: str | None = None,
    metadata: dict[str, Any] | None = None,
    width: int | None = None,
    height: int | None = None,
    file_hash: str | None = None,
) -> Media:
    """Insert a catalog row and flush so it receives its id."""
    media = Media(
        user_id=user_id,
        name=name,
        original_name=original_name,
        path=path,
        directory=directory,
        disk=disk,
        size=size,
        mime_type=mime_type,
        is_public=is_public,
        url=url,
        metadata_=metadata,
        width=width,
        height=height,
        file_hash=file_hash,
    )
    db.add(media)
    await db.flush()
    return media


async def get_media_by_id(db: AsyncSession, media_id: int) -> Media | None:
    """Fetch a media row by primary key."""
    return await db.get(Media, media_id)


async def find_by_hash(
    db: AsyncSession,
    file_hash: str,
    *,
    user_id: int | None = None,
) -> Media | None:
    """
    Oldest media row with ``file_hash``.

    Scoped to one owner when ``user_id`` is given, otherwise global.
    """
    stmt = select(Media).where(Media.file_hash == file_hash)
    if user_id is not None:
        stmt = stmt.where(Media.user_id == user_id)
    stmt = stmt.order_by(Media.id).limit(1)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_media_for_user(
    db: AsyncSession,
    user_id: int,
    *,
    offset: int = 0,
    limit: int = 50,
) -> list[Media]:
    """List a user's uploads, newest first."""
    stmt = (
        select(Media)
        .where(Media.user_id == user_id)
        .order_by(Media.created_at.desc(), Media.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
