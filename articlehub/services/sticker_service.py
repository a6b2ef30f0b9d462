"""
Sticker service — direct CRUD on stickers.

Articles normally create stickers implicitly (see ``sticker_links``);
these functions manage them by id.  Renaming or deleting a sticker
changes how every linked article renders, so their cached views are
dropped after each write.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.cache import cache
from articlehub.exceptions import Conflict, NotFound, ServerError
from articlehub.models import Sticker, article_stickers
from articlehub.schemas import StickerCreate, StickerUpdate
from articlehub.services.sticker_links import find_sticker_by_name

logger = logging.getLogger(__name__)


def _sticker_to_dict(sticker: Sticker) -> dict:
    return {"id": sticker.id, "name": sticker.name}


async def _get_sticker_or_404(db: AsyncSession, sticker_id: int) -> Sticker:
    sticker = await db.get(Sticker, sticker_id)
    if sticker is None:
        raise NotFound("No sticker found")
    return sticker


async def _linked_article_ids(db: AsyncSession, sticker_id: int) -> list[int]:
    result = await db.execute(
        select(article_stickers.c.article_id).where(article_stickers.c.sticker_id == sticker_id)
    )
    return list(result.scalars().all())


async def get_stickers(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Sticker).order_by(Sticker.id))
    return [_sticker_to_dict(s) for s in result.scalars().all()]


async def get_sticker(db: AsyncSession, sticker_id: int) -> dict:
    return _sticker_to_dict(await _get_sticker_or_404(db, sticker_id))


async def create_sticker(db: AsyncSession, data: StickerCreate) -> dict:
    if await find_sticker_by_name(db, data.name) is not None:
        raise Conflict("Sticker with this name already exists")

    sticker = Sticker(name=data.name)
    try:
        async with db.begin_nested():
            db.add(sticker)
    except SQLAlchemyError as exc:
        logger.exception("Creating sticker %r failed", data.name)
        raise ServerError() from exc
    return _sticker_to_dict(sticker)


async def update_sticker(db: AsyncSession, sticker_id: int, data: StickerUpdate) -> dict:
    """Rename a sticker.  A name clash surfaces as ``ServerError``."""
    sticker = await _get_sticker_or_404(db, sticker_id)
    try:
        async with db.begin_nested():
            sticker.name = data.name
    except SQLAlchemyError as exc:
        logger.exception("Updating sticker id=%d failed", sticker_id)
        raise ServerError() from exc

    await cache.invalidate_articles(await _linked_article_ids(db, sticker_id))
    return _sticker_to_dict(sticker)


async def delete_sticker(db: AsyncSession, sticker_id: int) -> None:
    """Delete a sticker; its links go with it through ``ON DELETE CASCADE``."""
    sticker = await _get_sticker_or_404(db, sticker_id)
    article_ids = await _linked_article_ids(db, sticker_id)
    try:
        async with db.begin_nested():
            await db.delete(sticker)
    except SQLAlchemyError as exc:
        logger.exception("Deleting sticker id=%d failed", sticker_id)
        raise ServerError() from exc

    logger.info("Deleted sticker id=%d (unlinked from %d article(s))", sticker_id, len(article_ids))
    await cache.invalidate_articles(article_ids)
