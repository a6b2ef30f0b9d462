"""
Notice service — CRUD for notices (comments attached to an article).

Every write invalidates the parent article's cached detail view, which
embeds its notices.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.cache import cache
from articlehub.exceptions import NotFound, ServerError
from articlehub.models import Article, Notice
from articlehub.schemas import NoticeCreate, NoticeUpdate

logger = logging.getLogger(__name__)


def _notice_to_dict(notice: Notice) -> dict:
    return {
        "id": notice.id,
        "article_id": notice.article_id,
        "content": notice.content,
        "created": notice.created.isoformat(),
    }


async def _get_notice_or_404(db: AsyncSession, notice_id: int) -> Notice:
    notice = await db.get(Notice, notice_id)
    if notice is None:
        raise NotFound("Notice not found")
    return notice


async def get_notices(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Notice).order_by(Notice.id))
    return [_notice_to_dict(n) for n in result.scalars().all()]


async def get_notice(db: AsyncSession, notice_id: int) -> dict:
    return _notice_to_dict(await _get_notice_or_404(db, notice_id))


async def create_notice(db: AsyncSession, data: NoticeCreate) -> dict:
    """Attach a notice to ``data.article_id``; ``NotFound`` if the article is gone."""
    if await db.get(Article, data.article_id) is None:
        raise NotFound("Article not found")

    notice = Notice(article_id=data.article_id, content=data.content)
    try:
        async with db.begin_nested():
            db.add(notice)
    except SQLAlchemyError as exc:
        logger.exception("Creating notice for article id=%d failed", data.article_id)
        raise ServerError() from exc

    await cache.invalidate_articles([data.article_id])
    return _notice_to_dict(notice)


async def update_notice(db: AsyncSession, notice_id: int, data: NoticeUpdate) -> dict:
    """
    Rewrite a notice, moving it to ``data.article_id`` when one is given.
    ``NotFound`` if the notice or the target article does not exist.
    """
    notice = await _get_notice_or_404(db, notice_id)
    old_article_id = notice.article_id
    new_article_id = data.article_id if data.article_id is not None else old_article_id
    if new_article_id != old_article_id and await db.get(Article, new_article_id) is None:
        raise NotFound("Article not found")

    try:
        async with db.begin_nested():
            notice.content = data.content
            notice.article_id = new_article_id
    except SQLAlchemyError as exc:
        logger.exception("Updating notice id=%d failed", notice_id)
        raise ServerError() from exc

    await cache.invalidate_articles(dict.fromkeys([old_article_id, new_article_id]))
    return _notice_to_dict(notice)


async def delete_notice(db: AsyncSession, notice_id: int) -> None:
    notice = await _get_notice_or_404(db, notice_id)
    article_id = notice.article_id
    try:
        async with db.begin_nested():
            await db.delete(notice)
    except SQLAlchemyError as exc:
        logger.exception("Deleting notice id=%d failed", notice_id)
        raise ServerError() from exc

    await cache.invalidate_articles([article_id])
