"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Existence and uniqueness are checked eagerly (read before write) so
  the common failures surface as typed errors: ``NotAuthorized`` for an
  unknown owner, ``Conflict`` for a taken title, ``NotFound`` for an
  unknown id.
- Each write runs as one SAVEPOINT (``db.begin_nested()``).  Leaving the
  block normally flushes and releases it; any exception rolls back
  everything the write did (the article row, its sticker links and any
  stickers created on the way) while the request-scoped transaction
  owned by ``get_db`` stays usable.
- Persistence failures inside a write are logged and re-raised as
  ``ServerError`` with the driver error chained, never echoed to the
  client.
- Reads go through the cache-aside layer (Redis → fallback to DB); every
  write invalidates the list pages and the article's detail entry.
"""
import logging
import math

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from articlehub.cache import cache, detail_key, list_key
from articlehub.config import settings
from articlehub.exceptions import Conflict, NotAuthorized, NotFound, ServerError
from articlehub.models import Article, User
from articlehub.schemas import ArticleCreate, ArticleUpdate, PaginatedResponse
from articlehub.services import sticker_links

logger = logging.getLogger(__name__)

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset({"id", "created", "modified", "title"})


def _resolve_sort_column(sort_by: str):
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Article, sort_by)
    return Article.created


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _article_to_dict(article: Article) -> dict:
    return {
        "id": article.id,
        "user_id": article.user_id,
        "title": article.title,
        "content": article.content,
        "created": article.created.isoformat(),
        "modified": article.modified.isoformat(),
    }


def _article_with_stickers_to_dict(article: Article) -> dict:
    data = _article_to_dict(article)
    data["stickers"] = [{"id": s.id, "name": s.name} for s in article.stickers]
    return data


def _article_detail_to_dict(article: Article) -> dict:
    data = _article_with_stickers_to_dict(article)
    data["notices"] = [
        {
            "id": n.id,
            "article_id": n.article_id,
            "content": n.content,
            "created": n.created.isoformat(),
        }
        for n in article.notices
    ]
    return data


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def _find_by_title(db: AsyncSession, title: str) -> Article | None:
    result = await db.execute(select(Article).where(Article.title == title))
    return result.scalar_one_or_none()


async def get_article_or_404(db: AsyncSession, article_id: int) -> Article:
    """Return the Article row for *article_id* or raise ``NotFound``."""
    article = await db.get(Article, article_id)
    if article is None:
        raise NotFound("Article not found")
    return article


# ---------------------------------------------------------------------------
# Read paths
# ---------------------------------------------------------------------------

async def get_articles(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """Return one page of articles with their stickers."""
    cache_key = list_key(page, page_size, sort_by, sort_order)
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    total: int = (await db.execute(select(func.count()).select_from(Article))).scalar_one()

    sort_col = _resolve_sort_column(sort_by)
    order_expr = desc(sort_col) if sort_order == "desc" else asc(sort_col)
    q = (
        select(Article)
        .options(selectinload(Article.stickers))
        .order_by(order_expr, Article.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    articles = (await db.execute(q)).scalars().all()

    response = PaginatedResponse(
        items=[_article_with_stickers_to_dict(a) for a in articles],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
    await cache.set(cache_key, response.model_dump(mode="json"), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_article(db: AsyncSession, article_id: int) -> dict:
    """Return the detail dict (stickers and notices included) for *article_id*."""
    cache_key = detail_key(article_id)
    cached = await cache.get(cache_key)
    if cached:
        return cached

    q = (
        select(Article)
        .where(Article.id == article_id)
        .options(selectinload(Article.stickers), selectinload(Article.notices))
        .execution_options(populate_existing=True)
    )
    article = (await db.execute(q)).scalar_one_or_none()
    if article is None:
        raise NotFound("Article not found")

    data = _article_detail_to_dict(article)
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, data: ArticleCreate) -> dict:
    """
    Create an article owned by ``data.user_id`` and link it to the
    stickers named in ``data.stickers`` (created on first use).

    The returned dict carries no sticker list; read the article back
    with ``get_article`` to see them.
    """
    if await db.get(User, data.user_id) is None:
        raise NotAuthorized("User with user_id not found")
    if await _find_by_title(db, data.title) is not None:
        raise Conflict("Article with title already exists")

    try:
        async with db.begin_nested():
            stickers = await sticker_links.resolve_stickers(db, data.stickers) if data.stickers else []

            article = Article(user_id=data.user_id, title=data.title, content=data.content)
            db.add(article)
            await db.flush()

            if stickers:
                await sticker_links.attach_stickers(db, article.id, stickers)
    except SQLAlchemyError as exc:
        logger.exception("Creating article %r failed; rolled back", data.title)
        raise ServerError() from exc

    logger.info("Created article id=%d for user id=%d", article.id, data.user_id)
    await cache.invalidate_articles()
    return _article_to_dict(article)


async def update_article(db: AsyncSession, article_id: int, data: ArticleUpdate) -> dict:
    """
    Change the title and/or content of an article.

    Only fields present in the payload are written.  Ownership and the
    sticker set are fixed at creation and cannot be changed here.
    """
    article = await get_article_or_404(db, article_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    new_title = changes.get("title")
    if new_title is not None and new_title != article.title:
        if await _find_by_title(db, new_title) is not None:
            raise Conflict("Article with title already exists")

    try:
        async with db.begin_nested():
            for field, value in changes.items():
                setattr(article, field, value)
    except SQLAlchemyError as exc:
        logger.exception("Updating article id=%d failed; rolled back", article_id)
        raise ServerError() from exc

    await cache.invalidate_articles([article_id])
    return _article_to_dict(article)


async def delete_article(db: AsyncSession, article_id: int) -> None:
    """
    Delete an article, its sticker links and every sticker left without
    links, as one unit.  Notices go with the article through the
    ``ON DELETE CASCADE`` foreign key.
    """
    article = await get_article_or_404(db, article_id)

    try:
        async with db.begin_nested():
            removed = await sticker_links.detach_and_collect(db, article_id)
            await db.delete(article)
    except SQLAlchemyError as exc:
        logger.exception("Deleting article id=%d failed; rolled back", article_id)
        raise ServerError() from exc

    logger.info("Deleted article id=%d (orphaned stickers removed: %s)", article_id, removed or "none")
    await cache.invalidate_articles([article_id])
