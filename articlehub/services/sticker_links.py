"""
Sticker resolution and article-sticker link bookkeeping.

Stickers form one global namespace shared by every article.  A sticker
lives exactly as long as at least one row in ``article_stickers`` points
at it; these helpers are the only code that creates those rows or
removes them together with the stickers they leave unreferenced.

Design notes
------------
- Nothing here commits.  Callers run these helpers inside their own
  SAVEPOINT (``begin_nested``) so a failure anywhere in the enclosing
  unit rolls every write back, including stickers created on the way.
- ``stickers.name`` carries a unique constraint.  Creation is
  insert-or-fetch: the INSERT runs in its own SAVEPOINT and a unique
  violation (another request created the same name first) falls back to
  reading the winner's row.
- Orphan removal re-checks "no links left" inside the DELETE itself, so
  a sticker linked by a concurrent request is never removed, and a
  sticker someone else already removed is simply skipped.
"""
import logging

from sqlalchemy import delete, exists, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.models import Sticker, article_stickers

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sticker normalizer
# ---------------------------------------------------------------------------

async def find_sticker_by_name(db: AsyncSession, name: str) -> Sticker | None:
    result = await db.execute(select(Sticker).where(Sticker.name == name))
    return result.scalar_one_or_none()


async def get_or_create_sticker(db: AsyncSession, name: str) -> Sticker:
    """Return the sticker called *name*, inserting it if it does not exist yet."""
    sticker = await find_sticker_by_name(db, name)
    if sticker is not None:
        return sticker

    sticker = Sticker(name=name)
    try:
        async with db.begin_nested():
            db.add(sticker)
    except IntegrityError:
        logger.debug("Sticker %r was created concurrently; reusing the existing row", name)
        result = await db.execute(select(Sticker).where(Sticker.name == name))
        return result.scalar_one()

    logger.info("Created sticker %r (id=%d)", name, sticker.id)
    return sticker


async def resolve_stickers(db: AsyncSession, names: list[str]) -> list[Sticker]:
    """
    Map each name in *names* to a Sticker row, creating missing ones.

    The result is positional: one entry per input name, in input order.
    Repeated names resolve to the same instance because each new sticker
    is flushed before the next lookup runs.  An empty list never touches
    the database.
    """
    stickers: list[Sticker] = []
    for name in names:
        stickers.append(await get_or_create_sticker(db, name))
    return stickers


# ---------------------------------------------------------------------------
# Link manager
# ---------------------------------------------------------------------------

async def attach_stickers(db: AsyncSession, article_id: int, stickers: list[Sticker]) -> int:
    """
    Link *article_id* to every distinct sticker in *stickers* with one
    bulk INSERT.  Returns the number of links written; no statement is
    issued when there is nothing to link.
    """
    sticker_ids = list(dict.fromkeys(sticker.id for sticker in stickers))
    if not sticker_ids:
        return 0

    await db.execute(
        insert(article_stickers),
        [{"article_id": article_id, "sticker_id": sticker_id} for sticker_id in sticker_ids],
    )
    return len(sticker_ids)


async def count_links(db: AsyncSession, sticker_id: int, exclude_article_id: int | None = None) -> int:
    q = (
        select(func.count())
        .select_from(article_stickers)
        .where(article_stickers.c.sticker_id == sticker_id)
    )
    if exclude_article_id is not None:
        q = q.where(article_stickers.c.article_id != exclude_article_id)
    return (await db.execute(q)).scalar_one()


async def detach_and_collect(db: AsyncSession, article_id: int) -> list[str]:
    """
    Remove every link of *article_id* and delete the stickers that no
    longer have any link.  Returns the names of the deleted stickers.

    The article's own links are deleted before any sticker is counted;
    counting first would always find the article itself still holding
    each sticker.
    """
    result = await db.execute(
        select(Sticker.id, Sticker.name)
        .join(article_stickers, article_stickers.c.sticker_id == Sticker.id)
        .where(article_stickers.c.article_id == article_id)
    )
    linked = result.all()

    await db.execute(delete(article_stickers).where(article_stickers.c.article_id == article_id))

    removed: list[str] = []
    for sticker_id, name in linked:
        if await count_links(db, sticker_id, exclude_article_id=article_id) > 0:
            continue

        orphan_q = (
            delete(Sticker)
            .where(
                Sticker.id == sticker_id,
                ~exists().where(article_stickers.c.sticker_id == Sticker.id),
            )
            .execution_options(synchronize_session=False)
        )
        deleted = (await db.execute(orphan_q)).rowcount
        if deleted:
            logger.info("Removed orphaned sticker %r (id=%d)", name, sticker_id)
            removed.append(name)
        else:
            logger.debug("Sticker %r already removed or relinked; skipping", name)
    return removed
