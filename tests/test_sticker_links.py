"""
Sticker normalizer and link manager tests, including the two
check-then-act races: a sticker name created by someone else between
lookup and insert, and a sticker relinked between count and delete.
"""
import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.middleware import query_count_var
from articlehub.models import Article, Sticker, article_stickers
from articlehub.services import sticker_links


async def _article(db: AsyncSession, user_id: int, title: str) -> Article:
    article = Article(user_id=user_id, title=title, content="Body")
    db.add(article)
    await db.flush()
    return article


# ---------------------------------------------------------------------------
# resolve_stickers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_resolve_empty_list_issues_no_queries(db_session: AsyncSession):
    query_count_var.set(0)
    assert await sticker_links.resolve_stickers(db_session, []) == []
    assert query_count_var.get() == 0


@pytest.mark.asyncio
async def test_resolve_preserves_order_and_duplicates(db_session: AsyncSession):
    stickers = await sticker_links.resolve_stickers(db_session, ["b", "a", "b"])

    assert [s.name for s in stickers] == ["b", "a", "b"]
    assert stickers[0] is stickers[2]
    count = (await db_session.execute(select(func.count()).select_from(Sticker))).scalar_one()
    assert count == 2


@pytest.mark.asyncio
async def test_resolve_reuses_rows_across_calls(db_session: AsyncSession):
    first = await sticker_links.resolve_stickers(db_session, ["python"])
    second = await sticker_links.resolve_stickers(db_session, ["python", "sql"])

    assert second[0].id == first[0].id
    assert second[1].name == "sql"


@pytest.mark.asyncio
async def test_get_or_create_survives_concurrent_insert(db_session: AsyncSession, monkeypatch):
    existing = Sticker(name="racy")
    db_session.add(existing)
    await db_session.flush()

    # Pretend the lookup ran before the other request's insert became visible.
    async def _stale_lookup(db, name):
        return None

    monkeypatch.setattr(sticker_links, "find_sticker_by_name", _stale_lookup)

    sticker = await sticker_links.get_or_create_sticker(db_session, "racy")
    assert sticker.id == existing.id
    count = (await db_session.execute(select(func.count()).select_from(Sticker))).scalar_one()
    assert count == 1


# ---------------------------------------------------------------------------
# attach_stickers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_attach_writes_one_link_per_distinct_sticker(db_session: AsyncSession, make_user):
    user = await make_user()
    article = await _article(db_session, user.id, "Linked")
    stickers = await sticker_links.resolve_stickers(db_session, ["x", "y", "x"])

    assert await sticker_links.attach_stickers(db_session, article.id, stickers) == 2
    assert await sticker_links.count_links(db_session, stickers[0].id) == 1
    assert await sticker_links.count_links(db_session, stickers[1].id) == 1


@pytest.mark.asyncio
async def test_attach_nothing_is_a_no_op(db_session: AsyncSession, make_user):
    user = await make_user()
    article = await _article(db_session, user.id, "Bare")

    query_count_var.set(0)
    assert await sticker_links.attach_stickers(db_session, article.id, []) == 0
    assert query_count_var.get() == 0


# ---------------------------------------------------------------------------
# detach_and_collect
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_detach_collects_only_orphans(db_session: AsyncSession, make_user):
    user = await make_user()
    x = await _article(db_session, user.id, "X")
    y = await _article(db_session, user.id, "Y")
    mine, shared = await sticker_links.resolve_stickers(db_session, ["mine", "shared"])
    await sticker_links.attach_stickers(db_session, x.id, [mine, shared])
    await sticker_links.attach_stickers(db_session, y.id, [shared])

    removed = await sticker_links.detach_and_collect(db_session, x.id)

    assert removed == ["mine"]
    names = set((await db_session.execute(select(Sticker.name))).scalars().all())
    assert names == {"shared"}
    assert await sticker_links.count_links(db_session, shared.id) == 1


@pytest.mark.asyncio
async def test_detach_article_without_links(db_session: AsyncSession, make_user):
    user = await make_user()
    article = await _article(db_session, user.id, "Untagged")
    assert await sticker_links.detach_and_collect(db_session, article.id) == []


@pytest.mark.asyncio
async def test_detach_never_deletes_relinked_sticker(
    db_session: AsyncSession, make_user, monkeypatch
):
    user = await make_user()
    x = await _article(db_session, user.id, "X")
    y = await _article(db_session, user.id, "Y")
    (sticker,) = await sticker_links.resolve_stickers(db_session, ["contested"])
    await sticker_links.attach_stickers(db_session, x.id, [sticker])

    # Another request links the sticker right after our count saw zero.
    async def _count_then_relink(db, sticker_id, exclude_article_id=None):
        await db.execute(insert(article_stickers).values(article_id=y.id, sticker_id=sticker_id))
        return 0

    monkeypatch.setattr(sticker_links, "count_links", _count_then_relink)

    assert await sticker_links.detach_and_collect(db_session, x.id) == []
    still_there = await db_session.execute(select(Sticker).where(Sticker.name == "contested"))
    assert still_there.scalar_one_or_none() is not None


@pytest.mark.asyncio
async def test_detach_tolerates_sticker_already_gone(
    db_session: AsyncSession, make_user, monkeypatch
):
    user = await make_user()
    x = await _article(db_session, user.id, "X")
    (sticker,) = await sticker_links.resolve_stickers(db_session, ["vanishing"])
    sticker_id = sticker.id
    await sticker_links.attach_stickers(db_session, x.id, [sticker])

    # A concurrent delete removes the orphan before we get to it.
    async def _count_then_vanish(db, sticker_id, exclude_article_id=None):
        await db.execute(
            Sticker.__table__.delete().where(Sticker.__table__.c.id == sticker_id)
        )
        return 0

    monkeypatch.setattr(sticker_links, "count_links", _count_then_vanish)

    assert await sticker_links.detach_and_collect(db_session, x.id) == []
    gone = await db_session.execute(select(Sticker.id).where(Sticker.id == sticker_id))
    assert gone.scalar_one_or_none() is None
