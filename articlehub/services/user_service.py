"""
User service — CRUD operations for the User aggregate.

Users are fetched without caching; the list is small and only the
article views are hot.  Password hashes are written here and never
leave this module.
"""
import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.cache import cache
from articlehub.config import settings
from articlehub.exceptions import Conflict, NotFound, ServerError
from articlehub.models import Article, User
from articlehub.schemas import UserCreate, UserUpdate
from articlehub.services import sticker_links

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes of the secret.
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode()[:72], salt).decode()


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "login": user.login,
        "firstname": user.firstname,
        "lastname": user.lastname,
    }


async def _find_by_login(db: AsyncSession, login: str) -> User | None:
    result = await db.execute(select(User).where(User.login == login))
    return result.scalar_one_or_none()


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def get_users(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(User).order_by(User.id))
    return [_user_to_dict(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> dict:
    return _user_to_dict(await _get_user_or_404(db, user_id))


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """Create a user; ``Conflict`` when the login is already taken."""
    if await _find_by_login(db, data.login) is not None:
        raise Conflict("User with this login already exists")

    user = User(
        login=data.login,
        password_hash=hash_password(data.password),
        firstname=data.firstname,
        lastname=data.lastname,
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except SQLAlchemyError as exc:
        logger.exception("Creating user %r failed", data.login)
        raise ServerError() from exc

    logger.info("Created user id=%d (%s)", user.id, user.login)
    return _user_to_dict(user)


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> dict:
    """
    Apply the fields present in *data*.  A new password is re-hashed;
    an omitted one leaves the stored hash untouched.
    """
    user = await _get_user_or_404(db, user_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    new_login = changes.get("login")
    if new_login is not None and new_login != user.login:
        if await _find_by_login(db, new_login) is not None:
            raise Conflict("User with this login already exists")
    if "password" in changes:
        changes["password_hash"] = hash_password(changes.pop("password"))

    try:
        async with db.begin_nested():
            for field, value in changes.items():
                setattr(user, field, value)
    except SQLAlchemyError as exc:
        logger.exception("Updating user id=%d failed", user_id)
        raise ServerError() from exc

    return _user_to_dict(user)


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Delete a user together with their articles.

    Each article's sticker links are released first so stickers that
    only this user's articles used are removed as well; the article
    rows themselves go through ``ON DELETE CASCADE``.
    """
    user = await _get_user_or_404(db, user_id)

    article_ids = (
        await db.execute(select(Article.id).where(Article.user_id == user_id))
    ).scalars().all()

    try:
        async with db.begin_nested():
            for article_id in article_ids:
                await sticker_links.detach_and_collect(db, article_id)
            await db.delete(user)
    except SQLAlchemyError as exc:
        logger.exception("Deleting user id=%d failed", user_id)
        raise ServerError() from exc

    logger.info("Deleted user id=%d with %d article(s)", user_id, len(article_ids))
    if article_ids:
        await cache.invalidate_articles(article_ids)
