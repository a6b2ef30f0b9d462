from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

# Sticker names are freeform; the only bound is the width of stickers.name.
StickerName = Annotated[str, Field(min_length=1, max_length=255)]


# --- Sticker ---

class StickerBase(BaseModel):
    name: StickerName


class StickerCreate(StickerBase):
    pass


class StickerUpdate(StickerBase):
    pass


class StickerResponse(StickerBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


# --- User ---

class UserBase(BaseModel):
    login: str = Field(min_length=2, max_length=64)
    firstname: str = Field(min_length=2, max_length=64)
    lastname: str = Field(min_length=2, max_length=64)


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserUpdate(BaseModel):
    login: str | None = Field(None, min_length=2, max_length=64)
    firstname: str | None = Field(None, min_length=2, max_length=64)
    lastname: str | None = Field(None, min_length=2, max_length=64)
    password: str | None = Field(None, min_length=8, max_length=128)


class UserResponse(UserBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


# --- Notice ---

class NoticeBase(BaseModel):
    content: str = Field(min_length=2, max_length=2048)


class NoticeCreate(NoticeBase):
    article_id: int = Field(ge=1)


class NoticeUpdate(NoticeBase):
    # Moves the notice to another article when set.
    article_id: int | None = Field(None, ge=1)


class NoticeResponse(NoticeBase):
    id: int
    article_id: int
    created: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class ArticleCreate(BaseModel):
    user_id: int = Field(ge=1)
    title: str = Field(min_length=2, max_length=64)
    content: str = Field(min_length=4, max_length=2048)
    stickers: list[StickerName] | None = None  # sticker names, resolved on create


class ArticleUpdate(BaseModel):
    # Stickers and ownership are fixed after creation; extra fields are ignored.
    title: str | None = Field(None, min_length=2, max_length=64)
    content: str | None = Field(None, min_length=4, max_length=2048)


class ArticleResponse(BaseModel):
    id: int
    user_id: int
    title: str
    content: str
    created: datetime
    modified: datetime
    model_config = ConfigDict(from_attributes=True)


class ArticleWithStickers(ArticleResponse):
    stickers: list[StickerResponse] = []


class ArticleDetail(ArticleWithStickers):
    notices: list[NoticeResponse] = []


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list[ArticleWithStickers]
    total: int
    page: int
    page_size: int
    pages: int
