import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import field_validator
from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


class ArticleStatus(str, Enum):
    draft = "draft"
    published = "published"


# Categories

class CategoryBase(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(unique=True, index=True, max_length=255)
    description: str | None = Field(default=None)


class Category(CategoryBase, table=True):
    __tablename__ = "categories"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class CategoryWithCount(CategoryBase):
    id: int
    article_count: int = 0


# Affiliate links (product records fed to the generator)

class AffiliateLinkBase(SQLModel):
    product_name: str = Field(min_length=1, max_length=255)
    product_description: str = Field(default="", sa_type=Text)
    price_usd: float | None = Field(default=None)
    price_display: str = Field(default="", max_length=100)
    brand: str = Field(default="", max_length=255)
    affiliate_url: str = Field(min_length=1, max_length=2048)
    network: str = Field(default="shareasale", max_length=100)
    category_id: int = Field(foreign_key="categories.id", index=True)
    is_featured: bool = False
    image_url: str | None = Field(default=None, max_length=2048)


class AffiliateLink(AffiliateLinkBase, table=True):
    __tablename__ = "affiliate_links"

    id: int | None = Field(default=None, primary_key=True)
    # JSON-encoded list of strings
    tags: str = Field(default="[]")
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )

    @property
    def tag_list(self) -> list[str]:
        try:
            tags = json.loads(self.tags or "[]")
        except json.JSONDecodeError:
            return []
        if not isinstance(tags, list):
            return []
        return [str(tag) for tag in tags]


# Properties to receive via API on creation
class AffiliateLinkCreate(AffiliateLinkBase):
    tags: list[str] = Field(default_factory=list)


# Properties to receive via API on update, all are optional
class AffiliateLinkUpdate(SQLModel):
    product_name: str | None = Field(default=None, min_length=1, max_length=255)
    product_description: str | None = None
    price_usd: float | None = None
    price_display: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=255)
    affiliate_url: str | None = Field(default=None, min_length=1, max_length=2048)
    network: str | None = Field(default=None, max_length=100)
    category_id: int | None = None
    tags: list[str] | None = None
    is_featured: bool | None = None
    image_url: str | None = Field(default=None, max_length=2048)


class AffiliateLinkPublic(AffiliateLinkBase):
    id: int
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def decode_tags(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value or "[]")
            except json.JSONDecodeError:
                return []
        return value


class AffiliateLinkWithStats(AffiliateLinkPublic):
    category_name: str | None = None
    article_count: int = 0


# Articles

class ArticleBase(SQLModel):
    slug: str = Field(unique=True, index=True, max_length=255)
    title: str = Field(max_length=500)
    subtitle: str = Field(default="", max_length=1000)
    excerpt: str = Field(default="", sa_type=Text)
    article_type: str = Field(default="spotlight", max_length=50)
    seo_title: str = Field(default="", max_length=500)
    seo_description: str = Field(default="", sa_type=Text)
    word_count: int = 0
    read_time_minutes: int = 0
    status: ArticleStatus = Field(default=ArticleStatus.draft)


class Article(ArticleBase, table=True):
    __tablename__ = "articles"

    id: int | None = Field(default=None, primary_key=True)
    affiliate_link_id: int | None = Field(
        default=None, foreign_key="affiliate_links.id", index=True, ondelete="SET NULL"
    )
    category_id: int | None = Field(default=None, foreign_key="categories.id", index=True)
    body_html: str = Field(default="", sa_type=Text)
    hero_image_url: str | None = Field(default=None, max_length=2048)
    # JSON-encoded list of strings
    seo_keywords: str = Field(default="[]", sa_type=Text)
    # Serialized schema.org JSON-LD document, stored in the schema_json column
    structured_data: str = Field(
        default="{}", sa_column=Column("schema_json", Text, nullable=False)
    )
    published_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ArticleAffiliateLink(SQLModel, table=True):
    __tablename__ = "article_affiliate_links"

    article_id: int = Field(foreign_key="articles.id", primary_key=True, ondelete="CASCADE")
    affiliate_link_id: int = Field(
        foreign_key="affiliate_links.id", primary_key=True, ondelete="CASCADE"
    )
    placement: str = Field(default="body", max_length=50)


# Read-side projections served through the cache

class ArticleCard(SQLModel):
    id: int
    slug: str
    title: str
    subtitle: str = ""
    excerpt: str = ""
    article_type: str
    hero_image_url: str | None = None
    read_time_minutes: int = 0
    published_at: datetime | None = None
    category_name: str | None = None
    category_slug: str | None = None
    product_name: str | None = None
    brand: str | None = None
    price_display: str | None = None
    tracked_url: str | None = None


class RelatedArticle(SQLModel):
    id: int
    slug: str
    title: str
    excerpt: str = ""
    hero_image_url: str | None = None
    read_time_minutes: int = 0


class ArticleDetail(ArticleCard):
    body_html: str
    seo_title: str = ""
    seo_description: str = ""
    seo_keywords: list[str] = Field(default_factory=list)
    structured_data: str = Field(default="{}", alias="schema_json")
    word_count: int = 0
    affiliate_url: str | None = None
    product_image_url: str | None = None
    related: list[RelatedArticle] = Field(default_factory=list)


class Pagination(SQLModel):
    page: int
    limit: int
    total: int
    pages: int


class ArticlesPage(SQLModel):
    articles: list[ArticleCard]
    pagination: Pagination


class SearchResult(SQLModel):
    id: int
    slug: str
    title: str
    excerpt: str = ""
    read_time_minutes: int = 0
    published_at: datetime | None = None
    category_name: str | None = None


class SearchResults(SQLModel):
    results: list[SearchResult]


class ArticleStatusPublic(SQLModel):
    id: int
    slug: str
    title: str
    status: ArticleStatus


# Shared key/value store backing the read-through cache and click counters

class CacheEntry(SQLModel, table=True):
    __tablename__ = "cache_entries"

    key: str = Field(primary_key=True, max_length=512)
    value: str = Field(sa_type=Text)
    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore
    )
