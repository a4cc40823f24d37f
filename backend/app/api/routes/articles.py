from typing import Any

from fastapi import APIRouter, HTTPException, Query

from app.api.deps import CacheDep, SessionDep
from app.cache import (
    ARTICLE_TTL_SECONDS,
    CATEGORIES_KEY,
    CATEGORIES_TTL_SECONDS,
    FEATURED_ARTICLES_KEY,
    FEATURED_TTL_SECONDS,
    LIST_TTL_SECONDS,
    article_key,
    articles_list_key,
    read_through,
)
from app.crud import (
    get_published_article,
    list_categories_with_counts,
    list_featured_articles,
    list_published_articles,
    search_articles,
)
from app.models import ArticleCard, ArticleDetail, ArticlesPage, CategoryWithCount, SearchResults

router = APIRouter(tags=["articles"])


@router.get("/articles", response_model=ArticlesPage)
def read_articles(
    session: SessionDep,
    cache: CacheDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    category: str | None = None,
    type: str | None = None,
) -> Any:
    key = articles_list_key(category, type, page, limit)
    return read_through(
        cache,
        key,
        LIST_TTL_SECONDS,
        lambda: list_published_articles(
            session=session, category_slug=category, article_type=type, page=page, limit=limit
        ),
    )


@router.get("/articles/{slug}", response_model=ArticleDetail)
def read_article(slug: str, session: SessionDep, cache: CacheDep) -> Any:
    article = read_through(
        cache,
        article_key(slug),
        ARTICLE_TTL_SECONDS,
        lambda: get_published_article(session=session, slug=slug),
    )
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.get("/categories", response_model=list[CategoryWithCount])
def read_categories(session: SessionDep, cache: CacheDep) -> Any:
    return read_through(
        cache,
        CATEGORIES_KEY,
        CATEGORIES_TTL_SECONDS,
        lambda: list_categories_with_counts(session=session),
    )


@router.get("/featured", response_model=list[ArticleCard])
def read_featured(session: SessionDep, cache: CacheDep) -> Any:
    return read_through(
        cache,
        FEATURED_ARTICLES_KEY,
        FEATURED_TTL_SECONDS,
        lambda: list_featured_articles(session=session),
    )


@router.get("/search", response_model=SearchResults)
def search(session: SessionDep, q: str | None = None) -> Any:
    if not q or len(q) < 2:
        return SearchResults(results=[])
    return SearchResults(results=search_articles(session=session, query=q))
