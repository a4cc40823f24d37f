import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.agent.artifacts import ArticleType, BatchReport, GeneratedArticleRef
from app.agent.errors import GenerationError
from app.agent.orchestrator import MAX_BATCH_SIZE, generate_article, generate_batch
from app.api.deps import AdminRoute, CacheDep, LLMDep, SessionDep
from app.cache import CacheStore, invalidate_article, read_clicks
from app.crud import (
    create_affiliate_link,
    delete_affiliate_link,
    delete_article,
    get_affiliate_link,
    get_stats,
    list_affiliate_links,
    set_article_status,
    update_affiliate_link,
)
from app.models import (
    AffiliateLinkCreate,
    AffiliateLinkPublic,
    AffiliateLinkUpdate,
    AffiliateLinkWithStats,
    ArticleStatus,
    ArticleStatusPublic,
)

router = APIRouter(prefix="/admin", tags=["admin"], route_class=AdminRoute)
logger = logging.getLogger(__name__)


class GenerateRequest(BaseModel):
    link_id: int
    article_type: ArticleType = ArticleType.spotlight
    auto_publish: bool = False


class GenerateBatchRequest(BaseModel):
    link_ids: list[int] = Field(min_length=1, max_length=MAX_BATCH_SIZE)
    article_type: ArticleType = ArticleType.spotlight
    auto_publish: bool = False


# Affiliate links CRUD. Edits and deletes leave cached pages to expire on their own.

@router.post("/links", response_model=AffiliateLinkPublic, status_code=201)
def create_link(*, session: SessionDep, link_in: AffiliateLinkCreate) -> Any:
    return create_affiliate_link(session=session, link_in=link_in)


@router.get("/links", response_model=list[AffiliateLinkWithStats])
def read_links(session: SessionDep, category_id: int | None = None) -> Any:
    return list_affiliate_links(session=session, category_id=category_id)


@router.put("/links/{id}", response_model=AffiliateLinkPublic)
def update_link(*, id: int, session: SessionDep, link_in: AffiliateLinkUpdate) -> Any:
    db_link = get_affiliate_link(session=session, link_id=id)
    if not db_link:
        raise HTTPException(status_code=404, detail="Link not found")
    return update_affiliate_link(session=session, db_link=db_link, link_in=link_in)


@router.delete("/links/{id}")
def delete_link(id: int, session: SessionDep) -> Any:
    delete_affiliate_link(session=session, link_id=id)
    return {"success": True}


# Generation

@router.post("/generate", response_model=GeneratedArticleRef, status_code=201)
async def generate_from_link(
    *, session: SessionDep, cache: CacheDep, llm: LLMDep, generate_in: GenerateRequest
) -> Any:
    link = get_affiliate_link(session=session, link_id=generate_in.link_id)
    if not link:
        raise HTTPException(status_code=404, detail="Affiliate link not found")

    try:
        return await generate_article(
            session,
            cache,
            link,
            article_type=generate_in.article_type,
            auto_publish=generate_in.auto_publish,
            llm=llm,
        )
    except GenerationError as e:
        logger.error("Generation failed for link %s: %s", link.id, e)
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/generate/batch", response_model=BatchReport)
async def generate_from_links(
    *, session: SessionDep, cache: CacheDep, llm: LLMDep, batch_in: GenerateBatchRequest
) -> Any:
    return await generate_batch(
        session,
        cache,
        batch_in.link_ids,
        article_type=batch_in.article_type,
        auto_publish=batch_in.auto_publish,
        llm=llm,
    )


# Article management

def _change_status(session: Session, cache: CacheStore, id: int, status: ArticleStatus) -> Any:
    article = set_article_status(session=session, article_id=id, status=status)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    invalidate_article(cache, article.slug)
    return article


@router.put("/articles/{id}/publish", response_model=ArticleStatusPublic)
def publish_article(id: int, session: SessionDep, cache: CacheDep) -> Any:
    return _change_status(session, cache, id, ArticleStatus.published)


@router.put("/articles/{id}/unpublish", response_model=ArticleStatusPublic)
def unpublish_article(id: int, session: SessionDep, cache: CacheDep) -> Any:
    return _change_status(session, cache, id, ArticleStatus.draft)


@router.delete("/articles/{id}")
def remove_article(id: int, session: SessionDep) -> Any:
    delete_article(session=session, article_id=id)
    return {"success": True}


@router.get("/stats")
def read_stats(session: SessionDep, cache: CacheDep) -> Any:
    stats = get_stats(session=session)
    stats["clicks_today"] = [
        {"id": link.id, "product_name": link.product_name, "clicks": read_clicks(cache, link.id)}
        for link in list_affiliate_links(session=session)
    ]
    return stats
