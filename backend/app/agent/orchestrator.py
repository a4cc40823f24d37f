import logging

from sqlmodel import Session

from app.agent.article_agent import ArticleRequest, ArticleWriterAgent
from app.agent.artifacts import (
    ArticleType,
    BatchItemError,
    BatchItemResult,
    BatchReport,
    GeneratedArticleRef,
    GeneratedPayload,
    ProcessedArticle,
    min_word_count,
)
from app.agent.errors import GenerationInvalid
from app.agent.llm_client import LLMClient
from app.agent.postprocess import (
    build_schema_json,
    count_words,
    insert_affiliate_links,
    read_time_minutes,
    unique_slug,
)
from app.cache import CacheStore, invalidate_after_generation
from app.core.config import settings
from app.crud import commit_article, get_affiliate_link, links_without_published_article
from app.models import AffiliateLink

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 10


def process_payload(
    payload: GeneratedPayload,
    link: AffiliateLink,
    article_type: ArticleType,
    *,
    now_ms: int | None = None,
) -> ProcessedArticle:
    body_html = insert_affiliate_links(payload.body_html, link)
    slug = unique_slug(payload.title, now_ms=now_ms)
    word_count = count_words(body_html)

    minimum = min_word_count(article_type)
    if settings.ENFORCE_MIN_WORD_COUNT and word_count < minimum:
        raise GenerationInvalid(
            "too_short",
            f"body has {word_count} words; {article_type.value} articles need at least {minimum}",
        )

    return ProcessedArticle(
        slug=slug,
        title=payload.title,
        subtitle=payload.subtitle,
        excerpt=payload.excerpt,
        body_html=body_html,
        seo_title=payload.seo_title,
        seo_description=payload.seo_description,
        seo_keywords=payload.seo_keywords,
        structured_data=build_schema_json(
            payload, link, slug, site_url=settings.SITE_URL, site_name=settings.SITE_NAME
        ),
        word_count=word_count,
        read_time_minutes=read_time_minutes(word_count),
    )


async def generate_article(
    session: Session,
    cache: CacheStore,
    link: AffiliateLink,
    *,
    article_type: ArticleType = ArticleType.spotlight,
    auto_publish: bool = False,
    llm: LLMClient | None = None,
) -> GeneratedArticleRef:
    """
    Run the full pipeline for one link: write, validate, post-process, persist and
    invalidate the listing caches the new article affects. Any failure propagates.
    """
    writer = ArticleWriterAgent(llm=llm)
    payload = await writer.run(ArticleRequest(link=link, article_type=article_type))

    content = process_payload(payload, link, article_type)
    article = commit_article(
        session=session,
        link=link,
        article_type=article_type,
        auto_publish=auto_publish,
        content=content,
    )

    invalidate_after_generation(cache, link.category_id)
    logger.info(
        "Generated %s article %s (%s words) for link %s",
        article.status.value,
        article.slug,
        article.word_count,
        link.id,
    )
    return GeneratedArticleRef(id=article.id, slug=article.slug)


async def generate_batch(
    session: Session,
    cache: CacheStore,
    link_ids: list[int],
    *,
    article_type: ArticleType = ArticleType.spotlight,
    auto_publish: bool = False,
    llm: LLMClient | None = None,
) -> BatchReport:
    """Generate one article per link id; every item succeeds or fails on its own."""
    if len(link_ids) > MAX_BATCH_SIZE:
        raise ValueError(f"Max {MAX_BATCH_SIZE} links per batch")

    report = BatchReport()
    for link_id in link_ids:
        link = get_affiliate_link(session=session, link_id=link_id)
        if link is None:
            report.errors.append(BatchItemError(id=link_id, error="Not found"))
            continue
        try:
            ref = await generate_article(
                session,
                cache,
                link,
                article_type=article_type,
                auto_publish=auto_publish,
                llm=llm,
            )
        except Exception as exc:
            logger.warning("Batch generation failed for link %s: %s", link_id, exc)
            report.errors.append(BatchItemError(id=link_id, error=str(exc)))
            continue
        report.generated.append(BatchItemResult(id=link_id, article_id=ref.id, slug=ref.slug))

    logger.info(
        "Batch finished: %s generated, %s failed", len(report.generated), len(report.errors)
    )
    return report


async def run_scheduled_generation(
    session: Session,
    cache: CacheStore,
    *,
    limit: int | None = None,
    llm: LLMClient | None = None,
) -> BatchReport:
    """Generate spotlight drafts for links that have no published article yet."""
    links = links_without_published_article(
        session=session, limit=limit or settings.AUTOGENERATE_LIMIT
    )
    if not links:
        logger.info("Scheduled generation: every link already has a published article")
        return BatchReport()

    report = await generate_batch(
        session,
        cache,
        [link.id for link in links],
        article_type=ArticleType.spotlight,
        llm=llm,
    )
    for item in report.generated:
        logger.info("Generated article %s for link %s", item.slug, item.id)
    for error in report.errors:
        logger.error("Failed to generate for link %s: %s", error.id, error.error)
    return report
