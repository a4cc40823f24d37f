import json
import logging
import math
from typing import Any

from sqlalchemy import case, func
from sqlmodel import Session, col, select

from app.agent.artifacts import ArticleType, ProcessedArticle
from app.agent.postprocess import tracked_url
from app.models import (
    AffiliateLink,
    AffiliateLinkCreate,
    AffiliateLinkUpdate,
    AffiliateLinkWithStats,
    Article,
    ArticleAffiliateLink,
    ArticleCard,
    ArticleDetail,
    ArticlesPage,
    ArticleStatus,
    Category,
    CategoryWithCount,
    Pagination,
    RelatedArticle,
    SearchResult,
    get_datetime_utc,
)

logger = logging.getLogger(__name__)


# Affiliate links

def get_affiliate_link(*, session: Session, link_id: int) -> AffiliateLink | None:
    return session.get(AffiliateLink, link_id)


def create_affiliate_link(*, session: Session, link_in: AffiliateLinkCreate) -> AffiliateLink:
    db_link = AffiliateLink.model_validate(link_in, update={"tags": json.dumps(link_in.tags)})
    session.add(db_link)
    session.commit()
    session.refresh(db_link)
    return db_link


def update_affiliate_link(
    *, session: Session, db_link: AffiliateLink, link_in: AffiliateLinkUpdate
) -> AffiliateLink:
    link_data = link_in.model_dump(exclude_unset=True, exclude_none=True)
    extra_data: dict[str, Any] = {"updated_at": get_datetime_utc()}
    if "tags" in link_data:
        extra_data["tags"] = json.dumps(link_data.pop("tags"))
    db_link.sqlmodel_update(link_data, update=extra_data)
    session.add(db_link)
    session.commit()
    session.refresh(db_link)
    return db_link


def delete_affiliate_link(*, session: Session, link_id: int) -> bool:
    db_link = session.get(AffiliateLink, link_id)
    if not db_link:
        return False
    session.delete(db_link)
    session.commit()
    return True


def list_affiliate_links(
    *, session: Session, category_id: int | None = None
) -> list[AffiliateLinkWithStats]:
    article_count = (
        select(func.count(Article.id))
        .where(Article.affiliate_link_id == AffiliateLink.id)
        .correlate(AffiliateLink)
        .scalar_subquery()
    )
    statement = (
        select(AffiliateLink, Category.name, article_count)
        .outerjoin(Category, Category.id == AffiliateLink.category_id)
    )
    if category_id is not None:
        statement = statement.where(AffiliateLink.category_id == category_id)
    statement = statement.order_by(col(AffiliateLink.created_at).desc(), col(AffiliateLink.id).desc())

    links: list[AffiliateLinkWithStats] = []
    for link, category_name, count in session.exec(statement).all():
        links.append(
            AffiliateLinkWithStats.model_validate(
                link, update={"category_name": category_name, "article_count": count or 0}
            )
        )
    return links


def links_without_published_article(*, session: Session, limit: int) -> list[AffiliateLink]:
    """Links with no published article yet. Best effort, nothing is locked."""
    statement = (
        select(AffiliateLink)
        .outerjoin(
            Article,
            (Article.affiliate_link_id == AffiliateLink.id)
            & (Article.status == ArticleStatus.published),
        )
        .where(col(Article.id).is_(None))
        .order_by(col(AffiliateLink.id))
        .limit(limit)
    )
    return list(session.exec(statement).all())


# Articles: writes

def commit_article(
    *,
    session: Session,
    link: AffiliateLink,
    article_type: ArticleType,
    auto_publish: bool,
    content: ProcessedArticle,
) -> Article:
    """
    Write the article row and its link association as one transaction.
    The association insert is skipped when the pair already exists.
    """
    now = get_datetime_utc()
    db_article = Article(
        affiliate_link_id=link.id,
        category_id=link.category_id,
        slug=content.slug,
        title=content.title,
        subtitle=content.subtitle,
        excerpt=content.excerpt,
        body_html=content.body_html,
        article_type=article_type.value,
        seo_title=content.seo_title,
        seo_description=content.seo_description,
        seo_keywords=json.dumps(content.seo_keywords),
        structured_data=content.structured_data,
        word_count=content.word_count,
        read_time_minutes=content.read_time_minutes,
        status=ArticleStatus.published if auto_publish else ArticleStatus.draft,
        published_at=now if auto_publish else None,
    )
    try:
        session.add(db_article)
        session.flush()

        association_key = (db_article.id, link.id)
        if session.get(ArticleAffiliateLink, association_key) is None:
            session.add(
                ArticleAffiliateLink(
                    article_id=db_article.id, affiliate_link_id=link.id, placement="body"
                )
            )
        session.commit()
    except Exception:
        logger.exception("Failed to persist article %s for link %s", content.slug, link.id)
        session.rollback()
        raise
    session.refresh(db_article)
    return db_article


def set_article_status(
    *, session: Session, article_id: int, status: ArticleStatus
) -> Article | None:
    db_article = session.get(Article, article_id)
    if not db_article:
        return None
    db_article.status = status
    if status == ArticleStatus.published:
        db_article.published_at = get_datetime_utc()
    db_article.updated_at = get_datetime_utc()
    session.add(db_article)
    session.commit()
    session.refresh(db_article)
    return db_article


def delete_article(*, session: Session, article_id: int) -> bool:
    db_article = session.get(Article, article_id)
    if not db_article:
        return False
    session.delete(db_article)
    session.commit()
    return True


# Articles: public reads

def _card_statement():
    return (
        select(
            Article,
            Category.name,
            Category.slug,
            AffiliateLink.product_name,
            AffiliateLink.brand,
            AffiliateLink.price_display,
        )
        .outerjoin(Category, Category.id == Article.category_id)
        .outerjoin(AffiliateLink, AffiliateLink.id == Article.affiliate_link_id)
        .where(Article.status == ArticleStatus.published)
    )


def _to_card(row: Any) -> ArticleCard:
    article, category_name, category_slug, product_name, brand, price_display = row
    return ArticleCard.model_validate(
        article,
        update={
            "category_name": category_name,
            "category_slug": category_slug,
            "product_name": product_name,
            "brand": brand,
            "price_display": price_display,
            "tracked_url": tracked_url(article.affiliate_link_id)
            if article.affiliate_link_id is not None
            else None,
        },
    )


def list_published_articles(
    *,
    session: Session,
    category_slug: str | None = None,
    article_type: str | None = None,
    page: int = 1,
    limit: int = 12,
) -> ArticlesPage:
    statement = _card_statement()
    count_statement = (
        select(func.count(Article.id))
        .outerjoin(Category, Category.id == Article.category_id)
        .where(Article.status == ArticleStatus.published)
    )
    if category_slug:
        statement = statement.where(Category.slug == category_slug)
        count_statement = count_statement.where(Category.slug == category_slug)
    if article_type:
        statement = statement.where(Article.article_type == article_type)
        count_statement = count_statement.where(Article.article_type == article_type)

    statement = (
        statement.order_by(col(Article.published_at).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    articles = [_to_card(row) for row in session.exec(statement).all()]
    total = session.exec(count_statement).one() or 0

    return ArticlesPage(
        articles=articles,
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


def get_published_article(*, session: Session, slug: str) -> ArticleDetail | None:
    statement = (
        select(Article, Category.name, Category.slug, AffiliateLink)
        .outerjoin(Category, Category.id == Article.category_id)
        .outerjoin(AffiliateLink, AffiliateLink.id == Article.affiliate_link_id)
        .where(Article.slug == slug, Article.status == ArticleStatus.published)
    )
    row = session.exec(statement).first()
    if row is None:
        return None
    article, category_name, category_slug, link = row

    related_statement = (
        select(Article)
        .where(
            Article.category_id == article.category_id,
            Article.status == ArticleStatus.published,
            Article.slug != slug,
        )
        .order_by(col(Article.published_at).desc())
        .limit(3)
    )
    related = [
        RelatedArticle.model_validate(item) for item in session.exec(related_statement).all()
    ]

    try:
        keywords = json.loads(article.seo_keywords or "[]")
    except json.JSONDecodeError:
        keywords = []

    return ArticleDetail.model_validate(
        article,
        update={
            "category_name": category_name,
            "category_slug": category_slug,
            "product_name": link.product_name if link else None,
            "brand": link.brand if link else None,
            "price_display": link.price_display if link else None,
            "affiliate_url": link.affiliate_url if link else None,
            "product_image_url": link.image_url if link else None,
            "tracked_url": tracked_url(link.id) if link else None,
            "seo_keywords": keywords,
            "schema_json": article.structured_data,
            "related": related,
        },
    )


def list_categories_with_counts(*, session: Session) -> list[CategoryWithCount]:
    statement = (
        select(Category, func.count(Article.id))
        .outerjoin(
            Article,
            (Article.category_id == Category.id) & (Article.status == ArticleStatus.published),
        )
        .group_by(Category.id)
        .order_by(Category.name)
    )
    return [
        CategoryWithCount.model_validate(category, update={"article_count": count})
        for category, count in session.exec(statement).all()
    ]


def list_featured_articles(*, session: Session, limit: int = 6) -> list[ArticleCard]:
    statement = (
        _card_statement()
        .where(AffiliateLink.is_featured == True)  # noqa: E712
        .order_by(col(Article.published_at).desc())
        .limit(limit)
    )
    return [_to_card(row) for row in session.exec(statement).all()]


def search_articles(*, session: Session, query: str, limit: int = 10) -> list[SearchResult]:
    term = f"%{query}%"
    statement = (
        select(Article, Category.name)
        .outerjoin(Category, Category.id == Article.category_id)
        .where(Article.status == ArticleStatus.published)
        .where(
            col(Article.title).like(term)
            | col(Article.excerpt).like(term)
            | col(Article.seo_keywords).like(term)
        )
        .order_by(col(Article.published_at).desc())
        .limit(limit)
    )
    return [
        SearchResult.model_validate(article, update={"category_name": category_name})
        for article, category_name in session.exec(statement).all()
    ]


def list_published_for_feed(*, session: Session, limit: int) -> list[tuple[Article, str | None]]:
    statement = (
        select(Article, Category.name)
        .outerjoin(Category, Category.id == Article.category_id)
        .where(Article.status == ArticleStatus.published)
        .order_by(col(Article.published_at).desc())
        .limit(limit)
    )
    return list(session.exec(statement).all())


def list_sitemap_entries(*, session: Session, limit: int = 1000) -> tuple[list[Article], list[str]]:
    articles = session.exec(
        select(Article)
        .where(Article.status == ArticleStatus.published)
        .order_by(col(Article.updated_at).desc())
        .limit(limit)
    ).all()
    category_slugs = session.exec(select(Category.slug)).all()
    return list(articles), list(category_slugs)


# Admin dashboard

def get_stats(*, session: Session) -> dict[str, Any]:
    published = case((Article.status == ArticleStatus.published, 1), else_=0)
    drafts = case((Article.status == ArticleStatus.draft, 1), else_=0)
    total, published_count, draft_count = session.exec(
        select(func.count(Article.id), func.sum(published), func.sum(drafts))
    ).one()
    link_total = session.exec(select(func.count(AffiliateLink.id))).one()

    by_category = session.exec(
        select(Category.name, func.count(Article.id))
        .outerjoin(
            Article,
            (Article.category_id == Category.id) & (Article.status == ArticleStatus.published),
        )
        .group_by(Category.id)
        .order_by(func.count(Article.id).desc())
    ).all()
    by_type = session.exec(
        select(Article.article_type, func.count(Article.id))
        .where(Article.status == ArticleStatus.published)
        .group_by(Article.article_type)
    ).all()
    recent = session.exec(
        select(Article).order_by(col(Article.created_at).desc(), col(Article.id).desc()).limit(10)
    ).all()

    return {
        "articles": {
            "total": total or 0,
            "published": published_count or 0,
            "drafts": draft_count or 0,
        },
        "affiliate_links": {"total": link_total or 0},
        "by_category": [{"name": name, "count": count} for name, count in by_category],
        "by_type": [{"article_type": kind, "count": count} for kind, count in by_type],
        "recent_articles": [
            {
                "id": article.id,
                "slug": article.slug,
                "title": article.title,
                "status": article.status,
                "created_at": article.created_at,
            }
            for article in recent
        ],
    }
