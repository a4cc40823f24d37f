from datetime import datetime, timezone
from email.utils import format_datetime
from xml.sax.saxutils import escape

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response

from app.api.deps import SessionDep
from app.core.config import settings
from app.crud import list_published_for_feed, list_sitemap_entries

router = APIRouter(tags=["feeds"])

FEED_HEADERS = {"Cache-Control": "public, max-age=3600"}


def _cdata(text: str) -> str:
    return "<![CDATA[" + (text or "").replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def render_sitemap(article_rows: list[tuple[str, datetime | None]], category_slugs: list[str]) -> str:
    site = settings.SITE_URL.rstrip("/")
    urls = [f"<url><loc>{escape(site)}/</loc><changefreq>daily</changefreq><priority>1.0</priority></url>"]
    urls += [
        f"<url><loc>{escape(site)}/category/{escape(slug)}</loc>"
        "<changefreq>daily</changefreq><priority>0.8</priority></url>"
        for slug in category_slugs
    ]
    urls += [
        f"<url><loc>{escape(site)}/articles/{escape(slug)}</loc>"
        f"<lastmod>{updated_at.date().isoformat() if updated_at else ''}</lastmod>"
        "<changefreq>weekly</changefreq><priority>0.7</priority></url>"
        for slug, updated_at in article_rows
    ]
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        + "\n".join(urls)
        + "\n</urlset>"
    )


def render_rss(items: list[dict], now: datetime | None = None) -> str:
    site = escape(settings.SITE_URL.rstrip("/"))
    entries = []
    for item in items:
        link = f"{site}/articles/{escape(item['slug'])}"
        published = format_datetime(_as_utc(item["published_at"])) if item["published_at"] else ""
        entries.append(
            "    <item>\n"
            f"      <title>{_cdata(item['title'])}</title>\n"
            f"      <link>{link}</link>\n"
            f"      <description>{_cdata(item['excerpt'])}</description>\n"
            f"      <pubDate>{published}</pubDate>\n"
            f"      <category>{escape(item['category'] or '')}</category>\n"
            f"      <guid>{link}</guid>\n"
            "    </item>"
        )

    build_date = format_datetime(now or datetime.now(timezone.utc), usegmt=True)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">\n'
        "  <channel>\n"
        f"    <title>{escape(settings.SITE_NAME)}</title>\n"
        f"    <link>{site}</link>\n"
        f"    <description>{escape(settings.SITE_DESCRIPTION)}</description>\n"
        "    <language>en-us</language>\n"
        f"    <lastBuildDate>{build_date}</lastBuildDate>\n"
        f'    <atom:link href="{site}/feed.xml" rel="self" type="application/rss+xml"/>\n'
        + "\n".join(entries)
        + "\n  </channel>\n</rss>"
    )


@router.get("/sitemap.xml")
def sitemap(session: SessionDep) -> Response:
    articles, category_slugs = list_sitemap_entries(session=session)
    xml = render_sitemap([(a.slug, a.updated_at) for a in articles], category_slugs)
    return Response(content=xml, media_type="application/xml", headers=FEED_HEADERS)


@router.get("/feed.xml")
def feed(session: SessionDep) -> Response:
    rows = list_published_for_feed(session=session, limit=50)
    items = [
        {
            "title": article.title,
            "slug": article.slug,
            "excerpt": article.excerpt,
            "published_at": article.published_at,
            "category": category,
        }
        for article, category in rows
    ]
    return Response(content=render_rss(items), media_type="application/rss+xml", headers=FEED_HEADERS)


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots() -> str:
    site = settings.SITE_URL.rstrip("/")
    return f"User-agent: *\nAllow: /\nSitemap: {site}/sitemap.xml\nDisallow: /api/admin/\n"
