"""Pure transformations applied to a generated payload before it is stored."""

import html
import json
import math
import re
import time
from datetime import datetime, timezone

from app.agent.artifacts import GeneratedPayload
from app.agent.prompts.article import AFFILIATE_LINK_PLACEHOLDER
from app.models import AffiliateLink

WORDS_PER_MINUTE = 238
SLUG_MAX_LENGTH = 80

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_TAG_RE = re.compile(r"<[^>]*>")


def tracked_url(link_id: int) -> str:
    return f"/go/{link_id}"


def insert_affiliate_links(body_html: str, link: AffiliateLink) -> str:
    """Replace every placeholder with the tracked, sponsored anchor for the link."""
    anchor = (
        f'<a href="{tracked_url(link.id)}" class="affiliate-cta" '
        f'rel="nofollow sponsored" target="_blank">{html.escape(link.product_name)}</a>'
    )
    return body_html.replace(AFFILIATE_LINK_PLACEHOLDER, anchor)


def slugify(title: str) -> str:
    slug = (title or "").lower()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def unique_slug(title: str, now_ms: int | None = None) -> str:
    # Millisecond timestamp suffix; generation is far slower than one article per ms
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    base = slugify(title) or "article"
    return f"{base}-{to_base36(now_ms)}"


def count_words(body_html: str) -> int:
    return len(_TAG_RE.sub(" ", body_html or "").split())


def read_time_minutes(word_count: int) -> int:
    return math.ceil(word_count / WORDS_PER_MINUTE)


def build_schema_json(
    payload: GeneratedPayload,
    link: AffiliateLink,
    slug: str,
    site_url: str,
    site_name: str,
    now: datetime | None = None,
) -> str:
    """Serialize the schema.org Article (about a Product with an Offer) for the page head."""
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    base = site_url.rstrip("/")
    canonical = f"{base}/articles/{slug}"
    document = {
        "@context": "https://schema.org",
        "@type": "Article",
        "headline": payload.title,
        "description": payload.excerpt,
        "url": canonical,
        "author": {"@type": "Organization", "name": f"{site_name} Editorial"},
        "publisher": {
            "@type": "Organization",
            "name": site_name,
            "logo": {"@type": "ImageObject", "url": f"{base}/logo.png"},
        },
        "datePublished": timestamp,
        "dateModified": timestamp,
        "mainEntityOfPage": {"@type": "WebPage", "@id": canonical},
        "about": {
            "@type": "Product",
            "name": link.product_name,
            "brand": {"@type": "Brand", "name": link.brand},
            "offers": {
                "@type": "Offer",
                "price": link.price_display,
                "priceCurrency": "USD",
                "availability": "https://schema.org/InStock",
                "url": link.affiliate_url,
            },
        },
    }
    return json.dumps(document)
