import json

from app.agent.artifacts import ArticlePrompt, ArticleType, min_word_count
from app.models import AffiliateLink

AFFILIATE_LINK_PLACEHOLDER = "[AFFILIATE_LINK]"

ARTICLE_SYSTEM_PROMPT = """
You are a senior editor at a prestigious luxury lifestyle publication, think Robb Report meets Monocle meets GQ Luxury.
You write with authoritative confidence, subtle wit, and genuine connoisseurship.
Your prose is elegant, never salesy. You celebrate craft, heritage, and considered consumption.

IMPORTANT: Always respond with ONLY valid JSON. No markdown, no preamble, no explanation.
Never write a real hyperlink to the product. Mark the single place where the reader should be sent to the product
with the literal token [AFFILIATE_LINK] and nothing else.
""".strip()

_PRODUCT_BLOCK = """Product: {product_name}
Brand: {brand}
Price: {price_display}
Description: {product_description}"""

_JSON_CONTRACT = """Return this exact JSON structure (no markdown, just raw JSON):
{{
  "title": {title},
  "subtitle": {subtitle},
  "excerpt": {excerpt},
  "body_html": {body_html},
  "seo_title": {seo_title},
  "seo_description": {seo_description},
  "seo_keywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"]
}}"""

# One entry per ArticleType: (opening instruction, field guidance).
_TEMPLATES: dict[ArticleType, tuple[str, dict[str, str]]] = {
    ArticleType.spotlight: (
        "Write a luxury editorial spotlight article for this product.",
        {
            "title": "A compelling, elegant headline (50-70 chars). Can be a statement or evocative phrase.",
            "subtitle": "A refined one-sentence subheadline that expands on the title (80-120 chars).",
            "excerpt": "A 2-sentence preview for article cards and social sharing.",
            "body_html": (
                "Full HTML article body. Include: opening paragraph with strong hook, 2-3 body sections "
                "with H2 headings, a 'The Verdict' conclusion section. Use <h2>, <p>, <ul>, <li>, <strong>, "
                "<em> tags. Minimum {min_words} words. Weave in the affiliate link naturally as "
                "[AFFILIATE_LINK] placeholder. Never be salesy, be editorial."
            ),
            "seo_title": "SEO-optimized title including brand and product name (55-60 chars)",
            "seo_description": "Meta description (150-160 chars), informative, not clickbait",
        },
    ),
    ArticleType.comparison: (
        "Write a luxury editorial comparison article featuring this product against its category peers.",
        {
            "title": "A comparison headline of 50-70 chars (e.g. 'The Contenders: ...' or 'Four Watches, One Winner')",
            "subtitle": "A subheadline setting up the comparison narrative (80-120 chars)",
            "excerpt": "2-sentence preview explaining what's being compared and why it matters",
            "body_html": (
                "Full HTML comparison article. Include: intro paragraph on the category, brief mentions of "
                "2-3 alternatives (use generic names like 'The German Rival' or 'The Swiss Contender'), deep "
                "dive on the featured product with [AFFILIATE_LINK] placeholder, verdict section. Use <h2>, "
                "<p>, <table> where appropriate. Minimum {min_words} words. Tone: informed, fair, authoritative."
            ),
            "seo_title": "Comparison SEO title with 'vs' or 'review' keyword (55-60 chars)",
            "seo_description": "Meta description for comparison article (150-160 chars)",
        },
    ),
    ArticleType.lifestyle: (
        "Write a luxury lifestyle integration article. Show how this product fits into an aspirational life, "
        "not just what it is.",
        {
            "title": "A lifestyle-oriented, aspirational headline of 50-70 chars (e.g. 'The Morning Ritual of...')",
            "subtitle": "A lifestyle subheadline that paints a picture (80-120 chars)",
            "excerpt": "2-sentence lifestyle-focused preview",
            "body_html": (
                "Full HTML lifestyle article. Paint a vivid scene. Show the product in context of an "
                "aspirational life: morning routines, business travel, weekend escapes. Include product "
                "details but through the lens of lived experience. Use [AFFILIATE_LINK] placeholder "
                "naturally. Include at least one pull-quote wrapped in <blockquote>. Minimum {min_words} words."
            ),
            "seo_title": "Lifestyle-angle SEO title (55-60 chars)",
            "seo_description": "Lifestyle-focused meta description (150-160 chars)",
        },
    ),
    ArticleType.guide: (
        "Write a luxury buying guide built around this product: what a discerning buyer should look for "
        "in the category, and why this piece answers those questions.",
        {
            "title": "A buying-guide headline of 50-70 chars (e.g. 'How to Choose...' or 'The Considered Buyer's Guide to...')",
            "subtitle": "A subheadline promising practical connoisseurship (80-120 chars)",
            "excerpt": "2-sentence preview of what the reader will learn",
            "body_html": (
                "Full HTML buying guide. Include: an introduction to the category, 3-4 H2 sections on the "
                "criteria that matter (materials, craftsmanship, provenance, value), a section applying "
                "those criteria to the featured product with [AFFILIATE_LINK] placeholder, and a short "
                "checklist in <ul>. Use <h2>, <p>, <ul>, <li>, <strong>. Minimum {min_words} words."
            ),
            "seo_title": "Guide-angle SEO title with 'guide' or 'how to choose' (55-60 chars)",
            "seo_description": "Meta description for the buying guide (150-160 chars)",
        },
    ),
}


def _product_block(link: AffiliateLink, *, with_keywords: bool) -> str:
    block = _PRODUCT_BLOCK.format(
        product_name=link.product_name,
        brand=link.brand,
        price_display=link.price_display,
        product_description=link.product_description,
    )
    if with_keywords:
        block += f"\nKeywords: {', '.join(link.tag_list)}"
    # Product copy pasted from merchant feeds sometimes carries the tracking URL itself
    if link.affiliate_url:
        block = block.replace(link.affiliate_url, "")
    return block


def build_article_prompt(link: AffiliateLink, article_type: ArticleType) -> ArticlePrompt:
    """Build the system/user instruction pair for one product and article type.

    The affiliate URL is never sent to the model; it only sees the placeholder token
    which is swapped for the tracked redirect link after generation.
    """
    opening, guidance = _TEMPLATES[article_type]
    min_words = min_word_count(article_type)
    fields = {
        name: json.dumps(text.format(min_words=min_words) if name == "body_html" else text)
        for name, text in guidance.items()
    }

    user_prompt = "\n\n".join(
        [
            opening,
            _product_block(link, with_keywords=bool(link.tag_list)),
            _JSON_CONTRACT.format(**fields),
        ]
    )
    return ArticlePrompt(system_prompt=ARTICLE_SYSTEM_PROMPT, user_prompt=user_prompt)
