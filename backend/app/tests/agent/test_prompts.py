import json

import pytest

from app.agent.artifacts import MIN_WORD_COUNTS, ArticleType
from app.agent.prompts.article import (
    AFFILIATE_LINK_PLACEHOLDER,
    ARTICLE_SYSTEM_PROMPT,
    _TEMPLATES,
    build_article_prompt,
)
from app.models import AffiliateLink


def _link(**fields) -> AffiliateLink:
    data = {
        "id": 42,
        "product_name": "Atelier Chronograph",
        "product_description": "Hand-finished chronograph.",
        "price_display": "$4,950",
        "brand": "Maison Atelier",
        "affiliate_url": "https://merchant.example.com/p/atelier?aff=luxe",
        "category_id": 7,
        "tags": json.dumps(["watches", "heritage"]),
    }
    data.update(fields)
    return AffiliateLink(**data)


def test_every_article_type_has_a_template_and_minimum():
    assert set(_TEMPLATES) == set(ArticleType)
    assert set(MIN_WORD_COUNTS) == set(ArticleType)


@pytest.mark.parametrize("article_type", list(ArticleType))
def test_prompt_embeds_placeholder_and_never_the_affiliate_url(article_type):
    link = _link()

    prompt = build_article_prompt(link, article_type)

    combined = prompt.system_prompt + prompt.user_prompt
    assert AFFILIATE_LINK_PLACEHOLDER in prompt.user_prompt
    assert link.affiliate_url not in combined
    assert "Atelier Chronograph" in prompt.user_prompt
    assert f"Minimum {MIN_WORD_COUNTS[article_type]} words" in prompt.user_prompt


def test_prompt_scrubs_affiliate_url_pasted_into_description():
    url = "https://merchant.example.com/p/atelier?aff=luxe"
    link = _link(product_description=f"Buy it at {url} while stocks last.")

    prompt = build_article_prompt(link, ArticleType.spotlight)

    assert url not in prompt.user_prompt


def test_prompt_is_deterministic_and_lists_tags():
    first = build_article_prompt(_link(), ArticleType.comparison)
    second = build_article_prompt(_link(), ArticleType.comparison)

    assert first == second
    assert first.system_prompt == ARTICLE_SYSTEM_PROMPT
    assert "Keywords: watches, heritage" in first.user_prompt


def test_prompt_requests_exact_json_fields():
    prompt = build_article_prompt(_link(tags="[]"), ArticleType.lifestyle)

    for field in (
        '"title"',
        '"subtitle"',
        '"excerpt"',
        '"body_html"',
        '"seo_title"',
        '"seo_description"',
        '"seo_keywords"',
    ):
        assert field in prompt.user_prompt
    assert "Keywords:" not in prompt.user_prompt
    assert "50-70 chars" in prompt.user_prompt
