import json

from sqlmodel import Session

from app.models import AffiliateLink, Category


def article_words(count: int) -> str:
    return " ".join(f"word{i}" for i in range(count))


def model_response(
    *,
    title: str = "The Quiet Authority of the Atelier Chronograph",
    words: int = 650,
    placeholder: bool = True,
    **overrides,
) -> str:
    body = f"<h2>Heritage</h2><p>{article_words(words)}</p>"
    if placeholder:
        body += "<p>Discover the [AFFILIATE_LINK] today.</p>"
    payload = {
        "title": title,
        "subtitle": "A chronograph that speaks softly and keeps perfect time.",
        "excerpt": "A study in restraint. Why this watch matters.",
        "body_html": body,
        "seo_title": "Atelier Chronograph Review: Quiet Luxury on the Wrist",
        "seo_description": "An editorial look at the Atelier Chronograph.",
        "seo_keywords": ["atelier", "chronograph", "luxury watch", "review", "horology"],
    }
    payload.update(overrides)
    return json.dumps(payload)


class FakeLLM:
    """Stands in for LLMClient; returns queued responses or raises queued exceptions."""

    def __init__(self, responses: list | None = None):
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def generate_text(self, system_prompt: str, user_prompt: str, **kwargs) -> str:
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt, **kwargs})
        response = self.responses.pop(0) if self.responses else model_response()
        if isinstance(response, Exception):
            raise response
        return response


def create_category(session: Session, *, id: int, name: str = "Watches", slug: str | None = None) -> Category:
    category = Category(id=id, name=name, slug=slug or f"category-{id}")
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


def create_link(session: Session, **fields) -> AffiliateLink:
    data = {
        "product_name": "Atelier Chronograph",
        "product_description": "Hand-finished 40mm chronograph with a sector dial.",
        "price_display": "$4,950",
        "brand": "Maison Atelier",
        "affiliate_url": "https://merchant.example.com/p/atelier?aff=luxe",
        "category_id": 1,
        "tags": json.dumps(["watches", "chronograph"]),
    }
    data.update(fields)
    link = AffiliateLink(**data)
    session.add(link)
    session.commit()
    session.refresh(link)
    return link
