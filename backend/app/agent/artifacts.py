from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ArticleType(str, Enum):
    spotlight = "spotlight"
    comparison = "comparison"
    lifestyle = "lifestyle"
    guide = "guide"


# Minimum body length the prompt asks for and the pipeline enforces, per type.
MIN_WORD_COUNTS: dict[ArticleType, int] = {
    ArticleType.spotlight: 600,
    ArticleType.comparison: 700,
    ArticleType.lifestyle: 600,
    ArticleType.guide: 700,
}


def min_word_count(article_type: ArticleType) -> int:
    return MIN_WORD_COUNTS[article_type]


class ArticlePrompt(BaseModel):
    system_prompt: str
    user_prompt: str


class GeneratedPayload(BaseModel):
    """Article fields returned by the model, before post-processing."""
    title: str = Field(min_length=1, description="Headline, 50-70 characters")
    subtitle: str = Field(default="", description="One-sentence subheadline")
    excerpt: str = Field(min_length=1, description="Two-sentence preview")
    body_html: str = Field(min_length=1, description="Article body markup")
    seo_title: str = Field(min_length=1)
    seo_description: str = Field(min_length=1)
    seo_keywords: list[str] = Field(min_length=1)

    @field_validator("title", "excerpt", "body_html", "seo_title", "seo_description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("subtitle", mode="before")
    @classmethod
    def subtitle_or_empty(cls, value: object) -> object:
        return "" if value is None else value


class ProcessedArticle(BaseModel):
    """Post-processed content ready to be written as an Article row."""
    slug: str
    title: str
    subtitle: str
    excerpt: str
    body_html: str
    seo_title: str
    seo_description: str
    seo_keywords: list[str]
    structured_data: str
    word_count: int
    read_time_minutes: int


class GeneratedArticleRef(BaseModel):
    id: int
    slug: str


class BatchItemResult(BaseModel):
    id: int
    article_id: int
    slug: str


class BatchItemError(BaseModel):
    id: int
    error: str


class BatchReport(BaseModel):
    generated: list[BatchItemResult] = Field(default_factory=list)
    errors: list[BatchItemError] = Field(default_factory=list)
