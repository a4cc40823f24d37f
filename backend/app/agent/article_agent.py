import logging
from dataclasses import dataclass

from app.agent.artifacts import ArticleType, GeneratedPayload
from app.agent.base import BaseAgent
from app.agent.prompts.article import build_article_prompt
from app.agent.response_parser import parse_generated_payload
from app.models import AffiliateLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArticleRequest:
    link: AffiliateLink
    article_type: ArticleType = ArticleType.spotlight


class ArticleWriterAgent(BaseAgent[ArticleRequest, GeneratedPayload]):
    """
    Agent responsible for turning one affiliate product record into a validated
    article payload. It does not touch storage.
    """

    async def run(self, input_data: ArticleRequest) -> GeneratedPayload:
        prompt = build_article_prompt(input_data.link, input_data.article_type)

        raw_text = await self.llm.generate_text(
            system_prompt=prompt.system_prompt,
            user_prompt=prompt.user_prompt,
        )

        payload = parse_generated_payload(raw_text)
        logger.info(
            "Writer produced %s payload %r for link %s",
            input_data.article_type.value,
            payload.title,
            input_data.link.id,
        )
        return payload
