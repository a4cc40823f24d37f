import json
from unittest.mock import AsyncMock, patch, MagicMock

import pytest

from app.agent.article_agent import ArticleRequest, ArticleWriterAgent
from app.agent.artifacts import ArticleType, GeneratedPayload
from app.agent.errors import GenerationInvalid
from app.models import AffiliateLink
from app.tests.utils import FakeLLM, model_response

LINK = AffiliateLink(
    id=42,
    product_name="Atelier Chronograph",
    product_description="Hand-finished chronograph.",
    price_display="$4,950",
    brand="Maison Atelier",
    affiliate_url="https://merchant.example.com/p/atelier?aff=luxe",
    category_id=7,
    tags=json.dumps(["watches"]),
)


@pytest.mark.asyncio
async def test_article_writer_agent_with_openai_client():
    mock_message = MagicMock()
    mock_message.content = f"```json\n{model_response()}\n```"

    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]

    mock_completions = MagicMock()
    mock_completions.create = AsyncMock(return_value=mock_response)

    mock_chat = MagicMock()
    mock_chat.completions = mock_completions

    mock_client_instance = AsyncMock()
    mock_client_instance.chat = mock_chat

    with patch("app.agent.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            agent = ArticleWriterAgent()

            payload = await agent.run(ArticleRequest(link=LINK, article_type=ArticleType.spotlight))

            assert isinstance(payload, GeneratedPayload)
            assert payload.title == "The Quiet Authority of the Atelier Chronograph"
            assert "[AFFILIATE_LINK]" in payload.body_html
            mock_completions.create.assert_called_once()
            messages = mock_completions.create.call_args.kwargs["messages"]
            assert LINK.affiliate_url not in messages[1]["content"]


@pytest.mark.asyncio
async def test_article_writer_agent_fails_closed_on_bad_output():
    llm = FakeLLM(["Sorry, I can't help with that."])
    agent = ArticleWriterAgent(llm=llm)

    with pytest.raises(GenerationInvalid):
        await agent.run(ArticleRequest(link=LINK, article_type=ArticleType.guide))

    assert len(llm.calls) == 1
    assert "buying guide" in llm.calls[0]["user_prompt"]
