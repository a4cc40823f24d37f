import logging

from openai import AsyncOpenAI, OpenAIError

from app.agent.errors import GenerationUpstreamError
from app.core.config import settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Provider-agnostic text generation client using the OpenAI chat-completions API."""

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
    ):
        self.model_name = model_name or settings.MODEL_DEFAULT

        self.client = AsyncOpenAI(
            base_url=base_url or settings.LLM_BASE_URL,
            api_key=api_key or settings.LLM_API_KEY,
        )

    def _chat_completion_kwargs(self, *, max_tokens: int, temperature: float | None) -> dict:
        """Build provider/model-compatible kwargs for chat completions."""
        model_name = (self.model_name or "").lower()
        # GPT-5 family rejects non-default temperature and the legacy max_tokens name.
        if model_name.startswith("gpt-5"):
            if temperature is not None:
                logger.info(
                    "Model %s only supports its default temperature; ignoring %s",
                    self.model_name,
                    temperature,
                )
            return {"max_completion_tokens": max_tokens}
        kwargs: dict = {"max_tokens": max_tokens}
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """
        Send one system/user instruction pair and return the raw assistant text.
        The text is not cleaned or validated here; the caller decides whether it is usable.
        """
        resolved_max_tokens = max_tokens or settings.GENERATION_MAX_TOKENS
        resolved_temperature = (
            settings.GENERATION_TEMPERATURE if temperature is None else temperature
        )

        logger.info("Issuing text request to model %s...", self.model_name)
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **self._chat_completion_kwargs(
                    max_tokens=resolved_max_tokens, temperature=resolved_temperature
                ),
            )
        except OpenAIError as e:
            logger.error("Error calling LLM provider %s: %s", self.model_name, e)
            raise GenerationUpstreamError(f"Generation provider error: {e}") from e

        if not getattr(response, "choices", None):
            logger.error("Received 0 choices from %s: %s", self.model_name, response)
            raise GenerationUpstreamError(
                f"Provider {self.model_name} returned no output. Try again or change model."
            )

        text_response = response.choices[0].message.content or ""
        logger.info(
            "Received %s characters from %s.", len(text_response), self.model_name
        )
        return text_response
