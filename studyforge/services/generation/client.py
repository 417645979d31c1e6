"""Completion service client for study-item generation."""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from studyforge.core.config import settings
from studyforge.core.errors import CompletionTimeoutError, GenerationError, QuotaError
from studyforge.services.common.retry import RetryConfig, retry_async
from studyforge.services.generation.prompts import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)


class CompletionClient:
    """Requests study items as one JSON object from a chat-completions model."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.OPENAI_TIMEOUT_SECONDS
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=self.timeout)
        self.model = model or settings.OPENAI_MODEL
        self.temperature = temperature if temperature is not None else settings.OPENAI_TEMPERATURE
        self.max_tokens = max_tokens or settings.OPENAI_MAX_TOKENS
        self.retry_config = retry_config or RetryConfig.from_settings(retry_exceptions=(openai.APIConnectionError,))

    async def complete(self, topic_name: str, content: str) -> str:
        """Send one generation request.

        Args:
            topic_name: Topic label included in the prompt
            content: Concatenated source text

        Returns:
            The raw message content (expected to be a JSON object)

        Raises:
            QuotaError: rate limit or exhausted credits
            CompletionTimeoutError: no answer within the timeout
            GenerationError: any other API failure or an empty answer
        """
        if not content.strip():
            raise GenerationError("No content available for AI processing")

        async def _create():
            return await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(topic_name, content)},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )

        logger.info(f"Requesting study items for '{topic_name}' from {self.model} ({len(content)} chars)")
        try:
            response = await retry_async(_create, self.retry_config, description=f"completion for '{topic_name}'")
        except openai.RateLimitError as e:
            raise QuotaError(f"AI service rate limit or quota exceeded: {e}") from e
        except openai.APITimeoutError as e:
            raise CompletionTimeoutError(f"AI service did not respond within {self.timeout}s") from e
        except openai.APIStatusError as e:
            if "insufficient_quota" in str(e):
                raise QuotaError(f"AI service quota exceeded: {e}") from e
            raise GenerationError(f"AI service error: {e.status_code} {e}") from e
        except openai.OpenAIError as e:
            raise GenerationError(f"AI service error: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError("AI service returned an empty response")
        return response.choices[0].message.content
