"""Language model adapter: structured and free-text completions over OpenAI."""

import json
import logging
from typing import TypeVar

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from calendar_copilot.config import get_settings
from calendar_copilot.services.calendar.errors import LanguageModelError

settings = get_settings()
logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LanguageModelService:
    """Thin wrapper around the chat completions API.

    The client is built with ``max_retries=0``: a failed call is handed
    to the caller's degradation path, never retried here.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.model = model or settings.llm_model
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=timeout or settings.llm_timeout_seconds,
            max_retries=0,
        )

    async def structured_completion(
        self,
        system: str,
        content: str,
        schema: type[SchemaT],
        temperature: float = 0.1,
    ) -> SchemaT:
        """Ask for a JSON instance of ``schema`` and validate it."""
        response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": schema.__name__,
                "schema": schema.model_json_schema(),
            },
        }

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": content},
                ],
                response_format=response_format,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.error("Structured completion request failed: %s", e)
            raise LanguageModelError(f"Language model request failed: {e}") from e

        raw = self._first_content(response)
        if not raw:
            raise LanguageModelError("Language model returned an empty response")

        try:
            return schema.model_validate_json(raw)
        except (ValidationError, json.JSONDecodeError) as e:
            logger.error("Structured completion did not match %s: %s", schema.__name__, e)
            raise LanguageModelError(f"Language model returned invalid {schema.__name__}: {e}") from e

    async def complete(
        self,
        system: str,
        content: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """Free-text completion; returns the stripped reply."""
        kwargs = {}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": content},
                ],
                temperature=temperature,
                **kwargs,
            )
        except OpenAIError as e:
            logger.warning("Completion request failed: %s", e)
            raise LanguageModelError(f"Language model request failed: {e}") from e

        text = self._first_content(response)
        if not text or not text.strip():
            raise LanguageModelError("Language model returned an empty response")
        return text.strip()

    @staticmethod
    def _first_content(response) -> str | None:
        if not response.choices:
            return None
        return response.choices[0].message.content
