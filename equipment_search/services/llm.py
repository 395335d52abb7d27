"""
Async chat client for OpenRouter, used by the LLM relevance scorer.

Only structured (JSON) calls are needed: every reply is parsed and
validated against a pydantic model before a score leaves this module.
"""

import json
import re
from typing import Type, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from equipment_search.config.settings import settings
from equipment_search.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

# Some models wrap JSON mode output in a markdown fence anyway
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class LLMClient:
    def __init__(
        self,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
        max_tokens: int = 200,
    ):
        self.client = client or AsyncOpenAI(
            base_url=settings.openrouter_base_url,
            api_key=settings.openrouter_api_key,
        )
        self.model = model or settings.llm_model
        self.max_tokens = max_tokens

    async def call_structured(
        self,
        prompt: str,
        response_model: Type[T],
        system: str | None = None,
    ) -> T:
        """JSON-mode completion validated into ``response_model``.

        Raises ValueError for empty or non-JSON replies and
        pydantic.ValidationError when the JSON does not fit the model.
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=self._build_messages(prompt, system),
            response_format={"type": "json_object"},
            temperature=0,
            max_tokens=self.max_tokens,
        )
        raw = response.choices[0].message.content if response.choices else None
        if not raw:
            raise ValueError(f"LLM {self.model} returned an empty reply")

        try:
            parsed = json.loads(_FENCE.sub("", raw.strip()))
        except json.JSONDecodeError as e:
            logger.error("llm_json_parse_failed", model=self.model, raw=raw[:300], error=str(e))
            raise ValueError(f"LLM returned invalid JSON: {e}") from e

        try:
            return response_model.model_validate(parsed)
        except ValidationError:
            logger.error(
                "llm_response_invalid",
                model=self.model,
                response_model=response_model.__name__,
                parsed=parsed,
            )
            raise

    @staticmethod
    def _build_messages(prompt: str, system: str | None) -> list[dict]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages
