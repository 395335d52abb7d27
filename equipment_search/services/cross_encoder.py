"""
Cross-encoder providers: relevance score for (query, document) pairs.

- "local": sentence-transformers CrossEncoder (raw logits, may be negative)
- "llm": LLM relevance rating in [0, 1], one structured call per pair
- "stub": token-overlap F1 (tests, offline development)
"""

import asyncio

from sentence_transformers import CrossEncoder

from equipment_search.config.settings import settings
from equipment_search.logger import get_logger
from equipment_search.retrieval.models import RelevanceResponse
from equipment_search.retrieval.prompts import RELEVANCE_PROMPT, RELEVANCE_SYSTEM_PROMPT
from equipment_search.services.base import CrossEncoderProvider
from equipment_search.services.llm import LLMClient

logger = get_logger(__name__)


class LocalCrossEncoderProvider(CrossEncoderProvider):
    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or settings.cross_encoder_model_local
        logger.info("loading_local_cross_encoder", model=self.model_name)
        self.model = CrossEncoder(self.model_name)

    async def score(self, query: str, documents: list[str]) -> list[float]:
        if not documents:
            return []
        pairs = [(query, doc) for doc in documents]
        scores = await asyncio.to_thread(self.model.predict, pairs, show_progress_bar=False)
        return [float(s) for s in scores]


class LLMCrossEncoderProvider(CrossEncoderProvider):
    """Asks the LLM to rate each candidate. Pairs are scored concurrently."""

    def __init__(self, llm_client: LLMClient | None = None, max_concurrency: int = 8):
        self.llm = llm_client or LLMClient()
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def _score_one(self, query: str, document: str) -> float:
        prompt = RELEVANCE_PROMPT.format(query=query, candidate=document)
        async with self._semaphore:
            response = await self.llm.call_structured(
                prompt, RelevanceResponse, system=RELEVANCE_SYSTEM_PROMPT
            )
        logger.debug("llm_relevance", relevance=response.relevance)
        return response.relevance

    async def score(self, query: str, documents: list[str]) -> list[float]:
        return list(await asyncio.gather(*(self._score_one(query, d) for d in documents)))


def create_cross_encoder_provider() -> CrossEncoderProvider:
    """Return the configured provider."""
    provider = settings.cross_encoder_provider.lower()

    if provider == "local":
        return LocalCrossEncoderProvider()
    elif provider == "llm":
        return LLMCrossEncoderProvider()
    elif provider == "stub":
        from equipment_search.services.stub import StubCrossEncoderProvider

        return StubCrossEncoderProvider()
    else:
        raise ValueError(
            f"Unknown cross-encoder provider: {provider}. Use 'local', 'llm' or 'stub'."
        )
