"""
Embedding providers:

- "local": sentence-transformers (no API calls, runs on CPU/GPU)
- "openrouter": OpenRouter API (same key as the LLM scorer)
- "stub": deterministic hash vectors (tests, offline development)

Configured via EMBEDDING_PROVIDER in settings (.env overrides).
All implement the same async interface.
"""

import asyncio

from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from equipment_search.config.settings import settings
from equipment_search.logger import get_logger
from equipment_search.services.base import EmbeddingProvider

logger = get_logger(__name__)


class LocalEmbeddingProvider(EmbeddingProvider):
    """Embeddings via sentence-transformers, encoded off the event loop."""

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or settings.embedding_model_local
        logger.info("loading_local_embedding_model", model=self.model_name)
        self.model = SentenceTransformer(self.model_name)
        self.dimension = self.model.get_sentence_embedding_dimension()

    async def embed_query(self, text: str) -> list[float]:
        vector = await asyncio.to_thread(
            self.model.encode, text, normalize_embeddings=True
        )
        return vector.tolist()

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        logger.debug("embedding_batch_local", count=len(texts))
        vectors = await asyncio.to_thread(
            self.model.encode,
            texts,
            normalize_embeddings=True,
            batch_size=32,
            show_progress_bar=False,
        )
        return vectors.tolist()


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """Embeddings via OpenRouter (OpenAI-compatible API)."""

    def __init__(self, model: str | None = None, batch_size: int = 100):
        self.client = AsyncOpenAI(
            base_url=settings.openrouter_base_url,
            api_key=settings.openrouter_api_key,
        )
        self.model = model or settings.embedding_model_openrouter
        self.dimension = settings.embedding_dimension
        self.batch_size = batch_size

    async def embed_query(self, text: str) -> list[float]:
        response = await self.client.embeddings.create(model=self.model, input=text)
        return response.data[0].embedding

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        logger.debug("embedding_batch_openrouter", count=len(texts))
        all_embeddings = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            response = await self.client.embeddings.create(model=self.model, input=batch)
            all_embeddings.extend([item.embedding for item in response.data])
        return all_embeddings


def create_embedding_provider() -> EmbeddingProvider:
    """Return the configured provider."""
    provider = settings.embedding_provider.lower()

    if provider == "local":
        return LocalEmbeddingProvider()
    elif provider == "openrouter":
        return OpenRouterEmbeddingProvider()
    elif provider == "stub":
        from equipment_search.services.stub import StubEmbeddingProvider

        return StubEmbeddingProvider(dimension=settings.embedding_dimension)
    else:
        raise ValueError(
            f"Unknown embedding provider: {provider}. Use 'local', 'openrouter' or 'stub'."
        )
