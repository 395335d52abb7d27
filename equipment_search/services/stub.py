"""
Deterministic providers for tests and offline development.

Same text always yields the same embedding; the cross-encoder scores
word overlap. Neither touches the network.
"""

import hashlib
from functools import lru_cache

import numpy as np

from equipment_search.logger import get_logger
from equipment_search.services.base import CrossEncoderProvider, EmbeddingProvider

logger = get_logger(__name__)

EMBEDDING_CACHE_SIZE = 4096


@lru_cache(maxsize=EMBEDDING_CACHE_SIZE)
def _seeded_unit_vector(text: str, dimension: int) -> tuple[float, ...]:
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
    vector = np.random.default_rng(seed).uniform(-0.5, 0.5, dimension)
    norm = np.linalg.norm(vector)
    if norm > 0:
        vector = vector / norm
    return tuple(vector.tolist())


class StubEmbeddingProvider(EmbeddingProvider):
    def __init__(self, dimension: int = 384):
        self.dimension = dimension
        logger.info("stub_embedding_provider_ready", dimension=dimension)

    async def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(t) for t in texts]

    def _embed(self, text: str) -> list[float]:
        # Bounded cache; callers get their own list
        return list(_seeded_unit_vector(text, self.dimension))


class StubCrossEncoderProvider(CrossEncoderProvider):
    async def score(self, query: str, documents: list[str]) -> list[float]:
        return [self._overlap_f1(query, doc) for doc in documents]

    @staticmethod
    def _overlap_f1(query: str, text: str) -> float:
        query_words = set(query.lower().split())
        text_words = text.lower().split()
        if not query_words or not text_words:
            return 0.0

        matches = sum(1 for w in text_words if w in query_words)
        recall = matches / len(query_words)
        precision = matches / len(text_words)
        if recall + precision == 0:
            return 0.0
        return 2 * recall * precision / (recall + precision)
