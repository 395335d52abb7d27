"""
Semantic stage: embedding similarity + cross-encoder relevance for a
candidate pool.

Each provider call runs under its own deadline. A failed or late call
turns into a ProviderError; unless strict mode is on, the affected signal
becomes unavailable (None, fused as 0) for every candidate and the request
carries on with the remaining signals.
"""

import asyncio
from typing import Awaitable, Sequence, TypeVar

import numpy as np

from equipment_search.config.settings import settings
from equipment_search.corpus.models import CorpusDocument
from equipment_search.errors import ProviderError
from equipment_search.logger import get_logger
from equipment_search.retrieval.models import CandidateSignals
from equipment_search.services.base import CrossEncoderProvider, EmbeddingProvider
from equipment_search.text.normalization import normalize_equip

logger = get_logger(__name__)

T = TypeVar("T")


def cosine_similarities(query: Sequence[float], documents: Sequence[Sequence[float]]) -> list[float]:
    """Cosine of the query against each document vector. Zero vectors score 0."""
    if not documents:
        return []
    q = np.asarray(query, dtype=float)
    d = np.asarray(documents, dtype=float)
    if d.ndim != 2 or d.shape[1] != q.shape[0]:
        raise ValueError(f"Vector dimension mismatch: query {q.shape} vs documents {d.shape}")

    q_norm = np.linalg.norm(q)
    d_norms = np.linalg.norm(d, axis=1)
    denom = q_norm * d_norms
    dots = d @ q
    sims = np.divide(dots, denom, out=np.zeros_like(dots), where=denom > 0)
    return sims.tolist()


class SemanticScorer:
    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        cross_encoder_provider: CrossEncoderProvider,
        timeout_s: float | None = None,
        strict: bool | None = None,
    ):
        self.embedding_provider = embedding_provider
        self.cross_encoder_provider = cross_encoder_provider
        self.timeout_s = settings.provider_timeout_s if timeout_s is None else timeout_s
        self.strict = settings.strict_providers if strict is None else strict

    async def score(
        self, query: str, candidates: Sequence[CorpusDocument]
    ) -> list[CandidateSignals]:
        """Semantic and reranker signals, one entry per candidate, same order."""
        if not candidates:
            return []

        query_text = normalize_equip(query) or query
        texts = [doc.text or doc.raw_text for doc in candidates]

        semantic, reranker = await asyncio.gather(
            self._guarded("embedding", self._semantic(query_text, texts)),
            self._guarded("cross_encoder", self._rerank(query, texts)),
        )

        return [
            CandidateSignals(
                doc_id=doc.id,
                semantic=semantic[i] if semantic is not None else None,
                reranker=reranker[i] if reranker is not None else None,
            )
            for i, doc in enumerate(candidates)
        ]

    async def _semantic(self, query_text: str, texts: list[str]) -> list[float]:
        query_vec, doc_vecs = await asyncio.gather(
            self.embedding_provider.embed_query(query_text),
            self.embedding_provider.embed_documents(texts),
        )
        if len(doc_vecs) != len(texts):
            raise ValueError(f"expected {len(texts)} embeddings, got {len(doc_vecs)}")
        return cosine_similarities(query_vec, doc_vecs)

    async def _rerank(self, query: str, texts: list[str]) -> list[float]:
        scores = list(await self.cross_encoder_provider.score(query, texts))
        if len(scores) != len(texts):
            raise ValueError(f"expected {len(texts)} scores, got {len(scores)}")
        return [float(s) for s in scores]

    async def _guarded(self, provider: str, call: Awaitable[list[float]]) -> list[float] | None:
        try:
            try:
                scores = await asyncio.wait_for(call, timeout=self.timeout_s)
            except asyncio.TimeoutError as e:
                raise ProviderError(provider, f"timed out after {self.timeout_s}s") from e
            except Exception as e:
                raise ProviderError(provider, str(e) or type(e).__name__) from e
        except ProviderError as e:
            if self.strict:
                raise
            logger.warning("provider_degraded", provider=provider, error=str(e))
            return None
        return scores
