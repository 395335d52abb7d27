"""
Hybrid ranking engine.

Pipeline:
    1. Lexical retrieval, one index query per plan variant, aggregated by
       weighted sum per equipment identity (candidate pool)
    2. Semantic + cross-encoder signals for the pool (refer to
       retrieval/semantic.py for provider degradation)
    3. Domain compatibility between query and each candidate
    4. Fusion (ranking/fusion.py), dedup, intent guard, confidence
       (ranking/postprocess.py)
"""

import asyncio
import time
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from equipment_search.config.settings import settings
from equipment_search.corpus.models import CorpusDocument
from equipment_search.domain.classifier import DomainClassifier, domain_score
from equipment_search.domain.models import DomainCategory, DomainClassification
from equipment_search.errors import IndexBuildError
from equipment_search.logger import get_logger
from equipment_search.ranking.base import RankingEngine
from equipment_search.ranking.fusion import combine
from equipment_search.ranking.models import RankedDebug, RankedResult, SearchResultItem
from equipment_search.ranking.postprocess import (
    apply_intent_guard,
    assign_confidence,
    check_confidence_coherence,
    dedup_by_equipment_id,
    find_duplicate_identities,
    sort_by_rank,
)
from equipment_search.retrieval.lexical import LexicalIndex
from equipment_search.retrieval.models import QueryPlan
from equipment_search.retrieval.semantic import SemanticScorer
from equipment_search.services.base import CrossEncoderProvider, EmbeddingProvider
from equipment_search.text.normalization import normalize_equip

logger = get_logger(__name__)


@dataclass(frozen=True)
class _IndexState:
    """Everything derived from the corpus. Replaced as a whole, never mutated."""

    documents: tuple[CorpusDocument, ...]
    lexical: LexicalIndex
    domains: tuple[DomainClassification, ...]


def build_index_state(
    documents: Sequence[CorpusDocument],
    classifier: DomainClassifier,
    **lexical_options,
) -> _IndexState:
    if not documents:
        raise IndexBuildError("Corpus is empty")

    seen: set[str] = set()
    for doc in documents:
        if doc.id in seen:
            raise IndexBuildError(f"Duplicate document id: {doc.id}")
        seen.add(doc.id)

    return _IndexState(
        documents=tuple(documents),
        lexical=LexicalIndex.build(documents, **lexical_options),
        domains=tuple(classifier.classify_document(doc) for doc in documents),
    )


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


def domain_stats(items: Sequence[SearchResultItem]) -> dict[DomainCategory, int]:
    """Returned items per domain category; unclassified items are not counted."""
    return dict(Counter(i.domain.category for i in items if i.domain is not None))


class HybridRankingEngine(RankingEngine):
    name = "hybrid"

    def __init__(
        self,
        documents: Sequence[CorpusDocument],
        embedding_provider: EmbeddingProvider,
        cross_encoder_provider: CrossEncoderProvider,
        classifier: DomainClassifier | None = None,
        lexical_top_k: int | None = None,
        top_k: int | None = None,
        min_score: float | None = None,
        confidence_method: str | None = None,
        confidence_temperature: float | None = None,
        intent_guard: bool | None = None,
        debug: bool | None = None,
        provider_timeout_s: float | None = None,
        strict_providers: bool | None = None,
        name: str | None = None,
    ):
        self.name = name or self.name
        self.classifier = classifier or DomainClassifier()
        self.semantic = SemanticScorer(
            embedding_provider,
            cross_encoder_provider,
            timeout_s=provider_timeout_s,
            strict=strict_providers,
        )
        self.lexical_top_k = lexical_top_k or settings.lexical_top_k
        self.top_k = top_k or settings.top_k
        # Fused scores are unbounded (raw reranker logits), so no cutoff unless asked
        self.min_score = settings.min_score if min_score is None else min_score
        self.confidence_method = confidence_method or settings.confidence_method
        self.confidence_temperature = confidence_temperature or settings.confidence_temperature
        self.intent_guard = settings.intent_guard_enabled if intent_guard is None else intent_guard
        self.debug = settings.enable_debug_info if debug is None else debug

        start = time.perf_counter()
        self._state = build_index_state(documents, self.classifier)
        logger.info(
            "engine_ready",
            engine=self.name,
            documents=len(documents),
            duration_ms=_elapsed_ms(start),
        )

    def is_ready(self) -> bool:
        return self._state is not None

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        plan: QueryPlan | None = None,
    ) -> RankedResult:
        top_k = top_k or self.top_k
        plan = plan or QueryPlan.for_query(query)
        # One snapshot for the whole request
        state = self._state

        if not normalize_equip(query):
            return RankedResult.empty(query)

        timings: dict[str, int] = {}

        # CPU-bound; a worker thread keeps the event loop (and deadlines) responsive
        start = time.perf_counter()
        pool = await asyncio.to_thread(self._lexical_pool, state, plan)
        timings["lexical"] = _elapsed_ms(start)
        if not pool:
            logger.debug("no_lexical_candidates", query=query[:50])
            return RankedResult.empty(query)

        candidates = [state.documents[i] for i in pool]
        start = time.perf_counter()
        signals = await self.semantic.score(query, candidates)
        timings["semantic"] = _elapsed_ms(start)

        start = time.perf_counter()
        query_domain = self.classifier.classify(query)
        domain_scores = [domain_score(query_domain, state.domains[i]) for i in pool]
        timings["domain"] = _elapsed_ms(start)

        start = time.perf_counter()
        items: list[SearchResultItem] = []
        for (doc_index, lexical), signal, dom in zip(pool.items(), signals, domain_scores):
            doc = state.documents[doc_index]
            doc_domain = state.domains[doc_index]
            breakdown = combine(lexical, signal.semantic, signal.reranker, dom)
            if self.min_score is not None and breakdown.combined < self.min_score:
                continue
            items.append(
                SearchResultItem(
                    equipment_id=doc.identity,
                    doc_id=doc.id,
                    text=doc.raw_text,
                    rank_score=breakdown.combined,
                    score_breakdown=breakdown,
                    domain=doc_domain,
                )
            )

        items = dedup_by_equipment_id(sort_by_rank(items))
        items = sort_by_rank(items)[:top_k]

        guard_applied, guard_reason = False, None
        if self.intent_guard:
            items, guard_applied, guard_reason = apply_intent_guard(items, query_domain)
            if guard_applied:
                logger.info("intent_guard_applied", query=query[:50], reason=guard_reason)

        items = assign_confidence(
            items, method=self.confidence_method, temperature=self.confidence_temperature
        )
        self._check_invariants(query, items)
        timings["postprocess"] = _elapsed_ms(start)

        debug = None
        if self.debug:
            debug = RankedDebug(
                score_breakdown_per_item={i.equipment_id: i.score_breakdown for i in items},
                query_domain=query_domain,
                intent_guard_applied=guard_applied,
                intent_guard_reason=guard_reason,
                timings=timings,
                domain_stats=domain_stats(items),
            )

        logger.info(
            "search_done",
            engine=self.name,
            query=query[:50],
            candidates=len(candidates),
            results=len(items),
            query_domain=query_domain.category.value,
        )
        return RankedResult(query=query, items=items, total=len(items), debug=debug)

    async def search_batch(
        self, queries: Sequence[str], top_k: int | None = None
    ) -> list[RankedResult]:
        # Sequential on purpose: provider calls are the bottleneck
        return [await self.search(q, top_k=top_k) for q in queries]

    def _lexical_pool(self, state: _IndexState, plan: QueryPlan) -> dict[int, float]:
        """
        Candidate pool: representative doc index -> aggregated lexical score.

        Within a variant an identity counts once (its best document); across
        variants scores add up, weighted by the variant weight.
        """
        totals: dict[str, float] = {}
        representative: dict[str, tuple[int, float]] = {}

        for variant in plan.weighted_variants():
            text = normalize_equip(variant.text)
            if variant.weight == 0 or not text:
                continue

            per_identity: dict[str, float] = {}
            for hit in state.lexical.search(text, top_k=self.lexical_top_k):
                identity = state.documents[hit.doc_index].identity
                if hit.score > per_identity.get(identity, float("-inf")):
                    per_identity[identity] = hit.score
                best = representative.get(identity)
                if best is None or hit.score > best[1]:
                    representative[identity] = (hit.doc_index, hit.score)

            for identity, score in per_identity.items():
                totals[identity] = totals.get(identity, 0.0) + variant.weight * score

        ranked = sorted(totals, key=lambda identity: totals[identity], reverse=True)
        return {representative[i][0]: totals[i] for i in ranked[: self.lexical_top_k]}

    def _check_invariants(self, query: str, items: list[SearchResultItem]) -> None:
        duplicates = find_duplicate_identities(items)
        violations = check_confidence_coherence(items)
        if duplicates or violations:
            logger.error(
                "result_invariant_violated",
                query=query[:50],
                duplicates=duplicates,
                confidence_violations=violations,
            )
