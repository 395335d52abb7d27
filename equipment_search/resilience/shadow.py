"""
Shadow comparison for canary validation.

A sampled fraction of requests runs on both engines concurrently; the two
result sets are compared and the metrics logged. The caller always gets the
primary's result. Comparison problems are reported as ComparisonError in
the logs and never reach the caller.
"""

import asyncio
import random
from typing import Callable, Sequence

from equipment_search.config.settings import settings
from equipment_search.errors import ComparisonError
from equipment_search.logger import get_logger
from equipment_search.ranking.base import RankingEngine
from equipment_search.ranking.models import RankedResult
from equipment_search.resilience.models import ComparisonMetrics, ScoreDifference
from equipment_search.retrieval.models import QueryPlan

logger = get_logger(__name__)


class ResultComparator:
    def __init__(
        self,
        min_jaccard: float | None = None,
        max_rank_difference: float | None = None,
        max_score_mae: float | None = None,
        top_differences: int | None = None,
    ):
        self.min_jaccard = settings.shadow_min_jaccard if min_jaccard is None else min_jaccard
        self.max_rank_difference = (
            settings.shadow_max_rank_difference
            if max_rank_difference is None
            else max_rank_difference
        )
        self.max_score_mae = settings.shadow_max_score_mae if max_score_mae is None else max_score_mae
        self.top_differences = (
            settings.shadow_top_differences if top_differences is None else top_differences
        )

    def compare(self, primary: RankedResult, secondary: RankedResult) -> ComparisonMetrics:
        """Compare by equipment_id; ranks are 0-based positions, scores are rank scores."""
        primary_ranks = _first_positions(primary)
        secondary_ranks = _first_positions(secondary)
        primary_scores = {item.equipment_id: item.sort_score for item in primary.items}
        secondary_scores = {item.equipment_id: item.sort_score for item in secondary.items}

        common = [eq for eq in primary_ranks if eq in secondary_ranks]
        union_size = len(primary_ranks) + len(secondary_ranks) - len(common)
        jaccard = 1.0 if union_size == 0 else len(common) / union_size

        differences = [
            ScoreDifference(
                id=eq,
                primary_score=primary_scores[eq],
                secondary_score=secondary_scores[eq],
                difference=abs(primary_scores[eq] - secondary_scores[eq]),
            )
            for eq in common
        ]

        if common:
            rank_difference = sum(
                abs(primary_ranks[eq] - secondary_ranks[eq]) for eq in common
            ) / len(common)
            score_mae = sum(d.difference for d in differences) / len(common)
        else:
            rank_difference = 0.0
            score_mae = 0.0

        differences.sort(key=lambda d: d.difference, reverse=True)

        return ComparisonMetrics(
            jaccard_similarity=jaccard,
            rank_difference=rank_difference,
            score_mae=score_mae,
            primary_only_ids=[eq for eq in primary_ranks if eq not in secondary_ranks],
            secondary_only_ids=[eq for eq in secondary_ranks if eq not in primary_ranks],
            top_score_differences=differences[: self.top_differences],
        )

    def is_within_threshold(self, metrics: ComparisonMetrics) -> bool:
        return (
            metrics.jaccard_similarity >= self.min_jaccard
            and metrics.rank_difference <= self.max_rank_difference
            and metrics.score_mae <= self.max_score_mae
        )


def _first_positions(result: RankedResult) -> dict[str, int]:
    positions: dict[str, int] = {}
    for i, item in enumerate(result.items):
        positions.setdefault(item.equipment_id, i)
    return positions


class ShadowEngine(RankingEngine):
    name = "shadow"

    def __init__(
        self,
        primary: RankingEngine,
        secondary: RankingEngine,
        sample_rate: float | None = None,
        comparator: ResultComparator | None = None,
        on_comparison: Callable[[str, ComparisonMetrics], None] | None = None,
        rng: random.Random | None = None,
    ):
        self.primary = primary
        self.secondary = secondary
        rate = settings.shadow_sample_rate if sample_rate is None else sample_rate
        self.sample_rate = min(max(rate, 0.0), 1.0)
        self.comparator = comparator or ResultComparator()
        self.on_comparison = on_comparison
        self.rng = rng or random.Random()

    def is_ready(self) -> bool:
        return self.primary.is_ready() and self.secondary.is_ready()

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        plan: QueryPlan | None = None,
    ) -> RankedResult:
        if self.rng.random() >= self.sample_rate:
            return await self.primary.search(query, top_k=top_k, plan=plan)

        primary_result, secondary_result = await asyncio.gather(
            self.primary.search(query, top_k=top_k, plan=plan),
            self.secondary.search(query, top_k=top_k, plan=plan),
            return_exceptions=True,
        )
        if isinstance(primary_result, BaseException):
            raise primary_result

        try:
            self._compare(query, primary_result, secondary_result)
        except ComparisonError as e:
            logger.error("shadow_comparison_failed", query=query[:50], error=str(e))

        return primary_result

    async def search_batch(
        self, queries: Sequence[str], top_k: int | None = None
    ) -> list[RankedResult]:
        # Batches are never shadowed
        return await self.primary.search_batch(queries, top_k=top_k)

    def _compare(
        self,
        query: str,
        primary_result: RankedResult,
        secondary_result: RankedResult | BaseException,
    ) -> ComparisonMetrics:
        if isinstance(secondary_result, BaseException):
            raise ComparisonError(
                f"secondary engine {self.secondary.name} failed: {secondary_result}"
            ) from secondary_result

        try:
            metrics = self.comparator.compare(primary_result, secondary_result)
            if self.on_comparison is not None:
                self.on_comparison(query, metrics)
        except Exception as e:
            raise ComparisonError(f"comparison failed: {e}") from e

        if self.comparator.is_within_threshold(metrics):
            logger.debug(
                "shadow_comparison",
                query=query[:50],
                jaccard=metrics.jaccard_similarity,
                rank_difference=metrics.rank_difference,
                score_mae=metrics.score_mae,
            )
        else:
            logger.warning(
                "shadow_difference_detected",
                query=query[:50],
                jaccard=metrics.jaccard_similarity,
                rank_difference=metrics.rank_difference,
                score_mae=metrics.score_mae,
                primary_only=len(metrics.primary_only_ids),
                secondary_only=len(metrics.secondary_only_ids),
            )
        return metrics
