"""Ranking engine interface shared by the hybrid engine and its decorators."""

import abc
from typing import Sequence

from equipment_search.ranking.models import RankedResult
from equipment_search.retrieval.models import QueryPlan


class RankingEngine(abc.ABC):
    name: str = "engine"

    @abc.abstractmethod
    def is_ready(self) -> bool: ...

    @abc.abstractmethod
    async def search(
        self,
        query: str,
        top_k: int | None = None,
        plan: QueryPlan | None = None,
    ) -> RankedResult: ...

    @abc.abstractmethod
    async def search_batch(
        self, queries: Sequence[str], top_k: int | None = None
    ) -> list[RankedResult]: ...
