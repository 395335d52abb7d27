"""
Primary/secondary engine wrapper.

The primary runs under a deadline. On timeout or error the secondary answers
instead (when fallback is enabled) and the result is tagged with an
EngineOutcome so callers can tell which engine produced it.

asyncio.wait_for cancels the primary task when the deadline passes, so an
abandoned request stops at its next await point. Work already handed to a
worker thread (lexical scoring) runs to completion and its result is
dropped.
"""

import asyncio
import time
from typing import Awaitable, Sequence, TypeVar

from equipment_search.config.settings import settings
from equipment_search.errors import EngineFailure, EngineTimeout
from equipment_search.logger import get_logger
from equipment_search.ranking.base import RankingEngine
from equipment_search.ranking.models import EngineOutcome, RankedResult
from equipment_search.retrieval.models import QueryPlan

logger = get_logger(__name__)

T = TypeVar("T")


class ResilientEngine(RankingEngine):
    name = "resilient"

    def __init__(
        self,
        primary: RankingEngine,
        secondary: RankingEngine,
        timeout_ms: float | None = None,
        fallback_enabled: bool | None = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.timeout_ms = timeout_ms or settings.engine_timeout_ms
        self.fallback_enabled = (
            settings.fallback_enabled if fallback_enabled is None else fallback_enabled
        )
        self.fallback_count = 0
        self.timeout_count = 0
        self.error_count = 0

    def is_ready(self) -> bool:
        primary_ready = self.primary.is_ready()
        if not primary_ready:
            logger.warning("primary_not_ready", engine=self.primary.name)
        if not self.secondary.is_ready():
            logger.warning("secondary_not_ready", engine=self.secondary.name)
        return primary_ready

    def stats(self) -> dict[str, int]:
        return {
            "fallback_count": self.fallback_count,
            "timeout_count": self.timeout_count,
            "error_count": self.error_count,
        }

    def reset_stats(self) -> None:
        self.fallback_count = 0
        self.timeout_count = 0
        self.error_count = 0

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        plan: QueryPlan | None = None,
    ) -> RankedResult:
        start = time.perf_counter()
        try:
            result = await self._run_primary(
                self.primary.search(query, top_k=top_k, plan=plan), self.timeout_ms
            )
        except (EngineTimeout, EngineFailure) as e:
            reason = self._record_failure(e, query=query[:50], start=start)

            secondary_start = time.perf_counter()
            try:
                result = await self.secondary.search(query, top_k=top_k, plan=plan)
            except Exception as secondary_error:
                logger.error(
                    "both_engines_failed",
                    query=query[:50],
                    primary_error=str(e),
                    secondary_error=str(secondary_error),
                )
                raise

            duration_ms = _elapsed_ms(secondary_start)
            logger.info(
                "fallback_success",
                engine=self.secondary.name,
                query=query[:50],
                duration_ms=duration_ms,
                total_duration_ms=_elapsed_ms(start),
                results=result.total,
            )
            return result.with_outcome(self._outcome("secondary", duration_ms, reason))

        duration_ms = _elapsed_ms(start)
        logger.info(
            "primary_success",
            engine=self.primary.name,
            query=query[:50],
            duration_ms=duration_ms,
            results=result.total,
        )
        return result.with_outcome(self._outcome("primary", duration_ms))

    async def search_batch(
        self, queries: Sequence[str], top_k: int | None = None
    ) -> list[RankedResult]:
        if not queries:
            return []

        count = len(queries)
        start = time.perf_counter()
        try:
            results = await self._run_primary(
                self.primary.search_batch(queries, top_k=top_k), self.timeout_ms * count
            )
        except (EngineTimeout, EngineFailure) as e:
            reason = self._record_failure(e, queries=count, start=start)

            secondary_start = time.perf_counter()
            results = await self.secondary.search_batch(queries, top_k=top_k)
            duration_ms = _elapsed_ms(secondary_start)
            logger.info("batch_fallback_success", queries=count, duration_ms=duration_ms)
            outcome = self._outcome("secondary", duration_ms // count, reason)
            return [r.with_outcome(outcome) for r in results]

        duration_ms = _elapsed_ms(start)
        logger.info("batch_primary_success", queries=count, duration_ms=duration_ms)
        outcome = self._outcome("primary", duration_ms // count)
        return [r.with_outcome(outcome) for r in results]

    async def _run_primary(self, call: Awaitable[T], timeout_ms: float) -> T:
        try:
            return await asyncio.wait_for(call, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise EngineTimeout(timeout_ms) from e
        except Exception as e:
            raise EngineFailure(str(e) or type(e).__name__) from e

    def _record_failure(self, error: Exception, start: float, **context) -> str:
        """Count and log a primary failure; re-raise when fallback is off.

        Returns the fallback reason ("timeout" or "error").
        """
        is_timeout = isinstance(error, EngineTimeout)
        self.fallback_count += 1
        if is_timeout:
            self.timeout_count += 1
        else:
            self.error_count += 1

        logger.warning(
            "primary_failed",
            engine=self.primary.name,
            error=str(error),
            is_timeout=is_timeout,
            duration_ms=_elapsed_ms(start),
            fallback_enabled=self.fallback_enabled,
            **context,
            **self.stats(),
        )

        if not self.fallback_enabled:
            # Timeouts surface as EngineTimeout, errors as whatever the primary raised
            if is_timeout:
                raise error
            raise error.__cause__ from None

        return "timeout" if is_timeout else "error"

    def _outcome(
        self, engine_used: str, duration_ms: int, reason: str | None = None
    ) -> EngineOutcome:
        engine = self.primary if engine_used == "primary" else self.secondary
        return EngineOutcome(
            engine_used=engine_used,
            engine_name=engine.name,
            fallback_used=engine_used == "secondary",
            duration_ms=duration_ms,
            fallback_reason=reason,
        )


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)
