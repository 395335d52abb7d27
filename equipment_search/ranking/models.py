"""Ranking domain models."""

from typing import Literal

from pydantic import BaseModel, Field

from equipment_search.domain.models import DomainCategory, DomainClassification


class ScoreBreakdown(BaseModel):
    """Component scores plus the fused value.

    Only ``domain`` is bounded; cosine similarity and learned reranker
    scores may be negative.
    """

    lexical: float = 0.0
    semantic: float = 0.0
    reranker: float = 0.0
    domain: float = Field(default=0.0, ge=0.0, le=1.0)
    combined: float | None = None

    model_config = {"frozen": True}


class SearchResultItem(BaseModel):
    equipment_id: str
    doc_id: str
    text: str = ""
    rank_score: float | None = None
    confidence_item: float | None = None
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    domain: DomainClassification | None = None

    model_config = {"frozen": True}

    @property
    def sort_score(self) -> float:
        """rank_score, falling back to combined then lexical."""
        if self.rank_score is not None:
            return self.rank_score
        if self.score_breakdown.combined is not None:
            return self.score_breakdown.combined
        return self.score_breakdown.lexical


class EngineOutcome(BaseModel):
    """Which engine produced a result set. Audit trail only."""

    engine_used: Literal["primary", "secondary"]
    engine_name: str
    fallback_used: bool
    duration_ms: int
    fallback_reason: Literal["timeout", "error"] | None = None

    model_config = {"frozen": True}


class RankedDebug(BaseModel):
    score_breakdown_per_item: dict[str, ScoreBreakdown] = Field(default_factory=dict)
    engine_outcome: EngineOutcome | None = None
    query_domain: DomainClassification | None = None
    intent_guard_applied: bool = False
    intent_guard_reason: str | None = None
    # stage name -> elapsed ms
    timings: dict[str, int] = Field(default_factory=dict)
    domain_stats: dict[DomainCategory, int] = Field(default_factory=dict)

    model_config = {"frozen": True}


class RankedResult(BaseModel):
    query: str = ""
    items: list[SearchResultItem] = Field(default_factory=list)
    total: int = 0
    debug: RankedDebug | None = None

    model_config = {"frozen": True}

    @classmethod
    def empty(cls, query: str = "") -> "RankedResult":
        return cls(query=query, items=[], total=0)

    def with_outcome(self, outcome: EngineOutcome) -> "RankedResult":
        debug = self.debug or RankedDebug()
        return self.model_copy(
            update={"debug": debug.model_copy(update={"engine_outcome": outcome})}
        )
