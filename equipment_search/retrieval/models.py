"""Retrieval domain models."""

from typing import Iterator

from pydantic import BaseModel, Field


class LexicalHit(BaseModel):
    """A document scored by the lexical index."""

    doc_index: int
    doc_id: str
    score: float

    model_config = {"frozen": True}


class QueryVariant(BaseModel):
    text: str
    weight: float = Field(default=1.0, ge=0.0)
    reason: str = ""

    model_config = {"frozen": True}


class QueryPlan(BaseModel):
    """
    Weighted query variants produced by the external query-rewrite step.

    The primary text always participates with weight 1.0.
    """

    primary: str
    variants: list[QueryVariant] = Field(default_factory=list)

    model_config = {"frozen": True}

    @classmethod
    def for_query(cls, text: str) -> "QueryPlan":
        return cls(primary=text)

    def weighted_variants(self) -> Iterator[QueryVariant]:
        yield QueryVariant(text=self.primary, weight=1.0, reason="primary")
        seen = {self.primary}
        for variant in self.variants:
            if variant.text in seen:
                continue
            seen.add(variant.text)
            yield variant


class CandidateSignals(BaseModel):
    """Provider-derived signals for one candidate. None when unavailable."""

    doc_id: str
    semantic: float | None = None
    reranker: float | None = None

    model_config = {"frozen": True}


class RelevanceResponse(BaseModel):
    """LLM relevance scorer output."""

    relevance: float = Field(ge=0.0, le=1.0)
    reason: str = ""
