"""Shadow comparison models."""

from pydantic import BaseModel, Field


class ScoreDifference(BaseModel):
    id: str
    primary_score: float
    secondary_score: float
    difference: float

    model_config = {"frozen": True}


class ComparisonMetrics(BaseModel):
    """Similarity between two result sets for the same query.

    Rank and score metrics cover only the ids both engines returned.
    """

    jaccard_similarity: float = Field(ge=0.0, le=1.0)
    rank_difference: float = Field(ge=0.0)
    score_mae: float = Field(ge=0.0)
    primary_only_ids: list[str] = Field(default_factory=list)
    secondary_only_ids: list[str] = Field(default_factory=list)
    top_score_differences: list[ScoreDifference] = Field(default_factory=list)

    model_config = {"frozen": True}
