"""
Score fusion.

combined = 0.25 * lexical + 0.40 * semantic + 0.20 * reranker + 0.15 * domain

Weights are fixed and never renormalized: an unavailable signal contributes
0, so a missing provider shows up in the score instead of being hidden.
Lexical, semantic and reranker are unbounded, so only relative order of
``combined`` is meaningful.
"""

from equipment_search.ranking.models import ScoreBreakdown

WEIGHT_LEXICAL = 0.25
WEIGHT_SEMANTIC = 0.40
WEIGHT_RERANKER = 0.20
WEIGHT_DOMAIN = 0.15


def combine(
    lexical: float | None,
    semantic: float | None,
    reranker: float | None,
    domain: float | None,
) -> ScoreBreakdown:
    lexical = lexical or 0.0
    semantic = semantic or 0.0
    reranker = reranker or 0.0
    domain = domain or 0.0

    combined = (
        WEIGHT_LEXICAL * lexical
        + WEIGHT_SEMANTIC * semantic
        + WEIGHT_RERANKER * reranker
        + WEIGHT_DOMAIN * domain
    )
    return ScoreBreakdown(
        lexical=lexical,
        semantic=semantic,
        reranker=reranker,
        domain=domain,
        combined=combined,
    )
