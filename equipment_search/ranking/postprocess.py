"""
Post-processing of a fused candidate list:

1. dedup_by_equipment_id: one item per equipment identity (best score wins)
2. apply_intent_guard: a core-equipment query never opens with an accessory
3. assign_confidence: confidence_item, monotonic with the final order

Confidence is always computed on a list sorted by descending rank score.
"""

import math
from collections import Counter
from typing import Sequence

from equipment_search.domain.models import DomainCategory, DomainClassification
from equipment_search.ranking.models import SearchResultItem

CONFIDENCE_TOLERANCE = 1e-4


def sort_by_rank(items: Sequence[SearchResultItem]) -> list[SearchResultItem]:
    """Descending rank score, stable for ties."""
    return sorted(items, key=lambda item: item.sort_score, reverse=True)


def is_sorted_by_rank(items: Sequence[SearchResultItem]) -> bool:
    return all(
        items[i].sort_score >= items[i + 1].sort_score for i in range(len(items) - 1)
    )


def dedup_by_equipment_id(items: Sequence[SearchResultItem]) -> list[SearchResultItem]:
    """
    Keep the best-scoring item per equipment_id.

    Surviving items stay in the order their identity first appeared.
    """
    best: dict[str, SearchResultItem] = {}
    for item in items:
        current = best.get(item.equipment_id)
        if current is None or item.sort_score > current.sort_score:
            best[item.equipment_id] = item
    return list(best.values())


def _minmax(scores: list[float]) -> list[float]:
    hi, lo = max(scores), min(scores)
    if hi == lo:
        return [1.0] * len(scores)
    return [(s - lo) / (hi - lo) for s in scores]


def _softmax(scores: list[float], temperature: float) -> list[float]:
    if temperature <= 0:
        raise ValueError(f"Softmax temperature must be positive, got {temperature}")
    # Shifting by the max leaves softmax unchanged and keeps exp() finite
    peak = max(scores)
    weights = [math.exp((s - peak) / temperature) for s in scores]
    total = sum(weights)
    if total == 0:
        return [1.0 / len(scores)] * len(scores)
    return [w / total for w in weights]


def assign_confidence(
    items: Sequence[SearchResultItem],
    method: str = "minmax",
    temperature: float = 1.0,
) -> list[SearchResultItem]:
    """Return the items in rank order with confidence_item filled in."""
    if not items:
        return []

    ordered = list(items) if is_sorted_by_rank(items) else sort_by_rank(items)
    scores = [item.sort_score for item in ordered]

    if method == "minmax":
        confidences = _minmax(scores)
    elif method == "softmax":
        confidences = _softmax(scores, temperature)
    else:
        raise ValueError(f"Unknown confidence method: {method}. Use 'minmax' or 'softmax'.")

    return [
        item.model_copy(update={"confidence_item": conf})
        for item, conf in zip(ordered, confidences)
    ]


def apply_intent_guard(
    items: Sequence[SearchResultItem],
    query_domain: DomainClassification,
) -> tuple[list[SearchResultItem], bool, str | None]:
    """
    Promote the best core-equipment item to the top for core-equipment queries.

    The promoted item takes over the former top item's rank score, so the
    list stays sorted; everything else keeps its relative order.
    Returns (items, applied, reason).
    """
    items = list(items)
    if not items or query_domain.category != DomainCategory.CORE:
        return items, False, None

    def is_core(item: SearchResultItem) -> bool:
        return item.domain is not None and item.domain.category == DomainCategory.CORE

    if is_core(items[0]):
        return items, False, None

    position = next((i for i, item in enumerate(items) if is_core(item)), None)
    if position is None:
        return items, False, None

    promoted = items.pop(position).model_copy(update={"rank_score": items[0].sort_score})
    items.insert(0, promoted)
    reason = (
        f"query is core equipment but top result was "
        f"{items[1].domain.category.value if items[1].domain else 'unclassified'}; "
        f"promoted {promoted.equipment_id} from position {position + 1}"
    )
    return items, True, reason


def check_confidence_coherence(items: Sequence[SearchResultItem]) -> list[int]:
    """Positions whose confidence exceeds the previous item's (beyond tolerance)."""
    violations = []
    for i in range(1, len(items)):
        previous = items[i - 1].confidence_item or 0.0
        current = items[i].confidence_item or 0.0
        if current > previous + CONFIDENCE_TOLERANCE:
            violations.append(i)
    return violations


def find_duplicate_identities(items: Sequence[SearchResultItem]) -> dict[str, int]:
    counts = Counter(item.equipment_id for item in items)
    return {eq: n for eq, n in counts.items() if n > 1}
