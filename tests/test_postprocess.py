import math

import pytest

from conftest import make_item
from equipment_search.domain.models import DomainCategory, DomainClassification
from equipment_search.ranking.postprocess import (
    apply_intent_guard,
    assign_confidence,
    check_confidence_coherence,
    dedup_by_equipment_id,
    find_duplicate_identities,
    is_sorted_by_rank,
    sort_by_rank,
)

CORE_QUERY = DomainClassification(category=DomainCategory.CORE, confidence=0.95)
SUPPORT_QUERY = DomainClassification(category=DomainCategory.SUPPORT, confidence=0.9)


class TestConfidence:
    def test_minmax(self):
        items = [make_item("A", 10), make_item("B", 6), make_item("C", 2)]
        result = assign_confidence(items, method="minmax")
        assert [i.confidence_item for i in result] == pytest.approx([1.0, 0.5, 0.0])

    def test_minmax_all_equal(self):
        items = [make_item("A", 5), make_item("B", 5), make_item("C", 5)]
        result = assign_confidence(items, method="minmax")
        assert [i.confidence_item for i in result] == [1.0, 1.0, 1.0]

    def test_softmax_sums_to_one_and_is_monotonic(self):
        items = [make_item("A", 3.0), make_item("B", 1.0), make_item("C", 0.5)]
        result = assign_confidence(items, method="softmax", temperature=0.5)
        confidences = [i.confidence_item for i in result]
        assert sum(confidences) == pytest.approx(1.0)
        assert confidences == sorted(confidences, reverse=True)

    def test_softmax_large_scores_stay_finite(self):
        items = [make_item("A", 1000.0), make_item("B", 999.0)]
        result = assign_confidence(items, method="softmax")
        assert all(math.isfinite(i.confidence_item) for i in result)
        assert result[0].confidence_item == pytest.approx(1 / (1 + math.exp(-1)))

    def test_softmax_rejects_non_positive_temperature(self):
        with pytest.raises(ValueError):
            assign_confidence([make_item("A", 1.0)], method="softmax", temperature=0)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown confidence method"):
            assign_confidence([make_item("A", 1.0)], method="zscore")

    def test_unsorted_input_is_sorted_first(self):
        items = [make_item("C", 2), make_item("A", 10), make_item("B", 6)]
        result = assign_confidence(items)
        assert [i.equipment_id for i in result] == ["A", "B", "C"]
        assert check_confidence_coherence(result) == []

    def test_empty(self):
        assert assign_confidence([]) == []


class TestDedup:
    def test_keeps_best_score_per_identity(self):
        items = [
            make_item("EQ-A", 0.6, doc_id="a1"),
            make_item("EQ-B", 0.7, doc_id="b1"),
            make_item("EQ-A", 0.8, doc_id="a2"),
        ]
        result = dedup_by_equipment_id(items)
        assert [i.equipment_id for i in result] == ["EQ-A", "EQ-B"]
        assert result[0].doc_id == "a2"
        assert result[0].rank_score == 0.8
        assert find_duplicate_identities(result) == {}

    def test_find_duplicates(self):
        items = [make_item("EQ-A", 0.6), make_item("EQ-A", 0.5), make_item("EQ-B", 0.4)]
        assert find_duplicate_identities(items) == {"EQ-A": 2}


class TestIntentGuard:
    def test_promotes_first_core_item(self):
        items = [
            make_item("mop", 0.9, DomainCategory.SUPPORT),
            make_item("phone", 0.8, DomainCategory.PERIPHERAL),
            make_item("scrubber", 0.7, DomainCategory.CORE),
            make_item("vacuum", 0.6, DomainCategory.CORE),
        ]
        result, applied, reason = apply_intent_guard(items, CORE_QUERY)

        assert applied is True
        assert "scrubber" in reason
        assert [i.equipment_id for i in result] == ["scrubber", "mop", "phone", "vacuum"]
        assert result[0].rank_score == 0.9
        assert is_sorted_by_rank(result)

    def test_not_applied_when_top_is_core(self):
        items = [make_item("scrubber", 0.9, DomainCategory.CORE), make_item("mop", 0.8, DomainCategory.SUPPORT)]
        result, applied, reason = apply_intent_guard(items, CORE_QUERY)
        assert applied is False
        assert reason is None
        assert result == items

    def test_not_applied_for_non_core_query(self):
        items = [make_item("mop", 0.9, DomainCategory.SUPPORT), make_item("scrubber", 0.8, DomainCategory.CORE)]
        _, applied, _ = apply_intent_guard(items, SUPPORT_QUERY)
        assert applied is False

    def test_not_applied_without_core_candidates(self):
        items = [make_item("mop", 0.9, DomainCategory.SUPPORT), make_item("item", 0.8)]
        _, applied, _ = apply_intent_guard(items, CORE_QUERY)
        assert applied is False

    def test_empty(self):
        assert apply_intent_guard([], CORE_QUERY) == ([], False, None)


def test_sort_by_rank_is_stable():
    items = [make_item("A", 0.5), make_item("B", 0.9), make_item("C", 0.5)]
    assert [i.equipment_id for i in sort_by_rank(items)] == ["B", "A", "C"]


def test_confidence_coherence_violation():
    items = [
        make_item("A", 0.9).model_copy(update={"confidence_item": 0.4}),
        make_item("B", 0.8).model_copy(update={"confidence_item": 0.6}),
        make_item("C", 0.7).model_copy(update={"confidence_item": 0.40005}),
    ]
    assert check_confidence_coherence(items) == [1]
