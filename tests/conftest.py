"""Shared fixtures: a small cleaning-equipment catalogue and scripted engines."""

import asyncio

import pytest

from equipment_search.corpus.loader import CorpusLoader
from equipment_search.domain.models import DomainCategory, DomainClassification
from equipment_search.ranking.base import RankingEngine
from equipment_search.ranking.engine import HybridRankingEngine
from equipment_search.ranking.models import RankedResult, ScoreBreakdown, SearchResultItem
from equipment_search.services.stub import StubCrossEncoderProvider, StubEmbeddingProvider

CORPUS_RECORDS = [
    {"id": "1", "equipmentId": "EQ-001", "rawText": "Lavadora de Piso Automática 50L bateria"},
    {"id": "2", "equipmentId": "EQ-001", "rawText": "Lavadora de piso automatica 50 litros bateria 24V"},
    {"id": "3", "equipmentId": "EQ-002", "rawText": "Aspirador de Pó e Água Industrial 80L"},
    {"id": "4", "equipmentId": "EQ-003", "rawText": "Extratora de Carpete 30L"},
    {"id": "5", "equipmentId": "EQ-004", "rawText": "Enceradeira Industrial 510mm 1 CV"},
    {"id": "6", "equipmentId": "EQ-005", "rawText": "Hidrojateadora Alta Pressão 2200 PSI"},
    {"id": "7", "equipmentId": "EQ-006", "rawText": "Mop Giratório com Balde Espremedor"},
    {"id": "8", "equipmentId": "EQ-007", "rawText": "Disco para Enceradeira Limpador Verde 510mm"},
    {"id": "9", "equipmentId": "EQ-008", "rawText": "Balde Espremedor 30L com Rodízios"},
    {"id": "10", "equipmentId": "EQ-009", "rawText": "Motor Elétrico Trifásico 7 CV WEG"},
    {"id": "11", "equipmentId": "EQ-010", "rawText": "Escada Alumínio 7 Degraus", "domain": "peripheral"},
    {"id": "12", "equipmentId": "EQ-011", "rawText": "Vassoura Mágica Rodo Mop Spray"},
]


@pytest.fixture
def corpus_records():
    return [dict(r) for r in CORPUS_RECORDS]


@pytest.fixture
def documents(corpus_records):
    return CorpusLoader().from_records(corpus_records)


@pytest.fixture
def stub_embedding():
    return StubEmbeddingProvider(dimension=64)


@pytest.fixture
def stub_cross_encoder():
    return StubCrossEncoderProvider()


@pytest.fixture
def make_engine(documents, stub_embedding, stub_cross_encoder):
    """Factory for a hybrid engine over the sample corpus with stub providers."""

    def _make(**overrides):
        options = {
            "embedding_provider": stub_embedding,
            "cross_encoder_provider": stub_cross_encoder,
            "lexical_top_k": 50,
            "top_k": 10,
            "confidence_method": "minmax",
            "intent_guard": True,
            "debug": True,
            "provider_timeout_s": 1.0,
            "strict_providers": False,
        }
        options.update(overrides)
        docs = options.pop("documents", documents)
        return HybridRankingEngine(docs, **options)

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


def make_item(
    equipment_id: str,
    score: float,
    category: DomainCategory | None = None,
    doc_id: str | None = None,
) -> SearchResultItem:
    return SearchResultItem(
        equipment_id=equipment_id,
        doc_id=doc_id or equipment_id,
        text=equipment_id,
        rank_score=score,
        score_breakdown=ScoreBreakdown(combined=score),
        domain=DomainClassification(category=category, confidence=0.9) if category else None,
    )


def make_result(query: str, items: list[tuple[str, float]]) -> RankedResult:
    result_items = [make_item(eq, score) for eq, score in items]
    return RankedResult(query=query, items=result_items, total=len(result_items))


class ScriptedEngine(RankingEngine):
    """Engine with canned behaviour: fixed items, optional delay or error."""

    def __init__(
        self,
        name: str,
        items: list[tuple[str, float]] | None = None,
        delay_s: float = 0.0,
        error: Exception | None = None,
        ready: bool = True,
    ):
        self.name = name
        self.items = items if items is not None else [("EQ-001", 0.9), ("EQ-002", 0.5)]
        self.delay_s = delay_s
        self.error = error
        self.ready = ready
        self.calls = 0
        self.completed = 0

    def is_ready(self) -> bool:
        return self.ready

    async def search(self, query, top_k=None, plan=None):
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        self.completed += 1
        return make_result(query, self.items)

    async def search_batch(self, queries, top_k=None):
        return [await self.search(q, top_k=top_k) for q in queries]


@pytest.fixture
def scripted_engine():
    return ScriptedEngine
