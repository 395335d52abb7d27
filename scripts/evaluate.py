"""
Check ranking quality against labelled queries.

Usage: python scripts/evaluate.py [--top-k 10]

Expects settings.eval_queries_path to hold a JSON list of
{"query": "...", "expected": ["<equipment id>", ...]}.
"""

import argparse
import asyncio
import json
from pathlib import Path

from equipment_search.config.settings import settings
from equipment_search.corpus.loader import CorpusLoader
from equipment_search.logger import setup_logging
from equipment_search.ranking.engine import HybridRankingEngine
from equipment_search.services.cross_encoder import create_cross_encoder_provider
from equipment_search.services.embedding import create_embedding_provider


def reciprocal_rank(ranked_ids: list[str], expected: set[str]) -> float:
    for position, eq in enumerate(ranked_ids, 1):
        if eq in expected:
            return 1.0 / position
    return 0.0


async def evaluate(top_k: int):
    cases = json.loads(Path(settings.eval_queries_path).read_text(encoding="utf-8"))
    corpus_path = Path(settings.corpus_path)
    loader = CorpusLoader()
    documents = loader.from_json(corpus_path) if corpus_path.suffix == ".json" else loader.from_csv(corpus_path)

    engine = HybridRankingEngine(
        documents,
        embedding_provider=create_embedding_provider(),
        cross_encoder_provider=create_cross_encoder_provider(),
    )

    print(f"\n{'='*50}")
    print(f" Evaluation: {len(cases)} queries, top-{top_k}")
    print(f"{'='*50}\n")

    hits = 0
    rr_total = 0.0
    for i, case in enumerate(cases, 1):
        expected = set(case["expected"])
        result = await engine.search(case["query"], top_k=top_k)
        ranked_ids = [item.equipment_id for item in result.items]

        rr = reciprocal_rank(ranked_ids, expected)
        hits += rr > 0
        rr_total += rr
        top = ranked_ids[0] if ranked_ids else "-"
        print(f"Query {i}: {case['query'][:60]!r} top={top} rr={rr:.2f}")

    total = len(cases)
    hit_rate = hits / total if total else 0
    mrr = rr_total / total if total else 0
    print(f"\n  hit@{top_k}: {hits}/{total} ({hit_rate:.0%})  MRR: {mrr:.3f}\n")


if __name__ == "__main__":
    setup_logging("WARNING")
    parser = argparse.ArgumentParser()
    parser.add_argument("--top-k", type=int, default=settings.top_k)
    asyncio.run(evaluate(parser.parse_args().top_k))
