"""
Equipment search runner.

Usage:
    python main.py --query "lavadora de piso 7 cv" --top-k 5    # Ranked results for one query
    python main.py --queries data/queries.txt                    # One query per line, batch mode
    python main.py --query "mop" --shadow 1.0 --debug            # Compare against the lexical engine
    python scripts/evaluate.py                                   # hit@k / MRR on labelled queries
"""

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path

from equipment_search.config.settings import settings
from equipment_search.corpus.loader import CorpusLoader
from equipment_search.corpus.models import CorpusDocument
from equipment_search.errors import SearchError
from equipment_search.logger import get_logger, setup_logging
from equipment_search.ranking.base import RankingEngine
from equipment_search.ranking.engine import HybridRankingEngine
from equipment_search.ranking.models import RankedResult
from equipment_search.resilience.fallback import ResilientEngine
from equipment_search.resilience.shadow import ShadowEngine
from equipment_search.services.cross_encoder import create_cross_encoder_provider
from equipment_search.services.embedding import create_embedding_provider
from equipment_search.services.stub import StubCrossEncoderProvider, StubEmbeddingProvider

setup_logging(settings.log_level, json_logs=settings.log_json)
logger = get_logger("main")


@dataclass
class Dependencies:
    """Engine stack built once per process."""
    hybrid: HybridRankingEngine
    lexical: HybridRankingEngine
    engine: RankingEngine


def load_corpus(path: str | Path) -> list[CorpusDocument]:
    path = Path(path)
    loader = CorpusLoader()
    if path.suffix.lower() == ".json":
        return loader.from_json(path)
    return loader.from_csv(path)


def build_engine(
    documents: list[CorpusDocument],
    shadow_rate: float | None = None,
    debug: bool | None = None,
) -> Dependencies:
    """
    Hybrid engine as primary, a cheap lexical-first engine (stub providers)
    as secondary. Both share the corpus; each builds its own index.
    """
    hybrid = HybridRankingEngine(
        documents,
        embedding_provider=create_embedding_provider(),
        cross_encoder_provider=create_cross_encoder_provider(),
        debug=debug,
    )
    lexical = HybridRankingEngine(
        documents,
        embedding_provider=StubEmbeddingProvider(settings.embedding_dimension),
        cross_encoder_provider=StubCrossEncoderProvider(),
        debug=debug,
        name="lexical",
    )

    engine: RankingEngine = ResilientEngine(primary=hybrid, secondary=lexical)
    if shadow_rate:
        engine = ShadowEngine(primary=engine, secondary=lexical, sample_rate=shadow_rate)
    return Dependencies(hybrid=hybrid, lexical=lexical, engine=engine)


def print_result(result: RankedResult) -> None:
    print(f"\n{'='*70}")
    print(f" Query: {result.query[:100]}")
    print(f" Results: {result.total}")
    if result.debug and result.debug.engine_outcome:
        outcome = result.debug.engine_outcome
        print(
            f" Engine: {outcome.engine_name} ({outcome.engine_used}, "
            f"{outcome.duration_ms}ms, fallback={outcome.fallback_reason or 'no'})"
        )
    print(f"{'='*70}\n")

    for i, item in enumerate(result.items, 1):
        b = item.score_breakdown
        domain = item.domain.category.value if item.domain else "-"
        print(f"  [{i}] {item.equipment_id}  score {item.sort_score:.4f}  conf {item.confidence_item:.2f}  ({domain})")
        print(f"      lexical {b.lexical:.3f} | semantic {b.semantic:.3f} | reranker {b.reranker:.3f} | domain {b.domain:.3f}")
        print(f"      {item.text[:150]}\n")

    if result.debug and result.debug.intent_guard_applied:
        print(f"  Intent guard: {result.debug.intent_guard_reason}\n")


def save_results(results: list[RankedResult], name: str) -> Path:
    output_path = Path(settings.output_dir) / name
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump([r.model_dump(mode="json") for r in results], f, indent=2, ensure_ascii=False)
    logger.info("results_saved", path=str(output_path), count=len(results))
    return output_path


async def run(args: argparse.Namespace) -> list[RankedResult]:
    documents = load_corpus(args.corpus)
    deps = build_engine(documents, shadow_rate=args.shadow, debug=args.debug or None)

    if not deps.engine.is_ready():
        logger.error("engine_not_ready")
        sys.exit(1)

    if args.queries:
        queries = [
            line.strip()
            for line in Path(args.queries).read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        results = await deps.engine.search_batch(queries, top_k=args.top_k)
    else:
        results = [await deps.engine.search(args.query, top_k=args.top_k)]

    for result in results:
        print_result(result)

    if isinstance(deps.engine, ResilientEngine):
        logger.info("fallback_stats", **deps.engine.stats())
    elif isinstance(deps.engine.primary, ResilientEngine):
        logger.info("fallback_stats", **deps.engine.primary.stats())

    save_results(results, "search_results.json")
    return results


# CLI
def main():
    parser = argparse.ArgumentParser(description="Cleaning equipment search")
    parser.add_argument("--query", type=str, default="lavadora de piso industrial")
    parser.add_argument("--queries", type=str, help="file with one query per line")
    parser.add_argument("--top-k", type=int, default=settings.top_k)
    parser.add_argument("--corpus", type=str, default=settings.corpus_path)
    parser.add_argument("--shadow", type=float, default=0.0, help="shadow sample rate (0 disables)")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    try:
        asyncio.run(run(args))
    except (SearchError, FileNotFoundError) as e:
        logger.error("search_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
