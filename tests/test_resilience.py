import time

import pytest

from conftest import ScriptedEngine
from equipment_search.errors import EngineTimeout
from equipment_search.resilience.fallback import ResilientEngine


@pytest.mark.asyncio
async def test_primary_success():
    primary = ScriptedEngine("primary", items=[("EQ-001", 0.9)])
    secondary = ScriptedEngine("secondary", items=[("EQ-999", 0.1)])
    engine = ResilientEngine(primary, secondary, timeout_ms=1000, fallback_enabled=True)

    result = await engine.search("mop")

    outcome = result.debug.engine_outcome
    assert outcome.engine_used == "primary"
    assert outcome.engine_name == "primary"
    assert outcome.fallback_used is False
    assert outcome.fallback_reason is None
    assert [i.equipment_id for i in result.items] == ["EQ-001"]
    assert secondary.calls == 0
    assert engine.stats() == {"fallback_count": 0, "timeout_count": 0, "error_count": 0}


@pytest.mark.asyncio
async def test_fallback_on_error():
    primary = ScriptedEngine("primary", error=RuntimeError("index corrupted"))
    secondary = ScriptedEngine("secondary", items=[("EQ-999", 0.1)])
    engine = ResilientEngine(primary, secondary, timeout_ms=1000, fallback_enabled=True)

    result = await engine.search("mop")

    outcome = result.debug.engine_outcome
    assert outcome.engine_used == "secondary"
    assert outcome.fallback_used is True
    assert outcome.fallback_reason == "error"
    assert [i.equipment_id for i in result.items] == ["EQ-999"]
    assert engine.error_count == 1
    assert engine.fallback_count == 1
    assert engine.timeout_count == 0


@pytest.mark.asyncio
async def test_fallback_on_timeout():
    primary = ScriptedEngine("primary", delay_s=5.0)
    secondary = ScriptedEngine("secondary", items=[("EQ-999", 0.1)])
    engine = ResilientEngine(primary, secondary, timeout_ms=100, fallback_enabled=True)

    start = time.perf_counter()
    result = await engine.search("mop")
    elapsed = time.perf_counter() - start

    assert result.debug.engine_outcome.fallback_reason == "timeout"
    assert engine.timeout_count == 1
    assert engine.error_count == 0
    assert elapsed < 2.0
    # The abandoned primary call was cancelled, not left running
    assert primary.completed == 0


@pytest.mark.asyncio
async def test_fallback_disabled_propagates_original_error():
    error = RuntimeError("index corrupted")
    engine = ResilientEngine(
        ScriptedEngine("primary", error=error),
        ScriptedEngine("secondary"),
        timeout_ms=1000,
        fallback_enabled=False,
    )
    with pytest.raises(RuntimeError) as exc_info:
        await engine.search("mop")
    assert exc_info.value is error
    assert engine.error_count == 1


@pytest.mark.asyncio
async def test_fallback_disabled_raises_engine_timeout():
    engine = ResilientEngine(
        ScriptedEngine("primary", delay_s=5.0),
        ScriptedEngine("secondary"),
        timeout_ms=50,
        fallback_enabled=False,
    )
    with pytest.raises(EngineTimeout):
        await engine.search("mop")


@pytest.mark.asyncio
async def test_secondary_failure_propagates():
    engine = ResilientEngine(
        ScriptedEngine("primary", error=RuntimeError("primary down")),
        ScriptedEngine("secondary", error=ValueError("secondary down")),
        timeout_ms=1000,
        fallback_enabled=True,
    )
    with pytest.raises(ValueError, match="secondary down"):
        await engine.search("mop")


@pytest.mark.asyncio
async def test_reset_stats():
    engine = ResilientEngine(
        ScriptedEngine("primary", error=RuntimeError("boom")),
        ScriptedEngine("secondary"),
        timeout_ms=1000,
        fallback_enabled=True,
    )
    await engine.search("a")
    await engine.search("b")
    assert engine.stats()["fallback_count"] == 2

    engine.reset_stats()
    assert engine.stats() == {"fallback_count": 0, "timeout_count": 0, "error_count": 0}


def test_is_ready_follows_primary():
    assert ResilientEngine(ScriptedEngine("p"), ScriptedEngine("s", ready=False)).is_ready() is True
    assert ResilientEngine(ScriptedEngine("p", ready=False), ScriptedEngine("s")).is_ready() is False


class TestBatch:
    @pytest.mark.asyncio
    async def test_deadline_scales_with_batch_size(self):
        # 3 x 60ms exceeds a single 100ms deadline but fits in 3 x 100ms
        primary = ScriptedEngine("primary", delay_s=0.06)
        engine = ResilientEngine(primary, ScriptedEngine("secondary"), timeout_ms=100)

        results = await engine.search_batch(["a", "b", "c"])

        assert len(results) == 3
        assert all(r.debug.engine_outcome.engine_used == "primary" for r in results)

    @pytest.mark.asyncio
    async def test_batch_timeout_falls_back(self):
        primary = ScriptedEngine("primary", delay_s=0.5)
        secondary = ScriptedEngine("secondary", items=[("EQ-999", 0.1)])
        engine = ResilientEngine(primary, secondary, timeout_ms=100, fallback_enabled=True)

        results = await engine.search_batch(["a", "b"])

        assert [r.query for r in results] == ["a", "b"]
        assert all(r.debug.engine_outcome.fallback_reason == "timeout" for r in results)
        assert engine.timeout_count == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        engine = ResilientEngine(ScriptedEngine("p"), ScriptedEngine("s"), timeout_ms=100)
        assert await engine.search_batch([]) == []


@pytest.mark.asyncio
async def test_wraps_hybrid_engine(engine):
    resilient = ResilientEngine(engine, ScriptedEngine("secondary"), timeout_ms=5000)
    result = await resilient.search("lavadora de piso")

    assert result.debug.engine_outcome.engine_name == "hybrid"
    assert result.debug.engine_outcome.engine_used == "primary"
    # Engine debug info survives the outcome being attached
    assert result.debug.query_domain is not None
