from __future__ import annotations

import asyncio

import pytest
from support import FakeSource, required_paths, uniform_payloads

from qtsviz.core.schema import Layout, Selection
from qtsviz.engine.controller import SelectionController
from qtsviz.engine.orchestrator import LoadOrchestrator
from qtsviz.engine.sampler import SamplingEngine
from qtsviz.io.errors import GridUnestablishedError

SEL_A = Selection(scenario="incast", protocol="dctcp", load="10")
SEL_B = Selection(scenario="incast", protocol="dctcp", load="90")


@pytest.mark.asyncio
async def test_select_commits_engine(tiny_layout: Layout) -> None:
    controller = SelectionController(
        tiny_layout, FakeSource(uniform_payloads(SEL_A, tiny_layout, [0.0, 1.0]))
    )
    assert controller.engine is None

    engine = await controller.select(SEL_A)

    assert isinstance(engine, SamplingEngine)
    assert controller.engine is engine
    assert controller.selection == SEL_A
    assert controller.version == 1
    assert engine.cursor == 0


@pytest.mark.asyncio
async def test_superseded_load_is_discarded(tiny_layout: Layout) -> None:
    payloads = {
        **uniform_payloads(SEL_A, tiny_layout, [0.0, 1.0, 2.0]),
        **uniform_payloads(SEL_B, tiny_layout, [0.0, 1.0]),
    }
    gate = asyncio.Event()
    source = FakeSource(payloads, gates={required_paths(SEL_A, tiny_layout)[0]: gate})
    controller = SelectionController(tiny_layout, source)

    slow = asyncio.create_task(controller.select(SEL_A))
    await asyncio.sleep(0)  # A is now in flight
    engine_b = await controller.select(SEL_B)
    gate.set()

    assert await slow is None
    assert controller.engine is engine_b
    assert controller.selection == SEL_B
    assert controller.version == 2
    assert len(engine_b.store.grid) == 2


@pytest.mark.asyncio
async def test_superseded_failure_is_swallowed(tiny_layout: Layout) -> None:
    gate = asyncio.Event()
    # SEL_A has no data at all; its first fetch is held until B has committed
    source = FakeSource(
        uniform_payloads(SEL_B, tiny_layout, [0.0, 1.0]),
        gates={required_paths(SEL_A, tiny_layout)[0]: gate},
    )
    controller = SelectionController(tiny_layout, source)

    doomed = asyncio.create_task(controller.select(SEL_A))
    await asyncio.sleep(0)
    engine_b = await controller.select(SEL_B)
    gate.set()

    assert await doomed is None
    assert controller.engine is engine_b


@pytest.mark.asyncio
async def test_current_failure_clears_engine_and_raises(tiny_layout: Layout) -> None:
    controller = SelectionController(
        tiny_layout, FakeSource(uniform_payloads(SEL_A, tiny_layout, [0.0, 1.0]))
    )
    await controller.select(SEL_A)

    with pytest.raises(GridUnestablishedError):
        await controller.select(SEL_B)

    assert controller.engine is None
    assert controller.selection == SEL_B


@pytest.mark.asyncio
async def test_committed_engine_starts_from_a_reset_cursor(tiny_layout: Layout) -> None:
    class _PlayedAhead(LoadOrchestrator):
        async def run(self) -> SamplingEngine:
            engine = await super().run()
            engine.sample(engine.duration)
            assert engine.cursor > 0
            return engine

    controller = SelectionController(
        tiny_layout,
        FakeSource(uniform_payloads(SEL_A, tiny_layout, [0.0, 1.0, 2.0])),
        orchestrator_factory=_PlayedAhead,
    )

    engine = await controller.select(SEL_A)

    assert engine is not None
    assert engine.cursor == 0
