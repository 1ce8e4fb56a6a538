from __future__ import annotations

import numpy as np
import pytest
from support import FakeSource, direction_csv, required_paths, scalar_csv, uniform_payloads

from qtsviz.core.grammar import DiscrepancyKind, HostSeriesKind
from qtsviz.core.schema import Layout, Selection
from qtsviz.engine.orchestrator import LoadOrchestrator
from qtsviz.engine.sampler import SamplingEngine
from qtsviz.io.config import LoaderSettings
from qtsviz.io.errors import GridUnestablishedError, SourceUnavailableError
from qtsviz.io.manifest import AvailabilityManifest
from qtsviz.io.paths import host_scalar_path

HTML = b"<!DOCTYPE html><html><body>404</body></html>"


def _all_optional_paths(selection: Selection) -> set[str]:
    return {host_scalar_path(selection, kind, h) for kind in HostSeriesKind for h in (0, 1)}


@pytest.mark.asyncio
async def test_run_builds_engine_over_every_link(tiny_layout: Layout, selection: Selection) -> None:
    source = FakeSource(uniform_payloads(selection, tiny_layout, [100.0, 101.0, 102.0, 103.0]))

    engine = await LoadOrchestrator(selection, tiny_layout, source).run()

    assert isinstance(engine, SamplingEngine)
    np.testing.assert_allclose(engine.store.grid.values, [0, 1, 2, 3])
    assert set(engine.store.links) == {"h0-s0", "h1-s0", "s0-s1"}
    # required resources are addressed in program order; optional ones follow
    assert source.requested[:6] == required_paths(selection, tiny_layout)
    assert set(source.requested[6:]) == _all_optional_paths(selection)
    summary = engine.diagnostics.summary()
    assert summary["optional_missing"] == 4
    assert summary["length_padded"] == summary["length_truncated"] == 0
    assert summary["substituted_zeros"] == 0


@pytest.mark.asyncio
async def test_forward_and_reverse_land_on_the_right_endpoints(
    tiny_layout: Layout, selection: Selection
) -> None:
    payloads = uniform_payloads(selection, tiny_layout, [0.0, 1.0])
    forward, reverse = required_paths(selection, tiny_layout)[4:6]  # s0-s1
    payloads[forward] = direction_csv([(0, 1, 5), (1, 1, 5)])
    payloads[reverse] = direction_csv([(0, 2, 9), (1, 2, 9)])

    engine = await LoadOrchestrator(selection, tiny_layout, FakeSource(payloads)).run()
    link = engine.sample(0.5).links["s0-s1"]

    assert (link.a_to_b, link.b_to_a) == (1.0, 2.0)
    assert (link.queue_a, link.queue_b) == (5.0, 9.0)
    assert engine.sample(0.5).nodes["s1"].queue == 9.0


@pytest.mark.asyncio
async def test_baseline_is_first_resolved_series_in_program_order(
    tiny_layout: Layout, selection: Selection
) -> None:
    paths = required_paths(selection, tiny_layout)
    payloads = uniform_payloads(selection, tiny_layout, [0.0, 1.0, 2.0, 3.0, 4.0])
    del payloads[paths[0]]  # first forward series never resolves
    payloads[paths[1]] = direction_csv([(50, 1, 1), (51, 2, 2), (52, 3, 3)])
    # the designated baseline arrives last; arrival order must not matter
    source = FakeSource(payloads, delays={paths[1]: 0.05})

    engine = await LoadOrchestrator(selection, tiny_layout, source).run()
    diagnostics = engine.diagnostics

    np.testing.assert_allclose(engine.store.grid.values, [0, 1, 2])
    (substituted,) = diagnostics.by_kind(DiscrepancyKind.SUBSTITUTED_ZEROS)
    assert substituted.source == paths[0]
    assert substituted.expected == 3
    assert len(diagnostics.by_kind(DiscrepancyKind.LENGTH_TRUNCATED)) == 4
    zeros = engine.store.links["h0-s0"].forward
    assert not zeros.throughput.any() and len(zeros) == 3


@pytest.mark.asyncio
async def test_malformed_required_payloads_are_substituted(
    tiny_layout: Layout, selection: Selection
) -> None:
    paths = required_paths(selection, tiny_layout)
    payloads = uniform_payloads(selection, tiny_layout, [0.0, 1.0])
    payloads[paths[3]] = HTML
    payloads[paths[4]] = SourceUnavailableError(paths[4], 503)

    engine = await LoadOrchestrator(selection, tiny_layout, FakeSource(payloads)).run()

    substituted = {d.source for d in engine.diagnostics.by_kind(DiscrepancyKind.SUBSTITUTED_ZEROS)}
    assert substituted == {paths[3], paths[4]}


@pytest.mark.asyncio
async def test_padding_example_through_the_orchestrator(
    tiny_layout: Layout, selection: Selection
) -> None:
    paths = required_paths(selection, tiny_layout)
    payloads = uniform_payloads(selection, tiny_layout, [float(i) for i in range(10)])
    payloads[paths[2]] = direction_csv((i, 7, 7) for i in range(5))

    engine = await LoadOrchestrator(selection, tiny_layout, FakeSource(payloads)).run()

    tp = engine.store.links["h1-s0"].forward.throughput
    np.testing.assert_allclose(tp[:5], [7] * 5)
    np.testing.assert_array_equal(tp[5:], np.zeros(5))
    (event,) = engine.diagnostics.by_kind(DiscrepancyKind.LENGTH_PADDED)
    assert (event.source, event.expected, event.actual) == (paths[2], 10, 5)


@pytest.mark.asyncio
async def test_fatal_when_no_required_series_resolves(
    tiny_layout: Layout, selection: Selection
) -> None:
    paths = required_paths(selection, tiny_layout)
    payloads: dict[str, bytes | Exception] = {paths[0]: HTML, paths[1]: b"time,throughput,queue\n"}

    with pytest.raises(GridUnestablishedError, match="incast/dctcp/50"):
        await LoadOrchestrator(selection, tiny_layout, FakeSource(payloads)).run()


@pytest.mark.asyncio
async def test_layout_without_links_cannot_establish_a_grid(
    tiny_layout: Layout, selection: Selection
) -> None:
    linkless = Layout(nodes=tiny_layout.nodes)
    payloads: dict[str, bytes | Exception] = {
        host_scalar_path(selection, HostSeriesKind.BUDGET_BYTES, 0): scalar_csv([(0, 1), (1, 2)])
    }

    with pytest.raises(GridUnestablishedError, match="incast/dctcp/50"):
        await LoadOrchestrator(selection, linkless, FakeSource(payloads)).run()


@pytest.mark.asyncio
async def test_manifest_filters_optional_requests(
    tiny_layout: Layout, selection: Selection
) -> None:
    payloads = uniform_payloads(selection, tiny_layout, [0.0, 1.0, 2.0])
    budget_0 = host_scalar_path(selection, HostSeriesKind.BUDGET_BYTES, 0)
    payloads[budget_0] = scalar_csv([(0, 10), (1, 20), (2, 30)])
    manifest = AvailabilityManifest(
        entries={
            "incast": {
                "dctcp": {
                    "50": {
                        HostSeriesKind.BUDGET_BYTES: frozenset({0}),
                        HostSeriesKind.CREDIT_BACKLOG: frozenset(),
                    }
                }
            }
        }
    )
    source = FakeSource(payloads)

    engine = await LoadOrchestrator(selection, tiny_layout, source, manifest=manifest).run()

    optional = [p for p in source.requested if "/cc/" in p]
    assert optional == [budget_0]
    assert len(engine.diagnostics) == 0
    snap = engine.sample(1.5)
    assert snap.nodes["h0"].bucket == pytest.approx(25.0)
    assert snap.nodes["h1"].bucket is None


@pytest.mark.asyncio
async def test_manifest_without_the_selection_requests_every_host(
    tiny_layout: Layout, selection: Selection
) -> None:
    source = FakeSource(uniform_payloads(selection, tiny_layout, [0.0, 1.0]))
    manifest = AvailabilityManifest(entries={"other": {}})

    await LoadOrchestrator(selection, tiny_layout, source, manifest=manifest).run()

    assert {p for p in source.requested if "/cc/" in p} == _all_optional_paths(selection)


@pytest.mark.asyncio
async def test_optional_series_are_conformed_or_omitted(
    tiny_layout: Layout, selection: Selection
) -> None:
    payloads = uniform_payloads(selection, tiny_layout, [0.0, 1.0, 2.0, 3.0])
    credit_0 = host_scalar_path(selection, HostSeriesKind.CREDIT_BACKLOG, 0)
    credit_1 = host_scalar_path(selection, HostSeriesKind.CREDIT_BACKLOG, 1)
    budget_1 = host_scalar_path(selection, HostSeriesKind.BUDGET_BYTES, 1)
    payloads[credit_0] = scalar_csv([(0, 4), (1, 4)])  # short: padded
    payloads[credit_1] = HTML  # malformed: omitted
    payloads[budget_1] = SourceUnavailableError(budget_1, 500)  # failed: omitted

    engine = await LoadOrchestrator(selection, tiny_layout, FakeSource(payloads)).run()

    np.testing.assert_allclose(
        engine.store.host_series(HostSeriesKind.CREDIT_BACKLOG, 0), [4, 4, 0, 0]
    )
    assert engine.store.host_series(HostSeriesKind.CREDIT_BACKLOG, 1) is None
    missing = {d.source for d in engine.diagnostics.by_kind(DiscrepancyKind.OPTIONAL_MISSING)}
    assert {credit_1, budget_1} <= missing
    assert engine.sample(0.0).nodes["h0"].queue_from_scalar is True
    assert engine.sample(0.0).nodes["h1"].queue_from_scalar is False


@pytest.mark.asyncio
async def test_concurrency_is_bounded_by_settings(
    tiny_layout: Layout, selection: Selection
) -> None:
    paths = required_paths(selection, tiny_layout)
    source = FakeSource(
        uniform_payloads(selection, tiny_layout, [0.0, 1.0]),
        delays={p: 0.01 for p in paths},
    )

    await LoadOrchestrator(
        selection, tiny_layout, source, settings=LoaderSettings(max_concurrency=2)
    ).run()

    assert len(source.requested) == 10
    assert source.peak_in_flight == 2


@pytest.mark.asyncio
async def test_orchestrator_is_single_use(tiny_layout: Layout, selection: Selection) -> None:
    orchestrator = LoadOrchestrator(
        selection, tiny_layout, FakeSource(uniform_payloads(selection, tiny_layout, [0.0]))
    )
    await orchestrator.run()
    with pytest.raises(RuntimeError, match="single-use"):
        await orchestrator.run()
