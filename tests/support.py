from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from qtsviz.core.grammar import MetricsNodeKind, NodeType
from qtsviz.core.schema import Layout, LinkDef, LinkMetrics, NodeDef, Selection
from qtsviz.io.errors import SourceUnavailableError
from qtsviz.io.paths import link_direction_paths


class FakeSource:
    """
    In-memory SeriesSource: path -> bytes or exception; unknown paths are 404.

    gates hold a fetch until the event is set; delays sleep before answering. Every
    fetch yields to the loop at least once, so a batch really interleaves.
    """

    def __init__(
        self,
        payloads: dict[str, bytes | Exception] | None = None,
        *,
        gates: dict[str, asyncio.Event] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.payloads = dict(payloads or {})
        self.gates = dict(gates or {})
        self.delays = dict(delays or {})
        self.requested: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def fetch(self, path: str) -> bytes:
        self.requested.append(path)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            gate = self.gates.get(path)
            if gate is not None:
                await gate.wait()
            await asyncio.sleep(self.delays.get(path, 0))
        finally:
            self.in_flight -= 1
        item = self.payloads.get(path)
        if item is None:
            raise SourceUnavailableError(path, 404)
        if isinstance(item, Exception):
            raise item
        return item


def direction_csv(rows: Iterable[Sequence[float]]) -> bytes:
    """CSV body with a header and (time, throughput, queue) rows."""
    lines = ["time,throughput,queue"]
    lines.extend(",".join(str(v) for v in row) for row in rows)
    return ("\n".join(lines) + "\n").encode("utf-8")


def scalar_csv(rows: Iterable[Sequence[float]]) -> bytes:
    lines = ["time,value"]
    lines.extend(",".join(str(v) for v in row) for row in rows)
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_tiny_layout() -> Layout:
    """host h0 -- tor s0 -- spine s1; plus host h1 -- tor s0."""
    h0 = NodeDef(id="h0", type=NodeType.HOST, metrics_id=0,
                 metrics_kind=MetricsNodeKind.HOST, x=0.2, y=0.9)
    h1 = NodeDef(id="h1", type=NodeType.HOST, metrics_id=1,
                 metrics_kind=MetricsNodeKind.HOST, x=0.8, y=0.9)
    s0 = NodeDef(id="s0", type=NodeType.SWITCH, metrics_id=0,
                 metrics_kind=MetricsNodeKind.TOR, x=0.5, y=0.5)
    s1 = NodeDef(id="s1", type=NodeType.SWITCH, metrics_id=0,
                 metrics_kind=MetricsNodeKind.AGGR, x=0.5, y=0.1)

    def link(a: NodeDef, b: NodeDef) -> LinkDef:
        return LinkDef(
            id=f"{a.id}-{b.id}",
            a=a.id,
            b=b.id,
            metrics=LinkMetrics(
                from_kind=a.metrics_kind, from_id=a.metrics_id,
                to_kind=b.metrics_kind, to_id=b.metrics_id,
            ),
        )

    return Layout(nodes=(h0, h1, s0, s1), links=(link(h0, s0), link(h1, s0), link(s0, s1)))




def required_paths(selection: Selection, layout: Layout) -> list[str]:
    """Link-direction paths in program order (layout links; forward, then reverse)."""
    out: list[str] = []
    for link in layout.links:
        out.extend(link_direction_paths(selection, link))
    return out


def uniform_payloads(
    selection: Selection, layout: Layout, timestamps: Sequence[float]
) -> dict[str, bytes | Exception]:
    """Every required resource with the same grid; values derived from the position."""
    payloads: dict[str, bytes | Exception] = {}
    for k, path in enumerate(required_paths(selection, layout)):
        payloads[path] = direction_csv(
            (t, 10.0 * (k + 1) + i, float(k + i)) for i, t in enumerate(timestamps)
        )
    return payloads
