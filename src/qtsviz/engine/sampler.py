"""
Sampling Engine: point-in-time interpolation over a SeriesStore.

The rendering layer calls reset() once per load and sample(t) once per frame. sample()
never performs I/O and only allocates the returned Snapshot (plus a few small
temporaries for the vectorized interpolation).

Performance contract
- A seek cursor remembers the last resolved grid index and query time.
- Monotonic forward playback is amortized O(1) per call: the cursor only moves forward,
  one grid step at a time (two-pointer sweep).
- A rewind (query time earlier than the previous one) resets the cursor to 0 and
  rescans, O(n) in the grid length. Results never depend on the cursor history:
  sampling t after any sequence of calls equals sampling t right after reset().
- The grid is expected non-decreasing. On an unsorted grid results stay deterministic
  but are not a true interpolation.
- Duplicate timestamps: the cursor settles on the last of a run of equal stamps, so a
  query exactly at a duplicated time returns the value stored at its last occurrence
  (grid [0, 1, 1, 2] sampled at 1 yields the third row).

Aggregation
- Forward-direction queue is attributed to link endpoint ``a``, reverse-direction queue
  to endpoint ``b``.
- Switch queue = mean of attributed link queues (0 with no incident links).
- Host queue = interpolated credit_backlog series when present, else the same mean.
- Host bucket = interpolated budget_bytes series when present, else None.
- Every flow, queue and bucket value is clamped to be non-negative.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from qtsviz.core.grammar import HostSeriesKind
from qtsviz.core.schema import Layout
from qtsviz.core.typing import LinkId, NodeId

from .diagnostics import Diagnostics
from .store import SeriesStore

__all__ = [
    "LinkSnapshot",
    "NodeSnapshot",
    "Snapshot",
    "SamplingEngine",
]


@dataclass(frozen=True, slots=True)
class LinkSnapshot:
    """Interpolated flow (a->b, b->a) and queue (at a, at b) values of one link."""

    a_to_b: float
    b_to_a: float
    queue_a: float
    queue_b: float


@dataclass(frozen=True, slots=True)
class NodeSnapshot:
    """
    Aggregated node values.

    Attributes:
        queue (float): Host scalar override or mean of incident link queues.
        bucket (float | None): Host budget_bytes value when that series exists.
        queue_from_scalar (bool): True when queue comes from the credit_backlog series.
    """

    queue: float
    bucket: float | None = None
    queue_from_scalar: bool = False


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Complete interpolated result for one (clamped) query time."""

    t: float
    links: dict[LinkId, LinkSnapshot]
    nodes: dict[NodeId, NodeSnapshot]


class SamplingEngine:
    """
    Interpolate a SeriesStore at arbitrary times.

    Args:
        layout (Layout): Read-only topology; link and node order define snapshot order.
        store (SeriesStore): Fully aligned series; ownership transfers to the engine.

    Notes:
        The engine is the sole mutator of its cursor state. Links present in the layout
        but absent from the store are omitted from snapshots and from node means.
    """

    def __init__(self, layout: Layout, store: SeriesStore) -> None:
        self.layout = layout
        self.store = store
        grid = store.grid
        self._n = len(grid)
        self._ts: list[float] = grid.values.tolist()
        self.duration: float = grid.duration

        node_pos = {node.id: i for i, node in enumerate(layout.nodes)}
        self._node_ids = [node.id for node in layout.nodes]

        self._link_ids: list[str] = []
        a_idx: list[int] = []
        b_idx: list[int] = []
        columns: list[tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]] = []
        for link in layout.links:
            series = store.links.get(link.id)
            if series is None:
                continue
            self._link_ids.append(link.id)
            a_idx.append(node_pos[link.a])
            b_idx.append(node_pos[link.b])
            columns.append(
                (
                    series.forward.throughput,
                    series.reverse.throughput,
                    series.forward.queue,
                    series.reverse.queue,
                )
            )

        # rows[i] is the (4, links) block for grid index i: contiguous per time step.
        n_links = len(self._link_ids)
        self._rows = np.zeros((self._n, 4, n_links), dtype=np.float64)
        for j, cols in enumerate(columns):
            for m, values in enumerate(cols):
                self._rows[:, m, j] = values
        self._rows.flags.writeable = False

        n_nodes = len(self._node_ids)
        self._a_idx = np.asarray(a_idx, dtype=np.intp)
        self._b_idx = np.asarray(b_idx, dtype=np.intp)
        self._counts = np.bincount(self._a_idx, minlength=n_nodes) + np.bincount(
            self._b_idx, minlength=n_nodes
        )

        # node position -> (credit_backlog series, budget_bytes series)
        self._host_series: dict[int, tuple[np.ndarray | None, np.ndarray | None]] = {}
        for pos, node in enumerate(layout.nodes):
            if not node.is_host:
                continue
            queue = store.host_series(HostSeriesKind.CREDIT_BACKLOG, node.metrics_id)
            budget = store.host_series(HostSeriesKind.BUDGET_BYTES, node.metrics_id)
            if queue is not None or budget is not None:
                self._host_series[pos] = (queue, budget)

        self._cursor = 0
        self._cursor_time = 0.0

    def __repr__(self) -> str:
        return (
            f"SamplingEngine(samples={self._n}, links={len(self._link_ids)}, "
            f"duration={self.duration!r})"
        )

    @property
    def diagnostics(self) -> Diagnostics:
        return self.store.diagnostics

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self) -> None:
        """Return the seek cursor to its initial state."""
        self._cursor = 0
        self._cursor_time = 0.0

    def _clamp(self, t: float) -> float:
        if not t > 0.0:  # also maps NaN to 0
            return 0.0
        return min(t, self.duration)

    def _locate(self, clamped: float) -> int:
        if clamped < self._cursor_time:
            self._cursor = 0
        ts = self._ts
        last = self._n - 1
        c = self._cursor
        while c < last and ts[c + 1] <= clamped:
            c += 1
        self._cursor = c
        self._cursor_time = clamped
        return c

    def sample(self, t: float) -> Snapshot:
        """
        Interpolate every link and node at time t.

        Args:
            t (float): Query time in grid units; clamped to [0, duration], so times past
                the end hold the final values.

        Returns:
            Snapshot: Empty (no links, no nodes, t=0) when the grid has no samples.
        """
        if self._n == 0:
            return Snapshot(t=0.0, links={}, nodes={})

        clamped = self._clamp(float(t))
        idx = self._locate(clamped)
        nxt = min(idx + 1, self._n - 1)
        t0 = self._ts[idx]
        t1 = self._ts[nxt]
        frac = (clamped - t0) / (t1 - t0) if t1 > t0 else 0.0
        frac = min(1.0, max(0.0, frac))

        r0 = self._rows[idx]
        vals = r0 + (self._rows[nxt] - r0) * frac
        np.maximum(vals, 0.0, out=vals)

        links = {
            link_id: LinkSnapshot(a_to_b=fwd, b_to_a=rev, queue_a=qa, queue_b=qb)
            for link_id, fwd, rev, qa, qb in zip(self._link_ids, *vals.tolist())
        }

        n_nodes = len(self._node_ids)
        sums = np.bincount(self._a_idx, weights=vals[2], minlength=n_nodes) + np.bincount(
            self._b_idx, weights=vals[3], minlength=n_nodes
        )
        means = np.divide(
            sums, self._counts, out=np.zeros(n_nodes, dtype=np.float64), where=self._counts > 0
        ).tolist()

        nodes: dict[str, NodeSnapshot] = {}
        for pos, node_id in enumerate(self._node_ids):
            override = self._host_series.get(pos)
            if override is None:
                nodes[node_id] = NodeSnapshot(queue=max(0.0, means[pos]))
                continue
            queue_series, budget_series = override
            if queue_series is not None:
                queue = _interpolate(queue_series, idx, nxt, frac)
            else:
                queue = means[pos]
            bucket = (
                max(0.0, _interpolate(budget_series, idx, nxt, frac))
                if budget_series is not None
                else None
            )
            nodes[node_id] = NodeSnapshot(
                queue=max(0.0, queue),
                bucket=bucket,
                queue_from_scalar=queue_series is not None,
            )

        return Snapshot(t=clamped, links=links, nodes=nodes)


def _interpolate(series: np.ndarray, idx: int, nxt: int, frac: float) -> float:
    v0 = float(series[idx])
    v1 = float(series[nxt])
    value = v0 + (v1 - v0) * frac
    return value if not math.isnan(value) else 0.0
