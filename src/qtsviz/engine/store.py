"""
Series Store: in-memory numeric samples aligned to one shared timestamp grid.

Types
- TimestampGrid: write-once, zero-offset float64 grid shared by every series of a load.
- DirectionSeries: (throughput, queue) for one traversal direction of one link.
- LinkSeries: the owned (forward, reverse) pair of a link; both directions always have
  the same length.
- SeriesStore: grid + link series + optional host scalar series + diagnostics.

Invariants
- Every array is float64 and flagged read-only once it enters the store.
- Every series length equals len(grid) (checked at SeriesStore construction).
- A missing host scalar series means "no override", never "zero".
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np

from qtsviz.core.grammar import HostSeriesKind
from qtsviz.core.typing import HostId

from .diagnostics import Diagnostics

__all__ = [
    "TimestampGrid",
    "DirectionSeries",
    "LinkSeries",
    "SeriesStore",
    "frozen_array",
]

logger = logging.getLogger(__name__)


def frozen_array(values: np.ndarray | list[float], *, copy: bool = True) -> np.ndarray:
    """Return a read-only 1-D float64 array (copied unless copy=False and already float64)."""
    arr = np.array(values, dtype=np.float64, copy=copy) if copy else np.asarray(values, np.float64)
    if arr.ndim != 1:
        raise ValueError(f"series must be 1-D (got shape {arr.shape})")
    arr.flags.writeable = False
    return arr


class TimestampGrid:
    """
    Canonical time axis of one load.

    The grid is expected, but not assumed, to be sorted ascending: duration is the final
    timestamp unless a full scan finds a larger one.
    """

    __slots__ = ("_values", "_duration")

    def __init__(self, values: np.ndarray | list[float]) -> None:
        self._values = frozen_array(values)
        self._duration = self._compute_duration(self._values)

    @classmethod
    def from_raw(cls, raw: np.ndarray | list[float]) -> TimestampGrid:
        """Build a grid from raw timestamps, shifting them so the first entry is 0."""
        arr = np.array(raw, dtype=np.float64, copy=True)
        if arr.size and np.isfinite(arr[0]) and arr[0] != 0.0:
            arr -= arr[0]
        return cls(arr)

    @staticmethod
    def _compute_duration(ts: np.ndarray) -> float:
        if ts.size == 0:
            return 0.0
        last = float(ts[-1])
        peak = float(np.nanmax(ts)) if np.isfinite(ts).any() else 0.0
        if not last >= peak:
            logger.debug("final timestamp %r is not the maximum; duration from scan %r", last, peak)
            last = peak
        return max(0.0, last)

    def __len__(self) -> int:
        return int(self._values.shape[0])

    def __repr__(self) -> str:
        return f"TimestampGrid(n={len(self)}, duration={self._duration!r})"

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def duration(self) -> float:
        return self._duration


@dataclass(frozen=True, slots=True)
class DirectionSeries:
    """Throughput and queue-depth samples for one direction of one link."""

    throughput: np.ndarray
    queue: np.ndarray

    def __post_init__(self) -> None:
        throughput = frozen_array(self.throughput)
        queue = frozen_array(self.queue)
        if throughput.shape != queue.shape:
            raise ValueError(
                f"throughput and queue lengths differ ({throughput.shape[0]} != {queue.shape[0]})"
            )
        object.__setattr__(self, "throughput", throughput)
        object.__setattr__(self, "queue", queue)

    @classmethod
    def zeros(cls, length: int) -> DirectionSeries:
        return cls(throughput=np.zeros(length), queue=np.zeros(length))

    def __len__(self) -> int:
        return int(self.throughput.shape[0])


@dataclass(frozen=True, slots=True)
class LinkSeries:
    """The forward (a -> b) and reverse (b -> a) Direction Series of one link."""

    link_id: str
    forward: DirectionSeries
    reverse: DirectionSeries

    def __post_init__(self) -> None:
        if len(self.forward) != len(self.reverse):
            raise ValueError(
                f"link {self.link_id!r}: forward/reverse lengths differ "
                f"({len(self.forward)} != {len(self.reverse)})"
            )

    def __len__(self) -> int:
        return len(self.forward)


@dataclass(frozen=True)
class SeriesStore:
    """
    Immutable result of one load, handed to the SamplingEngine.

    Attributes:
        grid (TimestampGrid): Shared time axis.
        links (Mapping[str, LinkSeries]): Link id -> series pair.
        host_scalars (Mapping[HostSeriesKind, Mapping[int, np.ndarray]]): Optional
            per-host override series keyed by simulator host id.
        diagnostics (Diagnostics): Conforming events recorded while building the store.

    Raises:
        ValueError: If any series length differs from len(grid).
    """

    grid: TimestampGrid
    links: Mapping[str, LinkSeries] = field(default_factory=dict)
    host_scalars: Mapping[HostSeriesKind, Mapping[HostId, np.ndarray]] = field(
        default_factory=dict
    )
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def __post_init__(self) -> None:
        n = len(self.grid)
        for link_id, series in self.links.items():
            if len(series) != n:
                raise ValueError(f"link {link_id!r} has {len(series)} samples, grid has {n}")
        scalars: dict[HostSeriesKind, Mapping[int, np.ndarray]] = {}
        for kind, per_host in self.host_scalars.items():
            frozen: dict[int, np.ndarray] = {}
            for host_id, values in per_host.items():
                arr = frozen_array(values)
                if arr.shape[0] != n:
                    raise ValueError(
                        f"{kind.value} series for host {host_id} has {arr.shape[0]} samples, "
                        f"grid has {n}"
                    )
                frozen[int(host_id)] = arr
            scalars[kind] = MappingProxyType(frozen)
        object.__setattr__(self, "links", MappingProxyType(dict(self.links)))
        object.__setattr__(self, "host_scalars", MappingProxyType(scalars))

    def host_series(self, kind: HostSeriesKind, host_id: HostId) -> np.ndarray | None:
        return self.host_scalars.get(kind, {}).get(host_id)
