"""
qtsviz.engine: alignment, sampling and load orchestration.

Layers (imports flow downward only)
- diagnostics: append-only record of conforming events.
- store: TimestampGrid, DirectionSeries, LinkSeries, SeriesStore.
- aligner: SeriesAligner (write-once grid; truncate, pad, substitute).
- sampler: SamplingEngine and its Snapshot types (pure, no I/O).
- orchestrator: LoadOrchestrator (concurrent fetch, deterministic assembly).
- controller: SelectionController (version token, stale result discard).
"""

from .aligner import SeriesAligner
from .controller import SelectionController
from .diagnostics import Diagnostics, Discrepancy
from .orchestrator import LoadOrchestrator
from .sampler import LinkSnapshot, NodeSnapshot, SamplingEngine, Snapshot
from .store import DirectionSeries, LinkSeries, SeriesStore, TimestampGrid

__all__ = [
    "Diagnostics",
    "Discrepancy",
    "TimestampGrid",
    "DirectionSeries",
    "LinkSeries",
    "SeriesStore",
    "SeriesAligner",
    "LinkSnapshot",
    "NodeSnapshot",
    "Snapshot",
    "SamplingEngine",
    "LoadOrchestrator",
    "SelectionController",
]
