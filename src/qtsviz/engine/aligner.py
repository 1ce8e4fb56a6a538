"""
Series Aligner: reconcile independently-fetched series against one baseline grid.

Rules
- establish(): the first series to resolve supplies the raw timestamps; they are shifted
  so the grid starts at 0 and frozen. The grid is write-once.
- conform(): a later series of length L against grid length N is
    * accepted as-is when L == N,
    * truncated to its first N samples when L > N,
    * copied into a zero-filled length-N buffer when L < N.
- substitute(): an unavailable series becomes all zeros of length N when the grid
  exists; without a grid it is fatal (GridUnestablishedError).

Every length mismatch and substitution is reported through Diagnostics, never raised.
"""

from __future__ import annotations

import logging

import numpy as np

from qtsviz.core.grammar import DiscrepancyKind
from qtsviz.io.errors import GridUnestablishedError
from qtsviz.io.parse import DirectionRows, ScalarRows

from .diagnostics import Diagnostics
from .store import DirectionSeries, TimestampGrid

__all__ = ["SeriesAligner"]

logger = logging.getLogger(__name__)


class SeriesAligner:
    """
    Conform series to a single write-once TimestampGrid.

    Args:
        diagnostics (Diagnostics | None): Channel receiving conforming events; a fresh
            collector is created when omitted.
    """

    def __init__(self, diagnostics: Diagnostics | None = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._grid: TimestampGrid | None = None
        self.baseline_source: str | None = None

    @property
    def grid(self) -> TimestampGrid | None:
        return self._grid

    @property
    def established(self) -> bool:
        return self._grid is not None

    @property
    def length(self) -> int:
        if self._grid is None:
            raise GridUnestablishedError("baseline grid has not been established")
        return len(self._grid)

    def establish(self, raw_timestamps: np.ndarray, source: str) -> TimestampGrid:
        """
        Freeze the baseline grid from the first successfully resolved series.

        Raises:
            RuntimeError: If a grid was already established for this aligner.
        """
        if self._grid is not None:
            raise RuntimeError(
                f"baseline grid already established from {self.baseline_source!r}; "
                f"refusing to replace it with {source!r}"
            )
        self._grid = TimestampGrid.from_raw(raw_timestamps)
        self.baseline_source = source
        logger.info(
            "baseline grid established from %s: %d samples, duration %.6g",
            source,
            len(self._grid),
            self._grid.duration,
        )
        return self._grid

    def _conform_many(self, columns: list[np.ndarray], source: str) -> list[np.ndarray]:
        n = self.length
        actual = int(columns[0].shape[0])
        if actual == n:
            return columns
        if actual > n:
            self.diagnostics.report(
                DiscrepancyKind.LENGTH_TRUNCATED, source, expected=n, actual=actual
            )
            return [col[:n] for col in columns]
        self.diagnostics.report(DiscrepancyKind.LENGTH_PADDED, source, expected=n, actual=actual)
        padded: list[np.ndarray] = []
        for col in columns:
            buf = np.zeros(n, dtype=np.float64)
            buf[:actual] = col
            padded.append(buf)
        return padded

    def conform(self, values: np.ndarray, source: str) -> np.ndarray:
        """Conform one numeric series to the grid length (truncate or zero-pad)."""
        return self._conform_many([np.asarray(values, dtype=np.float64)], source)[0]

    def conform_direction(self, rows: DirectionRows, source: str) -> DirectionSeries:
        """Conform a parsed link-direction resource; one report covers both columns."""
        throughput, queue = self._conform_many([rows.throughput, rows.queue], source)
        return DirectionSeries(throughput=throughput, queue=queue)

    def conform_scalar(self, rows: ScalarRows, source: str) -> np.ndarray:
        return self.conform(rows.values, source)

    def accept_baseline(self, rows: DirectionRows, source: str) -> DirectionSeries:
        """Establish the grid from `rows` and return its series unchanged."""
        self.establish(rows.timestamps, source)
        return DirectionSeries(throughput=rows.throughput, queue=rows.queue)

    def substitute(self, source: str, detail: str = "") -> DirectionSeries:
        """
        Replace an unavailable required series with zeros.

        Raises:
            GridUnestablishedError: If no grid exists yet (this series was expected to
                define it).
        """
        if self._grid is None:
            raise GridUnestablishedError(
                f"baseline series unavailable and no grid established: {source}"
                + (f" ({detail})" if detail else "")
            )
        n = len(self._grid)
        self.diagnostics.report(
            DiscrepancyKind.SUBSTITUTED_ZEROS, source, expected=n, actual=None, detail=detail
        )
        return DirectionSeries.zeros(n)
