from __future__ import annotations

import numpy as np
import pytest

from qtsviz.core.grammar import HostSeriesKind
from qtsviz.engine.store import DirectionSeries, LinkSeries, SeriesStore, TimestampGrid


def test_grid_from_raw_is_zero_offset_and_read_only() -> None:
    grid = TimestampGrid.from_raw([5.0, 6.0, 7.5])
    np.testing.assert_allclose(grid.values, [0.0, 1.0, 2.5])
    assert len(grid) == 3
    assert grid.duration == 2.5
    with pytest.raises(ValueError):
        grid.values[0] = 9.0


def test_grid_already_at_zero_is_unchanged() -> None:
    grid = TimestampGrid.from_raw([0.0, 2.0])
    np.testing.assert_allclose(grid.values, [0.0, 2.0])


def test_grid_duration_scans_unsorted_timestamps() -> None:
    assert TimestampGrid([0.0, 5.0, 3.0]).duration == 5.0
    assert TimestampGrid([0.0, 3.0, 5.0]).duration == 5.0


def test_empty_grid_has_zero_duration() -> None:
    grid = TimestampGrid.from_raw([])
    assert len(grid) == 0
    assert grid.duration == 0.0


def test_direction_series_rejects_mismatched_columns() -> None:
    with pytest.raises(ValueError, match="lengths differ"):
        DirectionSeries(throughput=np.zeros(3), queue=np.zeros(2))


def test_direction_series_copies_and_freezes() -> None:
    raw = np.array([1.0, 2.0])
    series = DirectionSeries(throughput=raw, queue=raw)
    raw[0] = 99.0
    assert series.throughput[0] == 1.0
    assert not series.queue.flags.writeable


def test_link_series_rejects_direction_length_mismatch() -> None:
    with pytest.raises(ValueError, match="forward/reverse"):
        LinkSeries("l", DirectionSeries.zeros(3), DirectionSeries.zeros(4))


def test_store_checks_every_length_against_the_grid() -> None:
    grid = TimestampGrid([0.0, 1.0, 2.0])
    good = LinkSeries("l", DirectionSeries.zeros(3), DirectionSeries.zeros(3))
    bad = LinkSeries("m", DirectionSeries.zeros(2), DirectionSeries.zeros(2))
    SeriesStore(grid=grid, links={"l": good})
    with pytest.raises(ValueError, match="'m'"):
        SeriesStore(grid=grid, links={"l": good, "m": bad})
    with pytest.raises(ValueError, match="host 4"):
        SeriesStore(grid=grid, host_scalars={HostSeriesKind.BUDGET_BYTES: {4: [1.0]}})


def test_store_mappings_are_read_only() -> None:
    grid = TimestampGrid([0.0, 1.0])
    store = SeriesStore(
        grid=grid, host_scalars={HostSeriesKind.CREDIT_BACKLOG: {0: [1.0, 2.0]}}
    )
    np.testing.assert_allclose(store.host_series(HostSeriesKind.CREDIT_BACKLOG, 0), [1, 2])
    assert store.host_series(HostSeriesKind.CREDIT_BACKLOG, 1) is None
    assert store.host_series(HostSeriesKind.BUDGET_BYTES, 0) is None
    with pytest.raises(TypeError):
        store.links["x"] = None  # type: ignore[index]
