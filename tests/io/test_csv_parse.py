from __future__ import annotations

import numpy as np
import pytest
from support import direction_csv

from qtsviz.io.errors import MalformedPayloadError
from qtsviz.io.parse import looks_like_markup, parse_direction_csv, parse_scalar_csv


def test_parse_direction_skips_header_and_blank_lines() -> None:
    payload = b"time,throughput,queue\n0,1.5,2\n\n1,2.5,3\n   \n2,3.5,4\n"
    rows = parse_direction_csv(payload)
    assert len(rows) == 3
    np.testing.assert_allclose(rows.timestamps, [0, 1, 2])
    np.testing.assert_allclose(rows.throughput, [1.5, 2.5, 3.5])
    np.testing.assert_allclose(rows.queue, [2, 3, 4])
    assert rows.queue.dtype == np.float64


def test_unparsable_cells_read_as_zero() -> None:
    payload = b"time,throughput,queue\n0,abc,2\n1,,nan\n2, 7 ,x\n"
    rows = parse_direction_csv(payload)
    np.testing.assert_allclose(rows.throughput, [0, 0, 7])
    np.testing.assert_allclose(rows.queue, [2, 0, 0])


def test_infinite_cells_read_as_zero() -> None:
    rows = parse_direction_csv(b"t,tp,q\n0,inf,1\n1,2,-inf\n2,3,4\n")
    np.testing.assert_allclose(rows.throughput, [0, 2, 3])
    np.testing.assert_allclose(rows.queue, [1, 0, 4])
    assert np.isfinite(rows.throughput).all()
    scalars = parse_scalar_csv(b"t,v\ninf,INF\n1,-Infinity\n")
    np.testing.assert_allclose(scalars.timestamps, [0, 1])
    np.testing.assert_allclose(scalars.values, [0, 0])


def test_short_rows_fill_missing_cells_with_zero() -> None:
    rows = parse_direction_csv(b"time,throughput,queue\n0,1,1\n1,2\n")
    np.testing.assert_allclose(rows.queue, [1, 0])


def test_extra_columns_are_ignored() -> None:
    rows = parse_direction_csv(b"t,tp,q,extra\n0,1,2,99\n")
    np.testing.assert_allclose(rows.queue, [2])


def test_bom_and_str_payloads_are_accepted() -> None:
    rows = parse_direction_csv("\ufefftime,throughput,queue\n0,1,2\n")
    assert len(rows) == 1


@pytest.mark.parametrize(
    "payload",
    [
        b"<!DOCTYPE html><html><body>Not Found</body></html>",
        b"\n   <html></html>",
        "\ufeff<?xml version='1.0'?><error/>".encode(),
    ],
)
def test_markup_is_rejected(payload: bytes) -> None:
    assert looks_like_markup(payload)
    with pytest.raises(MalformedPayloadError, match="markup"):
        parse_direction_csv(payload, "x.csv")


def test_header_only_is_rejected() -> None:
    with pytest.raises(MalformedPayloadError, match="missing data rows"):
        parse_direction_csv(b"time,throughput,queue\n\n")


def test_too_few_columns_is_rejected() -> None:
    with pytest.raises(MalformedPayloadError, match="columns"):
        parse_direction_csv(b"time,throughput\n0,1\n")


def test_undecodable_bytes_are_rejected() -> None:
    with pytest.raises(MalformedPayloadError):
        parse_direction_csv(b"\xff\xfe\x00garbage")


def test_error_carries_path() -> None:
    with pytest.raises(MalformedPayloadError) as info:
        parse_scalar_csv(b"", "s/data/p/1/x.csv")
    assert info.value.path == "s/data/p/1/x.csv"


def test_parse_scalar_two_columns() -> None:
    rows = parse_scalar_csv(b"time,value\n0,10\n1,20\n")
    np.testing.assert_allclose(rows.values, [10, 20])


def test_support_builder_round_trips_through_parser() -> None:
    rows = parse_direction_csv(direction_csv([(5, 1, 2), (6, 3, 4)]))
    np.testing.assert_allclose(rows.timestamps, [5, 6])
