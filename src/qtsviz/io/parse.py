"""
Raw CSV payload -> numeric column parsing for series resources.

Overview
- parse_direction_csv(): (timestamp, throughput, queue_depth) rows of one link direction.
- parse_scalar_csv(): (timestamp, value) rows of one host scalar series.

Semantics
- The first non-blank line is a header and is skipped; blank lines are ignored.
- Only the leading columns are read positionally; header names are not interpreted.
- Cells that do not parse as finite numbers (text, NaN, inf) read as 0.0.
- Payloads that look like markup (HTML error or redirect pages), cannot be decoded,
  contain no data rows, or have too few columns raise MalformedPayloadError, which
  callers treat exactly like a failed fetch.

Import DAG discipline
- Depends on stdlib, numpy, polars, and qtsviz.io.errors only.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

import numpy as np
import polars as pl

from .errors import MalformedPayloadError

__all__ = [
    "DirectionRows",
    "ScalarRows",
    "looks_like_markup",
    "parse_direction_csv",
    "parse_scalar_csv",
]

_BOM = "\ufeff"


@dataclass(frozen=True, slots=True)
class DirectionRows:
    """Parsed columns of one link-direction resource (equal lengths, float64)."""

    timestamps: np.ndarray
    throughput: np.ndarray
    queue: np.ndarray

    def __len__(self) -> int:
        return int(self.throughput.shape[0])


@dataclass(frozen=True, slots=True)
class ScalarRows:
    """Parsed columns of one host scalar resource (equal lengths, float64)."""

    timestamps: np.ndarray
    values: np.ndarray

    def __len__(self) -> int:
        return int(self.values.shape[0])


def _decode(payload: bytes | str, path: str | None) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPayloadError("payload is not utf-8 text", path) from exc


def looks_like_markup(payload: bytes | str) -> bool:
    """
    Check whether a payload looks like a markup document rather than CSV.

    Static hosts commonly answer a missing file with a 200 and an HTML page; those must
    not be mistaken for data.

    Examples:
        >>> looks_like_markup(b"  <!DOCTYPE html><html></html>")
        True
        >>> looks_like_markup("time,throughput,queue\\n0,1,2\\n")
        False
    """
    if isinstance(payload, bytes):
        head = payload[:512].decode("utf-8", errors="ignore")
    else:
        head = payload[:512]
    return head.lstrip(_BOM + " \t\r\n").startswith("<")


def _finite_or_zero(src: str, name: str) -> pl.Expr:
    value = pl.col(src).str.strip_chars().cast(pl.Float64, strict=False)
    # is_finite is null for null cells, so those fall through to 0.0 as well
    return pl.when(value.is_finite()).then(value).otherwise(0.0).alias(name)


def _read_columns(
    payload: bytes | str, names: tuple[str, ...], path: str | None
) -> dict[str, np.ndarray]:
    text = _decode(payload, path)
    if looks_like_markup(text):
        raise MalformedPayloadError("markup document instead of CSV", path)
    lines = [line for line in text.lstrip(_BOM).splitlines() if line.strip()]
    if len(lines) <= 1:
        raise MalformedPayloadError("CSV missing data rows", path)

    try:
        df = pl.read_csv(
            io.BytesIO("\n".join(lines).encode("utf-8")),
            has_header=True,
            infer_schema_length=0,
            truncate_ragged_lines=True,
        )
    except pl.exceptions.PolarsError as exc:
        raise MalformedPayloadError(f"CSV could not be read: {exc}", path) from exc

    if df.width < len(names):
        raise MalformedPayloadError(
            f"expected at least {len(names)} columns, found {df.width}", path
        )

    numeric = df.select(
        [_finite_or_zero(src, name) for src, name in zip(df.columns[: len(names)], names)]
    )
    return {name: numeric[name].to_numpy().astype(np.float64, copy=False) for name in names}


def parse_direction_csv(payload: bytes | str, path: str | None = None) -> DirectionRows:
    """
    Parse a link-direction resource.

    Args:
        payload (bytes | str): Raw resource body.
        path (str | None): Resource path, used in error messages only.

    Returns:
        DirectionRows: timestamps, throughput and queue columns.

    Raises:
        MalformedPayloadError: Markup, undecodable, header-only, or fewer than 3 columns.
    """
    cols = _read_columns(payload, ("timestamp", "throughput", "queue"), path)
    return DirectionRows(
        timestamps=cols["timestamp"], throughput=cols["throughput"], queue=cols["queue"]
    )


def parse_scalar_csv(payload: bytes | str, path: str | None = None) -> ScalarRows:
    """
    Parse a host scalar resource.

    Raises:
        MalformedPayloadError: Markup, undecodable, header-only, or fewer than 2 columns.
    """
    cols = _read_columns(payload, ("timestamp", "value"), path)
    return ScalarRows(timestamps=cols["timestamp"], values=cols["value"])
