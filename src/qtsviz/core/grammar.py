"""
Canonical qtsviz grammar and helpers.

Defines node types, metric node kinds, host scalar series kinds, and the discrepancy
kinds reported while aligning series. Includes zero-IO normalization helpers used by
the schema models and the CLI.

Design principles
-----------------
1) One naming standard:
   - Enum classes: PascalCase
   - Enum member names: UPPER_SNAKE (Python constants)
   - Enum serialized values (file paths, JSON manifests): lower_snake

2) Rendering vs. metrics:
   - NodeType is the rendering role of a node (host or switch) and drives node
     aggregation in the sampling engine.
   - MetricsNodeKind is the naming used by the simulator in resource paths
     (qts_<kind>_<id>_<kind>_<id>.csv); a switch is either a "tor" or an "aggr".

Examples
--------
>>> from qtsviz.core.grammar import host_series_kind_from_value, HostSeriesKind
>>> host_series_kind_from_value("Credit_Backlog") == HostSeriesKind.CREDIT_BACKLOG
True
"""

from __future__ import annotations

import re
from enum import Enum
from typing import TypeVar

from .errors import GrammarError

__all__ = [
    "NodeType",
    "MetricsNodeKind",
    "HostSeriesKind",
    "DiscrepancyKind",
    "is_lower_snake",
    "node_type_from_value",
    "metrics_kind_from_value",
    "host_series_kind_from_value",
]

_LOWER_SNAKE_RE = re.compile(r"^[a-z][a-z0-9_]*$")

E = TypeVar("E", bound=Enum)


class NodeType(Enum):
    """Rendering role of a topology node."""

    HOST = "host"
    SWITCH = "switch"


class MetricsNodeKind(Enum):
    """
    Node kind as spelled in simulator output paths.

    Notes:
      Resource mapping:
        * host -> end hosts (servers)
        * tor  -> top-of-rack switches
        * aggr -> spine / aggregation switches
    """

    HOST = "host"
    TOR = "tor"
    AGGR = "aggr"


class HostSeriesKind(Enum):
    """
    Optional per-host scalar series.

    Notes:
      - budget_bytes feeds NodeSnapshot.bucket.
      - credit_backlog overrides the link-derived host queue value.
    """

    BUDGET_BYTES = "budget_bytes"
    CREDIT_BACKLOG = "credit_backlog"


class DiscrepancyKind(Enum):
    """Conforming events reported by the aligner and orchestrator."""

    LENGTH_TRUNCATED = "length_truncated"
    LENGTH_PADDED = "length_padded"
    SUBSTITUTED_ZEROS = "substituted_zeros"
    OPTIONAL_MISSING = "optional_missing"


def is_lower_snake(value: str) -> bool:
    """
    Check whether a string is lower_snake.

    Examples:
      >>> is_lower_snake("budget_bytes")
      True
      >>> is_lower_snake("BudgetBytes")
      False
    """
    return bool(_LOWER_SNAKE_RE.match(value or ""))


def _enum_from_value(enum_cls: type[E], value: str | E, what: str) -> E:
    if isinstance(value, enum_cls):
        return value
    token = str(value or "").strip().lower()
    if not is_lower_snake(token):
        raise GrammarError(f"{what} must be lower_snake (got {value!r})")
    try:
        return enum_cls(token)
    except ValueError:
        allowed = sorted(m.value for m in enum_cls)
        raise GrammarError(f"{what} must be one of {allowed} (got {value!r})") from None


def node_type_from_value(value: str | NodeType) -> NodeType:
    """
    Parse a node type token.

    Raises:
      GrammarError: If the token is not a known node type.
    """
    return _enum_from_value(NodeType, value, "node_type")


def metrics_kind_from_value(value: str | MetricsNodeKind) -> MetricsNodeKind:
    """
    Parse a metrics node kind token ("host", "tor", "aggr").

    Raises:
      GrammarError: If the token is not a known metrics kind.
    """
    return _enum_from_value(MetricsNodeKind, value, "metrics_kind")


def host_series_kind_from_value(value: str | HostSeriesKind) -> HostSeriesKind:
    """
    Parse a host scalar series kind token.

    Raises:
      GrammarError: If the token is not a known series kind.
    """
    return _enum_from_value(HostSeriesKind, value, "series_kind")
