"""
Core package aggregator for qtsviz contracts (grammar, schemas, topology, constants).

## Contracts (single source of truth)
- Grammar: node types, metric node kinds, host series kinds, discrepancy kinds.
- Schemas: Selection and the read-only Layout (NodeDef/LinkDef) with validators.
- Topology: the default leaf-spine layout builder.
- Constants: data root, concurrency and host scalar file defaults.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Naming policy: enum `.value` and path segments are lower_snake.

## Downstream usage
- qtsviz.io: builds resource paths from Selection/LinkDef and keys manifests by HostSeriesKind.
- qtsviz.engine: walks Layout links in program order and aggregates per NodeType.
"""

from __future__ import annotations

from .grammar import DiscrepancyKind, HostSeriesKind, MetricsNodeKind, NodeType
from .schema import Layout, LinkDef, LinkMetrics, NodeDef, Selection
from .topology import make_leaf_spine_layout

__all__ = [
    "DiscrepancyKind",
    "HostSeriesKind",
    "MetricsNodeKind",
    "NodeType",
    "Layout",
    "LinkDef",
    "LinkMetrics",
    "NodeDef",
    "Selection",
    "make_leaf_spine_layout",
]
