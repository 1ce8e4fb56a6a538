"""
Lightweight typing aliases used across core schemas and the engine.

Provides minimal NewTypes and aliases to improve readability and static checks.
This module contains no runtime logic and is zero-IO.

Examples:
    >>> from qtsviz.core.typing import HostId, NodeId
    >>> def label(node: NodeId, host: HostId) -> str:
    ...     return f"{node}#{host}"
    >>> label(NodeId("r1s01"), HostId(0))
    'r1s01#0'
"""

from __future__ import annotations

from typing import Any, NewType

__all__ = [
    "NodeId",
    "LinkId",
    "HostId",
    "JsonDict",
]

NodeId = NewType("NodeId", str)
LinkId = NewType("LinkId", str)
# Numeric identifier used by the simulator in host_<id> directories.
HostId = NewType("HostId", int)

JsonDict = dict[str, Any]
