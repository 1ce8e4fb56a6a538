"""
Pydantic v2 models for selections and read-only topology layouts.

Responsibilities
- Define the Selection key identifying one dataset (scenario, protocol, load).
- Define NodeDef/LinkDef/Layout, the read-only topology consumed by the sampling engine
  and by the rendering layer.
- Normalize enum-like strings via grammar helpers and enforce structural rules
  (unique ids, link endpoints referencing known nodes).

Style
- Zero-IO (stdlib + pydantic only).
- Validators raise GrammarError/SchemaError; pydantic surfaces them as ValidationError.

Examples
    >>> from qtsviz.core.schema import Selection
    >>> Selection(scenario="incast", protocol="dcqcn", load="50").load
    '50'
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import SchemaError
from .grammar import MetricsNodeKind, NodeType, metrics_kind_from_value, node_type_from_value

__all__ = [
    "Selection",
    "LinkMetrics",
    "NodeDef",
    "LinkDef",
    "Layout",
]


class Selection(BaseModel):
    """
    Key identifying which dataset to load.

    Attributes:
        scenario (str): Scenario directory name.
        protocol (str): Protocol directory name under the scenario.
        load (str): Offered-load directory name (often numeric, kept as a string).

    Notes:
        Frozen and hashable so it can key caches and manifests.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    scenario: str = Field(..., min_length=1)
    protocol: str = Field(..., min_length=1)
    load: str = Field(..., min_length=1)

    @field_validator("scenario", "protocol", "load")
    @classmethod
    def _no_separators(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or "\\" in v:
            raise SchemaError(f"selection segment must be a single non-empty name (got {v!r})")
        return v

    def label(self) -> str:
        return f"{self.scenario}/{self.protocol}/{self.load}"


class LinkMetrics(BaseModel):
    """
    Simulator naming for the two endpoints of a link.

    Attributes:
        from_kind (MetricsNodeKind): Kind of endpoint ``a``.
        from_id (int): Simulator id of endpoint ``a``.
        to_kind (MetricsNodeKind): Kind of endpoint ``b``.
        to_id (int): Simulator id of endpoint ``b``.

    Notes:
        The forward Direction Series is the ``from -> to`` resource, the reverse one
        the ``to -> from`` resource.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    from_kind: MetricsNodeKind
    from_id: int = Field(..., ge=0)
    to_kind: MetricsNodeKind
    to_id: int = Field(..., ge=0)

    @field_validator("from_kind", "to_kind", mode="before")
    @classmethod
    def _kind(cls, v: Any) -> MetricsNodeKind:
        return metrics_kind_from_value(v)


class NodeDef(BaseModel):
    """
    A topology node.

    Attributes:
        id (str): Unique node identifier (e.g., "tor1", "r1s01").
        type (NodeType): Rendering role; hosts may carry scalar override series.
        metrics_id (int): Simulator id used in resource paths.
        metrics_kind (MetricsNodeKind): Simulator kind used in resource paths.
        x (float): Normalized layout x in [0, 1].
        y (float): Normalized layout y in [0, 1].
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., min_length=1)
    type: NodeType
    metrics_id: int = Field(..., ge=0)
    metrics_kind: MetricsNodeKind
    x: float = Field(0.0, ge=0.0, le=1.0)
    y: float = Field(0.0, ge=0.0, le=1.0)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> NodeType:
        return node_type_from_value(v)

    @field_validator("metrics_kind", mode="before")
    @classmethod
    def _metrics_kind(cls, v: Any) -> MetricsNodeKind:
        return metrics_kind_from_value(v)

    @property
    def is_host(self) -> bool:
        return self.type is NodeType.HOST


class LinkDef(BaseModel):
    """
    An undirected topology link between nodes ``a`` and ``b``.

    Attributes:
        id (str): Unique link identifier (e.g., "r1s01-tor1").
        a (str): Node id of the forward-direction source.
        b (str): Node id of the forward-direction sink.
        metrics (LinkMetrics): Simulator naming used to address both directions.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., min_length=1)
    a: str = Field(..., min_length=1)
    b: str = Field(..., min_length=1)
    metrics: LinkMetrics


class Layout(BaseModel):
    """
    Read-only topology: nodes and links in a stable program order.

    Raises:
        SchemaError: Duplicate node/link ids, self-loops, or links referencing
            unknown nodes (surfaced by pydantic as ValidationError).

    Notes:
        Link order is significant: the load orchestrator walks links in this order
        when deciding which series establishes the baseline grid.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    nodes: tuple[NodeDef, ...] = ()
    links: tuple[LinkDef, ...] = ()

    @model_validator(mode="after")
    def _check_references(self) -> Layout:
        node_ids: set[str] = set()
        for node in self.nodes:
            if node.id in node_ids:
                raise SchemaError(f"duplicate node id {node.id!r}")
            node_ids.add(node.id)
        link_ids: set[str] = set()
        for link in self.links:
            if link.id in link_ids:
                raise SchemaError(f"duplicate link id {link.id!r}")
            link_ids.add(link.id)
            if link.a == link.b:
                raise SchemaError(f"link {link.id!r} is a self-loop on {link.a!r}")
            for end in (link.a, link.b):
                if end not in node_ids:
                    raise SchemaError(f"link {link.id!r} references unknown node {end!r}")
        return self

    def node_map(self) -> dict[str, NodeDef]:
        return {n.id: n for n in self.nodes}

    def node(self, node_id: str) -> NodeDef:
        """Return the node with `node_id` (KeyError when unknown)."""
        for n in self.nodes:
            if n.id == node_id:
                return n
        raise KeyError(node_id)

    def hosts(self) -> list[NodeDef]:
        return [n for n in self.nodes if n.is_host]
