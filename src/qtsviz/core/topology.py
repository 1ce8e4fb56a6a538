"""
Default leaf-spine topology used by the CLI and tests.

Two spines on top, two top-of-rack switches in the middle, and two racks of hosts on a
single horizontal line near the bottom. Every host links to its rack's ToR; every ToR
links to both spines.

Simulator naming
- spines are "aggr" 0..1, ToRs are "tor" 0..1, hosts are "host" 0..(2*hosts_per_rack-1).
- Host -> ToR links are forward from the host; ToR -> spine links are forward from the ToR.
"""

from __future__ import annotations

from .grammar import MetricsNodeKind, NodeType
from .schema import Layout, LinkDef, LinkMetrics, NodeDef

__all__ = ["make_leaf_spine_layout"]

_HOST_Y = 0.82
_RACK_SPANS = ((0.08, 0.48), (0.52, 0.92))


def _link(a: NodeDef, b: NodeDef) -> LinkDef:
    return LinkDef(
        id=f"{a.id}-{b.id}",
        a=a.id,
        b=b.id,
        metrics=LinkMetrics(
            from_kind=a.metrics_kind,
            from_id=a.metrics_id,
            to_kind=b.metrics_kind,
            to_id=b.metrics_id,
        ),
    )


def make_leaf_spine_layout(hosts_per_rack: int = 16) -> Layout:
    """
    Build the two-rack leaf-spine layout.

    Args:
        hosts_per_rack (int): Hosts in each of the two racks (>= 1).

    Returns:
        Layout: Nodes ordered spines, ToRs, rack 1 hosts, rack 2 hosts; links ordered
        host->ToR (rack 1 then rack 2) followed by ToR->spine.

    Raises:
        ValueError: If hosts_per_rack < 1.
    """
    if hosts_per_rack < 1:
        raise ValueError("hosts_per_rack must be >= 1")

    spines = [
        NodeDef(id=f"sp{i + 1}", type=NodeType.SWITCH, metrics_id=i,
                metrics_kind=MetricsNodeKind.AGGR, x=x, y=0.12)
        for i, x in enumerate((0.3, 0.7))
    ]
    tors = [
        NodeDef(id=f"tor{i + 1}", type=NodeType.SWITCH, metrics_id=i,
                metrics_kind=MetricsNodeKind.TOR, x=x, y=0.36)
        for i, x in enumerate((0.3, 0.7))
    ]

    racks: list[list[NodeDef]] = []
    host_id = 0
    for rack, (start, end) in enumerate(_RACK_SPANS):
        hosts: list[NodeDef] = []
        for i in range(hosts_per_rack):
            frac = i / (hosts_per_rack - 1) if hosts_per_rack > 1 else 0.5
            hosts.append(
                NodeDef(
                    id=f"r{rack + 1}s{i + 1:02d}",
                    type=NodeType.HOST,
                    metrics_id=host_id,
                    metrics_kind=MetricsNodeKind.HOST,
                    x=start + (end - start) * frac,
                    y=_HOST_Y,
                )
            )
            host_id += 1
        racks.append(hosts)

    links: list[LinkDef] = []
    for tor, hosts in zip(tors, racks):
        links.extend(_link(h, tor) for h in hosts)
    for spine in spines:
        for tor in tors:
            links.append(_link(tor, spine))

    nodes = [*spines, *tors, *racks[0], *racks[1]]
    return Layout(nodes=tuple(nodes), links=tuple(links))
