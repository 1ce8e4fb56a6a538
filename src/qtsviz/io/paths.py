"""
Path and layout helpers for simulator output resources.

Overview (relative to a source root; file and URL layouts are identical)
- <scenario>/data/<protocol>/<load>/output/qts/<from_kind>/
    qts_<from_kind>_<from_id>_<to_kind>_<to_id>.csv
- <scenario>/data/<protocol>/<load>/output/cc/<kind>/load_<load>/host_<id>/<kind>.csv

Source of truth
- Selection/LinkDef come from qtsviz.core.schema; series kinds and file names from
  qtsviz.core.grammar and qtsviz.core.constants.

Import DAG discipline
- stdlib + qtsviz.core only.

Notes
- Every segment is percent-encoded so the same relative path is a valid URL path; the
  file source decodes it again (see split_path).
"""

from __future__ import annotations

from urllib.parse import quote, unquote

from qtsviz.core.constants import HOST_DIRECTORY, HOST_SCALAR_FILES, LINK_DIRECTORY
from qtsviz.core.grammar import HostSeriesKind, MetricsNodeKind
from qtsviz.core.schema import LinkDef, Selection

__all__ = [
    "join_url_segments",
    "split_path",
    "selection_segments",
    "direction_path",
    "link_direction_paths",
    "host_scalar_path",
]


def join_url_segments(*segments: str) -> str:
    """
    Join path segments with "/", splitting embedded slashes and dropping empty pieces.

    Args:
        *segments (str): Raw segments; each may itself contain "/".

    Returns:
        str: Joined path with every piece percent-encoded.

    Examples:
        >>> join_url_segments("a/b", "", "c d")
        'a/b/c%20d'
    """
    parts: list[str] = []
    for segment in segments:
        if not segment:
            continue
        for piece in segment.split("/"):
            if piece:
                parts.append(quote(piece, safe=""))
    return "/".join(parts)


def split_path(path: str) -> list[str]:
    """Decode a path produced by join_url_segments back into raw segments."""
    return [unquote(piece) for piece in path.split("/") if piece]


def selection_segments(selection: Selection) -> list[str]:
    """Root segments for one selection: [scenario, "data", protocol, load]."""
    return [selection.scenario, "data", selection.protocol, selection.load]


def direction_path(
    selection: Selection,
    from_kind: MetricsNodeKind,
    from_id: int,
    to_kind: MetricsNodeKind,
    to_id: int,
) -> str:
    """
    Path of one link-direction resource (rows: timestamp, throughput, queue depth).

    Examples:
        >>> from qtsviz.core.schema import Selection
        >>> sel = Selection(scenario="s", protocol="p", load="50")
        >>> direction_path(sel, MetricsNodeKind.HOST, 3, MetricsNodeKind.TOR, 0)
        's/data/p/50/output/qts/host/qts_host_3_tor_0.csv'
    """
    file_name = f"qts_{from_kind.value}_{from_id}_{to_kind.value}_{to_id}.csv"
    return join_url_segments(
        *selection_segments(selection), "output", LINK_DIRECTORY, from_kind.value, file_name
    )


def link_direction_paths(selection: Selection, link: LinkDef) -> tuple[str, str]:
    """Return (forward, reverse) resource paths for a link."""
    m = link.metrics
    forward = direction_path(selection, m.from_kind, m.from_id, m.to_kind, m.to_id)
    reverse = direction_path(selection, m.to_kind, m.to_id, m.from_kind, m.from_id)
    return forward, reverse


def host_scalar_path(selection: Selection, kind: HostSeriesKind, host_id: int) -> str:
    """
    Path of one host scalar resource (rows: timestamp, value).

    Examples:
        >>> from qtsviz.core.schema import Selection
        >>> sel = Selection(scenario="s", protocol="p", load="50")
        >>> host_scalar_path(sel, HostSeriesKind.BUDGET_BYTES, 7)
        's/data/p/50/output/cc/budget_bytes/load_50/host_7/budget_bytes.csv'
    """
    return join_url_segments(
        *selection_segments(selection),
        "output",
        HOST_DIRECTORY,
        kind.value,
        f"load_{selection.load}",
        f"host_{host_id}",
        HOST_SCALAR_FILES[kind],
    )
