"""
qtsviz core defaults.

Defines the data-root, concurrency, and host scalar series defaults consumed by the IO
and engine layers. This module is zero-IO and uses only the Python standard library.

Notes:
    - The host scalar series table maps each series kind to the CSV file name found in
      every host directory (see qtsviz.io.paths.host_scalar_path).
    - Changing defaults should happen here; qtsviz.io.config.LoaderSettings consumes them.
"""

from __future__ import annotations

from .grammar import HostSeriesKind

__all__ = [
    "DATA_ROOT",
    "MAX_CONCURRENCY",
    "REQUEST_TIMEOUT_S",
    "HOST_SCALAR_FILES",
    "LINK_DIRECTORY",
    "HOST_DIRECTORY",
]

# Directory (or URL prefix) holding <scenario>/data/<protocol>/<load>/output/...
DATA_ROOT: str = "data_public"

# Upper bound on in-flight resource fetches for a single load.
MAX_CONCURRENCY: int = 32

# Per-request timeout for HTTP sources, in seconds.
REQUEST_TIMEOUT_S: float = 10.0

# Output sub-directories for link-direction (qts) and host scalar (cc) series.
LINK_DIRECTORY: str = "qts"
HOST_DIRECTORY: str = "cc"

HOST_SCALAR_FILES: dict[HostSeriesKind, str] = {
    HostSeriesKind.BUDGET_BYTES: "budget_bytes.csv",
    HostSeriesKind.CREDIT_BACKLOG: "credit_backlog.csv",
}
