"""
Custom exceptions for the qtsviz.io module.

Purpose
- Provide IO-layer specific error types for fetching, parsing, manifests and loads.
- Keep qtsviz.core as the source of truth for grammar/schema errors (see qtsviz.core.errors).

Taxonomy
- Recoverable (caught by the orchestrator, reported as diagnostics, never surfaced):
  - SourceUnavailableError: the resource could not be fetched.
  - MalformedPayloadError: the resource resolved but is not tabular data.
- Fatal (surfaced to the caller):
  - GridUnestablishedError: no required series produced a baseline grid.
- Configuration/manifest:
  - IoConfigError: invalid or unsupported configuration.
  - IoManifestError: manifest missing, corrupt or inconsistent.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in qtsviz.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from qtsviz.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when loader configuration is invalid or unsupported.

    Examples:
        - Unknown source kind (not "file" or "http")
        - HTTP source requested without a base_url
    """


class SourceUnavailableError(IoError):
    """
    Raised when a resource cannot be fetched (missing file, non-200 status, transport error).

    Attributes:
        path (str): Resource path relative to the source root.
        status (int | None): HTTP status when known (404 for missing files).
    """

    def __init__(self, path: str, status: int | None = None, reason: str = "") -> None:
        self.path = path
        self.status = status
        self.reason = reason
        detail = f" ({status})" if status is not None else ""
        suffix = f": {reason}" if reason else ""
        super().__init__(f"resource unavailable{detail}: {path}{suffix}")


class MalformedPayloadError(IoError):
    """
    Raised when a resolved resource is not tabular series data.

    Notes:
        Covers markup error/redirect pages, undecodable bytes, header-only files and
        rows with too few columns. Treated identically to SourceUnavailableError.
    """

    def __init__(self, reason: str, path: str | None = None) -> None:
        self.path = path
        self.reason = reason
        where = f"{path}: " if path else ""
        super().__init__(f"malformed payload: {where}{reason}")


class IoManifestError(IoError):
    """
    Raised when a scenario index or availability manifest is missing or corrupt.
    """


class LoadError(IoError):
    """Base class for failures that abort a whole load."""


class GridUnestablishedError(LoadError):
    """
    Raised when no required series resolves to valid data for a selection.

    Notes:
        No engine is produced; the caller should surface "no data available for
        this selection".
    """
