"""
qtsviz.io: External interfaces for simulator telemetry.

## Responsibilities
- Address link-direction and host scalar resources for a Selection (paths).
- Fetch raw bytes concurrently from a local directory or a static HTTP host (sources).
- Turn CSV payloads into numeric columns, rejecting markup/error pages (parse).
- Build, persist and consult the scenario index and availability manifest (manifest).
- Carry loader configuration with env > TOML > defaults precedence (config).

## Public API
- LoaderSettings: configuration for loading behavior.
- FileSource / HttpSource / make_source: async SeriesSource implementations.
- AvailabilityManifest / ScenarioIndex: read-only manifests.

## Import DAG discipline
- Depends only on stdlib, numpy/polars, aiohttp, and qtsviz.core.*.
- MUST NOT import qtsviz.engine or qtsviz.cli.
"""

from __future__ import annotations

from .config import LoaderSettings
from .manifest import AvailabilityManifest, ScenarioIndex
from .sources import FileSource, HttpSource, SeriesSource, make_source

__all__ = [
    "LoaderSettings",
    "AvailabilityManifest",
    "ScenarioIndex",
    "FileSource",
    "HttpSource",
    "SeriesSource",
    "make_source",
]
