"""
Load Orchestrator: fan out every fetch for one selection, then assemble a SamplingEngine.

Flow
1. Build the request list in program order: for each layout link, forward then
   reverse direction (required); then for each host scalar kind and each host known to
   the availability manifest, the host series (optional).
2. Issue the whole batch concurrently (bounded by LoaderSettings.max_concurrency) and
   suspend until it settles (asyncio.gather). No request is retried.
3. Parse required payloads and walk them in program order: the first one that parsed
   successfully establishes the baseline grid. Because the walk happens after the batch
   settles, the choice does not depend on wall-clock arrival order.
4. Conform every other required series (truncate/pad), or substitute zeros for the
   unavailable ones; conform the optional series that resolved and omit the rest.
5. Hand the finished SeriesStore to a new SamplingEngine.

All ingestion state (aligner, diagnostics, partial results) lives on the instance, and
an instance runs once; a new selection gets a new orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import numpy as np

from qtsviz.core.grammar import DiscrepancyKind, HostSeriesKind
from qtsviz.core.schema import Layout, Selection
from qtsviz.io.config import LoaderSettings
from qtsviz.io.errors import GridUnestablishedError, IoError, SourceUnavailableError
from qtsviz.io.manifest import AvailabilityManifest
from qtsviz.io.parse import DirectionRows, parse_direction_csv, parse_scalar_csv
from qtsviz.io.paths import host_scalar_path, link_direction_paths
from qtsviz.io.sources import SeriesSource

from .aligner import SeriesAligner
from .diagnostics import Diagnostics
from .sampler import SamplingEngine
from .store import DirectionSeries, LinkSeries, SeriesStore

__all__ = ["RequiredRequest", "OptionalRequest", "LoadOrchestrator"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequiredRequest:
    link_id: str
    direction: str  # "forward" | "reverse"
    path: str


@dataclass(frozen=True, slots=True)
class OptionalRequest:
    kind: HostSeriesKind
    host_id: int
    path: str


class LoadOrchestrator:
    """
    Build one fully-aligned SamplingEngine for a selection.

    Args:
        selection (Selection): Dataset key.
        layout (Layout): Topology whose links and hosts determine the requests.
        source (SeriesSource): Where payloads come from.
        manifest (AvailabilityManifest | None): Consulted before requesting host
            scalar series; None requests every host.
        settings (LoaderSettings | None): Concurrency bound and related options.
    """

    def __init__(
        self,
        selection: Selection,
        layout: Layout,
        source: SeriesSource,
        *,
        manifest: AvailabilityManifest | None = None,
        settings: LoaderSettings | None = None,
    ) -> None:
        self.selection = selection
        self.layout = layout
        self.source = source
        self.manifest = manifest
        self.settings = settings or LoaderSettings()
        self.diagnostics = Diagnostics()
        self._aligner = SeriesAligner(self.diagnostics)
        self._started = False

    # ------------------------------------------------------------------
    # Request planning
    # ------------------------------------------------------------------
    def required_requests(self) -> list[RequiredRequest]:
        out: list[RequiredRequest] = []
        for link in self.layout.links:
            forward, reverse = link_direction_paths(self.selection, link)
            out.append(RequiredRequest(link.id, "forward", forward))
            out.append(RequiredRequest(link.id, "reverse", reverse))
        return out

    def optional_requests(self) -> list[OptionalRequest]:
        hosts = self.layout.hosts()
        out: list[OptionalRequest] = []
        for kind in HostSeriesKind:
            known = self.manifest.hosts_for(self.selection, kind) if self.manifest else None
            for host in hosts:
                if known is not None and host.metrics_id not in known:
                    continue
                path = host_scalar_path(self.selection, kind, host.metrics_id)
                out.append(OptionalRequest(kind, host.metrics_id, path))
        return out

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------
    async def _fetch(self, path: str, gate: asyncio.Semaphore) -> bytes | IoError:
        async with gate:
            try:
                return await self.source.fetch(path)
            except IoError as exc:
                return exc

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    async def run(self) -> SamplingEngine:
        """
        Fetch, align and assemble.

        Returns:
            SamplingEngine: Engine over the finished store (cursor at its initial state).

        Raises:
            GridUnestablishedError: No required series resolved to valid data.
            RuntimeError: The orchestrator was already run.
        """
        if self._started:
            raise RuntimeError("LoadOrchestrator instances are single-use")
        self._started = True

        required = self.required_requests()
        optional = self.optional_requests()
        logger.info(
            "loading %s: %d required and %d optional series via %r",
            self.selection.label(),
            len(required),
            len(optional),
            self.source,
        )

        gate = asyncio.Semaphore(self.settings.max_concurrency)
        payloads = await asyncio.gather(
            *(self._fetch(req.path, gate) for req in [*required, *optional])
        )
        links = self._assemble_links(required, payloads[: len(required)])
        grid = self._aligner.grid
        if grid is None:
            raise GridUnestablishedError(
                f"no required series resolved for {self.selection.label()}"
            )
        host_scalars = self._assemble_host_scalars(optional, payloads[len(required):])

        store = SeriesStore(
            grid=grid, links=links, host_scalars=host_scalars, diagnostics=self.diagnostics
        )
        logger.info(
            "loaded %s: %d samples, duration %.6g, %d discrepancy(ies)",
            self.selection.label(),
            len(grid),
            grid.duration,
            len(self.diagnostics),
        )
        return SamplingEngine(self.layout, store)

    def _assemble_links(
        self, required: list[RequiredRequest], payloads: list[bytes | IoError]
    ) -> dict[str, LinkSeries]:
        parsed: list[DirectionRows | IoError] = []
        for req, payload in zip(required, payloads):
            if isinstance(payload, IoError):
                parsed.append(payload)
                continue
            try:
                parsed.append(parse_direction_csv(payload, req.path))
            except IoError as exc:
                parsed.append(exc)

        baseline = next(
            (i for i, item in enumerate(parsed) if isinstance(item, DirectionRows)), None
        )
        if baseline is None:
            reasons = "; ".join(str(item) for item in parsed[:3])
            raise GridUnestablishedError(
                f"no required series resolved for {self.selection.label()}"
                + (f" ({reasons})" if reasons else "")
            )

        series: list[DirectionSeries] = []
        for i, (req, item) in enumerate(zip(required, parsed)):
            if isinstance(item, DirectionRows):
                if i == baseline:
                    series.append(self._aligner.accept_baseline(item, req.path))
                else:
                    series.append(self._aligner.conform_direction(item, req.path))
            else:
                series.append(self._aligner.substitute(req.path, detail=str(item)))

        links: dict[str, LinkSeries] = {}
        for k in range(0, len(required), 2):
            links[required[k].link_id] = LinkSeries(
                link_id=required[k].link_id, forward=series[k], reverse=series[k + 1]
            )
        return links

    def _assemble_host_scalars(
        self, optional: list[OptionalRequest], payloads: list[bytes | IoError]
    ) -> dict[HostSeriesKind, dict[int, np.ndarray]]:
        n = self._aligner.length
        out: dict[HostSeriesKind, dict[int, np.ndarray]] = {}
        for req, payload in zip(optional, payloads):
            if isinstance(payload, IoError):
                absent = isinstance(payload, SourceUnavailableError) and payload.status == 404
                self.diagnostics.report(
                    DiscrepancyKind.OPTIONAL_MISSING,
                    req.path,
                    expected=n,
                    detail=str(payload),
                    quiet=absent,
                )
                continue
            try:
                rows = parse_scalar_csv(payload, req.path)
            except IoError as exc:
                self.diagnostics.report(
                    DiscrepancyKind.OPTIONAL_MISSING, req.path, expected=n, detail=str(exc)
                )
                continue
            out.setdefault(req.kind, {})[req.host_id] = self._aligner.conform_scalar(rows, req.path)
        return out
