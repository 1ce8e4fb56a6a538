"""
Selection Controller: switch the active selection without ever exposing a mixed store.

Every call to select() bumps a version token before starting a new LoadOrchestrator.
When the load finishes, its result is committed only if its token is still current;
otherwise it is discarded (the user picked another selection meanwhile). A superseded
load is allowed to run to completion; it is ignored, not cancelled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from qtsviz.core.schema import Layout, Selection
from qtsviz.io.config import LoaderSettings
from qtsviz.io.errors import LoadError
from qtsviz.io.manifest import AvailabilityManifest
from qtsviz.io.sources import SeriesSource

from .orchestrator import LoadOrchestrator
from .sampler import SamplingEngine

__all__ = ["SelectionController"]

logger = logging.getLogger(__name__)


class SelectionController:
    """
    Own the active SamplingEngine for one layout and one data source.

    Args:
        layout (Layout): Topology shared by every selection.
        source (SeriesSource): Payload provider.
        manifest (AvailabilityManifest | None): Passed to every orchestrator.
        settings (LoaderSettings | None): Passed to every orchestrator.
        orchestrator_factory (Callable[..., LoadOrchestrator]): Builds the orchestrator
            for a selection; same signature as LoadOrchestrator.
    """

    def __init__(
        self,
        layout: Layout,
        source: SeriesSource,
        *,
        manifest: AvailabilityManifest | None = None,
        settings: LoaderSettings | None = None,
        orchestrator_factory: Callable[..., LoadOrchestrator] = LoadOrchestrator,
    ) -> None:
        self.layout = layout
        self.source = source
        self.manifest = manifest
        self.settings = settings or LoaderSettings()
        self._factory = orchestrator_factory
        self._version = 0
        self._engine: SamplingEngine | None = None
        self._selection: Selection | None = None

    @property
    def version(self) -> int:
        return self._version

    @property
    def engine(self) -> SamplingEngine | None:
        """Engine of the last committed selection; None before the first load or after a failure."""
        return self._engine

    @property
    def selection(self) -> Selection | None:
        return self._selection

    def is_current(self, token: int) -> bool:
        return token == self._version

    async def select(self, selection: Selection) -> SamplingEngine | None:
        """
        Load `selection` and make it active unless a newer select() supersedes it.

        Returns:
            SamplingEngine | None: The committed engine (cursor reset), or None when the
            result was stale and discarded.

        Raises:
            LoadError: The current selection could not be loaded (e.g., no required
                series resolved). The previous engine is dropped so no stale data is
                shown for the new selection.
        """
        self._version += 1
        token = self._version
        orchestrator = self._factory(
            selection, self.layout, self.source, manifest=self.manifest, settings=self.settings
        )
        try:
            engine = await orchestrator.run()
        except LoadError as exc:
            if not self.is_current(token):
                logger.info(
                    "ignoring failed load of superseded selection %s: %s", selection.label(), exc
                )
                return None
            logger.error("load failed for %s: %s", selection.label(), exc)
            self._engine = None
            self._selection = selection
            raise

        if not self.is_current(token):
            logger.info(
                "discarding superseded load of %s (token %d, current %d)",
                selection.label(),
                token,
                self._version,
            )
            return None

        engine.reset()
        self._engine = engine
        self._selection = selection
        return engine
