"""
Async resource sources used by the load orchestrator.

Overview
- SeriesSource: protocol with a single coroutine, fetch(path) -> bytes.
- FileSource: reads <root>/<path> from the local filesystem in a worker thread.
- HttpSource: GETs <base_url>/<path> through one shared aiohttp ClientSession.
- make_source(): builds the source configured by LoaderSettings.

Semantics
- Every failure to obtain bytes (missing file, non-200 status, transport error,
  timeout) raises SourceUnavailableError. Sources never retry.
- Payload validation (markup detection, CSV shape) is not a source concern; see
  qtsviz.io.parse.

Import DAG discipline
- Depends on stdlib, aiohttp, and qtsviz.io helpers; does not import the engine.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import aiohttp

from .config import LoaderSettings
from .errors import IoConfigError, SourceUnavailableError
from .paths import join_url_segments, split_path

__all__ = [
    "SeriesSource",
    "FileSource",
    "HttpSource",
    "make_source",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class SeriesSource(Protocol):
    """Anything that can resolve a relative resource path to raw bytes."""

    async def fetch(self, path: str) -> bytes: ...


class FileSource:
    """
    Resolve resource paths under a local directory.

    Args:
        root (str | Path): Directory that holds <scenario>/data/... trees.

    Notes:
        Reads run through asyncio.to_thread so a batch of fetches overlaps.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"FileSource(root={str(self.root)!r})"

    async def fetch(self, path: str) -> bytes:
        segments = split_path(path)
        if not segments or any(seg in (".", "..") for seg in segments):
            raise SourceUnavailableError(path, reason="path escapes the source root")
        target = self.root.joinpath(*segments)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise SourceUnavailableError(path, 404) from exc
        except OSError as exc:
            raise SourceUnavailableError(path, reason=str(exc)) from exc


class HttpSource:
    """
    Resolve resource paths against a static HTTP host.

    Args:
        base_url (str): URL prefix; resource paths are appended after a "/".
        timeout_s (float): Total timeout per request.
        session (aiohttp.ClientSession | None): Externally owned session to reuse.

    Notes:
        Use as an async context manager to own the session lifecycle; otherwise a
        session is created lazily and must be released with close().
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not base_url:
            raise IoConfigError("HttpSource requires a base_url")
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    def __repr__(self) -> str:
        return f"HttpSource(base_url={self.base_url!r})"

    async def __aenter__(self) -> HttpSource:
        self._ensure_session()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(self, path: str) -> bytes:
        session = self._ensure_session()
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise SourceUnavailableError(path, response.status)
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise SourceUnavailableError(path, reason=str(exc) or type(exc).__name__) from exc
        logger.debug("fetched %s (%d bytes)", url, len(body))
        return body


def make_source(settings: LoaderSettings) -> FileSource | HttpSource:
    """
    Build the SeriesSource selected by settings.source.

    Raises:
        IoConfigError: HTTP source without base_url, or unknown source kind.
    """
    if settings.source == "file":
        return FileSource(settings.data_root)
    if settings.source == "http":
        if not settings.base_url:
            raise IoConfigError("source='http' requires base_url")
        base = settings.base_url.rstrip("/")
        prefix = join_url_segments(settings.data_root)
        return HttpSource(
            f"{base}/{prefix}" if prefix else base, timeout_s=settings.request_timeout_s
        )
    raise IoConfigError(f"unsupported source kind {settings.source!r}")
