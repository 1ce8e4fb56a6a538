"""
Configuration for the qtsviz.io module.

Defines LoaderSettings, a frozen dataclass carrying runtime configuration for series
loading. Defaults are sourced from qtsviz.core.constants (the single source of truth).

Source of truth
- qtsviz.core.constants.DATA_ROOT, MAX_CONCURRENCY, REQUEST_TIMEOUT_S

Import DAG discipline
- Depends only on stdlib and qtsviz.core.constants.
- Does not import the engine or the CLI.

Notes
- Precedence is env > TOML > defaults (see LoaderSettings.load).
- qtsviz.io.sources.make_source turns settings into a concrete SeriesSource.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

try:  # Python 3.11+ stdlib TOML parser
    import tomllib  # type: ignore
except Exception:  # pragma: no cover - environments without tomllib
    tomllib = None  # type: ignore[assignment]

from qtsviz.core.constants import DATA_ROOT as CORE_DATA_ROOT
from qtsviz.core.constants import MAX_CONCURRENCY as CORE_MAX_CONCURRENCY
from qtsviz.core.constants import REQUEST_TIMEOUT_S as CORE_REQUEST_TIMEOUT_S

SourceKind = Literal["file", "http"]
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class LoaderSettings:
    """
    Runtime settings for loading series.

    Attributes:
        data_root (str): Directory (file source) holding <scenario>/data/... trees.
        source (Literal["file","http"]): Which SeriesSource to build.
        base_url (str | None): URL prefix for the HTTP source (data_root is appended).
        request_timeout_s (float): Per-request timeout for the HTTP source.
        max_concurrency (int): Upper bound on in-flight fetches per load (>= 1).
        manifest_path (str | None): Optional availability manifest JSON consulted
            before requesting host scalar series.
        log_level (str): Root log level applied by the CLI.

    Examples:
        >>> from qtsviz.io.config import LoaderSettings
        >>> LoaderSettings(data_root="data", max_concurrency=8)  # doctest: +ELLIPSIS
        LoaderSettings(...)
    """

    data_root: str = CORE_DATA_ROOT
    source: SourceKind = "file"
    base_url: str | None = None
    request_timeout_s: float = CORE_REQUEST_TIMEOUT_S
    max_concurrency: int = CORE_MAX_CONCURRENCY
    manifest_path: str | None = None
    log_level: str = "INFO"

    @classmethod
    def _apply_mapping(cls, base: LoaderSettings, cfg: dict[str, Any] | None) -> LoaderSettings:
        """Apply a loose config mapping onto LoaderSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "data_root" in cfg and isinstance(cfg["data_root"], str) and cfg["data_root"]:
            s = replace(s, data_root=cfg["data_root"])

        if "source" in cfg and isinstance(cfg["source"], str):
            kind = cfg["source"].strip().lower()
            if kind in ("file", "http"):
                s = replace(s, source=kind)  # type: ignore[arg-type]

        if "base_url" in cfg and isinstance(cfg["base_url"], str):
            s = replace(s, base_url=cfg["base_url"].strip() or None)

        if "request_timeout_s" in cfg:
            try:
                timeout = float(cfg["request_timeout_s"])
            except (TypeError, ValueError):
                timeout = s.request_timeout_s
            if timeout > 0:
                s = replace(s, request_timeout_s=timeout)

        if "max_concurrency" in cfg:
            try:
                n = int(cfg["max_concurrency"])
            except (TypeError, ValueError):
                n = s.max_concurrency
            if n >= 1:
                s = replace(s, max_concurrency=n)

        if "manifest_path" in cfg and isinstance(cfg["manifest_path"], str):
            s = replace(s, manifest_path=cfg["manifest_path"].strip() or None)

        if "log_level" in cfg and isinstance(cfg["log_level"], str):
            level = cfg["log_level"].strip().upper()
            if level in _LOG_LEVELS:
                s = replace(s, log_level=level)

        return s

    @classmethod
    def from_env(
        cls, base: LoaderSettings | None = None, prefix: str = "QTSVIZ_"
    ) -> LoaderSettings:
        """
        Build LoaderSettings from environment variables. Precedence is env > base > defaults.

        Recognized variables:
            - QTSVIZ_DATA_ROOT
            - QTSVIZ_SOURCE ("file" | "http")
            - QTSVIZ_BASE_URL
            - QTSVIZ_REQUEST_TIMEOUT_S
            - QTSVIZ_MAX_CONCURRENCY
            - QTSVIZ_MANIFEST_PATH
            - QTSVIZ_LOG_LEVEL
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in (
            "data_root",
            "source",
            "base_url",
            "request_timeout_s",
            "max_concurrency",
            "manifest_path",
            "log_level",
        ):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> LoaderSettings:
        """
        Build LoaderSettings from a TOML file.

        Search order when `path` is None:
            1) ./qtsviz.toml (with either a [loader] table or top-level keys)
            2) ./pyproject.toml under [tool.qtsviz.loader]

        Returns defaults if no file is present or tomllib is unavailable.
        """
        s = cls()
        if tomllib is None:
            return s

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)  # type: ignore[arg-type]
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "qtsviz.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("qtsviz", {}).get("loader", {}) if isinstance(tool, dict) else None
            elif isinstance(data.get("loader"), dict):
                cfg = data["loader"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> LoaderSettings:
        """
        Load LoaderSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults
                (qtsviz.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        return cls.from_env(base=s)
