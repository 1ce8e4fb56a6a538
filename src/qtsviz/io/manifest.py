"""
Scenario index and host-series availability manifest.

Scenario index layout (JSON):
{
  "version": 1,
  "generated_at": "ISO-8601",
  "scenarios": {"<scenario>": {"<protocol>": ["10", "50", "100"]}}
}

Availability manifest layout (JSON):
{
  "version": 1,
  "generated_at": "ISO-8601",
  "entries": {
    "<scenario>": {"<protocol>": {"<load>": {"budget_bytes": [0, 3, 7], "credit_backlog": [0]}}}
  }
}

Notes:
- Both are built by walking a data root (build_*_from_fs) and are read-only afterwards.
- Loads sort numerically when every load name is numeric-looking, lexically otherwise
  (mixed lists place numeric names first).
- AvailabilityManifest.hosts_for() returns None when the selection is not covered at
  all (callers then request every host) and a possibly empty frozenset otherwise.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime

from qtsviz.core.constants import HOST_DIRECTORY, HOST_SCALAR_FILES
from qtsviz.core.grammar import HostSeriesKind, host_series_kind_from_value
from qtsviz.core.errors import GrammarError
from qtsviz.core.schema import Selection
from qtsviz.core.typing import JsonDict

from .errors import IoManifestError
from .fs import fsync_file, list_dirs, makedirs, open_write, rename_atomic

__all__ = [
    "ScenarioIndex",
    "AvailabilityManifest",
    "sort_loads",
    "build_scenario_index_from_fs",
    "build_availability_from_fs",
    "load_scenario_index",
    "load_availability",
    "write_json_atomic",
]

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _load_sort_key(name: str) -> tuple[int, float, str]:
    try:
        return (0, float(name), name)
    except ValueError:
        return (1, 0.0, name)


def sort_loads(loads: list[str]) -> list[str]:
    """
    Sort load names numerically where possible.

    Examples:
        >>> sort_loads(["100", "20", "5", "peak"])
        ['5', '20', '100', 'peak']
    """
    return sorted(loads, key=_load_sort_key)


@dataclass(slots=True)
class ScenarioIndex:
    """
    Mapping scenario -> protocol -> ordered loads.

    Attributes:
        scenarios (dict[str, dict[str, list[str]]]): Nested mapping.
        generated_at (str): ISO-8601 timestamp of the build.
    """

    scenarios: dict[str, dict[str, list[str]]] = field(default_factory=dict)
    generated_at: str = field(default_factory=_utc_now_iso)

    def scenario_names(self) -> list[str]:
        return sorted(self.scenarios)

    def protocols(self, scenario: str) -> list[str]:
        return sorted(self.scenarios.get(scenario, {}))

    def loads(self, scenario: str, protocol: str) -> list[str]:
        return sort_loads(list(self.scenarios.get(scenario, {}).get(protocol, [])))

    def contains(self, selection: Selection) -> bool:
        return selection.load in self.scenarios.get(selection.scenario, {}).get(
            selection.protocol, []
        )

    def to_json_obj(self) -> JsonDict:
        return {
            "version": MANIFEST_VERSION,
            "generated_at": self.generated_at,
            "scenarios": {
                s: {p: sort_loads(list(loads)) for p, loads in sorted(protos.items())}
                for s, protos in sorted(self.scenarios.items())
            },
        }

    @classmethod
    def from_json_obj(cls, obj: JsonDict) -> ScenarioIndex:
        body = obj.get("scenarios", obj)
        if not isinstance(body, dict):
            raise IoManifestError("scenario index must be a JSON object")
        scenarios: dict[str, dict[str, list[str]]] = {}
        for scenario, protos in body.items():
            if scenario in ("version", "generated_at"):
                continue
            if not isinstance(protos, dict):
                raise IoManifestError(f"scenario {scenario!r} must map protocols to loads")
            scenarios[scenario] = {p: [str(x) for x in loads] for p, loads in protos.items()}
        return cls(scenarios=scenarios, generated_at=obj.get("generated_at") or _utc_now_iso())


@dataclass(slots=True)
class AvailabilityManifest:
    """
    Read-only mapping (scenario, protocol, load, series kind) -> host ids with data.

    Consulted before requesting host scalar resources so that no request is spent on a
    host known to lack the series.
    """

    entries: dict[str, dict[str, dict[str, dict[HostSeriesKind, frozenset[int]]]]] = field(
        default_factory=dict
    )
    generated_at: str = field(default_factory=_utc_now_iso)

    def covers(self, selection: Selection) -> bool:
        return selection.load in self.entries.get(selection.scenario, {}).get(
            selection.protocol, {}
        )

    def hosts_for(self, selection: Selection, kind: HostSeriesKind) -> frozenset[int] | None:
        """
        Host ids known to have `kind` for a selection.

        Returns:
            frozenset[int] | None: None when the selection is absent from the manifest
            (availability unknown); otherwise the known hosts (possibly empty).
        """
        if not self.covers(selection):
            return None
        per_load = self.entries[selection.scenario][selection.protocol][selection.load]
        return per_load.get(kind, frozenset())

    def has(self, selection: Selection, kind: HostSeriesKind, host_id: int) -> bool | None:
        hosts = self.hosts_for(selection, kind)
        return None if hosts is None else host_id in hosts

    def to_json_obj(self) -> JsonDict:
        return {
            "version": MANIFEST_VERSION,
            "generated_at": self.generated_at,
            "entries": {
                s: {
                    p: {
                        load: {k.value: sorted(ids) for k, ids in kinds.items()}
                        for load, kinds in loads.items()
                    }
                    for p, loads in protos.items()
                }
                for s, protos in self.entries.items()
            },
        }

    @classmethod
    def from_json_obj(cls, obj: JsonDict) -> AvailabilityManifest:
        body = obj.get("entries", obj)
        if not isinstance(body, dict):
            raise IoManifestError("availability manifest must be a JSON object")
        entries: dict[str, dict[str, dict[str, dict[HostSeriesKind, frozenset[int]]]]] = {}
        try:
            for scenario, protos in body.items():
                if scenario in ("version", "generated_at"):
                    continue
                for protocol, loads in protos.items():
                    for load, kinds in loads.items():
                        parsed: dict[HostSeriesKind, frozenset[int]] = {}
                        for kind, ids in kinds.items():
                            parsed[host_series_kind_from_value(kind)] = frozenset(
                                int(i) for i in ids
                            )
                        entries.setdefault(scenario, {}).setdefault(protocol, {})[
                            str(load)
                        ] = parsed
        except (AttributeError, TypeError, ValueError, GrammarError) as exc:
            raise IoManifestError(f"corrupt availability manifest: {exc}") from exc
        return cls(entries=entries, generated_at=obj.get("generated_at") or _utc_now_iso())


# -----------------------------------------------------------------------------
# Filesystem walkers
# -----------------------------------------------------------------------------


def build_scenario_index_from_fs(root: str) -> ScenarioIndex:
    """
    Walk <root>/<scenario>/data/<protocol>/<load> directories.

    Returns:
        ScenarioIndex: Scenarios without a data/ directory map to an empty dict.
    """
    scenarios: dict[str, dict[str, list[str]]] = {}
    for scenario in list_dirs(root):
        protocols_dir = os.path.join(root, scenario, "data")
        entry: dict[str, list[str]] = {}
        for protocol in list_dirs(protocols_dir):
            entry[protocol] = sort_loads(list_dirs(os.path.join(protocols_dir, protocol)))
        scenarios[scenario] = entry
    return ScenarioIndex(scenarios=scenarios)


def _hosts_with_series(load_dir: str, load: str, kind: HostSeriesKind) -> frozenset[int]:
    base = os.path.join(load_dir, "output", HOST_DIRECTORY, kind.value, f"load_{load}")
    file_name = HOST_SCALAR_FILES[kind]
    found: set[int] = set()
    for name in list_dirs(base):
        if not name.startswith("host_"):
            continue
        try:
            host_id = int(name[len("host_"):])
        except ValueError:
            continue
        if os.path.isfile(os.path.join(base, name, file_name)):
            found.add(host_id)
    return frozenset(found)


def build_availability_from_fs(root: str) -> AvailabilityManifest:
    """
    Walk every selection under root and record which hosts carry each scalar series.

    Notes:
        Every selection found is recorded, even when no host has any series, so that
        the manifest positively states "no data" rather than "unknown".
    """
    index = build_scenario_index_from_fs(root)
    entries: dict[str, dict[str, dict[str, dict[HostSeriesKind, frozenset[int]]]]] = {}
    for scenario, protos in index.scenarios.items():
        for protocol, loads in protos.items():
            for load in loads:
                load_dir = os.path.join(root, scenario, "data", protocol, load)
                kinds = {kind: _hosts_with_series(load_dir, load, kind) for kind in HostSeriesKind}
                entries.setdefault(scenario, {}).setdefault(protocol, {})[load] = kinds
    manifest = AvailabilityManifest(entries=entries)
    logger.info(
        "availability manifest built from %s: %d scenario(s)", root, len(manifest.entries)
    )
    return manifest


# -----------------------------------------------------------------------------
# File I/O
# -----------------------------------------------------------------------------


def _read_json(path: str) -> JsonDict:
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as exc:
        raise IoManifestError(f"manifest not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise IoManifestError(f"manifest is not valid JSON: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise IoManifestError(f"manifest root must be an object: {path}")
    return data


def load_scenario_index(path: str) -> ScenarioIndex:
    """Load a scenario index JSON file. Raises IoManifestError when missing or corrupt."""
    return ScenarioIndex.from_json_obj(_read_json(path))


def load_availability(path: str) -> AvailabilityManifest:
    """Load an availability manifest JSON file. Raises IoManifestError when missing or corrupt."""
    return AvailabilityManifest.from_json_obj(_read_json(path))


def write_json_atomic(path: str, obj: JsonDict) -> None:
    """
    Persist a JSON object via tmp write -> fsync -> atomic rename.

    Raises:
        IoManifestError: If any step fails; the tmp file is removed best-effort.
    """
    parent = os.path.dirname(path)
    if parent:
        makedirs(parent, exist_ok=True)
    tmp = path + ".tmp"
    try:
        with open_write(tmp) as fh:
            fh.write(json.dumps(obj, indent=2, sort_keys=False).encode("utf-8") + b"\n")
            fsync_file(fh)
        rename_atomic(tmp, path)
    except OSError as exc:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            logger.debug("could not remove tmp manifest %s", tmp)
        raise IoManifestError(f"failed to write manifest {path}: {exc}") from exc
