from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, replace
from typing import Any

from qtsviz.core.schema import Layout, Selection
from qtsviz.core.topology import make_leaf_spine_layout
from qtsviz.engine.orchestrator import LoadOrchestrator
from qtsviz.engine.sampler import SamplingEngine, Snapshot
from qtsviz.io.config import LoaderSettings
from qtsviz.io.errors import IoError
from qtsviz.io.manifest import (
    AvailabilityManifest,
    build_availability_from_fs,
    build_scenario_index_from_fs,
    load_availability,
    write_json_atomic,
)
from qtsviz.io.sources import HttpSource, make_source

logger = logging.getLogger("qtsviz.cli")

EXIT_LOAD_FAILED = 2


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _snapshot_json(snap: Snapshot) -> dict[str, Any]:
    return {
        "t": snap.t,
        "links": {k: asdict(v) for k, v in snap.links.items()},
        "nodes": {k: asdict(v) for k, v in snap.nodes.items()},
    }


def _add_selection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--root", type=str, default="", help="Data root (overrides settings).")
    p.add_argument("--scenario", type=str, required=True, help="Scenario name.")
    p.add_argument("--protocol", type=str, required=True, help="Protocol name.")
    p.add_argument("--load", type=str, required=True, help="Load name (e.g. 50).")
    p.add_argument(
        "--manifest",
        type=str,
        default="",
        help="Availability manifest JSON (overrides settings.manifest_path).",
    )
    p.add_argument(
        "--hosts-per-rack", type=int, default=16, help="Hosts per rack of the leaf-spine layout."
    )
    p.add_argument("--config", type=str, default="", help="Explicit TOML settings file.")


def _settings_from_args(args: argparse.Namespace) -> LoaderSettings:
    settings = LoaderSettings.load(args.config or None)
    if getattr(args, "root", ""):
        settings = replace(settings, data_root=args.root, source="file")
    if getattr(args, "manifest", ""):
        settings = replace(settings, manifest_path=args.manifest)
    return settings


async def _load(
    selection: Selection, layout: Layout, settings: LoaderSettings
) -> SamplingEngine:
    manifest: AvailabilityManifest | None = None
    if settings.manifest_path:
        manifest = load_availability(settings.manifest_path)
    source = make_source(settings)
    try:
        orchestrator = LoadOrchestrator(
            selection, layout, source, manifest=manifest, settings=settings
        )
        return await orchestrator.run()
    finally:
        if isinstance(source, HttpSource):
            await source.close()


def _run_load(args: argparse.Namespace) -> SamplingEngine | None:
    settings = _settings_from_args(args)
    _configure_logging(settings.log_level)
    selection = Selection(scenario=args.scenario, protocol=args.protocol, load=args.load)
    layout = make_leaf_spine_layout(args.hosts_per_rack)
    logger.debug("loading %s with %s", selection.label(), settings)
    try:
        return asyncio.run(_load(selection, layout, settings))
    except IoError as exc:
        print(f"[ERROR] no data available for {selection.label()}: {exc}", file=sys.stderr)
        return None


def _cmd_index(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="index",
        description="Build scenarios.json and availability.json from a data root.",
    )
    p.add_argument("--root", type=str, required=True, help="Data root to walk.")
    p.add_argument("--out", type=str, default="", help="Output directory (default: --root).")
    args = p.parse_args(argv)
    _configure_logging(LoaderSettings.load().log_level)

    if not os.path.isdir(args.root):
        print(f"[ERROR] data root not found: {args.root}", file=sys.stderr)
        return 1
    out_dir = args.out or args.root
    index = build_scenario_index_from_fs(args.root)
    availability = build_availability_from_fs(args.root)
    index_path = os.path.join(out_dir, "scenarios.json")
    availability_path = os.path.join(out_dir, "availability.json")
    try:
        write_json_atomic(index_path, index.to_json_obj())
        write_json_atomic(availability_path, availability.to_json_obj())
    except IoError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    print(f"[INFO] Wrote scenario index to {index_path}")
    print(f"[INFO] Wrote availability manifest to {availability_path}")
    return 0


def _cmd_sample(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="sample", description="Load one selection and print snapshots as JSON."
    )
    _add_selection_args(p)
    p.add_argument(
        "--t",
        dest="times",
        type=float,
        action="append",
        default=None,
        help="Query time (repeatable). Default: 0 and the final grid time.",
    )
    args = p.parse_args(argv)

    engine = _run_load(args)
    if engine is None:
        return EXIT_LOAD_FAILED
    times = args.times if args.times else [0.0, engine.duration]
    out = {
        "duration": engine.duration,
        "snapshots": [_snapshot_json(engine.sample(t)) for t in times],
    }
    print(json.dumps(out, indent=2))
    return 0


def _cmd_diagnose(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="diagnose", description="Load one selection and report every conforming event."
    )
    _add_selection_args(p)
    args = p.parse_args(argv)

    engine = _run_load(args)
    if engine is None:
        return EXIT_LOAD_FAILED
    diagnostics = engine.diagnostics
    out = {
        "samples": len(engine.store.grid),
        "duration": engine.duration,
        "summary": diagnostics.summary(),
        "discrepancies": [
            {
                "kind": d.kind.value,
                "source": d.source,
                "expected": d.expected,
                "actual": d.actual,
                "detail": d.detail,
            }
            for d in diagnostics
        ],
    }
    print(json.dumps(out, indent=2))
    return 0


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="qtsviz", description="Queue/throughput series utilities CLI.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("index")
    sub.add_parser("sample")
    sub.add_parser("diagnose")
    return p


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        build_argparser().print_help()
        return
    cmd, rest = argv[0], argv[1:]
    if cmd == "index":
        code = _cmd_index(rest)
    elif cmd == "sample":
        code = _cmd_sample(rest)
    elif cmd == "diagnose":
        code = _cmd_diagnose(rest)
    else:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
