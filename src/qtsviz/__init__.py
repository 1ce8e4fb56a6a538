"""
qtsviz: temporal alignment and sampling of network-simulation telemetry.

Sub-packages
- qtsviz.core: zero-IO contracts (grammar, schemas, topology, constants).
- qtsviz.io: paths, sources, CSV parsing, manifests, configuration, errors.
- qtsviz.engine: series store, aligner, sampling engine, load orchestration.

The command-line entry point lives in qtsviz.cli.
"""

__version__ = "0.1.0"
