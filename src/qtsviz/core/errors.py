"""
Core exception types raised by grammar normalization and topology validation.

Provides typed exceptions for core-domain failures:
- GrammarError for enum/naming normalization violations.
- SchemaError for structural constraints on selections and layouts.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Validators in qtsviz.core.schema raise:
        - GrammarError for unknown node/metric/series kinds.
        - SchemaError for dangling link endpoints or duplicate identifiers.
    - IO-layer failures (fetching, parsing, alignment) live in qtsviz.io.errors.

Examples:
    Catch a normalization failure.

    >>> from qtsviz.core.errors import GrammarError
    >>> from qtsviz.core.grammar import node_type_from_value
    >>> try:
    ...     node_type_from_value("router")
    ... except GrammarError as e:
    ...     msg = str(e)
    >>> "node_type" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "SchemaError",
    "GrammarError",
]


class SchemaError(ValueError):
    """Schema-level validation failure (dangling references, duplicate ids, shape)."""


class GrammarError(ValueError):
    """Grammar/naming normalization failure (e.g., not lower_snake or unknown enum value)."""
