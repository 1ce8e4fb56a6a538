"""
Diagnostic channel for data-completeness events.

Every conforming action taken while assembling a SeriesStore (truncation, zero padding,
zero substitution, omitted optional series) is recorded here instead of being raised,
so callers can audit a load without aborting it. Each report is also logged at
WARNING level, except omitted optional series that were simply absent (404), which log
at DEBUG.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass

from qtsviz.core.grammar import DiscrepancyKind

__all__ = ["Discrepancy", "Diagnostics"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Discrepancy:
    """
    One conforming event.

    Attributes:
        kind (DiscrepancyKind): What was done to the series.
        source (str): Resource path (or label) of the affected series.
        expected (int): Baseline grid length at the time of the event.
        actual (int | None): Length supplied by the resource; None when unavailable.
        detail (str): Free-form reason (e.g., the fetch/parse error message).
    """

    kind: DiscrepancyKind
    source: str
    expected: int
    actual: int | None = None
    detail: str = ""

    def describe(self) -> str:
        got = "unavailable" if self.actual is None else str(self.actual)
        text = f"{self.kind.value}: {self.source} (expected {self.expected}, got {got})"
        return f"{text}: {self.detail}" if self.detail else text


class Diagnostics:
    """Append-only collector of Discrepancy records for one load."""

    def __init__(self) -> None:
        self._items: list[Discrepancy] = []

    def __iter__(self) -> Iterator[Discrepancy]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def report(
        self,
        kind: DiscrepancyKind,
        source: str,
        *,
        expected: int,
        actual: int | None = None,
        detail: str = "",
        quiet: bool = False,
    ) -> Discrepancy:
        item = Discrepancy(
            kind=kind, source=source, expected=expected, actual=actual, detail=detail
        )
        self._items.append(item)
        logger.log(logging.DEBUG if quiet else logging.WARNING, item.describe())
        return item

    def by_kind(self, kind: DiscrepancyKind) -> list[Discrepancy]:
        return [d for d in self._items if d.kind is kind]

    def summary(self) -> dict[str, int]:
        counts = Counter(d.kind.value for d in self._items)
        return {k.value: counts.get(k.value, 0) for k in DiscrepancyKind}
