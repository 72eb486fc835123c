"""
Per-property metrics (averaging strategy)
=========================================

The engine averages several per-property numbers over a ZIP code. Instead of
one loop per number, each metric resolves to an *extraction function*
(`PropertyRecord -> Optional[int]`) and a single routine does the averaging.

Adding a metric means adding an enum member and one line in `_EXTRACTORS`.
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

from .models import PropertyRecord

Extractor = Callable[[PropertyRecord], Optional[int]]


class PropertyMetric(Enum):
    MARKET_VALUE = "market_value"
    LIVABLE_AREA = "total_livable_area"

    @classmethod
    def parse(cls, name: str) -> "PropertyMetric":
        """Resolve a user-facing metric name (a few aliases are accepted)."""
        f = name.lower().strip()
        if f in ("market_value", "value", "market"):
            return cls.MARKET_VALUE
        if f in ("total_livable_area", "livable_area", "area"):
            return cls.LIVABLE_AREA
        raise ValueError("metric must be: market_value, livable_area")


_EXTRACTORS: Dict[PropertyMetric, Extractor] = {
    PropertyMetric.MARKET_VALUE: lambda p: p.market_value,
    PropertyMetric.LIVABLE_AREA: lambda p: p.total_livable_area,
}


def extractor(metric: PropertyMetric) -> Extractor:
    return _EXTRACTORS[metric]


def trunc_div(total: int, count: int) -> int:
    """Integer division truncated toward zero."""
    q = abs(total) // abs(count)
    return q if (total >= 0) == (count > 0) else -q


def average_of(properties: Sequence[PropertyRecord], extract: Extractor) -> int:
    """Mean of `extract(p)` over `properties`, truncated to an int.

    Absent values count as 0 but still count toward the divisor.
    An empty sequence averages to 0.
    """
    if not properties:
        return 0
    total = 0
    for p in properties:
        v = extract(p)
        total += v if v is not None else 0
    return trunc_div(total, len(properties))
