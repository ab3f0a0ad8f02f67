"""Summary statistics of attribute values, for building symbology scales."""

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from mapmap.models.feature import Feature


@dataclass
class ValueStats:
    """Statistics of one attribute over a set of features."""

    count: int = 0
    count_numbers: int = 0
    any_negative: bool = False
    any_positive: bool = False
    any_strings: bool = False
    min: float | None = None
    max: float | None = None

    @property
    def symmetric_domain(self) -> tuple[float, float] | None:
        """Domain centered on zero when values have both signs, else (min, max)."""
        if self.min is None:
            return None
        if self.any_negative and self.any_positive:
            return (min(self.min, -self.max), max(self.max, -self.min))
        return (self.min, self.max)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def value_stats(features: Iterable[Feature], value: str | Callable[[dict], Any]) -> ValueStats:
    """
    Collect statistics of an attribute.

    Args:
        features: Features to scan
        value: Property name, or a function properties -> value

    Returns:
        ValueStats; features without the value are not counted
    """
    accessor = value if callable(value) else (lambda properties: properties.get(value))
    stats = ValueStats()
    for feature in features:
        raw = accessor(feature.properties)
        if raw is None:
            continue
        stats.count += 1
        number = _as_number(raw)
        if number is None:
            if raw != "":
                stats.any_strings = True
            continue
        if not math.isfinite(number):
            continue
        stats.count_numbers += 1
        stats.min = number if stats.min is None else min(stats.min, number)
        stats.max = number if stats.max is None else max(stats.max, number)
        if number > 0:
            stats.any_positive = True
        if number < 0:
            stats.any_negative = True
    return stats
