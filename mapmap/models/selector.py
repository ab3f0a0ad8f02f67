"""Selector variants addressing features of a map.

A selector says "which features": the current selection, a named layer, all
features sharing a property value, all features matching a predicate, or one
concrete feature. Plain Python values are converted with as_selector().
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Union

from mapmap.models.feature import Feature


@dataclass(frozen=True)
class CurrentSelection:
    """The map's current selection (every feature when nothing is selected)."""


@dataclass(frozen=True)
class LayerName:
    """A layer by name, falling back to a property lookup when no layer matches."""

    name: str

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise TypeError(f"Layer name must be a string, got {type(self.name).__name__}")


@dataclass(frozen=True)
class PropertyMatch:
    """Features whose property value equals a string, case-insensitively.

    properties lists the candidate property names in priority order; None uses
    the map's identification properties.
    """

    value: str
    properties: tuple[str, ...] | None = None

    def __post_init__(self):
        if isinstance(self.properties, str):
            object.__setattr__(self, "properties", (self.properties,))
        elif self.properties is not None:
            object.__setattr__(self, "properties", tuple(self.properties))


@dataclass(frozen=True)
class Predicate:
    """Features whose properties satisfy a function."""

    func: Callable[[dict], Any]
    name: str = "function"

    def __post_init__(self):
        if not callable(self.func):
            raise TypeError(f"Predicate requires a callable, got {type(self.func).__name__}")


@dataclass(frozen=True)
class ConcreteFeature:
    """A single, already known feature."""

    feature: Feature

    def __post_init__(self):
        if not isinstance(self.feature, Feature):
            raise TypeError(f"ConcreteFeature requires a Feature, got {type(self.feature).__name__}")


Selector = Union[CurrentSelection, LayerName, PropertyMatch, Predicate, ConcreteFeature]

SELECTOR_TYPES = (CurrentSelection, LayerName, PropertyMatch, Predicate, ConcreteFeature)


def as_selector(value: Any) -> Selector:
    """
    Convert a plain value into a selector.

    Args:
        value: None, a string, a number (looked up by its string form), a
               callable, a Feature, or an existing selector

    Returns:
        The matching selector variant

    Raises:
        TypeError: If the value cannot address features
    """
    if isinstance(value, SELECTOR_TYPES):
        return value
    if value is None:
        return CurrentSelection()
    if isinstance(value, Feature):
        return ConcreteFeature(value)
    if isinstance(value, str):
        return LayerName(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return LayerName(str(value))
    if callable(value):
        return Predicate(value, getattr(value, "__name__", "function"))
    raise TypeError(f"Cannot use {type(value).__name__} as a feature selector")


def selector_name(selector: Selector) -> str:
    """Short name of a selector, e.g. for CSS classes or log messages."""
    match selector:
        case CurrentSelection():
            return "all"
        case LayerName(name=name):
            return name
        case PropertyMatch(value=value):
            return value
        case Predicate(name=name):
            return name
        case ConcreteFeature():
            return "feature"
    raise TypeError(f"Not a selector: {selector!r}")


def ensure_properties(properties: str | Sequence[str]) -> tuple[str, ...]:
    """Normalize a single property name or a sequence of names into a tuple."""
    if isinstance(properties, str):
        return (properties,)
    return tuple(properties)
