"""Resolution of selectors to features.

Resolution order for a name: a layer with that name (case-insensitive) wins
outright; otherwise every feature whose value of a candidate property matches
the name is collected, one candidate property after the other.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from mapmap.core.config import CANONICAL_KEY
from mapmap.core.layer_store import LayerStore
from mapmap.models.feature import Feature, normalize_key
from mapmap.models.selector import (
    ConcreteFeature,
    CurrentSelection,
    LayerName,
    Predicate,
    PropertyMatch,
    Selector,
    ensure_properties,
)

logger = logging.getLogger(__name__)

Resolution = Feature | list[Feature]
ResolverFunc = Callable[[LayerStore, Selector], Resolution]


def match_properties(store: LayerStore, value: str, properties: Sequence[str]) -> list[Feature]:
    """
    Collect features whose property value equals a string, case-insensitively.

    Properties are scanned in priority order and the matches concatenated;
    a feature matching on several properties appears once per property.

    Args:
        store: Layer store to scan
        value: Value to match
        properties: Candidate property names in priority order

    Returns:
        Matching features (possibly empty)
    """
    wanted = normalize_key(value)
    result = []
    for prop in properties:
        for layer in store.layers():
            for feature in layer.features:
                candidate = feature.get_value(prop)
                if candidate is not None and normalize_key(candidate) == wanted:
                    result.append(feature)
    return result


def match_predicate(store: LayerStore, func: Callable[[dict], object]) -> list[Feature]:
    """Collect features whose properties satisfy func, in store order."""
    return [feature for feature in store.features() if func(feature.properties)]


def resolve_by_properties(properties: str | Sequence[str] = (CANONICAL_KEY,)) -> ResolverFunc:
    """
    Build the default resolver.

    Args:
        properties: Candidate property names for name lookups, in priority order

    Returns:
        Resolver function (store, selector) -> feature or list of features
    """
    properties = ensure_properties(properties)
    if not properties:
        raise ValueError("At least one identification property is required")

    def resolve(store: LayerStore, selector: Selector) -> Resolution:
        match selector:
            case ConcreteFeature(feature=feature):
                return feature
            case Predicate(func=func):
                return match_predicate(store, func)
            case LayerName(name=name):
                layer = store.find(name)
                if layer is not None:
                    return list(layer.features)
                return match_properties(store, name, properties)
            case PropertyMatch(value=value, properties=candidates):
                return match_properties(store, value, candidates or properties)
            case CurrentSelection():
                return store.features()
        raise TypeError(f"Not a selector: {selector!r}")

    return resolve


def resolve_layer(store: LayerStore, selector: Selector) -> Resolution:
    """Resolver that only knows layers: names never fall back to properties."""
    match selector:
        case LayerName(name=name):
            layer = store.find(name)
            return list(layer.features) if layer is not None else []
        case _:
            return resolve_by_properties()(store, selector)


def as_list(resolution: Resolution | None) -> list[Feature]:
    """Normalize a resolver result to a list of features."""
    if resolution is None:
        return []
    if isinstance(resolution, Feature):
        return [resolution]
    return list(resolution)
