"""Utility functions for collecting coordinates and bounds of GeoJSON geometry."""

import logging
from collections.abc import Iterable, Iterator

import numpy as np

from mapmap.models.extent import Extent
from mapmap.models.feature import Feature

logger = logging.getLogger(__name__)


def iter_positions(geometry: dict | None) -> Iterator[tuple[float, float]]:
    """
    Yield every (lon, lat) position of a GeoJSON geometry.

    Args:
        geometry: GeoJSON geometry mapping (None yields nothing)

    Yields:
        (lon, lat) tuples, altitude dropped
    """
    if not geometry:
        return
    if geometry.get("type") == "GeometryCollection":
        for member in geometry.get("geometries") or []:
            yield from iter_positions(member)
        return
    yield from _walk(geometry.get("coordinates"))


def _walk(coordinates) -> Iterator[tuple[float, float]]:
    if not coordinates:
        return
    if isinstance(coordinates[0], (int, float)):
        yield (float(coordinates[0]), float(coordinates[1]))
        return
    for part in coordinates:
        yield from _walk(part)


def extract_coordinates(features: Iterable[Feature]) -> np.ndarray:
    """
    Collect all positions of the given features.

    Args:
        features: Features to collect from

    Returns:
        Array of shape (N, 2) with lon, lat columns (N may be 0)
    """
    positions = [p for feature in features for p in iter_positions(feature.geometry)]
    if not positions:
        return np.empty((0, 2), dtype=float)
    return np.asarray(positions, dtype=float)


def calculate_bbox(coords: np.ndarray) -> Extent | None:
    """
    Calculate bounding box from a coordinate array.

    Args:
        coords: Array of shape (N, 2) with lon, lat columns

    Returns:
        Extent representing the bounding box, None for an empty array
    """
    if len(coords) == 0:
        return None
    mins = coords.min(axis=0)
    maxs = coords.max(axis=0)
    return Extent(
        min_lon=float(mins[0]),
        min_lat=float(mins[1]),
        max_lon=float(maxs[0]),
        max_lat=float(maxs[1]),
    )


def calculate_extent(features: Iterable[Feature]) -> Extent | None:
    """
    Calculate the geographic extent of features.

    Args:
        features: Features to measure

    Returns:
        Extent of all positions, None if the features have no coordinates
    """
    return calculate_bbox(extract_coordinates(features))
