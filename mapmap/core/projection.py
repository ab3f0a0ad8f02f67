"""Per-map Mercator projection state and extent fitting.

Projected canvas coordinates are computed like a d3 Mercator projection:
unit-sphere Mercator coordinates (y pointing down) are scaled around the
projected center and shifted by the translate offset.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pyproj

from mapmap.models.extent import Extent
from mapmap.models.feature import Feature
from mapmap.models.map_settings import Canvas, ExtentOptions, FocalCenter
from mapmap.utils.geo_bounds import calculate_bbox, extract_coordinates

logger = logging.getLogger(__name__)

# Latitude limit of the Mercator projection (poles project to infinity)
MAX_MERCATOR_LAT = 85.05112878


@dataclass
class ProjectionState:
    """Scale, geographic center and pixel translate of one map's projection."""

    scale: float = 1.0
    center: tuple[float, float] = (0.0, 0.0)  # lon, lat
    translate: tuple[float, float] = (0.0, 0.0)  # pixels

    def __post_init__(self):
        """Validate scale."""
        if self.scale <= 0:
            raise ValueError(f"Projection scale must be positive, got {self.scale}")


class MercatorProjection:
    """Spherical Mercator projection bound to a mutable ProjectionState."""

    def __init__(self, state: ProjectionState | None = None):
        """
        Initialize projection.

        Args:
            state: Projection state, a neutral state if None
        """
        self.state = state or ProjectionState()
        self._proj = pyproj.Proj(proj="merc", R=1)

    def raw(self, lon, lat):
        """
        Unit-sphere Mercator coordinates with the y axis pointing down.

        Accepts scalars or numpy arrays.
        """
        lat = np.clip(lat, -MAX_MERCATOR_LAT, MAX_MERCATOR_LAT)
        x, y = self._proj(lon, lat)
        return x, np.negative(y)

    def project(self, lon: float, lat: float) -> tuple[float, float]:
        """
        Convert a geographic position to canvas coordinates.

        Args:
            lon: Longitude in degrees
            lat: Latitude in degrees

        Returns:
            (x, y) canvas coordinates
        """
        projected = self.project_array(np.array([[lon, lat]], dtype=float))
        return (float(projected[0, 0]), float(projected[0, 1]))

    def project_array(self, coords: np.ndarray) -> np.ndarray:
        """
        Convert an (N, 2) lon/lat array to canvas coordinates.

        Args:
            coords: Array with lon, lat columns

        Returns:
            Array with x, y columns
        """
        if len(coords) == 0:
            return np.empty((0, 2), dtype=float)
        x, y = self.raw(coords[:, 0], coords[:, 1])
        cx, cy = self.raw(*self.state.center)
        scale = self.state.scale
        tx, ty = self.state.translate
        return np.column_stack((tx + scale * (x - cx), ty + scale * (y - cy)))

    def invert(self, x: float, y: float) -> tuple[float, float]:
        """
        Convert canvas coordinates back to a geographic position.

        Args:
            x: Canvas x
            y: Canvas y

        Returns:
            (lon, lat) in degrees
        """
        cx, cy = self.raw(*self.state.center)
        scale = self.state.scale
        tx, ty = self.state.translate
        mx = (x - tx) / scale + cx
        my = (y - ty) / scale + cy
        lon, lat = self._proj(mx, -my, inverse=True)
        return (float(lon), float(lat))

    def bounds(self, features: Iterable[Feature]) -> tuple[tuple[float, float], tuple[float, float]] | None:
        """
        Projected bounding box of features under the current state.

        Returns:
            ((x0, y0), (x1, y1)), None if the features have no coordinates
        """
        projected = self.project_array(extract_coordinates(features))
        if len(projected) == 0:
            return None
        mins = projected.min(axis=0)
        maxs = projected.max(axis=0)
        return ((float(mins[0]), float(mins[1])), (float(maxs[0]), float(maxs[1])))


def fit_scale(
    box_width: float,
    box_height: float,
    canvas: Canvas,
    focal_center: FocalCenter,
    fill: float,
) -> float:
    """
    Scale at which a projected box fits the canvas.

    The fit is tightened on an axis whose focal center is off-center, so the
    geometry is not clipped by the nearer canvas edge.

    Args:
        box_width: Width of the box at scale 1
        box_height: Height of the box at scale 1
        canvas: Canvas size
        focal_center: Focal center of the map
        fill: Fraction of the canvas the box may cover

    Returns:
        Scale factor; 1.0 for a degenerate (zero-size) box
    """
    bias_x, bias_y = focal_center.bias
    ratio = max(box_width / canvas.width / bias_x, box_height / canvas.height / bias_y)
    if ratio == 0:
        return 1.0
    return fill / ratio


def compute_extent(
    features: Iterable[Feature],
    projection: MercatorProjection,
    canvas: Canvas,
    focal_center: FocalCenter,
    options: ExtentOptions | None = None,
) -> Extent | None:
    """
    Fit a projection to features.

    Resets the scale to 1, measures the projected and the geographic bounding
    box, then sets scale, center (geographic midpoint) and translate (canvas
    center) on the projection's state.

    Args:
        features: Features to fit
        projection: Projection whose state is updated
        canvas: Canvas size
        focal_center: Focal center of the map
        options: Extent options, defaults if None

    Returns:
        Geographic extent that was fitted, None (state untouched) if the
        features have no coordinates
    """
    options = options or ExtentOptions()
    features = list(features)
    coords = extract_coordinates(features)
    geo_extent = calculate_bbox(coords)
    if geo_extent is None:
        logger.warning("No coordinates to fit the projection to")
        return None

    state = projection.state
    state.scale = 1.0
    state.center = (0.0, 0.0)
    projected = projection.project_array(coords)
    width, height = (projected.max(axis=0) - projected.min(axis=0)).tolist()

    state.scale = fit_scale(width, height, canvas, focal_center, options.fill)
    state.center = geo_extent.center
    state.translate = canvas.center

    logger.info(
        f"Fitted projection to {len(features)} features: scale {state.scale:.2f}, "
        f"center {state.center[0]:.4f}, {state.center[1]:.4f}"
    )
    return geo_extent
