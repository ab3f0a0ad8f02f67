"""Tests for the projection and extent fitting."""

import pytest

from mapmap.core.projection import MAX_MERCATOR_LAT, MercatorProjection, ProjectionState, compute_extent, fit_scale
from mapmap.models.extent import Extent
from mapmap.models.feature import Feature
from mapmap.models.map_settings import Canvas, ExtentOptions, FocalCenter
from mapmap.utils.geo_bounds import calculate_extent


def _square(lon0, lat0, lon1, lat1):
    ring = [[lon0, lat0], [lon1, lat0], [lon1, lat1], [lon0, lat1], [lon0, lat0]]
    return Feature(geometry={"type": "Polygon", "coordinates": [ring]})


def test_fit_scale_centered():
    """A 200x100 box fills 95% of an 800x400 canvas at scale 3.8."""
    scale = fit_scale(200, 100, Canvas(800, 400), FocalCenter(), 0.95)
    assert scale == pytest.approx(3.8)


def test_fit_scale_limited_by_tighter_axis():
    scale = fit_scale(400, 100, Canvas(800, 400), FocalCenter(), 1.0)
    assert scale == pytest.approx(2.0)


def test_fit_scale_off_center_tightens():
    """Moving the focal center towards an edge shrinks the scale."""
    centered = fit_scale(200, 100, Canvas(800, 400), FocalCenter(), 0.95)
    shifted = fit_scale(200, 100, Canvas(800, 400), FocalCenter(x=0.25), 0.95)

    assert shifted == pytest.approx(centered / 2)


def test_fit_scale_degenerate_box():
    assert fit_scale(0, 0, Canvas(), FocalCenter(), 0.95) == 1.0


def test_focal_center_validation():
    with pytest.raises(ValueError):
        FocalCenter(x=0)
    with pytest.raises(ValueError):
        FocalCenter(y=1.5)


def test_compute_extent_centers_features():
    """After fitting, the geometry is centered and fills the canvas."""
    projection = MercatorProjection()
    canvas = Canvas(800, 400)
    features = [_square(0, -10, 20, 10)]

    extent = compute_extent(features, projection, canvas, FocalCenter(), ExtentOptions(fill=0.95))

    assert extent == Extent(0, -10, 20, 10)
    assert projection.state.center == (10.0, 0.0)
    assert projection.state.translate == (400, 200)
    (x0, y0), (x1, y1) = projection.bounds(features)
    assert (x0 + x1) / 2 == pytest.approx(400)
    assert (y0 + y1) / 2 == pytest.approx(200)
    # the wider-than-canvas ratio axis reaches 95% of the canvas
    assert max((x1 - x0) / 800, (y1 - y0) / 400) == pytest.approx(0.95)


def test_compute_extent_without_coordinates():
    """Features without coordinates leave the projection untouched."""
    projection = MercatorProjection(ProjectionState(scale=5))
    extent = compute_extent([Feature(geometry=None)], projection, Canvas(), FocalCenter())

    assert extent is None
    assert projection.state.scale == 5


def test_project_invert_roundtrip():
    projection = MercatorProjection(ProjectionState(scale=300, center=(10, 45), translate=(400, 200)))

    assert projection.project(10, 45) == pytest.approx((400, 200))
    x, y = projection.project(12, 47)
    assert x > 400
    assert y < 200  # north is up
    assert projection.invert(x, y) == pytest.approx((12, 47))


def test_latitude_is_clamped():
    """Positions beyond the Mercator limit project onto the limit."""
    projection = MercatorProjection()
    assert projection.project(0, 90) == pytest.approx(projection.project(0, MAX_MERCATOR_LAT))
    assert projection.project(0, -90) == pytest.approx(projection.project(0, -MAX_MERCATOR_LAT))


def test_calculate_extent_of_mixed_geometry():
    features = [
        _square(0, 0, 1, 1),
        Feature(geometry={"type": "Point", "coordinates": [5, -3, 100]}),
        Feature(geometry={"type": "GeometryCollection", "geometries": [{"type": "Point", "coordinates": [-2, 4]}]}),
    ]
    assert calculate_extent(features) == Extent(-2, -3, 5, 4)
    assert calculate_extent([]) is None


def test_extent_validity():
    assert Extent(16, 48, 16, 48).is_valid()
    assert not Extent(10, 0, 5, 1).is_valid()
    assert not Extent(0, 0, 2000000, 1000000).is_valid()
