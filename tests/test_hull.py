"""Tests for hull module."""

import math
import warnings

import pytest
from shapely.geometry import Polygon

from redlist_metrics.hull import convex_hull, eoo_hull_and_area, planar_area_km2

TRIANGLE = [(-50.0, -10.0), (-49.0, -10.0), (-50.0, -9.0)]


class TestConvexHull:
    """Tests for the convex_hull function."""

    def test_triangle(self):
        """Test that three distinct points form a triangular polygon."""
        hull = convex_hull(TRIANGLE)

        assert isinstance(hull, Polygon)
        assert len(hull.exterior.coords) == 4

    def test_interior_point_is_not_a_vertex(self):
        """Test that points inside the hull do not appear on its ring."""
        hull = convex_hull(TRIANGLE + [(-49.8, -9.8)])

        assert (-49.8, -9.8) not in list(hull.exterior.coords)
        assert len(hull.exterior.coords) == 4

    @pytest.mark.parametrize("points", [
        [],
        [(-50.0, -10.0)],
        [(-50.0, -10.0), (-49.0, -9.0)],
        [(-50.0, -10.0), (-50.0, -10.0), (-49.0, -9.0)],
    ])
    def test_fewer_than_three_distinct_points(self, points):
        """Test that fewer than three distinct points have no hull."""
        assert convex_hull(points) is None

    def test_collinear_points(self):
        """Test that collinear points have no hull."""
        assert convex_hull([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]) is None

    def test_order_independent(self):
        """Test that the hull does not depend on input order."""
        points = TRIANGLE + [(-49.2, -9.3), (-49.9, -9.9)]
        assert convex_hull(points).equals(convex_hull(list(reversed(points))))


class TestPlanarArea:
    """Tests for planar_area_km2 and eoo_hull_and_area."""

    def test_triangle_area(self):
        """Test the 1-degree triangle near (-10, -50) is about 6182 km²."""
        hull, area = eoo_hull_and_area(TRIANGLE)

        assert hull is not None
        assert area == pytest.approx(6182, rel=0.2)

    def test_equatorial_square_area(self):
        """Test that a 1x1 degree square on the equator is about 12390 km²."""
        square = [(10.0, 0.0), (11.0, 0.0), (11.0, 1.0), (10.0, 1.0)]
        _, area = eoo_hull_and_area(square)

        assert area == pytest.approx(12393, rel=0.01)

    def test_area_grows_with_latitude(self):
        """Test the planar approximation inflates areas away from the equator."""
        _, equator = eoo_hull_and_area([(10.0, 0.0), (11.0, 0.0), (10.0, 1.0)])
        _, north = eoo_hull_and_area([(10.0, 60.0), (11.0, 60.0), (10.0, 61.0)])

        assert north > equator

    def test_missing_hull_area_is_zero(self):
        """Test that no hull means zero area."""
        assert planar_area_km2(None) == 0.0
        assert eoo_hull_and_area([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)]) == (None, 0.0)

    def test_near_collinear_area_is_finite_and_non_negative(self):
        """Test that an almost flat hull never yields NaN or a negative area."""
        _, area = eoo_hull_and_area([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0 + 1e-12)])

        assert math.isfinite(area)
        assert area >= 0.0

    def test_duplicates_do_not_change_area(self):
        """Test that repeating a vertex leaves the area unchanged."""
        _, area = eoo_hull_and_area(TRIANGLE)
        _, repeated = eoo_hull_and_area(TRIANGLE + TRIANGLE[:2])

        assert repeated == pytest.approx(area)

    def test_projection_emits_no_warnings(self):
        """Test that projecting the hull raises no deprecation warnings."""
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            _, area = eoo_hull_and_area(TRIANGLE)

        assert area > 0
