"""
Great-Circle Geometry Unit Tests
================================

Tests for haversine distance.
"""

import pytest

from trackdash.tracking.geo import great_circle_distance


class TestHaversineFormula:
    """Tests for haversine distance calculation."""

    def test_same_point_zero_distance(self):
        """Same point should return 0."""
        assert great_circle_distance(41.0, 29.0, 41.0, 29.0) == 0.0

    def test_equator_one_degree(self):
        """One degree longitude at equator is ~111195m."""
        d = great_circle_distance(0, 0, 0, 1)
        assert d == pytest.approx(111_195, rel=0.01)

    def test_known_distance_istanbul_ankara(self):
        """Istanbul to Ankara is approximately 350km."""
        km = great_circle_distance(41.0082, 28.9784, 39.9334, 32.8597) / 1000
        assert 340 < km < 360

    @pytest.mark.parametrize(
        "a, b",
        [
            ((41.0, 29.0), (42.0, 30.0)),
            ((-33.86, 151.21), (51.5, -0.12)),
            ((0.0, 179.9), (0.0, -179.9)),
            ((89.9, 0.0), (-89.9, 180.0)),
        ],
    )
    def test_symmetry(self, a, b):
        """Distance A->B should equal B->A."""
        assert great_circle_distance(*a, *b) == pytest.approx(great_circle_distance(*b, *a))

    def test_small_step(self):
        """0.001 degree of longitude at the equator is ~111.2m."""
        assert great_circle_distance(0, 0, 0, 0.001) == pytest.approx(111.195, rel=1e-3)

    def test_antipodal_points(self):
        """Antipodal points are half the circumference apart."""
        d = great_circle_distance(0, 0, 0, 180)
        assert d == pytest.approx(6371000 * 3.141592653589793, rel=1e-9)
