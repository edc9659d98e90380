"""Unit tests for geometry utilities."""

import pytest

from motion_analytics.utils.geometry import (
    euclidean_distance,
    joint_angle,
    magnitude,
    midpoint,
    path_length,
)


class TestJointAngle:
    """Test joint angle calculation."""

    def test_right_angle(self):
        """Test 90-degree angle calculation."""
        angle = joint_angle((0, 1), (0, 0), (1, 0))
        assert abs(angle - 90.0) < 0.01

    def test_straight_line(self):
        """Test 180-degree angle (straight line)."""
        angle = joint_angle((0, 0), (1, 0), (2, 0))
        assert abs(angle - 180.0) < 0.01

    def test_acute_angle(self):
        """Test 45-degree angle."""
        angle = joint_angle((0, 1), (0, 0), (1, 1))
        assert abs(angle - 45.0) < 0.01

    def test_three_dimensional(self):
        """Test angle between 3D points."""
        angle = joint_angle((1, 0, 0), (0, 0, 0), (0, 0, 1))
        assert abs(angle - 90.0) < 0.01

    def test_zero_length_arm(self):
        """Coincident points give no angle."""
        assert joint_angle((0, 0), (0, 0), (1, 0)) is None
        assert joint_angle((1, 0), (0, 0), (0, 0)) is None


class TestDistance:
    """Test distance calculation functions."""

    def test_euclidean_distance_horizontal(self):
        """Test horizontal distance."""
        assert euclidean_distance((0, 0), (3, 0)) == 3.0

    def test_euclidean_distance_diagonal(self):
        """Test 3-4-5 triangle."""
        assert abs(euclidean_distance((0, 0), (3, 4)) - 5.0) < 1e-9

    def test_magnitude(self):
        """Test displacement magnitude."""
        assert magnitude(3, 4) == pytest.approx(5.0)
        assert magnitude(0, 0) == 0.0


class TestMidpoint:
    """Test midpoint calculation."""

    def test_midpoint(self):
        assert midpoint((0, 0), (10, 20)) == (5.0, 10.0)


class TestPathLength:
    """Test polyline length."""

    def test_square(self):
        """Closed square path length equals its perimeter."""
        square = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        assert path_length(square) == pytest.approx(40.0)

    def test_short_paths(self):
        """Fewer than two points have no length."""
        assert path_length([]) == 0.0
        assert path_length([(1, 1)]) == 0.0
