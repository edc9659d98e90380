"""Geometry utilities for motion analysis."""

from typing import Sequence

import numpy as np

Point = Sequence[float]


def joint_angle(point1: Point, vertex: Point, point3: Point) -> float | None:
    """Calculate the angle at a joint formed by three points (in degrees).

    The angle is measured at ``vertex`` between the vectors vertex->point1 and
    vertex->point3. Works for 2D and 3D points.

    Args:
        point1: First neighbour (x, y[, z]).
        vertex: Joint position (x, y[, z]).
        point3: Second neighbour (x, y[, z]).

    Returns:
        Angle in degrees (0-180), or None if either arm has zero length.

    Example:
        >>> joint_angle((0, 1), (0, 0), (1, 0))
        90.0
    """
    v1 = np.asarray(point1, dtype=float) - np.asarray(vertex, dtype=float)
    v2 = np.asarray(point3, dtype=float) - np.asarray(vertex, dtype=float)

    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return None

    cos_angle = np.dot(v1, v2) / (norm1 * norm2)
    cos_angle = np.clip(cos_angle, -1.0, 1.0)  # Handle numerical errors

    return float(np.degrees(np.arccos(cos_angle)))


def euclidean_distance(point1: Point, point2: Point) -> float:
    """Calculate Euclidean distance between two points of equal dimension.

    Args:
        point1: First point.
        point2: Second point.

    Returns:
        Distance between points.
    """
    return float(np.linalg.norm(np.asarray(point1, dtype=float) - np.asarray(point2, dtype=float)))


def magnitude(dx: float, dy: float) -> float:
    """Length of a 2D displacement."""
    return float(np.hypot(dx, dy))


def midpoint(point1: Point, point2: Point) -> tuple[float, float]:
    """Calculate midpoint between two 2D points.

    Args:
        point1: First point (x, y).
        point2: Second point (x, y).

    Returns:
        Midpoint (x, y).
    """
    return ((point1[0] + point2[0]) / 2, (point1[1] + point2[1]) / 2)


def path_length(points: Sequence[Point]) -> float:
    """Calculate total path length of a polyline.

    Args:
        points: Ordered positions.

    Returns:
        Sum of consecutive segment lengths (0.0 for fewer than two points).
    """
    if len(points) < 2:
        return 0.0

    positions = np.asarray(points, dtype=float)
    return float(np.sum(np.linalg.norm(np.diff(positions, axis=0), axis=1)))
