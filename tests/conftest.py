"""Pytest configuration and fixtures."""

import pytest

from motion_analytics.pose.keypoints import Keypoint, PoseFrame

# Upright athlete, symmetric about x = 320
STANDING_POSE = {
    "nose": (320.0, 100.0),
    "left_shoulder": (280.0, 150.0),
    "right_shoulder": (360.0, 150.0),
    "left_elbow": (260.0, 200.0),
    "right_elbow": (380.0, 200.0),
    "left_wrist": (240.0, 250.0),
    "right_wrist": (400.0, 250.0),
    "left_hip": (290.0, 300.0),
    "right_hip": (350.0, 300.0),
    "left_knee": (285.0, 380.0),
    "right_knee": (355.0, 380.0),
    "left_ankle": (280.0, 450.0),
    "right_ankle": (360.0, 450.0),
}


def build_frame(
    points: dict[str, tuple[float, float]] | None = None,
    timestamp: float = 0.0,
    confidence: float = 0.9,
    shift: tuple[float, float] = (0.0, 0.0),
    camera_offset: tuple[float, float] | None = None,
) -> PoseFrame:
    """Build a PoseFrame from name -> (x, y), translated by ``shift``."""
    points = STANDING_POSE if points is None else points
    keypoints = [
        Keypoint(name=name, x=x + shift[0], y=y + shift[1], confidence=confidence)
        for name, (x, y) in points.items()
    ]
    return PoseFrame(keypoints=tuple(keypoints), timestamp=timestamp, camera_offset=camera_offset)


@pytest.fixture
def make_frame():
    """Factory for pose frames.

    Returns:
        Callable with the signature of ``build_frame``.
    """
    return build_frame


@pytest.fixture
def standing_frame():
    """Upright pose at t = 0 with confidence 0.9."""
    return build_frame()


@pytest.fixture
def sample_pose_data():
    """Create sample detector output for testing.

    Returns:
        Dictionary with mock pose data in the keyed layout.
    """
    return {
        "keypoints": {
            name: {"x": x, "y": y, "confidence": 0.85} for name, (x, y) in STANDING_POSE.items()
        },
        "timestamp": 1.5,
        "confidence": 0.92,
    }
