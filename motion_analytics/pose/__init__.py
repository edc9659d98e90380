"""Pose data model."""

from motion_analytics.pose.keypoints import (
    COCO17_KEYPOINTS,
    InvalidKeypointError,
    Keypoint,
    PoseFrame,
)

__all__ = ["COCO17_KEYPOINTS", "InvalidKeypointError", "Keypoint", "PoseFrame"]
