"""Joint angle calculation from pose keypoints."""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from motion_analytics.pose.keypoints import PoseFrame
from motion_analytics.utils.geometry import joint_angle


@dataclass(frozen=True)
class JointDefinition:
    """Three keypoints forming a joint; the angle is measured at ``vertex``."""

    point1: str
    vertex: str
    point3: str
    weight: float


JOINT_DEFINITIONS: dict[str, JointDefinition] = {
    "left_elbow": JointDefinition("left_shoulder", "left_elbow", "left_wrist", 1.0),
    "right_elbow": JointDefinition("right_shoulder", "right_elbow", "right_wrist", 1.0),
    "left_knee": JointDefinition("left_hip", "left_knee", "left_ankle", 1.2),
    "right_knee": JointDefinition("right_hip", "right_knee", "right_ankle", 1.2),
    "left_shoulder": JointDefinition("left_elbow", "left_shoulder", "left_hip", 0.8),
    "right_shoulder": JointDefinition("right_elbow", "right_shoulder", "right_hip", 0.8),
    "left_hip": JointDefinition("left_shoulder", "left_hip", "left_knee", 1.1),
    "right_hip": JointDefinition("right_shoulder", "right_hip", "right_knee", 1.1),
    "neck": JointDefinition("nose", "left_shoulder", "right_shoulder", 0.7),
}

# Joints that can lock out
EXTENSION_JOINTS = ("left_elbow", "right_elbow", "left_knee", "right_knee")


@dataclass
class JointAngles:
    """Joint angles for one frame.

    Attributes:
        raw: Geometric angle in degrees per joint.
        weighted: raw x mean triad confidence x joint weight. Used for display
            emphasis only; threshold checks must read ``raw``.
    """

    raw: dict[str, float] = field(default_factory=dict)
    weighted: dict[str, float] = field(default_factory=dict)

    def __contains__(self, joint: str) -> bool:
        return joint in self.raw

    def __getitem__(self, joint: str) -> float:
        return self.raw[joint]


class JointAngleAnalyzer:
    """Compute the fixed set of joint angles for a pose frame."""

    def __init__(
        self,
        min_confidence: float = 0.3,
        hyperextension_threshold: float = 175.0,
    ):
        """Initialize analyzer.

        Args:
            min_confidence: Every keypoint of a triad must reach this confidence.
            hyperextension_threshold: Raw angle (degrees) at which an elbow or
                knee is reported as locked out.
        """
        self.min_confidence = min_confidence
        self.hyperextension_threshold = hyperextension_threshold

    def calculate(self, frame: PoseFrame, weighted: bool = True) -> JointAngles:
        """Calculate joint angles.

        Joints with a missing or low-confidence keypoint, or a degenerate
        (zero-length) arm, are omitted.

        Args:
            frame: Pose frame.
            weighted: Also fill the confidence/importance-weighted view.

        Returns:
            JointAngles.
        """
        angles = JointAngles()

        for name, joint in JOINT_DEFINITIONS.items():
            triad = [frame.get(kp_name) for kp_name in (joint.point1, joint.vertex, joint.point3)]
            if any(kp is None or not kp.is_valid(self.min_confidence) for kp in triad):
                continue

            p1, vertex, p3 = triad
            angle = joint_angle(p1.position, vertex.position, p3.position)
            if angle is None:
                continue

            angles.raw[name] = angle
            if weighted:
                mean_confidence = sum(kp.confidence for kp in triad) / 3
                angles.weighted[name] = angle * mean_confidence * joint.weight

        return angles

    def check_extension_warnings(self, angles: JointAngles) -> list[str]:
        """Flag elbows and knees at or beyond the hyperextension threshold.

        Args:
            angles: Angles from ``calculate``.

        Returns:
            Warning messages, one per locked-out joint.
        """
        warnings = []
        for name in EXTENSION_JOINTS:
            angle = angles.raw.get(name)
            if angle is not None and angle >= self.hyperextension_threshold:
                warnings.append(f"{name.replace('_', ' ')} near full extension ({angle:.0f}°)")
        return warnings

    def angles_over_time(self, frames: Sequence[PoseFrame]) -> dict[str, np.ndarray]:
        """Collect raw angle series across frames.

        Args:
            frames: Ordered pose frames.

        Returns:
            Mapping of joint name to an array with one entry per frame
            (NaN where the joint was not measurable).
        """
        series = {name: np.full(len(frames), np.nan) for name in JOINT_DEFINITIONS}

        for i, frame in enumerate(frames):
            for name, angle in self.calculate(frame, weighted=False).raw.items():
                series[name][i] = angle

        return series
