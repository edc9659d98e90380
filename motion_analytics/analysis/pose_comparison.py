"""Comparison of a live pose against a reference pose."""

import math
from dataclasses import dataclass, field

from motion_analytics.pose.keypoints import COCO17_KEYPOINTS, PoseFrame
from motion_analytics.utils.geometry import euclidean_distance

# Importance per COCO-17 keypoint, in COCO index order
KEYPOINT_IMPORTANCE: dict[str, float] = dict(
    zip(
        COCO17_KEYPOINTS,
        [
            1.0, 0.8, 0.8, 0.6, 0.6,  # head
            1.2, 1.2,  # shoulders
            1.0, 1.0,  # elbows
            0.8, 0.8,  # wrists
            1.3, 1.3,  # hips
            1.1, 1.1,  # knees
            0.9, 0.9,  # ankles
        ],
    )
)

# Similarity falls to 1/e at this weighted mean distance (pixels)
SIMILARITY_SCALE = 50.0
# Base deviation threshold (pixels), divided by keypoint importance
DEVIATION_THRESHOLD = 30.0


@dataclass(frozen=True)
class KeypointDeviation:
    """A keypoint that is far from its reference position.

    ``direction`` points from the current position towards the reference.
    """

    name: str
    distance: float
    direction: tuple[float, float]


@dataclass
class PoseComparison:
    """Similarity of a pose to a reference."""

    similarity: float
    deviations: list[KeypointDeviation] = field(default_factory=list)
    keypoints_compared: int = 0


def compare_poses(
    current: PoseFrame,
    reference: PoseFrame,
    min_confidence: float = 0.3,
) -> PoseComparison:
    """Compare a pose to a reference pose.

    Keypoints are matched by name and must reach ``min_confidence`` in both
    poses. Unknown keypoint names get importance 1.0.

    Args:
        current: Live pose.
        reference: Target pose.
        min_confidence: Confidence threshold for both poses.

    Returns:
        PoseComparison with similarity = exp(-weighted mean distance / 50).
        With nothing to compare, similarity is 1.0.
    """
    deviations = []
    total_distance = 0.0
    compared = 0

    for kp in current.valid_keypoints(min_confidence):
        ref_kp = reference.get(kp.name)
        if ref_kp is None or not ref_kp.is_valid(min_confidence):
            continue

        weight = KEYPOINT_IMPORTANCE.get(kp.name, 1.0)
        distance = euclidean_distance(kp.position, ref_kp.position)
        total_distance += distance * weight
        compared += 1

        if distance > DEVIATION_THRESHOLD / weight:
            deviations.append(
                KeypointDeviation(
                    name=kp.name,
                    distance=distance,
                    direction=(ref_kp.x - kp.x, ref_kp.y - kp.y),
                )
            )

    average = total_distance / compared if compared else 0.0

    return PoseComparison(
        similarity=math.exp(-average / SIMILARITY_SCALE),
        deviations=deviations,
        keypoints_compared=compared,
    )
