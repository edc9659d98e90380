"""Center-of-mass estimation from pose keypoints."""

from dataclasses import dataclass

from motion_analytics.pose.keypoints import PoseFrame

# Body segments (COCO-17 names) and their anatomical mass fractions
BODY_SEGMENTS: dict[str, list[str]] = {
    "head": ["nose", "left_eye", "right_eye", "left_ear", "right_ear"],
    "shoulders": ["left_shoulder", "right_shoulder"],
    "upper_arms": ["left_elbow", "right_elbow"],
    "forearms": ["left_wrist", "right_wrist"],
    "torso": ["left_hip", "right_hip"],
    "thighs": ["left_knee", "right_knee"],
    "lower_legs": ["left_ankle", "right_ankle"],
}

DEFAULT_SEGMENT_WEIGHTS: dict[str, float] = {
    "head": 0.08,
    "shoulders": 0.16,
    "upper_arms": 0.06,
    "forearms": 0.04,
    "torso": 0.46,
    "thighs": 0.14,
    "lower_legs": 0.06,
}

COM_METHODS = ("mean", "segment_weighted")


@dataclass(frozen=True)
class CenterOfMass:
    """Estimated whole-body position in pixel coordinates.

    ``is_valid`` is False when no keypoint passed the confidence threshold;
    x and y are then 0.0 and must not be read as the image origin.
    """

    x: float
    y: float
    is_valid: bool = True
    keypoints_used: int = 0

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)


UNDEFINED_COM = CenterOfMass(0.0, 0.0, is_valid=False)


class CenterOfMassEstimator:
    """Compute the centroid of confident keypoints.

    Two methods are available:
        - ``mean``: unweighted mean of all valid keypoints.
        - ``segment_weighted``: mean per body segment, weighted by the segment's
          mass fraction and normalised over the segments that are visible.
    """

    def __init__(
        self,
        min_confidence: float = 0.3,
        method: str = "mean",
        segment_weights: dict[str, float] | None = None,
    ):
        """Initialize estimator.

        Args:
            min_confidence: Keypoints below this confidence are ignored.
            method: "mean" or "segment_weighted".
            segment_weights: Override for the anatomical mass fractions.
        """
        if method not in COM_METHODS:
            raise ValueError(f"Unknown center of mass method: {method}. Options: {COM_METHODS}")

        self.min_confidence = min_confidence
        self.method = method
        self.segment_weights = dict(DEFAULT_SEGMENT_WEIGHTS)
        if segment_weights:
            unknown = set(segment_weights) - set(BODY_SEGMENTS)
            if unknown:
                raise ValueError(f"Unknown body segments: {sorted(unknown)}")
            self.segment_weights.update(segment_weights)

    def estimate(self, frame: PoseFrame) -> CenterOfMass:
        """Estimate center of mass for a frame.

        Args:
            frame: Pose frame.

        Returns:
            CenterOfMass (``is_valid`` False if nothing qualified).
        """
        if self.method == "segment_weighted":
            return self._segment_weighted(frame)
        return self._mean(frame)

    def _mean(self, frame: PoseFrame) -> CenterOfMass:
        valid = frame.valid_keypoints(self.min_confidence)
        if not valid:
            return UNDEFINED_COM

        return CenterOfMass(
            x=sum(kp.x for kp in valid) / len(valid),
            y=sum(kp.y for kp in valid) / len(valid),
            keypoints_used=len(valid),
        )

    def _segment_weighted(self, frame: PoseFrame) -> CenterOfMass:
        total_x = 0.0
        total_y = 0.0
        total_weight = 0.0
        used = 0

        for segment, names in BODY_SEGMENTS.items():
            weight = self.segment_weights.get(segment, 0.0)
            points = [frame.get(name) for name in names]
            valid = [kp for kp in points if kp is not None and kp.is_valid(self.min_confidence)]
            if not valid or weight <= 0:
                continue

            total_x += weight * sum(kp.x for kp in valid) / len(valid)
            total_y += weight * sum(kp.y for kp in valid) / len(valid)
            total_weight += weight
            used += len(valid)

        if total_weight == 0:
            return UNDEFINED_COM

        return CenterOfMass(
            x=total_x / total_weight,
            y=total_y / total_weight,
            keypoints_used=used,
        )
