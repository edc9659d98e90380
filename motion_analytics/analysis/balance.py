"""Balance and stability estimation."""

from dataclasses import dataclass

from motion_analytics.analysis.center_of_mass import CenterOfMass, CenterOfMassEstimator
from motion_analytics.pose.keypoints import PoseFrame
from motion_analytics.utils.geometry import euclidean_distance

# Frame-to-frame keypoint movement treated as natural (pixels)
EXPECTED_MOVEMENT = 10.0
# Movement beyond the allowance over which stability decays to 0 (pixels)
MOVEMENT_DECAY = 50.0


@dataclass
class BalanceMetrics:
    """Static balance of one frame.

    Attributes:
        center_of_mass: Segment-weighted center of mass.
        stability: 0-1, 0 when the COM is outside the base of support.
        sway: Postural sway. Always 0.0; temporal sway is not estimated.
        base_of_support: Horizontal ankle span in pixels (0.0 if unknown).
    """

    center_of_mass: CenterOfMass
    stability: float
    sway: float = 0.0
    base_of_support: float = 0.0


class BalanceEstimator:
    """Estimate stability from the COM position relative to the feet."""

    def __init__(
        self,
        min_confidence: float = 0.3,
        margin: float = 20.0,
        span_normalizer: float = 100.0,
        segment_weights: dict[str, float] | None = None,
    ):
        """Initialize estimator.

        Args:
            min_confidence: Confidence required for the ankles and COM keypoints.
            margin: Tolerance (pixels) beyond each ankle still counted as inside
                the base of support.
            span_normalizer: Ankle span (pixels) that yields full stability.
            segment_weights: Override for the COM segment mass fractions.
        """
        self.min_confidence = min_confidence
        self.margin = margin
        self.span_normalizer = span_normalizer
        self.com_estimator = CenterOfMassEstimator(
            min_confidence=min_confidence,
            method="segment_weighted",
            segment_weights=segment_weights,
        )

    def estimate(self, frame: PoseFrame) -> BalanceMetrics:
        """Estimate balance for a frame.

        Args:
            frame: Pose frame.

        Returns:
            BalanceMetrics (stability 0 when the ankles or COM are unavailable).
        """
        com = self.com_estimator.estimate(frame)

        left_ankle = frame.get("left_ankle")
        right_ankle = frame.get("right_ankle")
        if (
            left_ankle is None
            or right_ankle is None
            or not left_ankle.is_valid(self.min_confidence)
            or not right_ankle.is_valid(self.min_confidence)
        ):
            return BalanceMetrics(center_of_mass=com, stability=0.0)

        span = abs(left_ankle.x - right_ankle.x)
        if not com.is_valid:
            return BalanceMetrics(center_of_mass=com, stability=0.0, base_of_support=span)

        lower = min(left_ankle.x, right_ankle.x) - self.margin
        upper = max(left_ankle.x, right_ankle.x) + self.margin

        stability = 0.0
        if lower <= com.x <= upper:
            stability = min(1.0, max(0.0, span / self.span_normalizer))

        return BalanceMetrics(center_of_mass=com, stability=stability, base_of_support=span)

    def temporal_stability(self, current: PoseFrame, previous: PoseFrame | None) -> float:
        """Score how still the pose is between consecutive frames.

        Each keypoint tracked in both frames scores 1 up to EXPECTED_MOVEMENT
        pixels of movement, then decays linearly to 0 over MOVEMENT_DECAY
        pixels. Scores are scaled by the current keypoint confidence.

        Args:
            current: Current pose frame.
            previous: Previous pose frame, or None for the first frame.

        Returns:
            Stability in [0, 1]. Without a previous frame this is the
            current frame confidence.
        """
        if previous is None:
            return current.confidence

        total = 0.0
        count = 0
        for kp in current.valid_keypoints(self.min_confidence):
            prev_kp = previous.get(kp.name)
            if prev_kp is None or not prev_kp.is_valid(self.min_confidence):
                continue

            distance = euclidean_distance(kp.position, prev_kp.position)
            stability = max(0.0, 1.0 - max(0.0, distance - EXPECTED_MOVEMENT) / MOVEMENT_DECAY)
            total += stability * kp.confidence
            count += 1

        return total / count if count else 0.0
