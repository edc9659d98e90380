"""Symmetry analysis for athletic movement.

This module analyzes left/right symmetry of a pose:
- Per-frame vertical alignment of bilateral keypoint pairs
- Confidence- and importance-weighted overall score
- Joint angle symmetry over time
- Score interpretation
"""

from dataclasses import dataclass, field

import numpy as np
from scipy.stats import pearsonr

from motion_analytics.pose.keypoints import PoseFrame

# Bilateral pairs and their anatomical importance
SYMMETRY_PAIRS: dict[str, tuple[str, str, float]] = {
    "shoulders": ("left_shoulder", "right_shoulder", 1.2),
    "elbows": ("left_elbow", "right_elbow", 1.0),
    "wrists": ("left_wrist", "right_wrist", 0.8),
    "hips": ("left_hip", "right_hip", 1.3),
    "knees": ("left_knee", "right_knee", 1.1),
    "ankles": ("left_ankle", "right_ankle", 0.9),
}


@dataclass
class SymmetryScore:
    """Bilateral symmetry of one frame.

    Attributes:
        score: Weighted symmetry in [0, 1] (1 = perfectly level).
        pair_scores: Per-pair symmetry for the pairs that were evaluated.
        pairs_evaluated: Number of pairs with both sides visible.
        has_sufficient_data: False when no pair qualified; ``score`` is then
            the default 1.0 and says nothing about the athlete.
    """

    score: float
    pair_scores: dict[str, float] = field(default_factory=dict)
    pairs_evaluated: int = 0
    has_sufficient_data: bool = True

    @property
    def percent(self) -> float:
        return self.score * 100


class SymmetryAnalyzer:
    """Analyze left/right symmetry of poses."""

    def __init__(
        self,
        min_confidence: float = 0.3,
        max_expected_difference: float = 50.0,
    ):
        """Initialize symmetry analyzer.

        Args:
            min_confidence: Both sides of a pair must reach this confidence.
            max_expected_difference: Vertical offset (pixels) at which a pair
                scores 0.
        """
        if max_expected_difference <= 0:
            raise ValueError(f"max_expected_difference must be positive, got {max_expected_difference}")

        self.min_confidence = min_confidence
        self.max_expected_difference = max_expected_difference

    def analyze(self, frame: PoseFrame) -> SymmetryScore:
        """Calculate weighted bilateral symmetry for a frame.

        Args:
            frame: Pose frame.

        Returns:
            SymmetryScore.
        """
        pair_scores = {}
        weighted_sum = 0.0
        total_weight = 0.0

        for pair_name, (left_name, right_name, importance) in SYMMETRY_PAIRS.items():
            left = frame.get(left_name)
            right = frame.get(right_name)
            if left is None or right is None:
                continue
            if not left.is_valid(self.min_confidence) or not right.is_valid(self.min_confidence):
                continue

            difference = abs(left.y - right.y)
            pair_score = max(0.0, 1.0 - difference / self.max_expected_difference)
            weight = (left.confidence + right.confidence) / 2 * importance

            pair_scores[pair_name] = pair_score
            weighted_sum += pair_score * weight
            total_weight += weight

        if not pair_scores or total_weight == 0:
            return SymmetryScore(score=1.0, has_sufficient_data=False)

        return SymmetryScore(
            score=weighted_sum / total_weight,
            pair_scores=pair_scores,
            pairs_evaluated=len(pair_scores),
        )

    def analyze_angle_symmetry(
        self,
        left_angles: np.ndarray,
        right_angles: np.ndarray,
    ) -> dict[str, float]:
        """Compare left and right joint angle series.

        Args:
            left_angles: Left joint angles over time (degrees, NaN = missing).
            right_angles: Right joint angles over time.

        Returns:
            Dictionary of angle symmetry metrics (empty if no overlapping samples).
        """
        left_angles = np.asarray(left_angles, dtype=float)
        right_angles = np.asarray(right_angles, dtype=float)

        valid_mask = ~(np.isnan(left_angles) | np.isnan(right_angles))
        left_valid = left_angles[valid_mask]
        right_valid = right_angles[valid_mask]

        metrics: dict[str, float] = {}
        if len(left_valid) == 0:
            return metrics

        metrics["left_mean_angle"] = float(np.mean(left_valid))
        metrics["right_mean_angle"] = float(np.mean(right_valid))

        angle_diff = np.abs(left_valid - right_valid)
        metrics["angle_asymmetry_mean"] = float(np.mean(angle_diff))
        metrics["angle_asymmetry_max"] = float(np.max(angle_diff))

        # Correlation is undefined for constant series
        if len(left_valid) > 1 and np.std(left_valid) > 0 and np.std(right_valid) > 0:
            corr, _ = pearsonr(left_valid, right_valid)
            metrics["angle_correlation"] = float(corr)

        return metrics

    @staticmethod
    def interpret(score: float) -> str:
        """Interpret a symmetry score.

        Args:
            score: Symmetry score (0-1).

        Returns:
            Interpretation string.
        """
        percent = score * 100
        if percent >= 90:
            return "Excellent symmetry - very balanced movement"
        elif percent >= 75:
            return "Good symmetry - minor imbalances present"
        elif percent >= 60:
            return "Moderate symmetry - noticeable imbalances that should be addressed"
        elif percent >= 40:
            return "Poor symmetry - significant imbalances requiring correction"
        else:
            return "Very poor symmetry - major imbalances present, high injury risk"
