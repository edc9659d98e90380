"""Unit tests for center-of-mass estimation."""

import pytest

from motion_analytics.analysis.center_of_mass import CenterOfMassEstimator
from motion_analytics.pose.keypoints import Keypoint, PoseFrame


class TestMeanMethod:
    """Test the unweighted centroid."""

    def test_symmetric_pose(self, standing_frame):
        com = CenterOfMassEstimator().estimate(standing_frame)

        assert com.is_valid
        assert com.x == pytest.approx(320.0)
        assert com.keypoints_used == 13

    def test_low_confidence_excluded(self):
        frame = PoseFrame(
            keypoints=(
                Keypoint("nose", 0.0, 0.0, 0.9),
                Keypoint("left_hip", 100.0, 100.0, 0.9),
                Keypoint("right_hip", 1000.0, 1000.0, 0.1),
            ),
            timestamp=0.0,
        )
        com = CenterOfMassEstimator(min_confidence=0.3).estimate(frame)

        assert com.position == pytest.approx((50.0, 50.0))
        assert com.keypoints_used == 2

    def test_keypoint_at_threshold_excluded(self):
        frame = PoseFrame(
            keypoints=(
                Keypoint("nose", 0.0, 0.0, 0.9),
                Keypoint("left_hip", 100.0, 100.0, 0.3),
            ),
            timestamp=0.0,
        )
        com = CenterOfMassEstimator(min_confidence=0.3).estimate(frame)

        assert com.keypoints_used == 1
        assert com.position == pytest.approx((0.0, 0.0))
        assert com.is_valid

    def test_undefined_when_nothing_qualifies(self):
        frame = PoseFrame(keypoints=(Keypoint("nose", 5.0, 5.0, 0.1),), timestamp=0.0)
        com = CenterOfMassEstimator().estimate(frame)

        assert not com.is_valid
        assert com.keypoints_used == 0

    def test_translation_moves_centroid(self, make_frame):
        estimator = CenterOfMassEstimator()
        base = estimator.estimate(make_frame())
        shifted = estimator.estimate(make_frame(shift=(30.0, -10.0)))

        assert shifted.x - base.x == pytest.approx(30.0)
        assert shifted.y - base.y == pytest.approx(-10.0)


class TestSegmentWeightedMethod:
    """Test the anatomical segment-weighted centroid."""

    def test_symmetric_pose(self, standing_frame):
        com = CenterOfMassEstimator(method="segment_weighted").estimate(standing_frame)
        assert com.x == pytest.approx(320.0)

    def test_torso_dominates(self):
        """Hips carry more mass than the head."""
        frame = PoseFrame(
            keypoints=(
                Keypoint("nose", 0.0, 0.0, 0.9),
                Keypoint("left_hip", 100.0, 100.0, 0.9),
                Keypoint("right_hip", 100.0, 100.0, 0.9),
            ),
            timestamp=0.0,
        )
        com = CenterOfMassEstimator(method="segment_weighted").estimate(frame)

        # (0.08 * 0 + 0.46 * 100) / (0.08 + 0.46)
        assert com.x == pytest.approx(46.0 / 0.54)

    def test_custom_weights(self):
        frame = PoseFrame(
            keypoints=(Keypoint("nose", 0.0, 0.0, 0.9), Keypoint("left_hip", 100.0, 0.0, 0.9)),
            timestamp=0.0,
        )
        estimator = CenterOfMassEstimator(
            method="segment_weighted", segment_weights={"head": 1.0, "torso": 1.0}
        )
        assert estimator.estimate(frame).x == pytest.approx(50.0)

    def test_undefined(self):
        frame = PoseFrame(keypoints=(), timestamp=0.0)
        com = CenterOfMassEstimator(method="segment_weighted").estimate(frame)
        assert not com.is_valid


class TestValidation:
    """Test constructor validation."""

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            CenterOfMassEstimator(method="median")

    def test_unknown_segment(self):
        with pytest.raises(ValueError):
            CenterOfMassEstimator(segment_weights={"tail": 0.5})
