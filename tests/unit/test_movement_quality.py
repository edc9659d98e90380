"""Unit tests for per-keypoint movement quality."""

import pytest

from motion_analytics.analysis.center_of_mass import UNDEFINED_COM, CenterOfMassEstimator
from motion_analytics.analysis.movement_quality import (
    MovementQualityAnalyzer,
    MovementSummary,
    efficiency_score,
    finite_difference,
    smoothness_score,
)

DT = 0.1


def _feed(analyzer, make_frame, shifts, dt=DT):
    estimator = CenterOfMassEstimator(min_confidence=analyzer.min_confidence)
    results = []
    for i, dx in enumerate(shifts):
        frame = make_frame(timestamp=i * dt, shift=(dx, 0.0))
        results.append(analyzer.add_frame(frame, estimator.estimate(frame)))
    return results


class TestKeypointKinematics:
    """Test velocity, acceleration and jerk per keypoint."""

    def test_first_frame_is_still(self, standing_frame):
        quality = MovementQualityAnalyzer().add_frame(standing_frame)

        assert quality.speed == 0.0
        assert quality.velocities["nose"] == (0.0, 0.0)
        assert quality.accelerations == {}
        assert quality.smoothness == 1.0
        assert quality.efficiency == 1.0

    def test_constant_walk(self, make_frame):
        """10 px per 0.1 s at 100 px/m is 1 m/s for every keypoint."""
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        results = _feed(analyzer, make_frame, [0, 10, 20, 30])

        assert results[1].accelerations == {}
        assert results[2].jerk == {}
        last = results[3]
        assert last.velocities["left_ankle"] == pytest.approx((1.0, 0.0))
        assert last.speed == pytest.approx(1.0)
        assert last.max_keypoint_speed == pytest.approx(1.0)
        assert last.accelerations["nose"] == pytest.approx((0.0, 0.0), abs=1e-6)
        assert last.jerk["nose"] == pytest.approx((0.0, 0.0), abs=1e-3)
        assert last.smoothness == pytest.approx(1.0)

    def test_jerk_from_step_change(self, make_frame):
        """A sudden start from rest is as jerky as the score allows."""
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        last = _feed(analyzer, make_frame, [0, 0, 0, 10])[-1]

        assert last.accelerations["nose"] == pytest.approx((10.0, 0.0))
        assert last.jerk["nose"] == pytest.approx((100.0, 0.0))
        assert last.max_keypoint_acceleration == pytest.approx(10.0)
        assert last.smoothness == pytest.approx(0.0, abs=1e-9)

    def test_partial_smoothness(self, make_frame):
        """Velocity 1 -> 1 -> 2 m/s: jerk 100 against mean velocity 2."""
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        last = _feed(analyzer, make_frame, [0, 10, 20, 40])[-1]

        assert last.smoothness == pytest.approx(0.5)

    def test_unconfident_keypoints_do_not_move(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100, min_confidence=0.3)
        analyzer.add_frame(make_frame(timestamp=0.0, confidence=0.3))
        quality = analyzer.add_frame(make_frame(timestamp=0.1, shift=(10.0, 0.0), confidence=0.3))

        assert quality.speed == 0.0
        assert all(v == (0.0, 0.0) for v in quality.velocities.values())

    def test_keypoint_missing_from_previous(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        analyzer.add_frame(make_frame(points={"nose": (320.0, 100.0)}, timestamp=0.0))
        quality = analyzer.add_frame(make_frame(timestamp=0.1, shift=(10.0, 0.0)))

        assert quality.velocities["nose"] == pytest.approx((1.0, 0.0))
        assert quality.velocities["left_hip"] == (0.0, 0.0)

    def test_duplicate_timestamp_not_recorded(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        _feed(analyzer, make_frame, [0, 10])
        quality = analyzer.add_frame(make_frame(timestamp=0.1, shift=(50.0, 0.0)))

        assert quality.speed == 0.0
        assert quality.total_distance == pytest.approx(0.1)
        assert len(analyzer.history) == 1

    def test_finite_difference_missing_previous(self):
        rates = finite_difference({"nose": (2.0, 1.0)}, {}, 0.5)
        assert rates["nose"] == (4.0, 2.0)


class TestPathAndProfiles:
    """Test distance, centre-of-mass path and profiles."""

    def test_distance_and_path(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        last = _feed(analyzer, make_frame, [0, 10, 20, 30])[-1]

        assert last.frame_distance == pytest.approx(0.1)
        assert last.total_distance == pytest.approx(0.3)
        assert len(last.com_path) == 4
        assert last.path_length == pytest.approx(0.3)
        assert last.speed_profile == pytest.approx((1.0, 1.0, 1.0))
        assert last.distance_profile == pytest.approx((0.1, 0.1, 0.1))

    def test_profiles_bounded(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        last = _feed(analyzer, make_frame, [10.0 * i for i in range(120)])[-1]

        assert len(last.speed_profile) == 100
        assert len(last.com_path) == 50

    def test_invalid_com_not_added_to_path(self, standing_frame):
        analyzer = MovementQualityAnalyzer()
        quality = analyzer.add_frame(standing_frame, UNDEFINED_COM)

        assert quality.com_path == ()


class TestScores:
    """Test the smoothness and efficiency scores."""

    def test_smoothness_without_jerk(self):
        assert smoothness_score({"nose": (1.0, 0.0)}, {}) == 1.0

    def test_smoothness_when_still(self):
        assert smoothness_score({"nose": (0.0, 0.0)}, {"nose": (50.0, 0.0)}) == 1.0

    def test_efficiency_before_moving(self):
        assert efficiency_score({"nose": (1.0, 0.0)}, {}, 0.0) == 1.0

    def test_efficiency_with_acceleration(self):
        """Distance 0.4 m against effort 2^2 + 0.1 * 10."""
        score = efficiency_score({"nose": (2.0, 0.0)}, {"nose": (10.0, 0.0)}, 0.4)
        assert score == pytest.approx(0.4 / 50)

    def test_efficiency_clipped(self):
        assert efficiency_score({"nose": (0.1, 0.0)}, {}, 100.0) == 1.0

    def test_efficiency_from_frames(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        last = _feed(analyzer, make_frame, [0, 10, 20, 40])[-1]

        assert last.total_distance == pytest.approx(0.4)
        assert last.efficiency == pytest.approx(0.008)


class TestSummary:
    """Test time-windowed summaries."""

    def test_empty_summary(self):
        assert MovementQualityAnalyzer().get_summary() == MovementSummary()

    def test_full_window(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        _feed(analyzer, make_frame, [10.0 * i for i in range(10)])
        summary = analyzer.get_summary(window_seconds=10.0)

        assert summary.frames == 9
        assert summary.average_speed == pytest.approx(1.0)
        assert summary.max_speed == pytest.approx(1.0)
        assert summary.total_distance == pytest.approx(0.9)
        assert summary.smoothness == pytest.approx(1.0)

    def test_window_limits_frames(self, make_frame):
        """Frames newer than 0.9 - 0.35 s are 0.6, 0.7, 0.8 and 0.9."""
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        _feed(analyzer, make_frame, [10.0 * i for i in range(10)])
        summary = analyzer.get_summary(window_seconds=0.35)

        assert summary.frames == 4
        assert summary.total_distance == pytest.approx(0.4)

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            MovementQualityAnalyzer().get_summary(window_seconds=0)

    def test_reset(self, make_frame):
        analyzer = MovementQualityAnalyzer(pixels_per_meter=100)
        _feed(analyzer, make_frame, [0, 10, 20])
        analyzer.reset()

        assert analyzer.get_summary() == MovementSummary()
        assert analyzer.add_frame(make_frame(timestamp=5.0)).total_distance == 0.0
