"""
Motion Analytics Pipeline Orchestrator
Coordinates all analytics components for per-frame processing.

This module provides the main pipeline that integrates:
- Ingestion and validation of detector output
- Speed, acceleration and distance (MotionCalculator)
- Joint angles, symmetry, balance and temporal stability
- Per-keypoint movement quality (jerk, smoothness, efficiency)
- Reference pose comparison
- Rolling athletic performance metrics
"""

import logging
import math
import time
from collections import deque
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

import numpy as np

from motion_analytics.analysis.balance import BalanceEstimator, BalanceMetrics
from motion_analytics.analysis.joint_angles import JointAngleAnalyzer, JointAngles
from motion_analytics.analysis.kinematics import (
    AccelerationMetrics,
    AngleSample,
    DistanceMetrics,
    MotionCalculator,
    RotationalAcceleration,
    SpeedMetrics,
    VelocitySample,
)
from motion_analytics.analysis.movement_quality import (
    MovementQuality,
    MovementQualityAnalyzer,
    MovementSummary,
)
from motion_analytics.analysis.performance_tracker import (
    AthleticPerformanceTracker,
    PerformanceMetrics,
)
from motion_analytics.analysis.pose_comparison import PoseComparison, compare_poses
from motion_analytics.analysis.symmetry_analyzer import SymmetryAnalyzer, SymmetryScore
from motion_analytics.pose.keypoints import PoseFrame
from motion_analytics.utils.config import Config, MotionConfig, get_config, load_motion_config

# Reasons attached to FrameResult.skipped_reason
SKIP_FIRST_FRAME = "first_frame"
SKIP_NON_POSITIVE_DELTA = "non_positive_delta_time"
SKIP_NO_CENTER_OF_MASS = "no_center_of_mass"


class ProcessingMode(Enum):
    """Pipeline processing modes."""

    REALTIME = "realtime"  # Mean COM, raw angles only
    BALANCED = "balanced"  # Mean COM, weighted angles
    ACCURACY = "accuracy"  # Segment-weighted COM, weighted angles, rotational acceleration


@dataclass
class PipelineConfig:
    """Configuration for the motion analytics pipeline."""

    mode: ProcessingMode = ProcessingMode.BALANCED
    history_size: int = 10  # Frames and velocity samples kept
    motion: MotionConfig = field(default_factory=MotionConfig)

    # Optional analyses
    reference_pose: PoseFrame | None = None
    enable_performance_tracking: bool = False
    athlete_height: float = 1.75  # meters
    athlete_mass: float = 70.0  # kg

    # Ingestion
    strict_ingestion: bool = False

    @classmethod
    def from_config(cls, config: Config | None = None) -> "PipelineConfig":
        """Build a PipelineConfig from analysis_config.yaml.

        Args:
            config: Config manager to read from. Defaults to the global instance.

        Returns:
            Populated PipelineConfig.
        """
        config = config or get_config()
        section = config.get("analysis_config", "pipeline", {}) or {}
        defaults = cls()

        return cls(
            mode=ProcessingMode(section.get("mode", defaults.mode.value)),
            history_size=int(section.get("history_size", defaults.history_size)),
            motion=load_motion_config(config),
            enable_performance_tracking=bool(
                section.get("enable_performance_tracking", defaults.enable_performance_tracking)
            ),
            athlete_height=float(section.get("athlete_height", defaults.athlete_height)),
            athlete_mass=float(section.get("athlete_mass", defaults.athlete_mass)),
            strict_ingestion=bool(section.get("strict_ingestion", defaults.strict_ingestion)),
        )


@dataclass
class PipelineDiagnostics:
    """Counters for data-quality events seen by one pipeline instance."""

    frames_processed: int = 0
    skipped_non_positive_delta: int = 0
    frames_without_com: int = 0
    keypoints_rejected: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class FrameResult:
    """Results from processing a single frame."""

    frame_id: int
    timestamp: float

    # Kinematics
    speed: SpeedMetrics
    speed_zone: str
    acceleration: AccelerationMetrics
    distance: DistanceMetrics  # Session totals up to this frame

    # Pose analysis
    joint_angles: JointAngles
    extension_warnings: list[str]
    symmetry: SymmetryScore
    balance: BalanceMetrics
    stability: float  # Frame-to-frame stillness

    # Performance metrics
    processing_time: float

    # Optional analyses
    rotational_acceleration: dict[str, RotationalAcceleration] = field(default_factory=dict)
    movement_quality: MovementQuality | None = None
    comparison: PoseComparison | None = None
    performance: PerformanceMetrics | None = None

    # Why speed and acceleration were not updated for this frame
    skipped_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["speed"] = self.speed.to_dict()
        data["distance"] = self.distance.to_dict()
        return data


class MotionAnalyticsPipeline:
    """
    Main pipeline orchestrator for motion analytics.

    Runs every per-frame analysis on a stream of pose frames from one
    athlete and keeps the bounded session state between frames.

    Example:
        config = PipelineConfig(mode=ProcessingMode.ACCURACY)
        pipeline = MotionAnalyticsPipeline(config)

        for detection in detections:
            result = pipeline.process_frame(detection)
            print(result.speed.instantaneous, result.speed_zone)
    """

    def __init__(self, config: PipelineConfig | None = None, logger: logging.Logger | None = None):
        """
        Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration. Defaults to PipelineConfig().
            logger: Logger for diagnostics. Defaults to the module logger.
        """
        self.config = config or PipelineConfig()
        self.logger = logger or logging.getLogger(__name__)

        com_method = "segment_weighted" if self.config.mode == ProcessingMode.ACCURACY else "mean"
        motion = replace(self.config.motion, com_method=com_method)

        # Initialize components
        self.calculator = MotionCalculator(motion, logger=self.logger)
        self.angle_analyzer = JointAngleAnalyzer(
            min_confidence=motion.min_confidence,
            hyperextension_threshold=motion.hyperextension_threshold,
        )
        self.symmetry_analyzer = SymmetryAnalyzer(
            min_confidence=motion.min_confidence,
            max_expected_difference=motion.max_expected_difference,
        )
        self.balance_estimator = BalanceEstimator(
            min_confidence=motion.min_confidence,
            margin=motion.balance_margin,
            span_normalizer=motion.balance_span_normalizer,
            segment_weights=motion.segment_weights,
        )
        self.performance_tracker = (
            AthleticPerformanceTracker(
                pixels_per_meter=motion.pixels_per_meter,
                athlete_height=self.config.athlete_height,
                athlete_mass=self.config.athlete_mass,
                min_confidence=motion.min_confidence,
            )
            if self.config.enable_performance_tracking
            else None
        )
        self.movement_analyzer = MovementQualityAnalyzer(
            pixels_per_meter=motion.pixels_per_meter,
            min_confidence=motion.min_confidence,
        )
        self.reference_pose = self.config.reference_pose

        self.diagnostics = PipelineDiagnostics()
        self._init_session_state()

        self.logger.info(f"Motion analytics pipeline initialized (mode: {self.config.mode.value})")
        self.logger.info(
            f"Performance tracking: {'Enabled' if self.performance_tracker else 'Disabled'}"
        )

    def _init_session_state(self) -> None:
        history_size = self.config.history_size
        self.frame_history: deque[PoseFrame] = deque(maxlen=history_size)
        self.velocity_history: deque[VelocitySample] = deque(maxlen=history_size)
        self.angle_history: dict[str, deque[AngleSample]] = {}
        self.session_distance = DistanceMetrics()
        self._first_tracked_frame: PoseFrame | None = None
        self._last_tracked_frame: PoseFrame | None = None
        self._frame_count = 0
        self._total_processing_time = 0.0

    @property
    def rotational_acceleration_enabled(self) -> bool:
        return self.config.mode == ProcessingMode.ACCURACY

    def set_reference_pose(self, pose: PoseFrame | dict[str, Any] | None) -> None:
        """Set (or clear with None) the pose that frames are compared against."""
        if isinstance(pose, dict):
            pose = PoseFrame.from_dict(pose, strict=self.config.strict_ingestion)
        self.reference_pose = pose
        self.logger.info(f"Reference pose {'set' if pose is not None else 'cleared'}")

    def calibrate_from_height(self, pixel_height: float, real_height_meters: float) -> None:
        """Set the pixel-to-meter scale for every component from a known height.

        Raises:
            ValueError: If either value is not positive.
        """
        self.calculator.calibrate_from_height(pixel_height, real_height_meters)
        self._sync_calibration()

    def calibrate_from_pose(
        self,
        frame: PoseFrame | dict[str, Any],
        min_confidence: float = 0.5,
    ) -> bool:
        """Calibrate from an upright pose using the configured athlete height.

        Returns:
            True if the scale was updated (nose and both ankles confident).
        """
        if isinstance(frame, dict):
            frame = PoseFrame.from_dict(frame, strict=self.config.strict_ingestion)

        calibrated = self.calculator.calibrate_from_pose(
            frame, self.config.athlete_height, min_confidence
        )
        if calibrated:
            self._sync_calibration()
        return calibrated

    def _sync_calibration(self) -> None:
        # Velocities already recorded keep the scale they were measured with
        self.movement_analyzer.pixels_per_meter = self.calculator.pixels_per_meter
        if self.performance_tracker is not None:
            self.performance_tracker.pixels_per_meter = self.calculator.pixels_per_meter

    @property
    def pixels_per_meter(self) -> float:
        return self.calculator.pixels_per_meter

    def process_frame(self, frame: PoseFrame | dict[str, Any]) -> FrameResult:
        """
        Process a single pose frame through the full pipeline.

        Args:
            frame: PoseFrame or raw detector dict (see PoseFrame.from_dict).

        Returns:
            FrameResult with all metrics for the frame.

        Raises:
            InvalidKeypointError: If strict ingestion is enabled and the
                detector output is invalid.
        """
        start_time = time.time()

        if isinstance(frame, dict):
            frame = PoseFrame.from_dict(frame, strict=self.config.strict_ingestion)
        self.diagnostics.keypoints_rejected += frame.rejected_keypoints

        previous = self.frame_history[-1] if self.frame_history else None
        skipped_reason = self._check_skip(frame, previous)
        delta_time = frame.timestamp - previous.timestamp if previous is not None else 0.0

        # Kinematics (zero-valued when skipped)
        if skipped_reason is None:
            speed = self.calculator.calculate_speed(frame, previous, delta_time)
            self.velocity_history.append(
                VelocitySample.from_components(speed.velocity[0], speed.velocity[1], frame.timestamp)
            )
            acceleration = self._calculate_acceleration()
        else:
            speed = self.calculator.calculate_speed(frame, previous or frame, 0.0)
            acceleration = self.calculator.calculate_acceleration([], 0.0)

        self._update_session_distance(frame)

        # Pose analysis
        angles = self.angle_analyzer.calculate(
            frame, weighted=self.config.mode != ProcessingMode.REALTIME
        )
        rotational = (
            self._calculate_rotational_acceleration(angles, frame.timestamp, delta_time)
            if self.rotational_acceleration_enabled
            else {}
        )

        movement_quality = self.movement_analyzer.add_frame(
            frame, self.calculator.com_estimator.estimate(frame)
        )

        comparison = None
        if self.reference_pose is not None:
            comparison = compare_poses(frame, self.reference_pose, self.calculator.min_confidence)

        performance = None
        if self.performance_tracker is not None:
            performance = self.performance_tracker.add_frame(frame)

        result = FrameResult(
            frame_id=self._frame_count,
            timestamp=frame.timestamp,
            speed=speed,
            speed_zone=self.calculator.get_speed_zone(speed.instantaneous),
            acceleration=acceleration,
            distance=replace(self.session_distance),
            joint_angles=angles,
            extension_warnings=self.angle_analyzer.check_extension_warnings(angles),
            symmetry=self.symmetry_analyzer.analyze(frame),
            balance=self.balance_estimator.estimate(frame),
            stability=self.balance_estimator.temporal_stability(frame, previous),
            processing_time=0.0,
            rotational_acceleration=rotational,
            movement_quality=movement_quality,
            comparison=comparison,
            performance=performance,
            skipped_reason=skipped_reason,
        )

        self.frame_history.append(frame)
        self._frame_count += 1
        self.diagnostics.frames_processed += 1

        result.processing_time = time.time() - start_time
        self._total_processing_time += result.processing_time

        return result

    def _check_skip(self, frame: PoseFrame, previous: PoseFrame | None) -> str | None:
        """Decide whether motion state can be advanced for this frame."""
        if not self.calculator.com_estimator.estimate(frame).is_valid:
            self.diagnostics.frames_without_com += 1
            self.logger.debug(f"Frame at {frame.timestamp:.3f}s has no center of mass")
            return SKIP_NO_CENTER_OF_MASS

        if previous is None:
            return SKIP_FIRST_FRAME

        if frame.timestamp - previous.timestamp <= 0:
            self.diagnostics.skipped_non_positive_delta += 1
            self.logger.debug(
                f"Non-positive time step {frame.timestamp - previous.timestamp:.4f}s, skipping motion"
            )
            return SKIP_NON_POSITIVE_DELTA

        if not self.calculator.com_estimator.estimate(previous).is_valid:
            return SKIP_NO_CENTER_OF_MASS

        return None

    def _calculate_acceleration(self) -> AccelerationMetrics:
        samples = list(self.velocity_history)
        if len(samples) < 2:
            return self.calculator.calculate_acceleration(samples, 0.0)

        delta_time = samples[-1].timestamp - samples[-2].timestamp
        return self.calculator.calculate_acceleration(samples, delta_time)

    def _update_session_distance(self, frame: PoseFrame) -> None:
        """Extend the session path from the last frame with a defined COM."""
        if not self.calculator.com_estimator.estimate(frame).is_valid:
            return

        if self._last_tracked_frame is None:
            self._first_tracked_frame = frame
            self._last_tracked_frame = frame
            return

        if frame.timestamp <= self._last_tracked_frame.timestamp:
            return

        step = self.calculator.calculate_distance([self._last_tracked_frame, frame])
        span = self.calculator.calculate_distance([self._first_tracked_frame, frame])

        self.session_distance = DistanceMetrics(
            total=self.session_distance.total + step.total,
            horizontal=self.session_distance.horizontal + step.horizontal,
            vertical=self.session_distance.vertical + step.vertical,
            displacement=span.displacement,
        )
        self._last_tracked_frame = frame

    def _calculate_rotational_acceleration(
        self,
        angles: JointAngles,
        timestamp: float,
        delta_time: float,
    ) -> dict[str, RotationalAcceleration]:
        fallback_dt = delta_time if delta_time > 0 else self.config.motion.expected_frame_interval
        results = {}

        for joint, degrees in angles.raw.items():
            history = self.angle_history.setdefault(
                joint, deque(maxlen=self.config.history_size)
            )
            history.append(AngleSample(angle=math.radians(degrees), timestamp=timestamp))
            if len(history) >= 3:
                results[joint] = self.calculator.calculate_rotational_acceleration(
                    list(history), fallback_dt
                )

        return results

    def get_movement_summary(self, window_seconds: float = 10.0) -> MovementSummary:
        """Movement quality averaged over the last ``window_seconds`` of frames."""
        return self.movement_analyzer.get_summary(window_seconds)

    def get_statistics(self) -> dict[str, Any]:
        """Get pipeline statistics."""
        if self._frame_count == 0:
            return {}

        speeds = self.calculator.speed_history
        return {
            "total_frames": self._frame_count,
            "avg_processing_time": self._total_processing_time / self._frame_count,
            "avg_speed": float(np.mean(speeds)) if speeds else 0.0,
            "max_speed": self.calculator.max_speed,
            "max_acceleration": self.calculator.max_acceleration,
            "total_distance": self.session_distance.total,
            "displacement": self.session_distance.displacement,
            "mode": self.config.mode.value,
            "diagnostics": self.diagnostics.to_dict(),
        }

    def reset(self):
        """Reset pipeline state."""
        self._init_session_state()
        self.diagnostics = PipelineDiagnostics()
        self.calculator.reset()
        self.movement_analyzer.reset()

        if self.performance_tracker:
            self.performance_tracker.reset()

        self.logger.info("Pipeline reset")
