"""Athletic performance tracking over a rolling window of frames.

This module derives session-level performance metrics from centre-of-mass
movement:
- Speed, distance and acceleration over the window
- Mechanical power estimate (P = m * |a| * v)
- Gait: cadence, stride length, ground contact and flight time
- Vertical oscillation and jump height
- Sport-specific views (running, jumping, cycling, weightlifting)
"""

import logging
import math
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from motion_analytics.analysis.center_of_mass import CenterOfMass, CenterOfMassEstimator
from motion_analytics.analysis.kinematics import MPS_TO_KMH, DistanceMetrics
from motion_analytics.pose.keypoints import PoseFrame
from motion_analytics.utils.geometry import magnitude, midpoint, path_length
from motion_analytics.utils.smoothing import remove_outliers, smooth_signal_savgol

logger = logging.getLogger(__name__)

GRAVITY = 9.81  # m/s^2

# Gait cycle shares used to estimate contact and flight time
GROUND_CONTACT_SHARE = 0.35
FLIGHT_SHARE = 0.15

# Minimum window sizes (frames) for gait and vertical analysis
MIN_GAIT_FRAMES = 30
MIN_VERTICAL_FRAMES = 10

# Vertical COM velocity (m/s) marking takeoff and landing; negative is upward
TAKEOFF_VELOCITY = -1.0
LANDING_VELOCITY = 0.5


class Sport(Enum):
    """Sports with a dedicated metrics view."""

    RUNNING = "running"
    JUMPING = "jumping"
    CYCLING = "cycling"
    WEIGHTLIFTING = "weightlifting"


@dataclass
class MovementSample:
    """One tracked frame: COM position (pixels) and velocity (m/s)."""

    frame: PoseFrame
    center_of_mass: CenterOfMass
    velocity: tuple[float, float] = (0.0, 0.0)

    @property
    def timestamp(self) -> float:
        return self.frame.timestamp


@dataclass
class PowerMetrics:
    """Mechanical power estimates (watts)."""

    current: float = 0.0
    average: float = 0.0
    peak: float = 0.0


@dataclass
class GaitMetrics:
    """Gait estimates.

    Attributes:
        cadence: Steps per minute.
        stride_length: Meters per step.
        ground_contact_time: Milliseconds per step.
        flight_time: Milliseconds per step.
        step_count: Steps detected in the window.
    """

    cadence: float = 0.0
    stride_length: float = 0.0
    ground_contact_time: float = 0.0
    flight_time: float = 0.0
    step_count: int = 0


@dataclass
class PerformanceMetrics:
    """Performance metrics over the tracked window."""

    speed: float = 0.0  # m/s, latest
    average_speed: float = 0.0
    max_speed: float = 0.0
    distance: DistanceMetrics = field(default_factory=DistanceMetrics)
    acceleration: float = 0.0  # m/s^2, latest
    max_acceleration: float = 0.0
    power: PowerMetrics = field(default_factory=PowerMetrics)
    gait: GaitMetrics = field(default_factory=GaitMetrics)
    vertical_oscillation: float = 0.0  # cm
    jump_height: float = 0.0  # cm

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AthleticPerformanceTracker:
    """Track performance metrics over a bounded window of pose frames.

    Example:
        tracker = AthleticPerformanceTracker(athlete_mass=80)
        tracker.calibrate_from_pose(standing_frame)
        for frame in frames:
            metrics = tracker.add_frame(frame)
        running = tracker.get_sport_metrics(Sport.RUNNING)
    """

    def __init__(
        self,
        pixels_per_meter: float = 500.0,
        athlete_height: float = 1.75,
        athlete_mass: float = 70.0,
        max_history: int = 120,
        min_confidence: float = 0.3,
    ):
        """Initialize tracker.

        Args:
            pixels_per_meter: Calibration factor.
            athlete_height: Athlete height in meters (used by calibrate_from_pose).
            athlete_mass: Athlete mass in kg (used for power).
            max_history: Number of frames kept (120 = 4 s at 30 fps).
            min_confidence: Keypoint confidence threshold.
        """
        if pixels_per_meter <= 0:
            raise ValueError(f"pixels_per_meter must be positive, got {pixels_per_meter}")
        if athlete_height <= 0 or athlete_mass <= 0:
            raise ValueError("Athlete height and mass must be positive")

        self.pixels_per_meter = pixels_per_meter
        self.athlete_height = athlete_height
        self.athlete_mass = athlete_mass
        self.min_confidence = min_confidence
        self.com_estimator = CenterOfMassEstimator(
            min_confidence=min_confidence, method="segment_weighted"
        )
        self.history: deque[MovementSample] = deque(maxlen=max_history)
        self.latest_metrics = PerformanceMetrics()

    def calibrate_from_pose(self, frame: PoseFrame, min_confidence: float = 0.5) -> bool:
        """Calibrate pixels_per_meter from nose-to-ankle height.

        Args:
            frame: Pose with the athlete standing upright.
            min_confidence: Confidence required for nose and both ankles.

        Returns:
            True if calibration was applied.
        """
        nose = frame.get("nose")
        left_ankle = frame.get("left_ankle")
        right_ankle = frame.get("right_ankle")
        if any(kp is None or not kp.is_valid(min_confidence) for kp in (nose, left_ankle, right_ankle)):
            return False

        _, ankle_y = midpoint(left_ankle.position, right_ankle.position)
        height_pixels = abs(ankle_y - nose.y)
        if height_pixels == 0:
            return False

        self.pixels_per_meter = height_pixels / self.athlete_height
        logger.info(f"Performance tracker calibrated: {self.pixels_per_meter:.1f} px/m")
        return True

    def add_frame(self, frame: PoseFrame) -> PerformanceMetrics:
        """Add a frame and recompute metrics.

        Frames without a defined centre of mass are ignored.

        Args:
            frame: Pose frame.

        Returns:
            Metrics over the current window.
        """
        com = self.com_estimator.estimate(frame)
        if not com.is_valid:
            logger.debug(f"Frame at {frame.timestamp:.3f}s has no center of mass, ignoring")
            return self.latest_metrics

        velocity = (0.0, 0.0)
        if self.history:
            previous = self.history[-1]
            dt = frame.timestamp - previous.timestamp
            if dt > 0:
                velocity = (
                    (com.x - previous.center_of_mass.x) / self.pixels_per_meter / dt,
                    (com.y - previous.center_of_mass.y) / self.pixels_per_meter / dt,
                )

        self.history.append(MovementSample(frame=frame, center_of_mass=com, velocity=velocity))
        self.latest_metrics = self._compute_metrics()
        return self.latest_metrics

    def _compute_metrics(self) -> PerformanceMetrics:
        samples = list(self.history)
        if len(samples) < 2:
            return PerformanceMetrics()

        speeds = [magnitude(*s.velocity) for s in samples]

        path = np.array([s.center_of_mass.position for s in samples]) / self.pixels_per_meter
        steps = np.abs(np.diff(path, axis=0))
        total = path_length(path)
        horizontal = float(steps[:, 0].sum())
        vertical = float(steps[:, 1].sum())

        first, last = samples[0].center_of_mass, samples[-1].center_of_mass
        displacement = magnitude(last.x - first.x, last.y - first.y) / self.pixels_per_meter

        # Acceleration arriving at each sample (0.0 for the first and for zero time steps)
        accelerations = [0.0]
        for i in range(1, len(samples)):
            dt = samples[i].timestamp - samples[i - 1].timestamp
            accelerations.append((speeds[i] - speeds[i - 1]) / dt if dt > 0 else 0.0)

        current_acceleration = accelerations[-1]
        max_acceleration = max(abs(a) for a in accelerations)
        powers = [self.athlete_mass * abs(a) * v for a, v in zip(accelerations, speeds)]

        vertical_oscillation, jump_height = self._analyze_vertical_movement(samples)

        return PerformanceMetrics(
            speed=speeds[-1],
            average_speed=float(np.mean(speeds)),
            max_speed=max(speeds),
            distance=DistanceMetrics(
                total=total, horizontal=horizontal, vertical=vertical, displacement=displacement
            ),
            acceleration=current_acceleration,
            max_acceleration=max_acceleration,
            power=PowerMetrics(
                current=powers[-1],
                average=float(np.mean(powers)),
                peak=max(powers),
            ),
            gait=self._analyze_gait(samples),
            vertical_oscillation=vertical_oscillation,
            jump_height=jump_height,
        )

    def _analyze_gait(self, samples: list[MovementSample]) -> GaitMetrics:
        """Estimate gait from ankle vertical velocity.

        A step is counted each time an ankle stops descending (vertical
        velocity turns from positive to non-positive in image coordinates).
        """
        if len(samples) < MIN_GAIT_FRAMES:
            return GaitMetrics()

        step_count = 0
        for ankle in ("left_ankle", "right_ankle"):
            velocities = self._keypoint_vertical_velocities(samples, ankle)
            step_count += sum(
                1 for prev, cur in zip(velocities, velocities[1:]) if prev > 0 and cur <= 0
            )

        duration_minutes = (samples[-1].timestamp - samples[0].timestamp) / 60
        cadence = step_count / duration_minutes if duration_minutes > 0 else 0.0

        horizontal = abs(
            (samples[-1].center_of_mass.x - samples[0].center_of_mass.x) / self.pixels_per_meter
        )
        stride_length = horizontal / step_count if step_count else 0.0

        step_ms = 60000 / cadence if cadence > 0 else 0.0

        return GaitMetrics(
            cadence=cadence,
            stride_length=stride_length,
            ground_contact_time=step_ms * GROUND_CONTACT_SHARE,
            flight_time=step_ms * FLIGHT_SHARE,
            step_count=step_count,
        )

    def _keypoint_vertical_velocities(self, samples: list[MovementSample], name: str) -> list[float]:
        velocities = []
        for prev, cur in zip(samples, samples[1:]):
            dt = cur.timestamp - prev.timestamp
            kp = cur.frame.get(name)
            prev_kp = prev.frame.get(name)
            if dt <= 0 or kp is None or prev_kp is None:
                continue
            if kp.is_valid(self.min_confidence) and prev_kp.is_valid(self.min_confidence):
                velocities.append((kp.y - prev_kp.y) / dt)
        return velocities

    def _analyze_vertical_movement(self, samples: list[MovementSample]) -> tuple[float, float]:
        """Return (vertical oscillation in cm, max jump height in cm)."""
        if len(samples) < MIN_VERTICAL_FRAMES:
            return 0.0, 0.0

        heights = np.array([s.center_of_mass.y for s in samples]) / self.pixels_per_meter
        heights = remove_outliers(heights, method="zscore", threshold=3.0)
        smoothed = smooth_signal_savgol(heights, window_length=7, polyorder=2)
        vertical_oscillation = float(np.std(smoothed)) * 100

        return vertical_oscillation, self._detect_jump_height(samples)

    def _detect_jump_height(self, samples: list[MovementSample]) -> float:
        max_height = 0.0
        in_flight = False
        takeoff_y = peak_y = 0.0

        for prev, cur in zip(samples, samples[1:]):
            y = cur.center_of_mass.y
            vy = cur.velocity[1]

            if not in_flight and vy < TAKEOFF_VELOCITY:
                in_flight = True
                takeoff_y = peak_y = y

            if in_flight and y < peak_y:
                peak_y = y

            if in_flight and y > prev.center_of_mass.y and vy > LANDING_VELOCITY:
                height = (takeoff_y - peak_y) / self.pixels_per_meter * 100
                max_height = max(max_height, height)
                in_flight = False

        return max_height

    def get_sport_metrics(self, sport: Sport | str) -> dict[str, float]:
        """Sport-specific view of the latest metrics.

        Args:
            sport: Sport or its name.

        Returns:
            Dictionary of sport metrics.

        Raises:
            ValueError: If the sport is unknown.
        """
        sport = Sport(sport)
        m = self.latest_metrics

        if sport == Sport.RUNNING:
            return {
                "pace_min_per_km": 1000 / m.average_speed / 60 if m.average_speed > 0 else 0.0,
                "cadence": m.gait.cadence,
                "stride_length": m.gait.stride_length,
                "vertical_oscillation": m.vertical_oscillation,
                "ground_contact_time": m.gait.ground_contact_time,
            }
        if sport == Sport.JUMPING:
            return {
                "jump_height": m.jump_height,
                "peak_power": m.power.peak,
                "flight_time": m.gait.flight_time,
                "takeoff_velocity": math.sqrt(2 * GRAVITY * m.jump_height / 100),
            }
        if sport == Sport.CYCLING:
            return {
                "speed_kmh": m.average_speed * MPS_TO_KMH,
                "power": m.power.average,
                "cadence": m.gait.cadence,
            }
        return {
            "bar_velocity": m.speed,
            "peak_power": m.power.peak,
            "acceleration": m.acceleration,
            "range": m.distance.vertical,
        }

    def reset(self) -> None:
        """Clear the frame window and cached metrics."""
        self.history.clear()
        self.latest_metrics = PerformanceMetrics()
        logger.info("Performance tracker reset")
