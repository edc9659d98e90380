"""Kinematics calculation for athletic motion analysis.

This module turns per-frame pose detections into calibrated motion metrics:
- Centroid speed (Kalman-smoothed) with rolling average and session maximum
- Limb speeds for wrists and ankles
- Path distance, horizontal/vertical travel and straight-line displacement
- Linear acceleration with peak, deceleration and explosive-movement flags
- Rotational acceleration from joint-angle samples
- Speed-zone classification

All operations degrade to zero-valued results on missing data or a
non-positive time step instead of raising.
"""

import logging
import math
from collections import deque
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Sequence

from motion_analytics.analysis.center_of_mass import CenterOfMass, CenterOfMassEstimator
from motion_analytics.analysis.speed_zones import SpeedZoneClassifier
from motion_analytics.pose.keypoints import Keypoint, PoseFrame
from motion_analytics.utils.config import MotionConfig
from motion_analytics.utils.geometry import magnitude, midpoint
from motion_analytics.utils.smoothing import DisplacementFilter

# Unit conversion factors
MPS_TO_KMH = 3.6
MPS_TO_MPH = 2.237
METERS_TO_FEET = 3.28084
METERS_TO_MILES = 0.000621371

LIMB_KEYPOINTS = ("left_wrist", "right_wrist", "left_ankle", "right_ankle")


@dataclass
class LimbSpeeds:
    """Per-limb speeds in m/s (0.0 when the keypoint was not tracked)."""

    left_wrist: float = 0.0
    right_wrist: float = 0.0
    left_ankle: float = 0.0
    right_ankle: float = 0.0


@dataclass
class SpeedMetrics:
    """Centroid speed for one frame pair (m/s)."""

    instantaneous: float
    average: float
    max: float
    confidence: float
    center_of_mass: CenterOfMass
    limb_speeds: LimbSpeeds = field(default_factory=LimbSpeeds)
    velocity: tuple[float, float] = (0.0, 0.0)

    @property
    def meters_per_second(self) -> float:
        return self.instantaneous

    @property
    def kilometers_per_hour(self) -> float:
        return self.instantaneous * MPS_TO_KMH

    @property
    def miles_per_hour(self) -> float:
        return self.instantaneous * MPS_TO_MPH

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kilometers_per_hour"] = self.kilometers_per_hour
        data["miles_per_hour"] = self.miles_per_hour
        return data


@dataclass
class DistanceMetrics:
    """Distance travelled by the centroid (meters)."""

    total: float = 0.0
    horizontal: float = 0.0
    vertical: float = 0.0
    displacement: float = 0.0

    @property
    def meters(self) -> float:
        return self.total

    @property
    def feet(self) -> float:
        return self.total * METERS_TO_FEET

    @property
    def kilometers(self) -> float:
        return self.total / 1000

    @property
    def miles(self) -> float:
        return self.total * METERS_TO_MILES

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.update(feet=self.feet, kilometers=self.kilometers, miles=self.miles)
        return data


@dataclass(frozen=True)
class VelocitySample:
    """Velocity at a point in time (m/s, seconds)."""

    x: float
    y: float
    magnitude: float
    timestamp: float

    @classmethod
    def from_components(cls, x: float, y: float, timestamp: float) -> "VelocitySample":
        return cls(x=x, y=y, magnitude=magnitude(x, y), timestamp=timestamp)


@dataclass
class AccelerationMetrics:
    """Linear acceleration (m/s^2)."""

    current: float
    max: float
    peak: float
    linear: tuple[float, float]
    is_decelerating: bool
    is_explosive: bool
    explosive_threshold: float
    peak_timestamp: float | None = None
    deceleration_rate: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AngleSample:
    """Joint angle (radians) at a point in time (seconds)."""

    angle: float
    timestamp: float


@dataclass
class RotationalAcceleration:
    """Angular acceleration in rad/s^2 and deg/s^2."""

    angular: float = 0.0
    degrees_per_second_squared: float = 0.0


class MotionCalculator:
    """Stateful per-session kinematics calculator.

    Owns the rolling speed/acceleration histories, session maxima, the
    displacement filter and the pixel-to-meter calibration. Create one
    instance per athlete session and call ``reset()`` between sessions.
    The instance is not safe to share between threads.

    Example:
        calculator = MotionCalculator(pixels_per_meter=500)
        speed = calculator.calculate_speed(current_frame, previous_frame, 0.033)
        zone = calculator.get_speed_zone(speed.instantaneous)
    """

    def __init__(
        self,
        config: MotionConfig | None = None,
        logger: logging.Logger | None = None,
        pixels_per_meter: float | None = None,
        min_confidence: float | None = None,
        smoothing_factor: float | None = None,
    ):
        """Initialize calculator.

        Args:
            config: Motion configuration. Defaults to MotionConfig().
            logger: Logger for diagnostics. Defaults to the module logger.
            pixels_per_meter: Calibration override.
            min_confidence: Keypoint confidence threshold override.
            smoothing_factor: Share of the filtered estimate in the smoothed
                displacement (the raw share is 1 - smoothing_factor).
        """
        config = config or MotionConfig()
        if pixels_per_meter is not None:
            config = replace(config, pixels_per_meter=pixels_per_meter)
        if min_confidence is not None:
            config = replace(config, min_confidence=min_confidence)
        if smoothing_factor is not None:
            config = replace(config, kalman=replace(config.kalman, raw_weight=1.0 - smoothing_factor))

        if config.pixels_per_meter <= 0:
            raise ValueError(f"pixels_per_meter must be positive, got {config.pixels_per_meter}")

        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.pixels_per_meter = config.pixels_per_meter
        self.min_confidence = config.min_confidence

        self.com_estimator = CenterOfMassEstimator(
            min_confidence=config.min_confidence,
            method=config.com_method,
            segment_weights=config.segment_weights,
        )
        self.zone_classifier = SpeedZoneClassifier(config.speed_zones)
        self.displacement_filter = DisplacementFilter(
            process_noise=config.kalman.process_noise,
            measurement_noise=config.kalman.measurement_noise,
            raw_weight=config.kalman.raw_weight,
        )

        self.speed_history: deque[float] = deque(maxlen=config.speed_history_size)
        self.acceleration_history: deque[float] = deque(maxlen=config.acceleration_history_size)
        self.max_speed = 0.0
        self.max_acceleration = 0.0

    # ------------------------------------------------------------------
    # Speed
    # ------------------------------------------------------------------

    def calculate_speed(
        self,
        current: PoseFrame,
        previous: PoseFrame,
        delta_time: float,
    ) -> SpeedMetrics:
        """Calculate centroid and limb speeds between two frames.

        Args:
            current: Current pose frame.
            previous: Previous pose frame.
            delta_time: Time between the frames in seconds.

        Returns:
            SpeedMetrics. On a non-positive ``delta_time`` or an undefined
            centroid the instantaneous speed is 0 and no state is updated.
        """
        current_com = self.com_estimator.estimate(current)

        if delta_time <= 0:
            self.logger.debug(f"Skipping speed: non-positive delta_time {delta_time}")
            return self._zero_speed(current_com)

        previous_com = self.com_estimator.estimate(previous)
        if not current_com.is_valid or not previous_com.is_valid:
            self.logger.debug("Skipping speed: center of mass undefined")
            return self._zero_speed(current_com)

        dx, dy = self._compensated_delta(
            current_com.position, previous_com.position, current, previous
        )
        dx, dy = self.displacement_filter.update(dx, dy)

        vx = dx / self.pixels_per_meter / delta_time
        vy = dy / self.pixels_per_meter / delta_time
        instantaneous = magnitude(dx, dy) / self.pixels_per_meter / delta_time

        self.speed_history.append(instantaneous)
        average = sum(self.speed_history) / len(self.speed_history)
        self.max_speed = max(self.max_speed, instantaneous)

        # Frame drops lower confidence rather than rejecting the reading
        confidence = min(1.0, self.config.expected_frame_interval / delta_time)

        return SpeedMetrics(
            instantaneous=instantaneous,
            average=average,
            max=self.max_speed,
            confidence=confidence,
            center_of_mass=current_com,
            limb_speeds=self._calculate_limb_speeds(current, previous, delta_time),
            velocity=(vx, vy),
        )

    def _zero_speed(self, com: CenterOfMass) -> SpeedMetrics:
        average = sum(self.speed_history) / len(self.speed_history) if self.speed_history else 0.0
        return SpeedMetrics(
            instantaneous=0.0,
            average=average,
            max=self.max_speed,
            confidence=0.0,
            center_of_mass=com,
        )

    def _calculate_limb_speeds(
        self,
        current: PoseFrame,
        previous: PoseFrame,
        delta_time: float,
    ) -> LimbSpeeds:
        speeds = {
            name: self._keypoint_speed(current.get(name), previous.get(name), current, previous, delta_time)
            for name in LIMB_KEYPOINTS
        }
        return LimbSpeeds(**speeds)

    def _keypoint_speed(
        self,
        current_kp: Keypoint | None,
        previous_kp: Keypoint | None,
        current: PoseFrame,
        previous: PoseFrame,
        delta_time: float,
    ) -> float:
        if current_kp is None or previous_kp is None:
            return 0.0
        if not current_kp.is_valid(self.min_confidence) or not previous_kp.is_valid(
            self.min_confidence
        ):
            return 0.0

        dx, dy = self._compensated_delta(current_kp.position, previous_kp.position, current, previous)
        return magnitude(dx, dy) / self.pixels_per_meter / delta_time

    @staticmethod
    def _compensated_delta(
        current_pos: tuple[float, float],
        previous_pos: tuple[float, float],
        current: PoseFrame,
        previous: PoseFrame,
    ) -> tuple[float, float]:
        """Pixel displacement with camera motion removed when both offsets are known."""
        dx = current_pos[0] - previous_pos[0]
        dy = current_pos[1] - previous_pos[1]

        if current.camera_offset is not None and previous.camera_offset is not None:
            dx -= current.camera_offset[0] - previous.camera_offset[0]
            dy -= current.camera_offset[1] - previous.camera_offset[1]

        return dx, dy

    # ------------------------------------------------------------------
    # Distance
    # ------------------------------------------------------------------

    def calculate_distance(self, frames: Sequence[PoseFrame]) -> DistanceMetrics:
        """Calculate distance travelled over an ordered frame history.

        Frames without a defined centroid are skipped. Total distance is the
        sum of segment lengths; displacement is the straight line between the
        first and last centroids.

        Args:
            frames: Ordered pose frames.

        Returns:
            DistanceMetrics in meters (zeros for fewer than two usable frames).
        """
        tracked = []
        for frame in frames:
            com = self.com_estimator.estimate(frame)
            if com.is_valid:
                tracked.append((frame, com))

        if len(tracked) < 2:
            return DistanceMetrics()

        total = 0.0
        horizontal = 0.0
        vertical = 0.0

        for (prev_frame, prev_com), (frame, com) in zip(tracked, tracked[1:]):
            dx, dy = self._compensated_delta(com.position, prev_com.position, frame, prev_frame)
            total += magnitude(dx, dy) / self.pixels_per_meter
            horizontal += abs(dx) / self.pixels_per_meter
            vertical += abs(dy) / self.pixels_per_meter

        (first_frame, first_com), (last_frame, last_com) = tracked[0], tracked[-1]
        dx, dy = self._compensated_delta(last_com.position, first_com.position, last_frame, first_frame)
        displacement = magnitude(dx, dy) / self.pixels_per_meter

        return DistanceMetrics(
            total=total,
            horizontal=horizontal,
            vertical=vertical,
            displacement=displacement,
        )

    # ------------------------------------------------------------------
    # Acceleration
    # ------------------------------------------------------------------

    def calculate_acceleration(
        self,
        velocity_history: Sequence[VelocitySample],
        delta_time: float,
    ) -> AccelerationMetrics:
        """Calculate acceleration from the last two velocity samples.

        Args:
            velocity_history: Velocity samples, oldest first.
            delta_time: Time between the last two samples in seconds.

        Returns:
            AccelerationMetrics. With fewer than two samples or a non-positive
            ``delta_time`` the result is zero-filled and max/peak report the
            running maximum.
        """
        threshold = self.config.explosive_threshold

        if len(velocity_history) < 2 or delta_time <= 0:
            return AccelerationMetrics(
                current=0.0,
                max=self.max_acceleration,
                peak=self.max_acceleration,
                linear=(0.0, 0.0),
                is_decelerating=False,
                is_explosive=False,
                explosive_threshold=threshold,
            )

        current = velocity_history[-1]
        previous = velocity_history[-2]

        ax = (current.x - previous.x) / delta_time
        ay = (current.y - previous.y) / delta_time
        acceleration = (current.magnitude - previous.magnitude) / delta_time

        self.acceleration_history.append(abs(acceleration))
        peak = max(self.acceleration_history)
        peak_timestamp = current.timestamp if peak == abs(acceleration) else None
        self.max_acceleration = max(self.max_acceleration, abs(acceleration))

        is_decelerating = acceleration < 0

        return AccelerationMetrics(
            current=acceleration,
            max=self.max_acceleration,
            peak=peak,
            linear=(ax, ay),
            is_decelerating=is_decelerating,
            is_explosive=abs(acceleration) > threshold,
            explosive_threshold=threshold,
            peak_timestamp=peak_timestamp,
            deceleration_rate=acceleration if is_decelerating else None,
        )

    def calculate_rotational_acceleration(
        self,
        angle_history: Sequence[AngleSample],
        delta_time: float,
    ) -> RotationalAcceleration:
        """Calculate angular acceleration from the last three angle samples.

        Time steps come from the sample timestamps; a zero timestamp gap falls
        back to ``delta_time``.

        Args:
            angle_history: Angle samples (radians), oldest first.
            delta_time: Fallback frame interval in seconds.

        Returns:
            RotationalAcceleration (zeros with fewer than three samples or a
            non-positive time step).
        """
        if len(angle_history) < 3:
            return RotationalAcceleration()

        a0, a1, a2 = angle_history[-3], angle_history[-2], angle_history[-1]
        dt1 = (a1.timestamp - a0.timestamp) or delta_time
        dt2 = (a2.timestamp - a1.timestamp) or delta_time

        if dt1 <= 0 or dt2 <= 0:
            self.logger.debug(f"Skipping rotational acceleration: dt1={dt1}, dt2={dt2}")
            return RotationalAcceleration()

        omega1 = (a1.angle - a0.angle) / dt1
        omega2 = (a2.angle - a1.angle) / dt2
        angular = (omega2 - omega1) / ((dt1 + dt2) / 2)

        return RotationalAcceleration(
            angular=angular,
            degrees_per_second_squared=angular * (180 / math.pi),
        )

    # ------------------------------------------------------------------
    # Zones, calibration and lifecycle
    # ------------------------------------------------------------------

    def get_speed_zone(self, speed: float) -> str:
        """Classify a speed (m/s) into a zone name."""
        return self.zone_classifier.classify(speed).value

    def calibrate_from_height(self, pixel_height: float, real_height_meters: float) -> None:
        """Set pixels_per_meter from a known body height.

        Args:
            pixel_height: Height of the athlete in pixels.
            real_height_meters: Real height of the athlete in meters.

        Raises:
            ValueError: If either value is not positive.
        """
        if pixel_height <= 0 or real_height_meters <= 0:
            raise ValueError(
                f"Calibration needs positive values, got pixel_height={pixel_height}, "
                f"real_height_meters={real_height_meters}"
            )

        self.pixels_per_meter = pixel_height / real_height_meters
        self.logger.info(f"Calibrated: {self.pixels_per_meter:.1f} px/m")

    def calibrate_from_pose(
        self,
        frame: PoseFrame,
        athlete_height: float,
        min_confidence: float = 0.5,
    ) -> bool:
        """Calibrate from the nose-to-ankle span of a standing pose.

        Args:
            frame: Pose with the athlete standing upright.
            athlete_height: Real athlete height in meters.
            min_confidence: Confidence required for nose and both ankles.

        Returns:
            True if calibration was applied.
        """
        nose = frame.get("nose")
        left_ankle = frame.get("left_ankle")
        right_ankle = frame.get("right_ankle")

        if any(kp is None or not kp.is_valid(min_confidence) for kp in (nose, left_ankle, right_ankle)):
            self.logger.debug("Pose calibration skipped: nose/ankles not confident")
            return False

        _, ankle_y = midpoint(left_ankle.position, right_ankle.position)
        pixel_height = abs(ankle_y - nose.y)
        if pixel_height <= 0:
            return False

        self.calibrate_from_height(pixel_height, athlete_height)
        return True

    def reset(self) -> None:
        """Clear rolling histories, session maxima and filter state."""
        self.speed_history.clear()
        self.acceleration_history.clear()
        self.max_speed = 0.0
        self.max_acceleration = 0.0
        self.displacement_filter.reset()
        self.logger.info("Motion calculator reset")
