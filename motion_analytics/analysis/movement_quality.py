"""Movement quality from per-keypoint kinematics.

Tracks every keypoint across consecutive frames and derives:
- Per-keypoint velocity, acceleration and jerk (m/s, m/s^2, m/s^3)
- A jerk-based smoothness score and a movement efficiency score
- The centre-of-mass path with bounded speed and distance profiles
- Time-windowed summaries of the above
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np

from motion_analytics.analysis.center_of_mass import CenterOfMass
from motion_analytics.pose.keypoints import PoseFrame
from motion_analytics.utils.geometry import magnitude, path_length

logger = logging.getLogger(__name__)

Vector = tuple[float, float]

# Jerk relative to velocity at which smoothness reaches 0
JERK_NORMALIZER = 100.0

# Simplified energy model: v^2 + ACCELERATION_COST * |a|
ACCELERATION_COST = 0.1
EFFICIENCY_NORMALIZER = 10.0

COM_PATH_LENGTH = 50
PROFILE_LENGTH = 100
QUALITY_HISTORY_LENGTH = 100


@dataclass
class MovementQuality:
    """Movement quality for one frame.

    Attributes:
        velocities: Keypoint name -> velocity (m/s). Keypoints not confident
            in both frames move at (0, 0).
        accelerations: Keypoint name -> acceleration (m/s^2), empty until
            three frames are available.
        jerk: Keypoint name -> jerk (m/s^3), empty until four frames are available.
        speed: Magnitude of the mean keypoint velocity (m/s).
        max_keypoint_speed: Fastest single keypoint (m/s).
        max_keypoint_acceleration: Largest single keypoint acceleration (m/s^2).
        smoothness: 1.0 for jerk-free movement, falling to 0.0.
        efficiency: Distance covered per unit of estimated effort, in [0, 1].
        frame_distance: Distance moved since the previous frame (m).
        total_distance: Accumulated frame distance for the session (m).
        com_path: Recent centre-of-mass positions (pixels).
        path_length: Length of ``com_path`` (m).
        speed_profile: Recent speeds (m/s), oldest first.
        distance_profile: Recent frame distances (m), oldest first.
    """

    timestamp: float
    velocities: dict[str, Vector] = field(default_factory=dict)
    accelerations: dict[str, Vector] = field(default_factory=dict)
    jerk: dict[str, Vector] = field(default_factory=dict)
    speed: float = 0.0
    max_keypoint_speed: float = 0.0
    max_keypoint_acceleration: float = 0.0
    smoothness: float = 1.0
    efficiency: float = 1.0
    frame_distance: float = 0.0
    total_distance: float = 0.0
    com_path: tuple[Vector, ...] = ()
    path_length: float = 0.0
    speed_profile: tuple[float, ...] = ()
    distance_profile: tuple[float, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MovementSummary:
    """Averages of movement quality over a time window."""

    average_speed: float = 0.0
    max_speed: float = 0.0
    total_distance: float = 0.0
    average_acceleration: float = 0.0  # Mean of per-frame peak keypoint acceleration
    smoothness: float = 1.0
    efficiency: float = 1.0
    frames: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def keypoint_velocities(
    current: PoseFrame,
    previous: PoseFrame,
    delta_time: float,
    min_confidence: float,
    pixels_per_meter: float,
) -> dict[str, Vector]:
    """Velocity (m/s) of every keypoint in ``current``.

    A keypoint that is missing from ``previous`` or not confident in either
    frame gets a zero velocity.
    """
    velocities = {}
    for kp in current.keypoints:
        prev_kp = previous.get(kp.name)
        if (
            delta_time > 0
            and prev_kp is not None
            and kp.is_valid(min_confidence)
            and prev_kp.is_valid(min_confidence)
        ):
            velocities[kp.name] = (
                (kp.x - prev_kp.x) / pixels_per_meter / delta_time,
                (kp.y - prev_kp.y) / pixels_per_meter / delta_time,
            )
        else:
            velocities[kp.name] = (0.0, 0.0)
    return velocities


def finite_difference(
    current: dict[str, Vector],
    previous: dict[str, Vector],
    delta_time: float,
) -> dict[str, Vector]:
    """Rate of change per keypoint; keypoints absent from ``previous`` start from zero."""
    rates = {}
    for name, (x, y) in current.items():
        prev_x, prev_y = previous.get(name, (0.0, 0.0))
        rates[name] = ((x - prev_x) / delta_time, (y - prev_y) / delta_time)
    return rates


def _magnitudes(vectors: dict[str, Vector]) -> np.ndarray:
    return np.array([magnitude(x, y) for x, y in vectors.values()], dtype=float)


def _mean_vector(vectors: dict[str, Vector]) -> Vector:
    if not vectors:
        return (0.0, 0.0)
    mean = np.mean(np.array(list(vectors.values()), dtype=float), axis=0)
    return float(mean[0]), float(mean[1])


def smoothness_score(velocities: dict[str, Vector], jerk: dict[str, Vector]) -> float:
    """Score in [0, 1] from mean jerk relative to mean velocity.

    Returns 1.0 when no jerk is available or nothing moves.
    """
    if not jerk or not velocities:
        return 1.0

    mean_jerk = float(np.mean(_magnitudes(jerk)))
    mean_velocity = float(np.mean(_magnitudes(velocities)))
    if mean_velocity == 0:
        return 1.0

    return float(np.clip(1.0 - mean_jerk / (mean_velocity * JERK_NORMALIZER), 0.0, 1.0))


def efficiency_score(
    velocities: dict[str, Vector],
    accelerations: dict[str, Vector],
    total_distance: float,
) -> float:
    """Score in [0, 1]: distance covered against a simplified effort estimate.

    Effort is mean speed squared plus a small acceleration cost. Returns 1.0
    before any distance is covered or when the effort is zero.
    """
    if total_distance == 0:
        return 1.0

    mean_velocity = float(np.mean(_magnitudes(velocities))) if velocities else 0.0
    mean_acceleration = float(np.mean(_magnitudes(accelerations))) if accelerations else 0.0

    effort = mean_velocity**2 + mean_acceleration * ACCELERATION_COST
    if effort == 0:
        return 1.0

    return float(np.clip(total_distance / (effort * EFFICIENCY_NORMALIZER), 0.0, 1.0))


class MovementQualityAnalyzer:
    """Per-keypoint movement quality over a stream of frames.

    Example:
        analyzer = MovementQualityAnalyzer(pixels_per_meter=200)
        for frame in frames:
            quality = analyzer.add_frame(frame, com_estimator.estimate(frame))
        summary = analyzer.get_summary(window_seconds=5.0)
    """

    def __init__(
        self,
        pixels_per_meter: float = 500.0,
        min_confidence: float = 0.3,
        history_size: int = QUALITY_HISTORY_LENGTH,
    ):
        self.pixels_per_meter = pixels_per_meter
        self.min_confidence = min_confidence
        self.history_size = history_size
        self.reset()

    def reset(self) -> None:
        self.frames: deque[PoseFrame] = deque(maxlen=4)
        self.history: deque[MovementQuality] = deque(maxlen=self.history_size)
        self.com_path: deque[Vector] = deque(maxlen=COM_PATH_LENGTH)
        self.speed_profile: deque[float] = deque(maxlen=PROFILE_LENGTH)
        self.distance_profile: deque[float] = deque(maxlen=PROFILE_LENGTH)
        self.total_distance = 0.0

    def add_frame(self, frame: PoseFrame, center_of_mass: CenterOfMass | None = None) -> MovementQuality:
        """Add a frame and compute its movement quality.

        Frames that do not advance time are kept as the new reference but
        yield a zero-motion result that is not recorded in the history.

        Args:
            frame: Pose for this frame.
            center_of_mass: COM estimate for the frame, appended to the path when valid.

        Returns:
            MovementQuality for the frame.
        """
        previous = self.frames[-1] if self.frames else None
        self.frames.append(frame)

        if center_of_mass is not None and center_of_mass.is_valid:
            self.com_path.append(center_of_mass.position)

        delta_time = frame.timestamp - previous.timestamp if previous is not None else 0.0
        if previous is None or delta_time <= 0:
            if previous is not None:
                logger.debug(f"Non-positive time step at {frame.timestamp:.3f}s, no movement quality")
            return self._zero_quality(frame)

        velocities = keypoint_velocities(
            frame, previous, delta_time, self.min_confidence, self.pixels_per_meter
        )

        last = self.history[-1] if self.history else None
        accelerations: dict[str, Vector] = {}
        jerk: dict[str, Vector] = {}
        if last is not None:
            accelerations = finite_difference(velocities, last.velocities, delta_time)
            if last.accelerations:
                jerk = finite_difference(accelerations, last.accelerations, delta_time)

        speeds = _magnitudes(velocities)
        acceleration_magnitudes = _magnitudes(accelerations)
        speed = magnitude(*_mean_vector(velocities))

        frame_distance = speed * delta_time
        self.total_distance += frame_distance
        self.speed_profile.append(speed)
        self.distance_profile.append(frame_distance)

        quality = MovementQuality(
            timestamp=frame.timestamp,
            velocities=velocities,
            accelerations=accelerations,
            jerk=jerk,
            speed=speed,
            max_keypoint_speed=float(speeds.max()) if speeds.size else 0.0,
            max_keypoint_acceleration=(
                float(acceleration_magnitudes.max()) if acceleration_magnitudes.size else 0.0
            ),
            smoothness=smoothness_score(velocities, jerk),
            efficiency=efficiency_score(velocities, accelerations, self.total_distance),
            frame_distance=frame_distance,
            total_distance=self.total_distance,
            com_path=tuple(self.com_path),
            path_length=path_length(list(self.com_path)) / self.pixels_per_meter,
            speed_profile=tuple(self.speed_profile),
            distance_profile=tuple(self.distance_profile),
        )
        self.history.append(quality)
        return quality

    def _zero_quality(self, frame: PoseFrame) -> MovementQuality:
        return MovementQuality(
            timestamp=frame.timestamp,
            velocities={kp.name: (0.0, 0.0) for kp in frame.keypoints},
            total_distance=self.total_distance,
            com_path=tuple(self.com_path),
            path_length=path_length(list(self.com_path)) / self.pixels_per_meter,
            speed_profile=tuple(self.speed_profile),
            distance_profile=tuple(self.distance_profile),
        )

    def get_summary(self, window_seconds: float = 10.0) -> MovementSummary:
        """Summarize the recorded frames within ``window_seconds`` of the latest one.

        Raises:
            ValueError: If ``window_seconds`` is not positive.
        """
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        if not self.history:
            return MovementSummary()

        cutoff = self.history[-1].timestamp - window_seconds
        recent = [q for q in self.history if q.timestamp > cutoff]

        return MovementSummary(
            average_speed=float(np.mean([q.speed for q in recent])),
            max_speed=max(q.speed for q in recent),
            total_distance=float(sum(q.frame_distance for q in recent)),
            average_acceleration=float(np.mean([q.max_keypoint_acceleration for q in recent])),
            smoothness=float(np.mean([q.smoothness for q in recent])),
            efficiency=float(np.mean([q.efficiency for q in recent])),
            frames=len(recent),
        )
