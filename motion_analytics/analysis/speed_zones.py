"""Speed-zone classification."""

from enum import Enum

from motion_analytics.utils.config import SpeedZoneThresholds


class SpeedZone(Enum):
    """Discrete activity level derived from scalar speed."""

    STATIONARY = "stationary"
    WALKING = "walking"
    JOGGING = "jogging"
    RUNNING = "running"
    SPRINTING = "sprinting"


class SpeedZoneClassifier:
    """Map speed (m/s) to a SpeedZone using exclusive upper bounds.

    A speed equal to a threshold falls into the zone above it,
    e.g. exactly 1.0 m/s is walking.
    """

    def __init__(self, thresholds: SpeedZoneThresholds | None = None):
        self.thresholds = thresholds or SpeedZoneThresholds()

    def classify(self, speed: float) -> SpeedZone:
        t = self.thresholds
        if speed < t.stationary:
            return SpeedZone.STATIONARY
        if speed < t.walking:
            return SpeedZone.WALKING
        if speed < t.jogging:
            return SpeedZone.JOGGING
        if speed < t.running:
            return SpeedZone.RUNNING
        return SpeedZone.SPRINTING
