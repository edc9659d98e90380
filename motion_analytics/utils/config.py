"""YAML configuration for the analytics classes.

Settings live in ``config/analysis_config.yaml`` at the project root. A
``.env`` file (or the process environment) may point
``MOTION_ANALYTICS_CONFIG_DIR`` at another directory holding the same files.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

load_dotenv()

CONFIG_DIR_ENV = "MOTION_ANALYTICS_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


class Config:
    """Cached access to the YAML files of one config directory."""

    def __init__(self, config_dir: Path | None = None):
        """
        Args:
            config_dir: Directory holding ``<name>.yaml`` files. Falls back to
                $MOTION_ANALYTICS_CONFIG_DIR, then the project config/ directory.
        """
        if config_dir is None:
            config_dir = os.getenv(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR

        self.config_dir = Path(config_dir)
        self._configs: dict[str, dict[str, Any]] = {}

    def load(self, config_name: str) -> dict[str, Any]:
        """Parse ``<config_name>.yaml`` once and serve it from cache afterwards.

        Raises:
            FileNotFoundError: If the file is not in the config directory.
        """
        if config_name not in self._configs:
            path = self.config_dir / f"{config_name}.yaml"
            if not path.is_file():
                raise FileNotFoundError(f"Config file not found: {path}")

            with open(path) as f:
                self._configs[config_name] = yaml.safe_load(f) or {}

        return self._configs[config_name]

    def get(self, config_name: str, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``"motion.pixels_per_meter"``.

        Returns ``default`` when any part of the path is missing or null.
        """
        node: Any = self.load(config_name)
        for part in key.split("."):
            node = node.get(part) if isinstance(node, dict) else None
            if node is None:
                return default
        return node

    def reload(self, config_name: str) -> dict[str, Any]:
        """Drop the cached copy and parse the file again."""
        self._configs.pop(config_name, None)
        return self.load(config_name)


_global_config: Config | None = None


def get_config() -> Config:
    """Process-wide Config for the default directory."""
    global _global_config
    if _global_config is None:
        _global_config = Config()
    return _global_config


@dataclass
class KalmanConfig:
    """Displacement filter tuning."""

    process_noise: float = 0.01
    measurement_noise: float = 5.0
    raw_weight: float = 0.7  # share of the raw displacement in the output


@dataclass
class SpeedZoneThresholds:
    """Upper bounds (m/s, exclusive) of each speed zone below sprinting."""

    stationary: float = 1.0
    walking: float = 2.0
    jogging: float = 3.5
    running: float = 5.5

    def __post_init__(self) -> None:
        bounds = [self.stationary, self.walking, self.jogging, self.running]
        if any(b <= a for a, b in zip(bounds, bounds[1:])) or bounds[0] <= 0:
            raise ValueError(f"Speed zone thresholds must be positive and increasing, got {bounds}")


@dataclass
class MotionConfig:
    """Typed view of analysis_config.yaml used by the analytics classes."""

    pixels_per_meter: float = 500.0
    min_confidence: float = 0.3
    expected_frame_interval: float = 1.0 / 30.0
    speed_history_size: int = 30
    acceleration_history_size: int = 30
    explosive_threshold: float = 15.0
    com_method: str = "mean"
    segment_weights: dict[str, float] | None = None
    kalman: KalmanConfig = field(default_factory=KalmanConfig)
    speed_zones: SpeedZoneThresholds = field(default_factory=SpeedZoneThresholds)

    # Joint angles / symmetry / balance
    hyperextension_threshold: float = 175.0
    max_expected_difference: float = 50.0
    balance_margin: float = 20.0
    balance_span_normalizer: float = 100.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MotionConfig":
        """Build a MotionConfig from the analysis_config.yaml structure.

        Missing sections fall back to the dataclass defaults.
        """
        motion = data.get("motion", {}) or {}
        speed = data.get("speed", {}) or {}
        acceleration = data.get("acceleration", {}) or {}
        com = data.get("center_of_mass", {}) or {}
        angles = data.get("joint_angles", {}) or {}
        symmetry = data.get("symmetry", {}) or {}
        balance = data.get("balance", {}) or {}
        defaults = cls()

        fps = speed.get("expected_fps")
        return cls(
            pixels_per_meter=float(motion.get("pixels_per_meter", defaults.pixels_per_meter)),
            min_confidence=float(motion.get("min_confidence", defaults.min_confidence)),
            expected_frame_interval=1.0 / float(fps) if fps else defaults.expected_frame_interval,
            speed_history_size=int(speed.get("history_size", defaults.speed_history_size)),
            acceleration_history_size=int(
                acceleration.get("history_size", defaults.acceleration_history_size)
            ),
            explosive_threshold=float(
                acceleration.get("explosive_threshold", defaults.explosive_threshold)
            ),
            com_method=com.get("method", defaults.com_method),
            segment_weights=com.get("segment_weights"),
            kalman=KalmanConfig(**(data.get("kalman", {}) or {})),
            speed_zones=SpeedZoneThresholds(**(data.get("speed_zones", {}) or {})),
            hyperextension_threshold=float(
                angles.get("hyperextension_threshold", defaults.hyperextension_threshold)
            ),
            max_expected_difference=float(
                symmetry.get("max_expected_difference", defaults.max_expected_difference)
            ),
            balance_margin=float(balance.get("margin", defaults.balance_margin)),
            balance_span_normalizer=float(
                balance.get("span_normalizer", defaults.balance_span_normalizer)
            ),
        )


def load_motion_config(config: Config | None = None) -> MotionConfig:
    """Load analysis_config.yaml as a MotionConfig.

    Args:
        config: Config manager to read from. Defaults to the global instance.

    Returns:
        Populated MotionConfig.
    """
    config = config or get_config()
    return MotionConfig.from_dict(config.load("analysis_config"))
