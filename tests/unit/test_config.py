"""Unit tests for configuration management."""

import pytest

from motion_analytics.utils.config import (
    Config,
    KalmanConfig,
    MotionConfig,
    SpeedZoneThresholds,
    get_config,
    load_motion_config,
)


class TestConfig:
    """Test configuration loading and access."""

    def test_load_analysis_config(self):
        """Test loading analysis configuration."""
        config = Config()
        analysis_config = config.load("analysis_config")

        assert analysis_config is not None
        assert "motion" in analysis_config
        assert "kalman" in analysis_config
        assert "speed_zones" in analysis_config

    def test_get_nested_value(self):
        """Test getting nested configuration values."""
        config = Config()

        ppm = config.get("analysis_config", "motion.pixels_per_meter")
        assert isinstance(ppm, (int, float))
        assert ppm > 0

    def test_get_with_default(self):
        """Test getting value with default."""
        config = Config()

        value = config.get("analysis_config", "nonexistent.key", default="default_value")
        assert value == "default_value"

    def test_missing_file(self, tmp_path):
        """Missing config files raise FileNotFoundError."""
        config = Config(config_dir=tmp_path)

        with pytest.raises(FileNotFoundError):
            config.load("analysis_config")

    def test_env_override(self, tmp_path, monkeypatch):
        """Config directory can be set from the environment."""
        (tmp_path / "analysis_config.yaml").write_text("motion:\n  pixels_per_meter: 250\n")
        monkeypatch.setenv("MOTION_ANALYTICS_CONFIG_DIR", str(tmp_path))

        config = Config()
        assert config.get("analysis_config", "motion.pixels_per_meter") == 250

    def test_null_value_uses_default(self, tmp_path):
        """Null entries and paths through scalars fall back to the default."""
        (tmp_path / "analysis_config.yaml").write_text("motion:\n  pixels_per_meter:\n")
        config = Config(config_dir=tmp_path)

        assert config.get("analysis_config", "motion.pixels_per_meter", 500) == 500
        assert config.get("analysis_config", "motion.pixels_per_meter.x", 1) == 1

    def test_singleton_behavior(self):
        """Test that get_config() returns the same instance."""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_config_reload(self, tmp_path):
        """Reload picks up changes on disk."""
        path = tmp_path / "analysis_config.yaml"
        path.write_text("motion:\n  min_confidence: 0.3\n")
        config = Config(config_dir=tmp_path)
        assert config.get("analysis_config", "motion.min_confidence") == 0.3

        path.write_text("motion:\n  min_confidence: 0.5\n")
        assert config.get("analysis_config", "motion.min_confidence") == 0.3  # cached

        config.reload("analysis_config")
        assert config.get("analysis_config", "motion.min_confidence") == 0.5


class TestAnalysisConfig:
    """Test analysis configuration values."""

    def test_segment_weights_sum_to_one(self):
        """Segment mass fractions sum to approximately 1.0."""
        config = Config()
        weights = config.get("analysis_config", "center_of_mass.segment_weights")

        assert abs(sum(weights.values()) - 1.0) < 0.01

    def test_speed_zones_increasing(self):
        """Speed zone thresholds are increasing."""
        config = Config()
        zones = config.load("analysis_config")["speed_zones"]

        bounds = [zones["stationary"], zones["walking"], zones["jogging"], zones["running"]]
        assert bounds == sorted(bounds)


class TestMotionConfig:
    """Test the typed motion configuration."""

    def test_defaults(self):
        """Defaults match the documented constants."""
        config = MotionConfig()

        assert config.pixels_per_meter == 500.0
        assert config.min_confidence == 0.3
        assert config.kalman.raw_weight == 0.7
        assert config.speed_zones.stationary == 1.0

    def test_from_dict(self):
        """Sections are parsed and missing keys fall back to defaults."""
        config = MotionConfig.from_dict(
            {
                "motion": {"pixels_per_meter": 250},
                "speed": {"expected_fps": 60},
                "kalman": {"raw_weight": 0.5},
                "center_of_mass": {"method": "segment_weighted"},
            }
        )

        assert config.pixels_per_meter == 250.0
        assert config.expected_frame_interval == pytest.approx(1 / 60)
        assert config.kalman == KalmanConfig(raw_weight=0.5)
        assert config.com_method == "segment_weighted"
        assert config.min_confidence == 0.3

    def test_from_empty_dict(self):
        """An empty document yields the defaults."""
        assert MotionConfig.from_dict({}) == MotionConfig()

    def test_load_motion_config(self):
        """The shipped YAML loads into a MotionConfig."""
        config = load_motion_config(Config())

        assert config.pixels_per_meter == 500.0
        assert config.hyperextension_threshold == 175.0

    def test_invalid_speed_zones(self):
        """Non-increasing thresholds are rejected."""
        with pytest.raises(ValueError):
            SpeedZoneThresholds(stationary=2.0, walking=1.0)

        with pytest.raises(ValueError):
            SpeedZoneThresholds(stationary=0.0)
