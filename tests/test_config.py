"""Tests for environment-driven settings."""

import logging

from training_form.analysis.model import LoadModel, LoadModelSettings
from training_form.analysis.phases import PhaseDetectionConfig
from training_form.analysis.predictor import PredictorSettings
from training_form.analysis.zones import ZoneThresholds
from training_form.config import config, configure_logging


class TestSettingsFromConfig:
    """Test that settings snapshot the global configuration."""

    def test_defaults(self):
        settings = LoadModelSettings.from_config()

        assert settings.fitness_time_constant == config.FITNESS_TIME_CONSTANT
        assert settings.fatigue_time_constant == config.FATIGUE_TIME_CONSTANT

    def test_overrides_are_picked_up(self, monkeypatch):
        monkeypatch.setattr(config, "FITNESS_TIME_CONSTANT", 30.0)
        monkeypatch.setattr(config, "ZONE_FRESH_MAX", 18.0)
        monkeypatch.setattr(config, "MIN_PHASE_WEEKS", 4)
        monkeypatch.setattr(config, "TAPER_DURATION", 10)

        assert LoadModel().settings.fitness_time_constant == 30.0
        assert ZoneThresholds.from_config().fresh_max == 18.0
        assert PhaseDetectionConfig.from_config().min_phase_weeks == 4
        assert PredictorSettings.from_config().taper_duration == 10

    def test_settings_are_snapshots(self, monkeypatch):
        """Components keep the values they were built with."""
        model = LoadModel(LoadModelSettings.from_config())
        before = model.fitness_time_constant

        monkeypatch.setattr(config, "FITNESS_TIME_CONSTANT", before + 10)

        assert model.fitness_time_constant == before


class TestConfigureLogging:
    """Test logging setup."""

    def test_level(self):
        logger = logging.getLogger("training_form")
        previous_level = logger.level
        try:
            configure_logging("debug")
            assert logger.level == logging.DEBUG

            configure_logging("warning")
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(previous_level)
