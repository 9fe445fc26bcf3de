"""Tests for form zone classification."""

import math

import numpy as np
import pytest

from training_form.analysis.zones import FormZone, ZoneClassifier, ZoneThresholds


class TestZoneClassifier:
    """Test zone boundaries and fitness adjustment."""

    def setup_method(self):
        """Set up test fixtures."""
        self.classifier = ZoneClassifier(ZoneThresholds())

    def test_race_and_overreached(self):
        """Moderate fitness keeps the default bands."""
        assert self.classifier.classify(25, 60).zone == FormZone.OPTIMAL_RACE
        assert self.classifier.classify(-40, 60).zone == FormZone.OVERREACHED

    @pytest.mark.parametrize("form,zone", [
        (20, FormZone.OPTIMAL_RACE),
        (19.9, FormZone.FRESH),
        (5, FormZone.FRESH),
        (0, FormZone.MAINTENANCE),
        (-10, FormZone.MAINTENANCE),
        (-10.1, FormZone.PRODUCTIVE_TRAINING),
        (-25, FormZone.PRODUCTIVE_TRAINING),
        (-30, FormZone.FATIGUED),
        (-35, FormZone.FATIGUED),
        (-35.1, FormZone.OVERREACHED),
    ])
    def test_default_bands(self, form, zone):
        """Lower bounds are inclusive at moderate fitness."""
        assert self.classifier.classify_zone(form, 60) == zone

    @pytest.mark.parametrize("fitness", [0, 20, 40, 60, 80, 95, 150])
    def test_bands_partition_the_line(self, fitness):
        """Every form value matches exactly one zone range."""
        ranges = {zone: self.classifier.zone_range(zone, fitness) for zone in FormZone}

        for form in np.linspace(-80, 80, 641):
            matches = [zone for zone, (low, high) in ranges.items() if low <= form < high]
            assert matches == [self.classifier.classify_zone(form, fitness)]

    def test_ranges_are_contiguous(self):
        """Each zone starts where the one below ends."""
        order = [FormZone.OVERREACHED, FormZone.FATIGUED, FormZone.PRODUCTIVE_TRAINING,
                 FormZone.MAINTENANCE, FormZone.FRESH, FormZone.OPTIMAL_RACE]
        ranges = [self.classifier.zone_range(zone, 100) for zone in order]

        assert ranges[0][0] == -math.inf
        assert ranges[-1][1] == math.inf
        for (_, high), (low, _) in zip(ranges, ranges[1:]):
            assert high == low

    def test_low_fitness_narrows_bands(self):
        """Below fitness 40 every boundary moves toward zero."""
        assert self.classifier.zone_range(FormZone.OPTIMAL_RACE, 20)[0] == pytest.approx(16)
        assert self.classifier.classify_zone(-30, 20) == FormZone.OVERREACHED

    def test_high_fitness_tolerates_more_fatigue(self):
        """Above fitness 80 negative boundaries widen and race readiness comes sooner."""
        assert self.classifier.classify_zone(-40, 90) == FormZone.FATIGUED
        assert self.classifier.classify_zone(18, 90) == FormZone.OPTIMAL_RACE

    def test_zone_info_metadata(self):
        """Classification carries label, range and guidance."""
        info = self.classifier.classify(-40, 60)

        assert info.label == "Overreached"
        assert info.form_range == (-math.inf, -35)
        assert info.characteristics.injury_risk == "very_high"
        assert "rest" in info.recommendations.workout_types
        assert info.warnings

    def test_recommended_form_range(self):
        """Race range spans the optimal zone up to the ceiling; recovery is the fresh band."""
        race = self.classifier.get_recommended_form_range("race", 60)
        recovery = self.classifier.get_recommended_form_range("recovery", 60)

        assert (race.min, race.max) == (20, 35)
        assert race.target_zone == FormZone.OPTIMAL_RACE
        assert (recovery.min, recovery.max) == (5, 20)

    def test_unknown_purpose(self):
        """Unknown purposes are rejected."""
        with pytest.raises(ValueError):
            self.classifier.get_recommended_form_range("nap", 50)

    def test_predicates(self):
        assert self.classifier.is_optimal_for_race(22, 60)
        assert self.classifier.is_overreached(-50, 60)
        assert self.classifier.is_excessively_fresh(50, 60)
        assert not self.classifier.is_excessively_fresh(25, 60)

    def test_classify_many(self):
        results = self.classifier.classify_many([("d1", 25, 60), ("d2", -40, 60)])

        assert [(day, info.zone) for day, info in results] == [
            ("d1", FormZone.OPTIMAL_RACE),
            ("d2", FormZone.OVERREACHED),
        ]

    def test_transition_info(self):
        """Transitions report direction and significance."""
        into_race = self.classifier.get_zone_transition_info(FormZone.MAINTENANCE, FormZone.OPTIMAL_RACE)
        collapse = self.classifier.get_zone_transition_info(FormZone.OPTIMAL_RACE, FormZone.OVERREACHED)
        same = self.classifier.get_zone_transition_info(FormZone.FRESH, FormZone.FRESH)

        assert into_race.direction == "improving"
        assert "race readiness" in into_race.interpretation
        assert collapse.direction == "declining"
        assert collapse.significance == "major"
        assert collapse.interpretation.startswith("CRITICAL")
        assert same.direction == "neutral"
        assert same.significance == "none"

    def test_unsorted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            ZoneThresholds(fatigued_max=-40)
