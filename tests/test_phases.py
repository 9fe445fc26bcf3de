"""Tests for training phase detection."""

from datetime import date, datetime, timedelta

import pytest

from training_form.analysis.periodization import TrainingPhase
from training_form.analysis.phases import (
    HRZoneDistribution,
    PersonalRecord,
    PhaseDetectionConfig,
    PhaseDetector,
    TrendDirection,
    WeeklyMetrics,
)
from training_form.analysis.zones import FormZone, ZoneClassifier, ZoneThresholds

AEROBIC = HRZoneDistribution(40, 35, 15, 7, 3)
EASY = HRZoneDistribution(70, 20, 10, 0, 0)
INTENSE = HRZoneDistribution(30, 20, 20, 20, 10)


def make_weeks(durations, stresses, forms=None, hr=None, fitness=50.0, start=date(2024, 1, 1)):
    """Build consecutive weeks starting on a Monday."""
    forms = forms or [0.0] * len(durations)
    weeks = []
    for i, (duration, stress, form) in enumerate(zip(durations, stresses, forms)):
        week_start = start + timedelta(weeks=i)
        weeks.append(WeeklyMetrics(
            week_start=week_start,
            week_end=week_start + timedelta(days=6),
            total_distance=duration * 2.5,
            total_duration=duration,
            activity_count=5,
            avg_weekly_tss=stress,
            total_tss=stress,
            avg_fitness=fitness + i,
            avg_fatigue=fitness + i - form,
            avg_form=form,
            hr_zone_distribution=hr[i] if isinstance(hr, list) else hr,
        ))
    return weeks


def base_scenario(**kwargs):
    return make_weeks([36000, 39600, 43200], [200, 220, 240], forms=[-5, -8, -12], hr=AEROBIC, **kwargs)


class TestPhaseDetector:
    """Test segmentation, classification and annotations."""

    def setup_method(self):
        """Set up test fixtures."""
        self.detector = PhaseDetector(PhaseDetectionConfig(), ZoneClassifier(ZoneThresholds()))

    def test_base_with_increasing_volume(self):
        """Rising high volume with mostly easy heart rate is base."""
        phases = self.detector.detect_phases(base_scenario())

        assert len(phases) == 1
        phase = phases[0]
        assert phase.phase == TrainingPhase.BASE
        assert phase.volume_trend == TrendDirection.INCREASING
        assert phase.tss_trend == TrendDirection.INCREASING
        assert phase.detection_method == "hybrid"
        assert phase.rule == "high_volume_low_intensity"
        assert phase.duration_weeks == 3
        assert phase.start_date == date(2024, 1, 1)
        assert phase.end_date == date(2024, 1, 21)
        assert phase.fitness_gain == pytest.approx(2)
        assert phase.avg_weekly_volume == pytest.approx(11)

    @pytest.mark.parametrize("count", [0, 1, 2])
    def test_insufficient_weeks(self, count):
        """Fewer weeks than the minimum phase length gives no phases."""
        assert self.detector.detect_phases(base_scenario()[:count]) == []

    def test_short_runs_are_absorbed(self):
        """A two-week taper between base and recovery joins the base phase."""
        durations = [28800] * 6 + [3600] * 6
        stresses = [300] * 6 + [50] * 6
        forms = [0.0] * 6 + [5.0, 10.0, 15.0, 20.0, 25.0, 30.0]
        hr = [HRZoneDistribution(50, 30, 15, 4, 1)] * 6 + [EASY] * 6

        phases = self.detector.detect_phases(make_weeks(durations, stresses, forms, hr))

        assert [p.phase for p in phases] == [TrainingPhase.BASE, TrainingPhase.RECOVERY]
        assert (phases[0].start_week, phases[0].end_week) == (0, 7)
        assert (phases[1].start_week, phases[1].end_week) == (8, 11)
        assert phases[1].rule == "low_load_rising_form"
        assert sum(p.duration_weeks for p in phases) == 12

    def test_phases_cover_all_weeks_in_order(self):
        durations = [28800] * 6 + [3600] * 6
        stresses = [300] * 6 + [50] * 6
        forms = [0.0] * 6 + [5.0, 10.0, 15.0, 20.0, 25.0, 30.0]

        phases = self.detector.detect_phases(make_weeks(durations, stresses, forms, EASY))

        assert phases[0].start_week == 0
        assert phases[-1].end_week == 11
        for previous, current in zip(phases, phases[1:]):
            assert current.start_week == previous.end_week + 1
            assert current.phase != previous.phase

    def test_confidence_bounds(self):
        """Overall and sub-scores stay within 0-100."""
        for phase in self.detector.detect_phases(base_scenario()):
            assert 0 <= phase.confidence <= 100
            factors = phase.confidence_factors
            for score in (factors.volume, factors.intensity, factors.tss):
                assert 0 <= score <= 100

    def test_malformed_percentages_lower_confidence(self):
        """Out-of-range heart-rate percentages are tolerated but cost confidence."""
        clean = self.detector.detect_phases(base_scenario())[0]
        weeks = base_scenario()
        weeks[1] = WeeklyMetrics(**{**weeks[1].__dict__, "hr_zone_distribution": HRZoneDistribution(120, -20, 0, 0, 0)})

        malformed = self.detector.detect_phases(weeks)[0]

        assert malformed.phase == TrainingPhase.BASE
        assert malformed.confidence_factors.intensity < clean.confidence_factors.intensity
        assert malformed.confidence < clean.confidence

    def test_negative_duration_is_tolerated(self):
        weeks = make_weeks([36000, -3600, 43200, 40000], [200, 220, 240, 230], hr=AEROBIC)

        phases = self.detector.detect_phases(weeks)

        assert phases
        assert all(0 <= p.confidence <= 100 for p in phases)

    def test_missing_heart_rate_gives_low_intensity_confidence(self):
        weeks = make_weeks([36000, 36000, 36000], [200, 200, 200])

        phase = self.detector.detect_phases(weeks)[0]

        assert phase.confidence_factors.intensity == 30
        assert phase.hr_zone_profile is None

    def test_hr_zone_profile(self):
        """The two zones with most time are dominant."""
        profile = self.detector.detect_phases(base_scenario())[0].hr_zone_profile

        assert profile.dominant_zones == (1, 2)
        assert profile.distribution.zone1 == pytest.approx(40)

    def test_personal_records(self):
        """Records inside the phase are counted with their week's context."""
        records = [
            PersonalRecord(datetime(2024, 1, 9, 7, 30), "5k", "5K", "a1"),
            PersonalRecord("2024-01-20T10:00:00", "10k"),
            PersonalRecord(date(2023, 12, 1), "half"),
        ]

        performance = self.detector.detect_phases(base_scenario(), records)[0].performance

        assert performance.prs_achieved == 2
        first = performance.records[0]
        assert first.category_id == "5k"
        assert first.date == date(2024, 1, 9)
        assert first.fitness == pytest.approx(51)
        assert first.form == pytest.approx(-8)

    def test_no_records_no_performance(self):
        assert self.detector.detect_phases(base_scenario())[0].performance is None

    def test_form_metrics(self):
        metrics = self.detector.detect_phases(base_scenario())[0].form_metrics

        assert metrics.avg_form == pytest.approx(-25 / 3)
        assert metrics.min_form == -12
        assert metrics.max_form == -5
        assert metrics.dominant_zone == FormZone.MAINTENANCE
        assert metrics.zone_distribution[FormZone.PRODUCTIVE_TRAINING] == pytest.approx(100 / 3)
        assert metrics.overreaching_days == 0

    def test_overreaching_days(self):
        weeks = make_weeks([36000] * 3, [600] * 3, forms=[-40, -45, -50], hr=AEROBIC)

        metrics = self.detector.detect_phases(weeks)[0].form_metrics

        assert metrics.overreaching_days == 21
        assert metrics.dominant_zone == FormZone.OVERREACHED
        assert metrics.form_trend == TrendDirection.DECREASING


class TestPhaseRules:
    """Test the ordered window rules one by one."""

    def setup_method(self):
        """Set up test fixtures."""
        self.detector = PhaseDetector(PhaseDetectionConfig(), ZoneClassifier(ZoneThresholds()))

    def test_build(self):
        weeks = make_weeks([18000] * 3, [200, 260, 320])

        assert self.detector.classify_window(weeks) == (TrainingPhase.BUILD, "rising_load_balanced_intensity")

    def test_peak(self):
        weeks = make_weeks([18000] * 3, [400] * 3, hr=INTENSE)

        assert self.detector.classify_window(weeks)[0] == TrainingPhase.PEAK

    def test_taper(self):
        weeks = make_weeks([28800, 21600, 14400], [400, 300, 200], forms=[-10, -2, 5])

        assert self.detector.classify_window(weeks)[0] == TrainingPhase.TAPER

    def test_recovery(self):
        weeks = make_weeks([3600] * 3, [60] * 3, forms=[0, 5, 10])

        assert self.detector.classify_window(weeks)[0] == TrainingPhase.RECOVERY

    def test_transition_fallback(self):
        weeks = make_weeks([3600] * 3, [60] * 3, forms=[10, 5, 0])

        assert self.detector.classify_window(weeks) == (TrainingPhase.TRANSITION, "no_rule_matched")

    def test_base_rule_precedes_build(self):
        """High easy volume with rising load is still base."""
        assert self.detector.classify_window(base_scenario())[0] == TrainingPhase.BASE

    def test_assessment_guards_zero_baseline(self):
        weeks = make_weeks([0, 0, 3600], [0, 0, 100])

        assessment = self.detector.assess(weeks)

        assert assessment.volume_change_percent == 0
        assert assessment.volume_trend == TrendDirection.STABLE
