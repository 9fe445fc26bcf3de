"""Tests for form snapshots and trend analysis."""

from datetime import date, timedelta

import pytest

from training_form.analysis.model import LoadModel, LoadModelSettings, LoadState
from training_form.analysis.trends import FormSnapshot, TrendAnalyzer, TrendSettings, build_snapshots
from training_form.analysis.zones import FormZone, ZoneClassifier, ZoneThresholds


def make_snapshots(forms, fitness=60.0, start=date(2024, 5, 1)):
    """Build snapshots with the given form values at a fixed fitness."""
    states = [
        LoadState(date=start + timedelta(days=i), training_stress=0.0, fitness=fitness,
                  fatigue=fitness - form, form=form)
        for i, form in enumerate(forms)
    ]
    return build_snapshots(states, ZoneClassifier(ZoneThresholds()))


class TestBuildSnapshots:
    """Test snapshot construction."""

    def test_deltas_and_zone_changes(self):
        """Deltas are day over day and the first snapshot has none."""
        snapshots = make_snapshots([0.0, 3.0, 8.0])

        assert snapshots[0].delta_form == 0
        assert snapshots[0].zone_changed is False
        assert snapshots[1].delta_form == pytest.approx(3.0)
        assert snapshots[1].zone_changed is False
        assert snapshots[2].zone == FormZone.FRESH
        assert snapshots[2].zone_changed is True

    def test_from_simulation(self):
        """Simulated states classify with their own fitness."""
        model = LoadModel(LoadModelSettings())
        states = model.simulate(50, 80, [0] * 10, start_date=date(2024, 1, 1))

        snapshots = build_snapshots(states)

        assert len(snapshots) == 10
        assert snapshots[0].date == date(2024, 1, 1)
        assert snapshots[-1].delta_fatigue < 0
        assert all(s.form == st.form for s, st in zip(snapshots, states))


class TestTrendAnalyzer:
    """Test trend direction, magnitude and zone churn."""

    def setup_method(self):
        """Set up test fixtures."""
        self.analyzer = TrendAnalyzer(TrendSettings(), ZoneClassifier(ZoneThresholds()))

    def test_improving(self):
        """Form rising more than five percent is improving."""
        trend = self.analyzer.analyze_trend(make_snapshots([-20, -18, -15, -12, -10, -8, -6]), 7)

        assert trend.direction == "improving"
        assert trend.magnitude == pytest.approx(70.0)
        assert trend.sample_size == 7
        assert trend.slope > 0

    def test_declining(self):
        trend = self.analyzer.analyze_trend(make_snapshots([10, 8, 6, 4, 2, 1, 0.5]), 7)

        assert trend.direction == "declining"
        assert trend.magnitude == pytest.approx(-95.0)

    def test_small_change_is_stable(self):
        """Changes within the threshold are stable."""
        trend = self.analyzer.analyze_trend(make_snapshots([10, 10.2, 9.9, 10.3]), 7)

        assert trend.direction == "stable"

    def test_zero_start_is_stable(self):
        """A zero starting form cannot give a relative change."""
        trend = self.analyzer.analyze_trend(make_snapshots([0, 5, 10, 15]), 7)

        assert trend.direction == "stable"
        assert trend.magnitude == 0

    def test_insufficient_history(self):
        """Fewer than two snapshots yields an empty stable trend."""
        assert self.analyzer.analyze_trend([], 7).direction == "stable"

        single = self.analyzer.analyze_trend(make_snapshots([12]), 7)
        assert single.sample_size == 1
        assert single.zone_changes == []

    def test_window_uses_latest_days(self):
        """Only the trailing window is considered."""
        snapshots = make_snapshots([-30, -20, -10, 10, 10, 10.1])

        trend = self.analyzer.analyze_trend(snapshots, 3)

        assert trend.start_date == snapshots[3].date
        assert trend.direction == "stable"

    def test_zone_changes(self):
        """Every change of zone is listed with its transition details."""
        trend = self.analyzer.analyze_trend(make_snapshots([0, 6, 0, 6, 25]), 7)

        assert [c.index for c in trend.zone_changes] == [1, 2, 3, 4]
        assert trend.zone_changes[0].from_zone == FormZone.MAINTENANCE
        assert trend.zone_changes[0].to_zone == FormZone.FRESH
        assert trend.zone_changes[-1].to_zone == FormZone.OPTIMAL_RACE
        assert trend.zone_changes[1].direction == "declining"

    def test_reversals(self):
        """Direction changes larger than the minimum are reversals."""
        trend = self.analyzer.analyze_trend(make_snapshots([0, 5, 1, 1.5, 1.6]), 7)

        assert [r.index for r in trend.reversals] == [1, 2]
        assert trend.reversals[0].previous_direction == "increasing"
        assert trend.reversals[0].new_direction == "decreasing"

    def test_multiple_windows(self):
        """Windows are analyzed independently."""
        snapshots = make_snapshots([-30 + i for i in range(20)])

        trends = self.analyzer.analyze_trends(snapshots, windows=(7, 14))

        assert set(trends) == {7, 14}
        assert trends[7].sample_size == 7
        assert trends[14].sample_size == 14

    def test_statistics(self):
        trend = self.analyzer.analyze_trend(make_snapshots([-10, 0, 10]), 7)

        assert trend.average_form == pytest.approx(0)
        assert trend.min_form == -10
        assert trend.max_form == 10
        assert trend.slope == pytest.approx(10)
        assert trend.velocity == "rapid"

    def test_acceleration(self):
        """Steeper recent slope than the week before is acceleration."""
        forms = [0.0] * 7 + [i * 2.0 for i in range(7)]

        result = self.analyzer.detect_acceleration(make_snapshots(forms))

        assert result.is_accelerating
        assert result.acceleration_rate == pytest.approx(2.0)

    def test_acceleration_needs_two_weeks(self):
        result = self.analyzer.detect_acceleration(make_snapshots([1, 2, 3]))

        assert not result.is_accelerating

    def test_summary(self):
        trend = self.analyzer.analyze_trend(make_snapshots([-20, -18, -15, -12, -10, -8, -6]), 7)

        assert TrendAnalyzer.summarize(trend).startswith("Form is rapid improving")


class TestFormSnapshot:
    """Test snapshot helpers."""

    def test_from_state_without_previous(self):
        state = LoadState(date(2024, 1, 1), 50.0, 40.0, 45.0, -5.0)

        snapshot = FormSnapshot.from_state(state, FormZone.MAINTENANCE)

        assert snapshot.delta_training_stress == 0
        assert snapshot.form == -5.0
