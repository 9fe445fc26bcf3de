"""Rolling-window form trend analysis over daily snapshots."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..config import config
from .model import LoadState
from .zones import FormZone, ZoneClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendSettings:
    """Thresholds for trend direction, velocity and reversals."""

    threshold_percent: float = 5.0
    reversal_min_change: float = 2.0
    rapid_velocity: float = 2.0  # form points per day
    moderate_velocity: float = 0.5
    slow_velocity: float = 0.2
    acceleration_threshold: float = 0.5

    @classmethod
    def from_config(cls) -> "TrendSettings":
        return cls(
            threshold_percent=config.TREND_THRESHOLD_PERCENT,
            reversal_min_change=config.REVERSAL_MIN_CHANGE,
        )


@dataclass(frozen=True)
class FormSnapshot:
    """One day of load state with its zone and day-over-day deltas."""

    date: Optional[date]
    training_stress: float
    fitness: float
    fatigue: float
    form: float
    zone: FormZone
    delta_training_stress: float = 0.0
    delta_fitness: float = 0.0
    delta_fatigue: float = 0.0
    delta_form: float = 0.0
    zone_changed: bool = False

    @classmethod
    def from_state(
        cls,
        state: LoadState,
        zone: FormZone,
        previous: Optional["FormSnapshot"] = None,
    ) -> "FormSnapshot":
        if previous is None:
            return cls(state.date, state.training_stress, state.fitness, state.fatigue, state.form, zone)
        return cls(
            date=state.date,
            training_stress=state.training_stress,
            fitness=state.fitness,
            fatigue=state.fatigue,
            form=state.form,
            zone=zone,
            delta_training_stress=state.training_stress - previous.training_stress,
            delta_fitness=state.fitness - previous.fitness,
            delta_fatigue=state.fatigue - previous.fatigue,
            delta_form=state.form - previous.form,
            zone_changed=zone != previous.zone,
        )


@dataclass(frozen=True)
class ZoneTransition:
    index: int
    date: Optional[date]
    from_zone: FormZone
    to_zone: FormZone
    form: float
    direction: str
    significance: str
    interpretation: str


@dataclass(frozen=True)
class TrendReversal:
    index: int
    date: Optional[date]
    form: float
    previous_direction: str
    new_direction: str


@dataclass
class FormTrend:
    """Trend over the most recent window of snapshots."""

    window_days: int
    sample_size: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    direction: str = "stable"  # improving, declining, stable
    magnitude: float = 0.0  # percent change from window start to end
    slope: float = 0.0  # form points per day
    velocity: str = "stable"  # rapid, moderate, slow, stable
    average_form: float = 0.0
    min_form: float = 0.0
    max_form: float = 0.0
    volatility: float = 0.0
    zone_changes: List[ZoneTransition] = field(default_factory=list)
    reversals: List[TrendReversal] = field(default_factory=list)


@dataclass(frozen=True)
class TrendAcceleration:
    is_accelerating: bool
    acceleration_rate: float
    interpretation: str


def build_snapshots(
    states: Iterable[LoadState],
    classifier: Optional[ZoneClassifier] = None,
) -> List[FormSnapshot]:
    """Classify simulated states and attach day-over-day deltas.

    The first snapshot has zero deltas and no zone change.
    """
    classifier = classifier or ZoneClassifier()
    snapshots: List[FormSnapshot] = []
    previous = None
    for state in states:
        zone = classifier.classify_zone(state.form, state.fitness)
        previous = FormSnapshot.from_state(state, zone, previous)
        snapshots.append(previous)
    return snapshots


class TrendAnalyzer:
    """Compute trend direction, magnitude and zone churn over recent snapshots."""

    def __init__(
        self,
        settings: Optional[TrendSettings] = None,
        classifier: Optional[ZoneClassifier] = None,
    ):
        self.settings = settings or TrendSettings.from_config()
        self.classifier = classifier or ZoneClassifier()

    def analyze_trend(self, snapshots: Sequence[FormSnapshot], window_days: int) -> FormTrend:
        """Analyze the last ``window_days`` snapshots.

        Direction compares form at the start and end of the window: a relative
        change above the threshold is improving, below its negative is
        declining, anything else (including a zero start) is stable.

        Args:
            snapshots: Daily snapshots in chronological order
            window_days: Number of trailing snapshots to include

        Returns:
            FormTrend; fewer than two snapshots in the window yields a stable
            trend with no zone changes
        """
        window = list(snapshots)[-window_days:] if window_days > 0 else []
        if len(window) < 2:
            return FormTrend(
                window_days=window_days,
                sample_size=len(window),
                start_date=window[0].date if window else None,
                end_date=window[-1].date if window else None,
            )

        forms = np.array([s.form for s in window], dtype=float)
        magnitude = self._percent_change(forms[0], forms[-1])
        slope = self._slope(forms)

        trend = FormTrend(
            window_days=window_days,
            sample_size=len(window),
            start_date=window[0].date,
            end_date=window[-1].date,
            direction=self._direction(magnitude),
            magnitude=magnitude,
            slope=slope,
            velocity=self._velocity(slope),
            average_form=float(np.mean(forms)),
            min_form=float(np.min(forms)),
            max_form=float(np.max(forms)),
            volatility=float(np.std(forms)),
            zone_changes=self._zone_changes(window),
            reversals=self._reversals(window),
        )

        logger.debug(
            "Trend over %d days: %s (%.1f%%), %d zone changes",
            window_days, trend.direction, trend.magnitude, len(trend.zone_changes),
        )
        return trend

    def analyze_trends(
        self,
        snapshots: Sequence[FormSnapshot],
        windows: Sequence[int] = (7, 14),
    ) -> Dict[int, FormTrend]:
        """Analyze several independent windows, keyed by window length."""
        return {window: self.analyze_trend(snapshots, window) for window in windows}

    def detect_acceleration(self, snapshots: Sequence[FormSnapshot]) -> TrendAcceleration:
        """Compare the slope of the last week against the week before."""
        recent = [s.form for s in snapshots[-7:]]
        earlier = [s.form for s in snapshots[-14:-7]]

        if len(snapshots) < 3 or len(recent) < 2 or len(earlier) < 2:
            return TrendAcceleration(False, 0.0, "Insufficient data for acceleration analysis")

        rate = self._slope(np.array(recent)) - self._slope(np.array(earlier))
        is_accelerating = abs(rate) > self.settings.acceleration_threshold

        if not is_accelerating:
            interpretation = "Form trend is steady"
        elif rate > 0:
            interpretation = "Form is improving at an accelerating rate (recovery accelerating)"
        else:
            interpretation = "Form is declining at an accelerating rate (fatigue accumulating faster)"

        return TrendAcceleration(is_accelerating, rate, interpretation)

    @staticmethod
    def summarize(trend: FormTrend) -> str:
        """One-line description of a trend."""
        if trend.direction == "stable":
            parts = ["Form is stable"]
        else:
            parts = [f"Form is {trend.velocity} {trend.direction}"]

        if trend.volatility > 10:
            parts.append("with high volatility")
        elif trend.volatility > 5:
            parts.append("with moderate volatility")
        else:
            parts.append("with low volatility")

        if trend.zone_changes:
            parts.append(f"({len(trend.zone_changes)} zone changes)")
        if trend.reversals:
            parts.append(f"with {len(trend.reversals)} trend reversals")

        return " ".join(parts)

    def _direction(self, magnitude: float) -> str:
        if magnitude > self.settings.threshold_percent:
            return "improving"
        if magnitude < -self.settings.threshold_percent:
            return "declining"
        return "stable"

    @staticmethod
    def _percent_change(start: float, end: float) -> float:
        if start == 0:
            return 0.0
        return float((end - start) / abs(start) * 100)

    @staticmethod
    def _slope(values: np.ndarray) -> float:
        """Least-squares slope of values against their index."""
        if len(values) < 2:
            return 0.0
        slope, _ = np.polyfit(np.arange(len(values)), values, 1)
        return float(slope)

    def _velocity(self, slope: float) -> str:
        speed = abs(slope)
        if speed >= self.settings.rapid_velocity:
            return "rapid"
        if speed >= self.settings.moderate_velocity:
            return "moderate"
        if speed >= self.settings.slow_velocity:
            return "slow"
        return "stable"

    def _zone_changes(self, window: List[FormSnapshot]) -> List[ZoneTransition]:
        changes = []
        for i in range(1, len(window)):
            prev, curr = window[i - 1], window[i]
            if prev.zone == curr.zone:
                continue
            info = self.classifier.get_zone_transition_info(prev.zone, curr.zone)
            changes.append(ZoneTransition(
                index=i,
                date=curr.date,
                from_zone=prev.zone,
                to_zone=curr.zone,
                form=curr.form,
                direction=info.direction,
                significance=info.significance,
                interpretation=info.interpretation,
            ))
        return changes

    def _reversals(self, window: List[FormSnapshot]) -> List[TrendReversal]:
        reversals = []
        min_change = self.settings.reversal_min_change
        for i in range(1, len(window) - 1):
            prev, curr, nxt = window[i - 1].form, window[i].form, window[i + 1].form
            before = "increasing" if curr > prev else "decreasing"
            after = "increasing" if nxt > curr else "decreasing"
            if before == after:
                continue
            if abs(curr - prev) > min_change or abs(nxt - curr) > min_change:
                reversals.append(TrendReversal(i, window[i].date, curr, before, after))
        return reversals
