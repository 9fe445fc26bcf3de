"""Training phase detection from weekly training summaries.

Weeks are assessed in sliding windows of ``min_phase_weeks`` consecutive weeks.
Each window is classified by an ordered list of heuristic rules over volume,
training stress, form and heart-rate intensity. Week labels are then merged
into contiguous phases and annotated with heart-rate profiles, personal
records and form metrics.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..config import config
from .periodization import TrainingPhase
from .zones import ZONE_ORDER, FormZone, ZoneClassifier

logger = logging.getLogger(__name__)


class TrendDirection(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class HRZoneDistribution:
    """Percentage of time spent in each of five heart-rate zones."""

    zone1: float = 0.0
    zone2: float = 0.0
    zone3: float = 0.0
    zone4: float = 0.0
    zone5: float = 0.0

    @property
    def percentages(self) -> Tuple[float, float, float, float, float]:
        return (self.zone1, self.zone2, self.zone3, self.zone4, self.zone5)

    @property
    def low_intensity(self) -> float:
        return self.zone1 + self.zone2

    @property
    def moderate_intensity(self) -> float:
        return self.zone3

    @property
    def high_intensity(self) -> float:
        return self.zone4 + self.zone5

    @property
    def total(self) -> float:
        return sum(self.percentages)


@dataclass(frozen=True)
class ActivityRef:
    activity_id: str
    date: date
    activity_type: str = "unknown"
    duration: float = 0.0  # seconds
    distance: float = 0.0  # meters
    training_stress: float = 0.0
    avg_heart_rate: Optional[float] = None


@dataclass(frozen=True)
class WeeklyMetrics:
    """Aggregate of one calendar week of training.

    ``avg_weekly_tss`` is the training stress accumulated over the week; the
    fitness, fatigue and form fields are averages over its days.
    """

    week_start: date
    week_end: date
    total_distance: float = 0.0  # meters
    total_duration: float = 0.0  # seconds
    total_elevation: float = 0.0  # meters
    activity_count: int = 0
    avg_weekly_tss: float = 0.0
    total_tss: float = 0.0
    avg_fitness: float = 0.0
    avg_fatigue: float = 0.0
    avg_form: float = 0.0
    hr_zone_distribution: Optional[HRZoneDistribution] = None
    activities: Tuple[ActivityRef, ...] = ()

    @property
    def volume_hours(self) -> float:
        return self.total_duration / 3600


@dataclass(frozen=True)
class PersonalRecord:
    timestamp: Union[datetime, date, str]
    category_id: str
    category_name: Optional[str] = None
    activity_id: Optional[str] = None

    @property
    def date(self) -> date:
        if isinstance(self.timestamp, datetime):
            return self.timestamp.date()
        if isinstance(self.timestamp, date):
            return self.timestamp
        return date.fromisoformat(str(self.timestamp)[:10])


@dataclass(frozen=True)
class RecordContext:
    """A personal record together with the training state of its week."""

    category_id: str
    category_name: Optional[str]
    activity_id: Optional[str]
    date: date
    fitness: Optional[float]
    form: Optional[float]


@dataclass(frozen=True)
class PhasePerformance:
    prs_achieved: int
    records: Tuple[RecordContext, ...]


@dataclass(frozen=True)
class HRZoneProfile:
    distribution: HRZoneDistribution
    dominant_zones: Tuple[int, ...]


@dataclass(frozen=True)
class FormMetrics:
    avg_form: float
    min_form: float
    max_form: float
    form_trend: TrendDirection
    zone_distribution: Dict[FormZone, float]
    dominant_zone: FormZone
    overreaching_days: int


@dataclass(frozen=True)
class ConfidenceFactors:
    volume: float
    intensity: float
    tss: float


@dataclass(frozen=True)
class DetectedPhase:
    phase: TrainingPhase
    start_week: int
    end_week: int
    start_date: date
    end_date: date
    duration_weeks: int
    confidence: float
    confidence_factors: ConfidenceFactors
    volume_trend: TrendDirection
    tss_trend: TrendDirection
    volume_change_percent: float
    tss_change_percent: float
    fitness_gain: float
    avg_weekly_volume: float  # hours
    avg_weekly_distance: float
    avg_weekly_tss: float
    avg_fitness: float
    avg_fatigue: float
    avg_form: float
    rule: str
    hr_zone_profile: Optional[HRZoneProfile] = None
    performance: Optional[PhasePerformance] = None
    form_metrics: Optional[FormMetrics] = None
    detection_method: str = "hybrid"


@dataclass(frozen=True)
class PhaseDetectionConfig:
    """Thresholds used to classify and score phases."""

    min_phase_weeks: int = 3
    volume_low_hours: float = 3.0
    volume_medium_hours: float = 6.0
    volume_high_hours: float = 10.0
    low_weekly_tss: float = 150.0
    trend_threshold_percent: float = 10.0
    base_min_low_intensity: float = 70.0
    build_min_low_intensity: float = 50.0
    build_high_intensity_range: Tuple[float, float] = (10.0, 25.0)
    peak_min_high_intensity: float = 25.0
    peak_min_zone5: float = 8.0
    form_trend_threshold: float = 3.0

    def __post_init__(self):
        if self.min_phase_weeks < 1:
            raise ValueError("min_phase_weeks must be at least 1")

    @classmethod
    def from_config(cls) -> "PhaseDetectionConfig":
        return cls(
            min_phase_weeks=config.MIN_PHASE_WEEKS,
            volume_low_hours=config.VOLUME_LOW_HOURS,
            volume_medium_hours=config.VOLUME_MEDIUM_HOURS,
            volume_high_hours=config.VOLUME_HIGH_HOURS,
            low_weekly_tss=config.LOW_WEEKLY_TSS,
            trend_threshold_percent=config.PHASE_TREND_THRESHOLD_PERCENT,
        )


@dataclass(frozen=True)
class WindowAssessment:
    """Trend and intensity features of a run of consecutive weeks."""

    weeks: int
    hours: float
    avg_tss: float
    volume_trend: TrendDirection
    volume_change_percent: float
    tss_trend: TrendDirection
    tss_change_percent: float
    fitness_gain: float
    form_change: float
    intensity: Optional[HRZoneDistribution] = None

    @property
    def has_hr_data(self) -> bool:
        return self.intensity is not None


@dataclass(frozen=True)
class PhaseRule:
    name: str
    phase: TrainingPhase
    predicate: Callable[[WindowAssessment, PhaseDetectionConfig], bool]


def _is_base(a: WindowAssessment, cfg: PhaseDetectionConfig) -> bool:
    if a.hours < cfg.volume_medium_hours or a.volume_trend == TrendDirection.DECREASING:
        return False
    if a.has_hr_data:
        return a.intensity.low_intensity >= cfg.base_min_low_intensity
    return a.tss_trend != TrendDirection.INCREASING


def _is_build(a: WindowAssessment, cfg: PhaseDetectionConfig) -> bool:
    if a.hours < cfg.volume_low_hours or a.tss_trend != TrendDirection.INCREASING:
        return False
    if not a.has_hr_data:
        return True
    low, high = cfg.build_high_intensity_range
    return (
        a.intensity.low_intensity >= cfg.build_min_low_intensity
        and low <= a.intensity.high_intensity <= high
    )


def _is_peak(a: WindowAssessment, cfg: PhaseDetectionConfig) -> bool:
    if not a.has_hr_data or not cfg.volume_low_hours <= a.hours < cfg.volume_high_hours:
        return False
    return (
        a.intensity.high_intensity > cfg.peak_min_high_intensity
        or a.intensity.zone5 > cfg.peak_min_zone5
    )


def _is_taper(a: WindowAssessment, cfg: PhaseDetectionConfig) -> bool:
    return (
        a.volume_trend == TrendDirection.DECREASING
        and a.form_change > 0
        and a.hours >= cfg.volume_low_hours
    )


def _is_recovery(a: WindowAssessment, cfg: PhaseDetectionConfig) -> bool:
    low_load = a.hours < cfg.volume_low_hours or a.avg_tss < cfg.low_weekly_tss
    return low_load and a.form_change >= 0


# Evaluated top to bottom; the first match wins
PHASE_RULES: Tuple[PhaseRule, ...] = (
    PhaseRule("high_volume_low_intensity", TrainingPhase.BASE, _is_base),
    PhaseRule("rising_load_balanced_intensity", TrainingPhase.BUILD, _is_build),
    PhaseRule("high_intensity_fraction", TrainingPhase.PEAK, _is_peak),
    PhaseRule("falling_volume_rising_form", TrainingPhase.TAPER, _is_taper),
    PhaseRule("low_load_rising_form", TrainingPhase.RECOVERY, _is_recovery),
)
FALLBACK_RULE = "no_rule_matched"


class PhaseDetector:
    """Segment weekly training history into macro training phases."""

    def __init__(
        self,
        detection_config: Optional[PhaseDetectionConfig] = None,
        classifier: Optional[ZoneClassifier] = None,
        rules: Sequence[PhaseRule] = PHASE_RULES,
    ):
        self.config = detection_config or PhaseDetectionConfig.from_config()
        self.classifier = classifier or ZoneClassifier()
        self.rules = tuple(rules)

    def detect_phases(
        self,
        weekly_metrics: Sequence[WeeklyMetrics],
        personal_records: Optional[Sequence[PersonalRecord]] = None,
    ) -> List[DetectedPhase]:
        """Detect contiguous training phases.

        Args:
            weekly_metrics: Weekly summaries in chronological order
            personal_records: Optional personal records used to annotate phases

        Returns:
            Phases in chronological order, or an empty list when fewer weeks
            than ``min_phase_weeks`` are supplied
        """
        weeks = list(weekly_metrics)
        window = self.config.min_phase_weeks
        if len(weeks) < window:
            logger.debug("Only %d weeks supplied, need %d for phase detection", len(weeks), window)
            return []

        self._warn_malformed(weeks)

        window_labels = [self.classify_window(weeks[i:i + window]) for i in range(len(weeks) - window + 1)]
        # Each week takes the label of the window ending on it
        week_labels = [window_labels[max(0, i - window + 1)] for i in range(len(weeks))]

        segments = self._merge_short_runs(self._runs(week_labels), window)
        phases = [self._build_phase(weeks, start, end, rule) for start, end, rule in segments]

        records = list(personal_records or [])
        phases = [self._annotate(phase, weeks, records) for phase in phases]

        logger.debug(
            "Detected %d phases over %d weeks: %s",
            len(phases), len(weeks), ", ".join(p.phase.value for p in phases),
        )
        return phases

    def assess(self, weeks: Sequence[WeeklyMetrics]) -> WindowAssessment:
        """Compute trend and intensity features for consecutive weeks."""
        durations = [w.total_duration for w in weeks]
        stresses = [w.avg_weekly_tss for w in weeks]
        volume_change = self._half_change_percent(durations)
        tss_change = self._half_change_percent(stresses)

        forms = [w.avg_form for w in weeks]
        first, second = self._halves(forms)
        form_change = float(np.mean(second) - np.mean(first)) if first else 0.0

        return WindowAssessment(
            weeks=len(weeks),
            hours=float(np.mean(durations)) / 3600 if weeks else 0.0,
            avg_tss=float(np.mean(stresses)) if weeks else 0.0,
            volume_trend=self._direction(volume_change),
            volume_change_percent=volume_change,
            tss_trend=self._direction(tss_change),
            tss_change_percent=tss_change,
            fitness_gain=weeks[-1].avg_fitness - weeks[0].avg_fitness if weeks else 0.0,
            form_change=form_change,
            intensity=self._average_distribution(weeks),
        )

    def classify_window(self, weeks: Sequence[WeeklyMetrics]) -> Tuple[TrainingPhase, str]:
        """Apply the ordered rules to a window, returning (phase, rule name)."""
        assessment = self.assess(weeks)
        for rule in self.rules:
            if rule.predicate(assessment, self.config):
                return rule.phase, rule.name
        return TrainingPhase.TRANSITION, FALLBACK_RULE

    def score_confidence(self, weeks: Sequence[WeeklyMetrics], assessment: WindowAssessment) -> ConfidenceFactors:
        """Score how clearly the data separates from each decision threshold.

        Each sub-score is bounded to [0, 100]. Negative durations, negative
        training stress and out-of-range heart-rate percentages lower the
        relevant sub-score instead of being rejected.
        """
        threshold = self.config.trend_threshold_percent

        negative_durations = sum(1 for w in weeks if w.total_duration < 0)
        volume = 50 + abs(abs(assessment.volume_change_percent) - threshold) * 5 - 25 * negative_durations

        negative_stress = sum(1 for w in weeks if w.avg_weekly_tss < 0)
        tss = 50 + abs(abs(assessment.tss_change_percent) - threshold) * 5 - 25 * negative_stress

        if assessment.intensity is None:
            intensity = 30.0
        else:
            zones = assessment.intensity
            out_of_range = sum(
                1
                for w in weeks if w.hr_zone_distribution is not None
                for pct in w.hr_zone_distribution.percentages if pct < 0 or pct > 100
            )
            intensity = (
                40
                + abs(zones.low_intensity - zones.high_intensity) * 0.6
                - abs(zones.total - 100)
                - 20 * out_of_range
            )

        return ConfidenceFactors(
            volume=_clip_score(volume),
            intensity=_clip_score(intensity),
            tss=_clip_score(tss),
        )

    def _build_phase(self, weeks: List[WeeklyMetrics], start: int, end: int, rule: Tuple[TrainingPhase, str]) -> DetectedPhase:
        segment = weeks[start:end + 1]
        assessment = self.assess(segment)
        factors = self.score_confidence(segment, assessment)
        confidence = _clip_score((factors.volume + factors.intensity + factors.tss) / 3)
        phase, rule_name = rule

        return DetectedPhase(
            phase=phase,
            start_week=start,
            end_week=end,
            start_date=segment[0].week_start,
            end_date=segment[-1].week_end,
            duration_weeks=len(segment),
            confidence=round(confidence, 1),
            confidence_factors=factors,
            volume_trend=assessment.volume_trend,
            tss_trend=assessment.tss_trend,
            volume_change_percent=round(assessment.volume_change_percent, 1),
            tss_change_percent=round(assessment.tss_change_percent, 1),
            fitness_gain=assessment.fitness_gain,
            avg_weekly_volume=assessment.hours,
            avg_weekly_distance=float(np.mean([w.total_distance for w in segment])),
            avg_weekly_tss=assessment.avg_tss,
            avg_fitness=float(np.mean([w.avg_fitness for w in segment])),
            avg_fatigue=float(np.mean([w.avg_fatigue for w in segment])),
            avg_form=float(np.mean([w.avg_form for w in segment])),
            rule=rule_name,
        )

    def _annotate(self, phase: DetectedPhase, weeks: List[WeeklyMetrics], records: List[PersonalRecord]) -> DetectedPhase:
        segment = weeks[phase.start_week:phase.end_week + 1]
        return replace(
            phase,
            hr_zone_profile=self._hr_zone_profile(segment),
            performance=self._performance(phase, segment, records),
            form_metrics=self._form_metrics(segment),
        )

    def _hr_zone_profile(self, weeks: List[WeeklyMetrics]) -> Optional[HRZoneProfile]:
        distribution = self._average_distribution(weeks)
        if distribution is None:
            return None
        ranked = sorted(range(5), key=lambda i: distribution.percentages[i], reverse=True)
        return HRZoneProfile(distribution, tuple(i + 1 for i in ranked[:2]))

    @staticmethod
    def _performance(phase: DetectedPhase, weeks: List[WeeklyMetrics], records: List[PersonalRecord]) -> Optional[PhasePerformance]:
        in_phase = [pr for pr in records if phase.start_date <= pr.date <= phase.end_date]
        if not in_phase:
            return None

        details = []
        for pr in in_phase:
            week = next((w for w in weeks if w.week_start <= pr.date <= w.week_end), None)
            details.append(RecordContext(
                category_id=pr.category_id,
                category_name=pr.category_name,
                activity_id=pr.activity_id,
                date=pr.date,
                fitness=week.avg_fitness if week else None,
                form=week.avg_form if week else None,
            ))
        return PhasePerformance(prs_achieved=len(details), records=tuple(details))

    def _form_metrics(self, weeks: List[WeeklyMetrics]) -> FormMetrics:
        forms = [w.avg_form for w in weeks]
        first, second = self._halves(forms)
        change = float(np.mean(second) - np.mean(first)) if first else 0.0
        limit = self.config.form_trend_threshold
        if change > limit:
            form_trend = TrendDirection.INCREASING
        elif change < -limit:
            form_trend = TrendDirection.DECREASING
        else:
            form_trend = TrendDirection.STABLE

        counts = {zone: 0 for zone in ZONE_ORDER}
        for week in weeks:
            counts[self.classifier.classify_zone(week.avg_form, week.avg_fitness)] += 1

        return FormMetrics(
            avg_form=float(np.mean(forms)),
            min_form=float(np.min(forms)),
            max_form=float(np.max(forms)),
            form_trend=form_trend,
            zone_distribution={zone: count / len(weeks) * 100 for zone, count in counts.items()},
            dominant_zone=max(counts, key=counts.get),
            overreaching_days=counts[FormZone.OVERREACHED] * 7,
        )

    @staticmethod
    def _runs(labels: List[Tuple[TrainingPhase, str]]) -> List[List]:
        """Group consecutive identical phases into [start, end, label] runs."""
        runs: List[List] = []
        for i, label in enumerate(labels):
            if runs and runs[-1][2][0] == label[0]:
                runs[-1][1] = i
            else:
                runs.append([i, i, label])
        return runs

    @staticmethod
    def _merge_short_runs(runs: List[List], min_weeks: int) -> List[List]:
        """Absorb runs shorter than ``min_weeks`` into a neighbouring phase.

        A short run joins the preceding phase; a short leading run is carried
        forward into the next one.
        """
        merged: List[List] = []
        carry = None
        for start, end, label in runs:
            if carry is not None:
                start, carry = carry, None
            if merged and merged[-1][2][0] == label[0]:
                merged[-1][1] = end
            elif end - start + 1 >= min_weeks:
                merged.append([start, end, label])
            elif merged:
                merged[-1][1] = end
            else:
                carry = start
        return merged

    def _direction(self, change_percent: float) -> TrendDirection:
        if change_percent > self.config.trend_threshold_percent:
            return TrendDirection.INCREASING
        if change_percent < -self.config.trend_threshold_percent:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE

    @staticmethod
    def _halves(values: List[float]) -> Tuple[List[float], List[float]]:
        mid = len(values) // 2
        return values[:mid], values[mid:]

    def _half_change_percent(self, values: List[float]) -> float:
        """Percent change of the second-half mean over the first-half mean."""
        first, second = self._halves(values)
        if not first or not second:
            return 0.0
        baseline = float(np.mean(first))
        if baseline == 0:
            return 0.0
        return (float(np.mean(second)) - baseline) / abs(baseline) * 100

    @staticmethod
    def _average_distribution(weeks: Sequence[WeeklyMetrics]) -> Optional[HRZoneDistribution]:
        distributions = [w.hr_zone_distribution for w in weeks if w.hr_zone_distribution is not None]
        if not distributions:
            return None
        means = np.mean([d.percentages for d in distributions], axis=0)
        return HRZoneDistribution(*(float(v) for v in means))

    @staticmethod
    def _warn_malformed(weeks: List[WeeklyMetrics]) -> None:
        bad = [
            w.week_start for w in weeks
            if w.total_duration < 0 or w.avg_weekly_tss < 0
            or (w.hr_zone_distribution is not None
                and any(p < 0 or p > 100 for p in w.hr_zone_distribution.percentages))
        ]
        if bad:
            logger.warning("%d malformed weeks will lower phase confidence: %s", len(bad), bad)


def _clip_score(value: float) -> float:
    return float(np.clip(value, 0, 100))
