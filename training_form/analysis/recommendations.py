"""Rule-based next-phase recommendations."""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..config import config
from .periodization import PeriodizationModel, PeriodizationType, TrainingPhase, get_model
from .phases import DetectedPhase, FormMetrics, TrendDirection, WeeklyMetrics
from .trends import FormTrend
from .zones import FormZone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Range:
    min: float
    max: float


@dataclass(frozen=True)
class IntensityDistribution:
    low: float
    moderate: float
    high: float


@dataclass(frozen=True)
class Targets:
    duration_weeks: Range
    weekly_volume: Range  # hours
    weekly_training_stress: Range
    target_form: Range
    hr_zone_emphasis: Tuple[int, ...]
    intensity_distribution: IntensityDistribution


@dataclass(frozen=True)
class PhaseRecommendation:
    recommended_phase: TrainingPhase
    current_phase: TrainingPhase
    confidence: float
    reasoning: List[str]
    targets: Targets
    actions: List[str] = field(default_factory=list)
    cautions: List[str] = field(default_factory=list)
    rule: str = ""


@dataclass(frozen=True)
class RecommendationSettings:
    """Thresholds for the recommendation rules."""

    recent_weeks: int = 4
    recovery_form_threshold: float = -25.0
    max_phase_weeks: int = 12
    overreaching_days_limit: int = 7
    extended_overreaching_days: int = 14
    resume_form_threshold: float = 20.0
    recovery_exit_form: float = 10.0
    base_weeks: int = 8
    build_weeks: int = 6
    peak_weeks: int = 3
    recovery_weeks: int = 1
    peak_min_fitness: float = 50.0
    zone_churn_limit: int = 4
    churn_confidence_penalty: float = 10.0

    @classmethod
    def from_config(cls) -> "RecommendationSettings":
        return cls(
            recovery_form_threshold=config.RECOVERY_FORM_THRESHOLD,
            max_phase_weeks=config.MAX_PHASE_WEEKS,
            overreaching_days_limit=config.OVERREACHING_DAYS_LIMIT,
            zone_churn_limit=config.ZONE_CHURN_LIMIT,
        )


@dataclass(frozen=True)
class RecommendationContext:
    """Everything the rules look at, computed once per call."""

    phase: TrainingPhase
    weeks_in_phase: int
    avg_form: float
    avg_fitness: float
    form_metrics: Optional[FormMetrics]
    model: Optional[PeriodizationModel]
    settings: RecommendationSettings

    @property
    def overreaching_days(self) -> int:
        return self.form_metrics.overreaching_days if self.form_metrics else 0

    @property
    def min_base_weeks(self) -> int:
        return self.model.min_base_weeks if self.model else self.settings.base_weeks

    @property
    def min_build_weeks(self) -> int:
        return self.model.min_build_weeks if self.model else self.settings.build_weeks

    @property
    def min_recovery_weeks(self) -> int:
        return self.model.min_recovery_weeks if self.model else self.settings.recovery_weeks

    @property
    def volume_increase_guidance(self) -> str:
        if self.model:
            return f"up to {self.model.max_volume_increase_per_week:g}% per week"
        return "5-10% per week"


@dataclass(frozen=True)
class RecommendationRule:
    name: str
    predicate: Callable[[RecommendationContext], bool]
    build: Callable[[RecommendationContext], PhaseRecommendation]


def _targets(duration, volume, stress, form, zones, intensity) -> Targets:
    return Targets(
        duration_weeks=Range(*duration),
        weekly_volume=Range(*volume),
        weekly_training_stress=Range(*stress),
        target_form=Range(*form),
        hr_zone_emphasis=tuple(zones),
        intensity_distribution=IntensityDistribution(*intensity),
    )


RECOVERY_TARGETS = _targets((1, 2), (2, 4), (50, 150), (15, 30), (1, 2), (90, 10, 0))
BASE_TARGETS = _targets((8, 12), (6, 10), (200, 400), (-10, 10), (1, 2), (80, 15, 5))
BUILD_TARGETS = _targets((6, 12), (6, 12), (300, 500), (-15, 5), (2, 3), (70, 20, 10))
PEAK_TARGETS = _targets((2, 4), (5, 8), (400, 600), (-10, 10), (4, 5), (60, 20, 20))
TAPER_TARGETS = _targets((1, 2), (3, 5), (150, 300), (10, 20), (3, 4), (65, 20, 15))
RESUME_BUILD_TARGETS = _targets((4, 8), (6, 10), (250, 450), (-15, 5), (2, 3), (75, 15, 10))
RESUME_BASE_TARGETS = _targets((6, 10), (5, 8), (200, 350), (-10, 10), (1, 2), (80, 15, 5))


def _apply_model(targets: Targets, ctx: RecommendationContext, phase: TrainingPhase, with_duration: bool = True) -> Targets:
    """Override targets with the periodization model's phase characteristics."""
    characteristics = ctx.model.characteristics(phase) if ctx.model else None
    if characteristics is None:
        return targets
    targets = replace(
        targets,
        target_form=Range(*characteristics.form_range),
        hr_zone_emphasis=characteristics.hr_zone_emphasis,
    )
    if with_duration:
        targets = replace(targets, duration_weeks=Range(*characteristics.duration_weeks))
    return targets


def _remaining(targets: Targets, minimum: int, maximum: int, weeks: int) -> Targets:
    low = max(1, minimum - weeks)
    return replace(targets, duration_weeks=Range(low, max(low, maximum - weeks)))


def _recommend(ctx, phase, confidence, reasoning, targets, actions, cautions) -> PhaseRecommendation:
    return PhaseRecommendation(
        recommended_phase=phase,
        current_phase=ctx.phase,
        confidence=confidence,
        reasoning=reasoning,
        targets=targets,
        actions=actions,
        cautions=cautions,
    )


# Predicates

def _needs_recovery(ctx: RecommendationContext) -> bool:
    s = ctx.settings
    return (
        ctx.avg_form < s.recovery_form_threshold
        or ctx.weeks_in_phase > s.max_phase_weeks
        or ctx.overreaching_days > s.overreaching_days_limit
    )


def _ready_to_resume(ctx: RecommendationContext) -> bool:
    metrics = ctx.form_metrics
    if metrics is None:
        return False
    return (
        metrics.dominant_zone in (FormZone.FRESH, FormZone.OPTIMAL_RACE)
        and ctx.avg_form > ctx.settings.resume_form_threshold
        and metrics.form_trend != TrendDirection.INCREASING
    )


def _in_phase(phase: TrainingPhase) -> Callable[[RecommendationContext], bool]:
    return lambda ctx: ctx.phase == phase


# Builders

def _recovery(ctx: RecommendationContext) -> PhaseRecommendation:
    s = ctx.settings
    overreaching = ctx.overreaching_days > s.overreaching_days_limit

    reasoning = []
    if ctx.avg_form < s.recovery_form_threshold:
        reasoning.append(f"High fatigue detected (form {ctx.avg_form:.1f} < {s.recovery_form_threshold:g})")
    if ctx.weeks_in_phase > s.max_phase_weeks:
        reasoning.append(f"Extended phase duration ({ctx.weeks_in_phase} weeks) requires recovery")
    if overreaching:
        reasoning.append(f"{ctx.overreaching_days} days of overreaching detected")

    duration = (2, 3) if ctx.overreaching_days > s.extended_overreaching_days else (1, 2)
    targets = replace(_apply_model(RECOVERY_TARGETS, ctx, TrainingPhase.RECOVERY, with_duration=False),
                      duration_weeks=Range(*duration))

    actions = [
        "Reduce training volume by 40-60%",
        "Focus on easy aerobic activities",
        "Prioritize sleep and nutrition",
        "Allow form to return to positive range",
    ]
    cautions = ["Avoid high-intensity work", "Monitor for signs of overtraining"]
    if overreaching:
        actions.append("Consider complete rest for 2-3 days")
        cautions.append("Critical recovery period - do not rush back to training")

    return _recommend(ctx, TrainingPhase.RECOVERY, 95 if overreaching else 85, reasoning, targets, actions, cautions)


def _resume(ctx: RecommendationContext) -> PhaseRecommendation:
    if ctx.phase == TrainingPhase.RECOVERY:
        return _recommend(
            ctx, TrainingPhase.BUILD, 85,
            [
                "Well recovered - ready to resume training",
                f"Current form: {ctx.avg_form:.1f} (fresh)",
                f"Current fitness: {ctx.avg_fitness:.1f}",
            ],
            _apply_model(RESUME_BUILD_TARGETS, ctx, TrainingPhase.BUILD, with_duration=False),
            [
                "Gradually resume training volume",
                "Start with moderate intensity",
                "Progressive overload over 2-3 weeks",
                "Monitor form carefully as load increases",
            ],
            ["Avoid sudden jumps in volume", "Allow 2-3 weeks to rebuild work capacity"],
        )
    return _recommend(
        ctx, TrainingPhase.BASE, 80,
        ["Well recovered - resume base building", f"Current form: {ctx.avg_form:.1f} (fresh)"],
        _apply_model(RESUME_BASE_TARGETS, ctx, TrainingPhase.BASE, with_duration=False),
        [
            "Resume aerobic base building",
            "Gradual volume progression",
            "Focus on consistency and technique",
            "Monitor form - aim for neutral range",
        ],
        ["Start conservatively", "Avoid high-intensity work initially"],
    )


def _start_build(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.BUILD, 80,
        ["Solid aerobic base established", f"Current fitness: {ctx.avg_fitness:.1f}"],
        _apply_model(BUILD_TARGETS, ctx, TrainingPhase.BUILD),
        [
            "Increase training intensity",
            "Add threshold and tempo work",
            "Maintain moderate volume",
            "Include recovery weeks every 3-4 weeks",
        ],
        ["Monitor fatigue closely", "Ensure adequate recovery"],
    )


def _continue_base(ctx: RecommendationContext) -> PhaseRecommendation:
    targets = _remaining(BASE_TARGETS, ctx.min_base_weeks, BASE_TARGETS.duration_weeks.max, ctx.weeks_in_phase)
    return _recommend(
        ctx, TrainingPhase.BASE, 75,
        [f"Continue base building ({ctx.weeks_in_phase} weeks completed)"],
        _apply_model(targets, ctx, TrainingPhase.BASE, with_duration=False),
        [
            "Maintain high aerobic volume",
            f"Progressive volume increase ({ctx.volume_increase_guidance})",
            "Include 1-2 tempo sessions per week",
        ],
        ["Avoid excessive high-intensity work"],
    )


def _build_complete(ctx: RecommendationContext) -> bool:
    return (
        ctx.phase == TrainingPhase.BUILD
        and ctx.weeks_in_phase >= ctx.min_build_weeks
        and ctx.avg_fitness > ctx.settings.peak_min_fitness
    )


def _recovery_complete(ctx: RecommendationContext) -> bool:
    return (
        ctx.phase == TrainingPhase.RECOVERY
        and ctx.weeks_in_phase >= ctx.min_recovery_weeks
        and ctx.avg_form > ctx.settings.recovery_exit_form
    )


def _start_peak(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.PEAK, 85,
        ["High fitness achieved", "Ready for race-specific work"],
        _apply_model(PEAK_TARGETS, ctx, TrainingPhase.PEAK),
        [
            "Focus on race-specific intensity",
            "Maintain moderate volume",
            "Include race-pace intervals",
            "Prioritize quality over quantity",
        ],
        ["High injury risk - monitor carefully", "Limit duration to 2-4 weeks"],
    )


def _continue_build(ctx: RecommendationContext) -> PhaseRecommendation:
    targets = _remaining(BUILD_TARGETS, ctx.min_build_weeks, 10, ctx.weeks_in_phase)
    return _recommend(
        ctx, TrainingPhase.BUILD, 70,
        [f"Build phase in progress ({ctx.weeks_in_phase} weeks)", f"Form: {ctx.avg_form:.1f}"],
        _apply_model(replace(targets, hr_zone_emphasis=(2, 3, 4)), ctx, TrainingPhase.BUILD, with_duration=False),
        [
            "Continue progressive overload",
            "Balance volume and intensity",
            "Schedule recovery week if form < -20",
        ],
        ["Watch for overtraining signs"],
    )


def _start_taper(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.TAPER, 90,
        ["Competition preparation", "Time to optimize freshness"],
        _apply_model(TAPER_TARGETS, ctx, TrainingPhase.TAPER),
        [
            "Reduce volume by 40-60%",
            "Maintain intensity with shorter intervals",
            "Increase rest days",
            "Focus on race-pace feel",
        ],
        ["Avoid trying new workouts", "Don't overtaper"],
    )


def _continue_peak(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.PEAK, 75,
        ["Peak phase in progress", f"Current form: {ctx.avg_form:.1f}"],
        _apply_model(replace(PEAK_TARGETS, duration_weeks=Range(1, 2)), ctx, TrainingPhase.PEAK, with_duration=False),
        [
            "Maintain high-intensity work",
            "Monitor recovery closely",
            "Consider taper if competition approaching",
        ],
        ["Peak phase should be limited to 2-4 weeks total"],
    )


def _post_race(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.RECOVERY, 85,
        ["Post-competition recovery", f"Form: {ctx.avg_form:.1f}"],
        _apply_model(RECOVERY_TARGETS, ctx, TrainingPhase.RECOVERY, with_duration=False),
        ["Active recovery only", "Cross-training encouraged", "Address any injuries", "Mental reset"],
        ["Resist urge to train hard too soon"],
    )


def _continue_recovery(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.RECOVERY, 80,
        [f"Recovery in progress, form: {ctx.avg_form:.1f}"],
        _apply_model(replace(RECOVERY_TARGETS, duration_weeks=Range(1, 1)), ctx, TrainingPhase.RECOVERY, with_duration=False),
        ["Continue easy aerobic work", "Monitor form recovery", "Prepare for next build phase"],
        [],
    )


def _start_base(ctx: RecommendationContext) -> PhaseRecommendation:
    return _recommend(
        ctx, TrainingPhase.BASE, 75,
        ["Start with aerobic foundation"],
        _apply_model(BASE_TARGETS, ctx, TrainingPhase.BASE),
        ["Build aerobic base", "Progressive volume increase", "Focus on consistency"],
        [],
    )


# Evaluated top to bottom; the last rule always matches
RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    RecommendationRule("recovery_needed", _needs_recovery, _recovery),
    RecommendationRule("resume_training", _ready_to_resume, _resume),
    RecommendationRule(
        "base_complete",
        lambda ctx: ctx.phase == TrainingPhase.BASE and ctx.weeks_in_phase >= ctx.min_base_weeks,
        _start_build,
    ),
    RecommendationRule("continue_base", _in_phase(TrainingPhase.BASE), _continue_base),
    RecommendationRule("build_complete", _build_complete, _start_peak),
    RecommendationRule("continue_build", _in_phase(TrainingPhase.BUILD), _continue_build),
    RecommendationRule(
        "peak_complete",
        lambda ctx: ctx.phase == TrainingPhase.PEAK and ctx.weeks_in_phase >= ctx.settings.peak_weeks,
        _start_taper,
    ),
    RecommendationRule("continue_peak", _in_phase(TrainingPhase.PEAK), _continue_peak),
    RecommendationRule("post_race_recovery", _in_phase(TrainingPhase.TAPER), _post_race),
    RecommendationRule("recovery_complete", _recovery_complete, _start_build),
    RecommendationRule("continue_recovery", _in_phase(TrainingPhase.RECOVERY), _continue_recovery),
    RecommendationRule("start_base", lambda ctx: True, _start_base),
)


class RecommendationEngine:
    """Recommend the next training phase from detected phases and recent weeks."""

    def __init__(
        self,
        settings: Optional[RecommendationSettings] = None,
        rules: Sequence[RecommendationRule] = RECOMMENDATION_RULES,
    ):
        self.settings = settings or RecommendationSettings.from_config()
        self.rules = tuple(rules)

    def recommend_next_phase(
        self,
        phases: Sequence[DetectedPhase],
        recent_weekly_metrics: Sequence[WeeklyMetrics],
        target_model: Optional[PeriodizationType] = None,
        trend: Optional[FormTrend] = None,
    ) -> Optional[PhaseRecommendation]:
        """Recommend what to do next.

        Args:
            phases: Detected phases, the last one being current
            recent_weekly_metrics: Weekly summaries; the trailing weeks set
                average form and fitness
            target_model: Optional periodization model supplying phase
                durations and form ranges
            trend: Optional recent form trend; heavy zone churn adds a caution

        Returns:
            PhaseRecommendation, or None when there are no phases and no metrics
        """
        if not phases and not recent_weekly_metrics:
            return None

        ctx = self.build_context(phases, recent_weekly_metrics, target_model)
        for rule in self.rules:
            if rule.predicate(ctx):
                recommendation = replace(rule.build(ctx), rule=rule.name)
                break
        else:
            raise RuntimeError("No recommendation rule matched")

        recommendation = self._apply_trend(recommendation, trend)
        logger.debug(
            "Rule %s recommends %s after %s",
            recommendation.rule, recommendation.recommended_phase.value, ctx.phase.value,
        )
        return recommendation

    def build_context(
        self,
        phases: Sequence[DetectedPhase],
        recent_weekly_metrics: Sequence[WeeklyMetrics],
        target_model: Optional[PeriodizationType] = None,
    ) -> RecommendationContext:
        current = phases[-1] if phases else None
        recent = list(recent_weekly_metrics)[-self.settings.recent_weeks:]

        if recent:
            avg_form = float(np.mean([w.avg_form for w in recent]))
            avg_fitness = float(np.mean([w.avg_fitness for w in recent]))
        else:
            avg_form, avg_fitness = current.avg_form, current.avg_fitness

        return RecommendationContext(
            phase=current.phase if current else TrainingPhase.TRANSITION,
            weeks_in_phase=current.duration_weeks if current else 0,
            avg_form=avg_form,
            avg_fitness=avg_fitness,
            form_metrics=current.form_metrics if current else None,
            model=get_model(target_model),
            settings=self.settings,
        )

    def _apply_trend(self, recommendation: PhaseRecommendation, trend: Optional[FormTrend]) -> PhaseRecommendation:
        if trend is None or len(trend.zone_changes) < self.settings.zone_churn_limit:
            return recommendation
        return replace(
            recommendation,
            confidence=max(0.0, recommendation.confidence - self.settings.churn_confidence_penalty),
            cautions=recommendation.cautions + [
                f"Form zone changed {len(trend.zone_changes)} times in {trend.window_days} days - load is unstable"
            ],
        )
