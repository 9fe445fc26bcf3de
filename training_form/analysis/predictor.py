"""Form forecasting, taper planning and recovery estimation."""

import logging
import numbers
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from ..config import config
from ..errors import ValidationError
from .model import LoadModel, LoadState
from .zones import FormRange, FormZone, ZoneClassifier

logger = logging.getLogger(__name__)

PlannedLoad = Union[float, Sequence[float]]


def _as_date(value: Union[date, datetime]) -> date:
    """Calendar day of a date or datetime."""
    return value.date() if isinstance(value, datetime) else value


class TaperStrategy(Enum):
    """Shape of the volume reduction curve over a taper."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    STEP = "step"

    def retention(self, progress: float, reduction: float) -> float:
        """Fraction of baseline load kept at a point in the taper.

        Args:
            progress: Position in the taper, 0 to 1 (1 on race day)
            reduction: Total volume reduction as a fraction, 0 to 1

        Returns:
            Multiplier applied to the baseline daily load
        """
        if self is TaperStrategy.LINEAR:
            return 1 - progress * reduction
        if self is TaperStrategy.EXPONENTIAL:
            return (1 - reduction) ** progress
        # Three tiers, stepping down at the 1/3 and 2/3 marks
        if progress < 0.33:
            return 1 - reduction / 3
        if progress < 0.67:
            return 1 - reduction * 2 / 3
        return 1 - reduction


@dataclass(frozen=True)
class PredictorSettings:
    """Defaults and limits for forecasting and taper planning."""

    confidence_decay: float = 0.95  # per day of horizon
    min_confidence: float = 30.0
    max_variance_penalty: float = 20.0
    variance_divisor: float = 10.0
    taper_duration: int = 14
    taper_target_form: float = 17.0
    taper_volume_reduction: float = 50.0  # percent
    taper_baseline_factor: float = 0.9
    rest_horizon: int = 60
    active_recovery_horizon: int = 30
    active_recovery_factor: float = 0.3
    low_fitness_warning: float = 40.0
    fatigued_form_warning: float = -20.0
    short_taper_days: int = 7
    large_form_swing: float = 30.0
    large_form_change: float = 20.0

    @classmethod
    def from_config(cls) -> "PredictorSettings":
        return cls(
            confidence_decay=config.PREDICTION_CONFIDENCE_DECAY,
            min_confidence=config.MIN_PREDICTION_CONFIDENCE,
            taper_duration=config.TAPER_DURATION,
            taper_target_form=config.TAPER_TARGET_FORM,
            taper_volume_reduction=config.TAPER_VOLUME_REDUCTION,
            taper_baseline_factor=config.TAPER_BASELINE_FACTOR,
            rest_horizon=config.REST_RECOVERY_HORIZON,
            active_recovery_horizon=config.ACTIVE_RECOVERY_HORIZON,
            active_recovery_factor=config.ACTIVE_RECOVERY_FACTOR,
        )


@dataclass(frozen=True)
class PredictionAssumptions:
    days: int
    planned_daily_training_stress: List[float]
    recovery_days: List[int]
    average_training_stress: float


@dataclass(frozen=True)
class FormPrediction:
    target_date: date
    predicted_form: float
    predicted_zone: FormZone
    confidence: float
    assumptions: PredictionAssumptions
    projected_fitness: float
    projected_fatigue: float
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TaperDay:
    day: int
    date: date
    planned_training_stress: float
    reduction_from_peak: float  # percent of baseline
    predicted_fitness: float
    predicted_fatigue: float
    predicted_form: float
    predicted_zone: FormZone
    note: str


@dataclass(frozen=True)
class TaperStrategyParameters:
    strategy: TaperStrategy
    volume_reduction: float
    maintain_intensity: bool
    critical_workouts: List[str]


@dataclass(frozen=True)
class CurrentState:
    date: date
    fitness: float
    fatigue: float
    form: float
    zone: FormZone


@dataclass(frozen=True)
class TargetState:
    target_form: float
    target_zone: FormZone
    projected_fitness: float


@dataclass(frozen=True)
class TaperPlan:
    race_date: date
    taper_start_date: date
    taper_duration: int
    current_state: CurrentState
    target_state: TargetState
    schedule: List[TaperDay]
    strategy: TaperStrategyParameters
    warnings: List[str]
    recommendations: List[str]

    @property
    def race_day_form(self) -> float:
        return self.schedule[-1].predicted_form


@dataclass(frozen=True)
class RecoveryEstimate:
    estimated_days: int
    capped: bool
    daily_form_change_rate: float
    target_form_range: FormRange
    recommendations: List[str]


@dataclass(frozen=True)
class ScenarioDay:
    day: int
    date: date
    training_stress: float
    fitness: float
    fatigue: float
    form: float
    zone: FormZone


class FormPredictor:
    """Simulate form forward under hypothetical plans.

    All forecasts run through ``LoadModel.simulate`` so they share one
    recurrence with the rest of the engine.
    """

    def __init__(
        self,
        model: Optional[LoadModel] = None,
        classifier: Optional[ZoneClassifier] = None,
        settings: Optional[PredictorSettings] = None,
    ):
        self.model = model or LoadModel()
        self.classifier = classifier or ZoneClassifier()
        self.settings = settings or PredictorSettings.from_config()

    def predict_future_form(
        self,
        target_date: date,
        planned_daily_training_stress: PlannedLoad,
        current_fitness: float,
        current_fatigue: float,
        current_form: Optional[float] = None,
        recovery_days: Optional[Iterable[int]] = None,
        today: Optional[date] = None,
    ) -> FormPrediction:
        """Forecast form on a target date.

        Args:
            target_date: Day to forecast; today or later
            planned_daily_training_stress: One load for every day, or a per-day plan
            current_fitness: Fitness (CTL) today
            current_fatigue: Fatigue (ATL) today
            current_form: Form today, defaults to fitness minus fatigue
            recovery_days: Zero-based day indices forced to zero load
            today: Reference date, defaults to the current date

        Returns:
            FormPrediction for the target date

        Raises:
            ValidationError: If the target date is in the past
        """
        target_date = _as_date(target_date)
        today = _as_date(today or date.today())
        days = (target_date - today).days
        if days < 0:
            raise ValidationError(f"Target date {target_date} is before {today}")

        if current_form is None:
            current_form = current_fitness - current_fatigue
        rest_days = sorted(set(recovery_days or []))
        plan = self._normalize_plan(planned_daily_training_stress, days, rest_days)

        if days == 0:
            fitness, fatigue, form = float(current_fitness), float(current_fatigue), float(current_form)
        else:
            final = self.model.simulate(current_fitness, current_fatigue, plan, start_date=today + timedelta(days=1))[-1]
            fitness, fatigue, form = final.fitness, final.fatigue, final.form

        zone = self.classifier.classify_zone(form, fitness)
        confidence = self._prediction_confidence(days, plan)

        logger.debug("Predicted form %.1f (%s) in %d days, confidence %.0f", form, zone.value, days, confidence)

        return FormPrediction(
            target_date=target_date,
            predicted_form=form,
            predicted_zone=zone,
            confidence=confidence,
            assumptions=PredictionAssumptions(
                days=days,
                planned_daily_training_stress=plan,
                recovery_days=[d for d in rest_days if 0 <= d < days],
                average_training_stress=float(np.mean(plan)) if plan else 0.0,
            ),
            projected_fitness=fitness,
            projected_fatigue=fatigue,
            recommendations=self._prediction_recommendations(form, zone, current_form, days),
        )

    def generate_taper_plan(
        self,
        race_date: date,
        current_fitness: float,
        current_fatigue: float,
        current_form: Optional[float] = None,
        taper_duration: Optional[int] = None,
        target_form: Optional[float] = None,
        strategy: Union[TaperStrategy, str] = TaperStrategy.EXPONENTIAL,
        volume_reduction: Optional[float] = None,
        maintain_intensity: bool = True,
        today: Optional[date] = None,
    ) -> TaperPlan:
        """Build a day-by-day taper ending on race day.

        Baseline daily load is a fraction of current fitness. Each day keeps a
        share of it given by the strategy curve, reaching the full volume
        reduction on race day. Warnings are advisory and never block the plan.

        Raises:
            ValidationError: If the duration is not positive or the volume
                reduction is outside 0-100
        """
        s = self.settings
        duration = s.taper_duration if taper_duration is None else taper_duration
        target_form = s.taper_target_form if target_form is None else target_form
        volume_reduction = s.taper_volume_reduction if volume_reduction is None else volume_reduction
        strategy = TaperStrategy(strategy)

        if duration < 1:
            raise ValidationError(f"Taper duration must be at least one day, got {duration}")
        if not 0 <= volume_reduction <= 100:
            raise ValidationError(f"Volume reduction must be between 0 and 100 percent, got {volume_reduction}")

        race_date = _as_date(race_date)
        if current_form is None:
            current_form = current_fitness - current_fatigue
        taper_start = race_date - timedelta(days=duration - 1)

        baseline = s.taper_baseline_factor * current_fitness
        reduction = volume_reduction / 100
        loads = [baseline * strategy.retention((day + 1) / duration, reduction) for day in range(duration)]
        states = self.model.simulate(current_fitness, current_fatigue, loads, start_date=taper_start)

        schedule = []
        for i, state in enumerate(states):
            zone = self.classifier.classify_zone(state.form, state.fitness)
            schedule.append(TaperDay(
                day=i + 1,
                date=state.date,
                planned_training_stress=state.training_stress,
                reduction_from_peak=(1 - state.training_stress / baseline) * 100 if baseline > 0 else 0.0,
                predicted_fitness=state.fitness,
                predicted_fatigue=state.fatigue,
                predicted_form=state.form,
                predicted_zone=zone,
                note=self._taper_day_note(duration - (i + 1)),
            ))

        projected_fitness = states[-1].fitness
        current_zone = self.classifier.classify_zone(current_form, current_fitness)

        logger.info(
            "Generated %s taper of %d days for %s, race-day form %.1f",
            strategy.value, duration, race_date, states[-1].form,
        )

        return TaperPlan(
            race_date=race_date,
            taper_start_date=taper_start,
            taper_duration=duration,
            current_state=CurrentState(
                date=_as_date(today or date.today()),
                fitness=current_fitness,
                fatigue=current_fatigue,
                form=current_form,
                zone=current_zone,
            ),
            target_state=TargetState(
                target_form=target_form,
                target_zone=self.classifier.classify_zone(target_form, projected_fitness),
                projected_fitness=projected_fitness,
            ),
            schedule=schedule,
            strategy=TaperStrategyParameters(
                strategy=strategy,
                volume_reduction=volume_reduction,
                maintain_intensity=maintain_intensity,
                critical_workouts=self._critical_workouts(duration, maintain_intensity),
            ),
            warnings=self._taper_warnings(current_fitness, current_form, target_form, duration),
            recommendations=self._taper_recommendations(current_zone, target_form, strategy, duration),
        )

    def estimate_recovery_time(
        self,
        current_fitness: float,
        current_fatigue: float,
        current_form: Optional[float] = None,
        target_zone: FormZone = FormZone.OPTIMAL_RACE,
        use_complete_rest: bool = True,
    ) -> RecoveryEstimate:
        """Estimate days until form enters the target zone's range.

        Complete rest simulates zero load; active recovery simulates a fixed
        fraction of current fitness. When the range is not reached within the
        horizon the horizon itself is returned with ``capped`` set.
        """
        s = self.settings
        if current_form is None:
            current_form = current_fitness - current_fatigue
        target_range = self.classifier.get_range_for_zone(FormZone(target_zone), current_fitness)

        if use_complete_rest:
            horizon, daily_load = s.rest_horizon, 0.0
        else:
            horizon, daily_load = s.active_recovery_horizon, s.active_recovery_factor * current_fitness

        capped = False
        if self._in_target(current_form, target_range):
            estimated_days, reached_form = 0, current_form
        else:
            states = self.model.simulate(current_fitness, current_fatigue, [daily_load] * horizon)
            hit = next(
                (i for i, st in enumerate(states) if self._in_target(st.form, target_range)),
                None,
            )
            if hit is None:
                capped = True
                estimated_days, reached_form = horizon, states[-1].form
                logger.info("Target form %s not reached within %d days", target_range, horizon)
            else:
                estimated_days, reached_form = hit + 1, states[hit].form

        rate = (reached_form - current_form) / estimated_days if estimated_days > 0 else 0.0

        return RecoveryEstimate(
            estimated_days=estimated_days,
            capped=capped,
            daily_form_change_rate=rate,
            target_form_range=target_range,
            recommendations=self._recovery_recommendations(current_form, estimated_days, capped, use_complete_rest),
        )

    def simulate_scenario(
        self,
        current_fitness: float,
        current_fatigue: float,
        scenario_days: int,
        daily_training_stress: PlannedLoad,
        start_date: Optional[date] = None,
    ) -> List[ScenarioDay]:
        """Run an ad hoc what-if plan and classify every simulated day.

        Raises:
            ValidationError: If ``scenario_days`` is negative
        """
        if scenario_days < 0:
            raise ValidationError(f"Scenario length cannot be negative, got {scenario_days}")

        start_date = _as_date(start_date or date.today())
        plan = self._normalize_plan(daily_training_stress, scenario_days)
        states = self.model.simulate(current_fitness, current_fatigue, plan, start_date=start_date)
        return [self._scenario_day(i, state) for i, state in enumerate(states)]

    @staticmethod
    def _in_target(form: float, target_range: FormRange) -> bool:
        # Zone tops are exclusive; the race range includes its ceiling
        if target_range.target_zone == FormZone.OPTIMAL_RACE:
            return target_range.min <= form <= target_range.max
        return target_range.min <= form < target_range.max

    def _scenario_day(self, index: int, state: LoadState) -> ScenarioDay:
        return ScenarioDay(
            day=index + 1,
            date=state.date,
            training_stress=state.training_stress,
            fitness=state.fitness,
            fatigue=state.fatigue,
            form=state.form,
            zone=self.classifier.classify_zone(state.form, state.fitness),
        )

    @staticmethod
    def _normalize_plan(plan: PlannedLoad, days: int, recovery_days: Sequence[int] = ()) -> List[float]:
        """Expand a plan to exactly ``days`` loads, zeroing recovery days."""
        if isinstance(plan, numbers.Number):
            loads = [float(plan)] * days
        else:
            loads = [float(v) for v in list(plan)[:days]]
            loads += [0.0] * (days - len(loads))

        for index in recovery_days:
            if 0 <= index < days:
                loads[index] = 0.0
        return loads

    def _prediction_confidence(self, days: int, plan: List[float]) -> float:
        s = self.settings
        variance = float(np.var(plan)) if plan else 0.0
        penalty = min(s.max_variance_penalty, variance / s.variance_divisor)
        return max(s.min_confidence, round(100 * s.confidence_decay ** days - penalty))

    def _prediction_recommendations(self, form: float, zone: FormZone, current_form: float, days: int) -> List[str]:
        recommendations = []
        if zone == FormZone.OPTIMAL_RACE:
            recommendations.append("Predicted to reach optimal race zone")
        elif zone == FormZone.OVERREACHED:
            recommendations.append("WARNING: Predicted overreaching - reduce planned load")
        elif zone == FormZone.FRESH and days < 7:
            recommendations.append("May be too fresh - consider adding light training")

        if abs(form - current_form) > self.settings.large_form_change:
            recommendations.append("Large form change predicted - monitor closely")
        return recommendations

    @staticmethod
    def _taper_day_note(days_to_race: int) -> str:
        if days_to_race == 0:
            return "Race day - minimal activity"
        if days_to_race <= 2:
            return "Final preparation - very light activity"
        if days_to_race <= 5:
            return "Late taper - reduced volume, maintain some intensity"
        if days_to_race <= 10:
            return "Mid taper - progressive volume reduction"
        return "Early taper - begin reducing volume"

    @staticmethod
    def _critical_workouts(duration: int, maintain_intensity: bool) -> List[str]:
        workouts = []
        if duration >= 14:
            workouts.append("Week 1: One race-pace workout")
            workouts.append("Week 2: Short threshold or race-pace efforts")
        elif duration >= 7:
            workouts.append("Week 1: One short high-intensity session")

        if maintain_intensity:
            workouts.append("Maintain intensity, reduce volume")
        return workouts

    def _taper_warnings(self, fitness: float, form: float, target_form: float, duration: int) -> List[str]:
        s = self.settings
        warnings = []
        if fitness < s.low_fitness_warning:
            warnings.append("Current fitness is low - consider building base before major race")
        if form < s.fatigued_form_warning:
            warnings.append("Currently in fatigued state - may need longer taper")
        if duration < s.short_taper_days:
            warnings.append("Taper duration is short - may not provide adequate recovery")
        if abs(target_form - form) > s.large_form_swing:
            warnings.append("Large form change required - taper may be challenging")
        return warnings

    @staticmethod
    def _taper_recommendations(zone: FormZone, target_form: float, strategy: TaperStrategy, duration: int) -> List[str]:
        recommendations = [
            f"Using {strategy.value} taper strategy over {duration} days",
            f"Target form of {target_form:g} for race readiness",
        ]
        if zone in (FormZone.FATIGUED, FormZone.OVERREACHED):
            recommendations.append("Prioritize recovery in early taper phase")
        recommendations.extend([
            "Maintain intensity while reducing volume",
            "Focus on quality rest and nutrition",
            "Include 1-2 short race-pace efforts",
        ])
        return recommendations

    @staticmethod
    def _recovery_recommendations(form: float, days: int, capped: bool, complete_rest: bool) -> List[str]:
        if capped:
            recommendations = [f"Target form not reached within {days} days"]
        else:
            recommendations = [f"Estimated {days} days to reach target form"]

        if complete_rest:
            recommendations.append("Complete rest recommended for optimal recovery")
        else:
            recommendations.append("Active recovery with low-intensity work")

        if form < -30:
            recommendations.append("Severely overreached - prioritize sleep and nutrition")
        if days > 14:
            recommendations.append("Extended recovery period - consider consulting coach")
        return recommendations
