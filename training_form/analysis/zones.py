"""Form zone classification with fitness-adjusted thresholds."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import config


class FormZone(Enum):
    """Readiness zones ordered from most fatigued to freshest."""

    OVERREACHED = "overreached"
    FATIGUED = "fatigued"
    PRODUCTIVE_TRAINING = "productive_training"
    MAINTENANCE = "maintenance"
    FRESH = "fresh"
    OPTIMAL_RACE = "optimal_race"


# Bottom-up order matching the boundary list in ZoneThresholds
ZONE_ORDER: Tuple[FormZone, ...] = tuple(FormZone)

ZONE_RANKING: Dict[FormZone, int] = {
    FormZone.OVERREACHED: 1,
    FormZone.FATIGUED: 2,
    FormZone.PRODUCTIVE_TRAINING: 3,
    FormZone.MAINTENANCE: 4,
    FormZone.OPTIMAL_RACE: 5,
    FormZone.FRESH: 6,
}


@dataclass(frozen=True)
class ZoneThresholds:
    """Zone boundaries on the form axis and fitness adjustment factors.

    Each boundary is the inclusive lower bound of the next zone up, so the six
    zones always cover the real line without gaps or overlap.
    """

    overreached_max: float = -35.0
    fatigued_max: float = -25.0
    productive_max: float = -10.0
    maintenance_max: float = 5.0
    fresh_max: float = 20.0
    race_form_ceiling: float = 35.0
    low_fitness_limit: float = 40.0
    high_fitness_limit: float = 80.0
    low_fitness_factor: float = 0.8
    moderate_fitness_factor: float = 1.0
    high_fitness_factor: float = 1.2

    def __post_init__(self):
        bounds = self.boundaries()
        if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
            raise ValueError(f"Zone boundaries must be strictly increasing: {bounds}")

    @classmethod
    def from_config(cls) -> "ZoneThresholds":
        return cls(
            overreached_max=config.ZONE_OVERREACHED_MAX,
            fatigued_max=config.ZONE_FATIGUED_MAX,
            productive_max=config.ZONE_PRODUCTIVE_MAX,
            maintenance_max=config.ZONE_MAINTENANCE_MAX,
            fresh_max=config.ZONE_FRESH_MAX,
            race_form_ceiling=config.RACE_FORM_CEILING,
            low_fitness_limit=config.LOW_FITNESS_LIMIT,
            high_fitness_limit=config.HIGH_FITNESS_LIMIT,
            low_fitness_factor=config.LOW_FITNESS_FACTOR,
            moderate_fitness_factor=config.MODERATE_FITNESS_FACTOR,
            high_fitness_factor=config.HIGH_FITNESS_FACTOR,
        )

    def boundaries(self) -> Tuple[float, ...]:
        return (
            self.overreached_max,
            self.fatigued_max,
            self.productive_max,
            self.maintenance_max,
            self.fresh_max,
        )


@dataclass(frozen=True)
class ZoneCharacteristics:
    performance_potential: str
    injury_risk: str
    recommended_intensity: str
    training_focus: Tuple[str, ...]


@dataclass(frozen=True)
class ZoneGuidance:
    workout_types: Tuple[str, ...]
    intensity_guidance: str
    volume_guidance: str
    recovery_guidance: str


@dataclass(frozen=True)
class ZoneDefinition:
    label: str
    description: str
    characteristics: ZoneCharacteristics
    recommendations: ZoneGuidance
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ZoneInfo:
    """Classification result with the adjusted form range of the zone."""

    zone: FormZone
    label: str
    description: str
    form_range: Tuple[float, float]
    characteristics: ZoneCharacteristics
    recommendations: ZoneGuidance
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FormRange:
    min: float
    max: float
    target_zone: FormZone


@dataclass(frozen=True)
class TransitionInfo:
    direction: str  # improving, declining, neutral
    significance: str  # major, minor, none
    interpretation: str


ZONE_DEFINITIONS: Dict[FormZone, ZoneDefinition] = {
    FormZone.OPTIMAL_RACE: ZoneDefinition(
        label="Optimal Race",
        description="Peak race readiness - optimal form for performance",
        characteristics=ZoneCharacteristics(
            performance_potential="very_high",
            injury_risk="very_low",
            recommended_intensity="high",
            training_focus=("quality workouts", "race-specific efforts", "intensity maintenance"),
        ),
        recommendations=ZoneGuidance(
            workout_types=("race pace", "threshold intervals", "short high-intensity", "technique work"),
            intensity_guidance="Maintain intensity with reduced volume",
            volume_guidance="Keep volume low to moderate",
            recovery_guidance="Prioritize quality recovery between key sessions",
        ),
    ),
    FormZone.FRESH: ZoneDefinition(
        label="Fresh",
        description="Fresh - recovered and absorbing training well",
        characteristics=ZoneCharacteristics(
            performance_potential="high",
            injury_risk="very_low",
            recommended_intensity="moderate",
            training_focus=("resume training", "gradual load increase", "technique refinement"),
        ),
        recommendations=ZoneGuidance(
            workout_types=("easy aerobic", "technique work", "moderate intensity"),
            intensity_guidance="Can handle moderate to high intensity",
            volume_guidance="Gradually increase volume",
            recovery_guidance="Well recovered - can increase training load",
        ),
        warnings=("Extended freshness may lead to detraining",),
    ),
    FormZone.MAINTENANCE: ZoneDefinition(
        label="Maintenance",
        description="Neutral maintenance zone - balanced training",
        characteristics=ZoneCharacteristics(
            performance_potential="moderate",
            injury_risk="low",
            recommended_intensity="moderate",
            training_focus=("consistent training", "mixed intensities", "steady progression"),
        ),
        recommendations=ZoneGuidance(
            workout_types=("mixed training", "tempo runs", "steady state", "intervals"),
            intensity_guidance="Balanced intensity distribution",
            volume_guidance="Moderate volume with variety",
            recovery_guidance="Standard recovery protocols",
        ),
    ),
    FormZone.PRODUCTIVE_TRAINING: ZoneDefinition(
        label="Productive Training",
        description="Productive training stress - fitness gains occurring",
        characteristics=ZoneCharacteristics(
            performance_potential="low",
            injury_risk="moderate",
            recommended_intensity="low",
            training_focus=("aerobic development", "volume accumulation", "base building"),
        ),
        recommendations=ZoneGuidance(
            workout_types=("easy aerobic", "long slow distance", "recovery runs"),
            intensity_guidance="Keep intensity low - focus on volume",
            volume_guidance="Can maintain or slightly increase volume",
            recovery_guidance="Monitor recovery markers carefully",
        ),
    ),
    FormZone.FATIGUED: ZoneDefinition(
        label="Fatigued",
        description="Significant fatigue - approaching overreaching",
        characteristics=ZoneCharacteristics(
            performance_potential="very_low",
            injury_risk="high",
            recommended_intensity="very_low",
            training_focus=("active recovery", "easy aerobic", "reduced volume"),
        ),
        recommendations=ZoneGuidance(
            workout_types=("easy recovery", "active rest", "cross-training"),
            intensity_guidance="Very low intensity only",
            volume_guidance="Reduce volume significantly",
            recovery_guidance="Prioritize sleep, nutrition, and recovery",
        ),
        warnings=("High injury risk", "Consider scheduled recovery week"),
    ),
    FormZone.OVERREACHED: ZoneDefinition(
        label="Overreached",
        description="Severe overreaching - immediate recovery required",
        characteristics=ZoneCharacteristics(
            performance_potential="very_low",
            injury_risk="very_high",
            recommended_intensity="very_low",
            training_focus=("complete recovery", "rest", "regeneration"),
        ),
        recommendations=ZoneGuidance(
            workout_types=("rest", "very easy recovery", "active rest only"),
            intensity_guidance="No hard training",
            volume_guidance="Minimal volume or complete rest",
            recovery_guidance="Immediate recovery period required",
        ),
        warnings=(
            "CRITICAL: Very high injury/illness risk",
            "Consider complete rest for 3-7 days",
            "Monitor for signs of overtraining syndrome",
        ),
    ),
}


class ZoneClassifier:
    """Classify form (TSB) into readiness zones.

    Boundaries below zero scale with the fitness factor, so fitter athletes
    tolerate more fatigue before dropping a zone. Boundaries above zero scale
    with the inverse of factors above one, so fitter athletes reach race
    readiness at a lower form value.
    """

    def __init__(self, thresholds: Optional[ZoneThresholds] = None):
        self.thresholds = thresholds or ZoneThresholds.from_config()

    def classify(self, form: float, fitness: float = 0.0) -> ZoneInfo:
        """Classify a form value into its zone with zone metadata."""
        bounds = self.adjusted_boundaries(fitness)
        zone = self._determine_zone(form, bounds)
        return self._zone_info(zone, bounds)

    def classify_zone(self, form: float, fitness: float = 0.0) -> FormZone:
        """Classify a form value, returning only the zone."""
        return self._determine_zone(form, self.adjusted_boundaries(fitness))

    def classify_many(self, points: Iterable[Tuple[object, float, float]]) -> List[Tuple[object, ZoneInfo]]:
        """Classify (date, form, fitness) triples."""
        return [(day, self.classify(form, fitness)) for day, form, fitness in points]

    def fitness_factor(self, fitness: float) -> float:
        t = self.thresholds
        if fitness < t.low_fitness_limit:
            return t.low_fitness_factor
        if fitness <= t.high_fitness_limit:
            return t.moderate_fitness_factor
        return t.high_fitness_factor

    def adjusted_boundaries(self, fitness: float = 0.0) -> Tuple[float, ...]:
        """Zone boundaries after the fitness adjustment, bottom-up."""
        factor = self.fitness_factor(fitness)
        positive_factor = 1 / factor if factor > 1 else factor
        return tuple(
            bound * factor if bound < 0 else bound * positive_factor
            for bound in self.thresholds.boundaries()
        )

    def zone_range(self, zone: FormZone, fitness: float = 0.0) -> Tuple[float, float]:
        """Adjusted (min, max) form range of a zone; min inclusive, max exclusive."""
        return self._range_for(zone, self.adjusted_boundaries(fitness))

    def is_optimal_for_race(self, form: float, fitness: float = 0.0) -> bool:
        return self.classify_zone(form, fitness) == FormZone.OPTIMAL_RACE

    def is_overreached(self, form: float, fitness: float = 0.0) -> bool:
        return self.classify_zone(form, fitness) == FormZone.OVERREACHED

    def is_excessively_fresh(self, form: float, fitness: float = 0.0) -> bool:
        """True when form sits well above the race ceiling (detraining risk)."""
        _, positive_factor = self._factors(fitness)
        return form > self.thresholds.race_form_ceiling * positive_factor + 10

    def get_recommended_form_range(self, purpose: str, fitness: float = 0.0) -> FormRange:
        """Target form band for an intent.

        Args:
            purpose: One of "race", "recovery", "training", "maintenance"
            fitness: Current fitness (CTL)

        Returns:
            FormRange with the band and the zone it corresponds to
        """
        bounds = self.adjusted_boundaries(fitness)
        _, positive_factor = self._factors(fitness)

        if purpose == "race":
            low, _ = self._range_for(FormZone.OPTIMAL_RACE, bounds)
            return FormRange(low, self.thresholds.race_form_ceiling * positive_factor, FormZone.OPTIMAL_RACE)
        if purpose == "recovery":
            low, high = self._range_for(FormZone.FRESH, bounds)
            return FormRange(low, high, FormZone.FRESH)
        if purpose == "training":
            low, high = self._range_for(FormZone.PRODUCTIVE_TRAINING, bounds)
            return FormRange(low, high, FormZone.PRODUCTIVE_TRAINING)
        if purpose == "maintenance":
            low, high = self._range_for(FormZone.MAINTENANCE, bounds)
            return FormRange(low, high, FormZone.MAINTENANCE)

        raise ValueError(f"Unknown purpose: {purpose}")

    def get_range_for_zone(self, zone: FormZone, fitness: float = 0.0) -> FormRange:
        """Target band for reaching a given zone (race zone capped at the ceiling)."""
        if zone == FormZone.OPTIMAL_RACE:
            return self.get_recommended_form_range("race", fitness)
        low, high = self.zone_range(zone, fitness)
        return FormRange(low, high, zone)

    def get_zone_transition_info(self, from_zone: FormZone, to_zone: FormZone) -> TransitionInfo:
        """Describe a move between two zones."""
        from_rank = ZONE_RANKING[from_zone]
        to_rank = ZONE_RANKING[to_zone]
        rank_diff = abs(to_rank - from_rank)

        if to_rank > from_rank:
            direction = "improving"
        elif to_rank < from_rank:
            direction = "declining"
        else:
            direction = "neutral"

        if rank_diff > 2:
            significance = "major"
        elif rank_diff >= 1:
            significance = "minor"
        else:
            significance = "none"

        return TransitionInfo(direction, significance, self._interpret_transition(from_zone, to_zone, direction))

    def _factors(self, fitness: float) -> Tuple[float, float]:
        factor = self.fitness_factor(fitness)
        return factor, (1 / factor if factor > 1 else factor)

    @staticmethod
    def _determine_zone(form: float, bounds: Tuple[float, ...]) -> FormZone:
        for zone, upper in zip(ZONE_ORDER, bounds):
            if form < upper:
                return zone
        return ZONE_ORDER[-1]

    @staticmethod
    def _range_for(zone: FormZone, bounds: Tuple[float, ...]) -> Tuple[float, float]:
        index = ZONE_ORDER.index(zone)
        low = bounds[index - 1] if index > 0 else -math.inf
        high = bounds[index] if index < len(bounds) else math.inf
        return low, high

    def _zone_info(self, zone: FormZone, bounds: Tuple[float, ...]) -> ZoneInfo:
        definition = ZONE_DEFINITIONS[zone]
        return ZoneInfo(
            zone=zone,
            label=definition.label,
            description=definition.description,
            form_range=self._range_for(zone, bounds),
            characteristics=definition.characteristics,
            recommendations=definition.recommendations,
            warnings=definition.warnings,
        )

    @staticmethod
    def _interpret_transition(from_zone: FormZone, to_zone: FormZone, direction: str) -> str:
        if direction == "neutral":
            return f"Remained in {from_zone.value} zone"

        if direction == "improving":
            if to_zone == FormZone.OPTIMAL_RACE and from_zone in (FormZone.MAINTENANCE, FormZone.FRESH):
                return "Entering peak race readiness - good timing for key workouts or races"
            if to_zone == FormZone.FRESH and from_zone == FormZone.FATIGUED:
                return "Significant recovery - fatigue dissipating"
            if to_zone == FormZone.MAINTENANCE and from_zone in (FormZone.PRODUCTIVE_TRAINING, FormZone.FATIGUED):
                return "Moving toward neutral state - training load balanced"
            return f"Recovering from {from_zone.value} to {to_zone.value}"

        if to_zone == FormZone.OVERREACHED:
            return "CRITICAL: Entered overreached state - immediate recovery needed"
        if to_zone == FormZone.FATIGUED and from_zone == FormZone.MAINTENANCE:
            return "Accumulating fatigue - monitor recovery carefully"
        if to_zone == FormZone.PRODUCTIVE_TRAINING and from_zone == FormZone.OPTIMAL_RACE:
            return "Building training load - moving away from race readiness"
        return f"Increased fatigue from {from_zone.value} to {to_zone.value}"
