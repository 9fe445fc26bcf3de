"""Training phases and periodization model definitions."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class TrainingPhase(Enum):
    """Macro training phases."""

    BASE = "base"  # Aerobic base building
    BUILD = "build"  # Increasing intensity
    PEAK = "peak"  # Race preparation
    TAPER = "taper"  # Pre-competition taper
    RECOVERY = "recovery"  # Regeneration
    TRANSITION = "transition"  # Off-season or unstructured


class PeriodizationType(Enum):
    """Types of periodization models."""

    LINEAR = "linear"  # Traditional linear progression
    UNDULATING = "undulating"  # Frequent volume and intensity variation
    BLOCK = "block"  # Focused blocks of specific training
    POLARIZED = "polarized"  # 80% easy, 20% hard


@dataclass(frozen=True)
class PhaseCharacteristics:
    """Expected shape of one phase within a periodization model."""

    duration_weeks: Tuple[int, int]
    hr_zone_emphasis: Tuple[int, ...]
    form_range: Tuple[float, float]


@dataclass(frozen=True)
class PeriodizationModel:
    """A periodization model and the criteria used to judge phase progress."""

    model: PeriodizationType
    name: str
    description: str
    phases: Dict[TrainingPhase, PhaseCharacteristics]
    min_base_weeks: int
    min_build_weeks: int
    min_recovery_weeks: int
    max_volume_increase_per_week: float

    def characteristics(self, phase: TrainingPhase) -> Optional[PhaseCharacteristics]:
        return self.phases.get(phase)


def _phase(duration, zones, form_range) -> PhaseCharacteristics:
    return PhaseCharacteristics(duration, zones, form_range)


PERIODIZATION_MODELS: Dict[PeriodizationType, PeriodizationModel] = {
    PeriodizationType.LINEAR: PeriodizationModel(
        model=PeriodizationType.LINEAR,
        name="Linear Periodization",
        description="Traditional progressive model with distinct phases building from base to peak",
        phases={
            TrainingPhase.BASE: _phase((8, 16), (1, 2), (-10, 10)),
            TrainingPhase.BUILD: _phase((6, 12), (2, 3), (-15, 5)),
            TrainingPhase.PEAK: _phase((2, 4), (4, 5), (-10, 10)),
            TrainingPhase.TAPER: _phase((1, 3), (3, 4), (10, 25)),
            TrainingPhase.RECOVERY: _phase((1, 2), (1, 2), (15, 35)),
        },
        min_base_weeks=8,
        min_build_weeks=6,
        min_recovery_weeks=1,
        max_volume_increase_per_week=10,
    ),
    PeriodizationType.UNDULATING: PeriodizationModel(
        model=PeriodizationType.UNDULATING,
        name="Undulating Periodization",
        description="Non-linear model with frequent volume and intensity variations",
        phases={
            TrainingPhase.BASE: _phase((4, 8), (1, 2, 3), (-15, 15)),
            TrainingPhase.BUILD: _phase((4, 8), (2, 3, 4), (-20, 10)),
            TrainingPhase.PEAK: _phase((2, 4), (3, 4, 5), (-10, 15)),
            TrainingPhase.RECOVERY: _phase((1, 1), (1, 2), (10, 30)),
        },
        min_base_weeks=4,
        min_build_weeks=4,
        min_recovery_weeks=1,
        max_volume_increase_per_week=15,
    ),
    PeriodizationType.BLOCK: PeriodizationModel(
        model=PeriodizationType.BLOCK,
        name="Block Periodization",
        description="Concentrated training blocks targeting specific adaptations",
        phases={
            TrainingPhase.BASE: _phase((3, 6), (1, 2), (-15, 5)),
            TrainingPhase.BUILD: _phase((3, 6), (3, 4), (-20, 0)),
            TrainingPhase.PEAK: _phase((2, 4), (4, 5), (-10, 10)),
            TrainingPhase.RECOVERY: _phase((1, 2), (1, 2), (15, 30)),
        },
        min_base_weeks=3,
        min_build_weeks=3,
        min_recovery_weeks=1,
        max_volume_increase_per_week=12,
    ),
    PeriodizationType.POLARIZED: PeriodizationModel(
        model=PeriodizationType.POLARIZED,
        name="Polarized Training",
        description="80/20 model with emphasis on low and high intensity, avoiding moderate zones",
        phases={
            TrainingPhase.BASE: _phase((8, 16), (1, 2), (-10, 10)),
            TrainingPhase.BUILD: _phase((6, 12), (1, 2, 5), (-15, 5)),
            TrainingPhase.PEAK: _phase((3, 6), (2, 4, 5), (-10, 10)),
            TrainingPhase.RECOVERY: _phase((1, 2), (1,), (15, 30)),
        },
        min_base_weeks=8,
        min_build_weeks=6,
        min_recovery_weeks=1,
        max_volume_increase_per_week=10,
    ),
}


def get_model(model: Optional[PeriodizationType]) -> Optional[PeriodizationModel]:
    """Look up a periodization model definition; None passes through."""
    if model is None:
        return None
    return PERIODIZATION_MODELS[PeriodizationType(model)]
