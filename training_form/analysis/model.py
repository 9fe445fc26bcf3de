"""Fitness-fatigue load model based on exponentially weighted averages."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadModelSettings:
    """Time constants and bounds for the load model."""

    fitness_time_constant: float = 42.0
    fatigue_time_constant: float = 7.0
    max_daily_load: float = 1000.0

    def __post_init__(self):
        if self.fitness_time_constant <= 0 or self.fatigue_time_constant <= 0:
            raise ValueError("Time constants must be positive")

    @classmethod
    def from_config(cls) -> "LoadModelSettings":
        return cls(
            fitness_time_constant=config.FITNESS_TIME_CONSTANT,
            fatigue_time_constant=config.FATIGUE_TIME_CONSTANT,
            max_daily_load=config.MAX_DAILY_LOAD,
        )


@dataclass(frozen=True)
class LoadState:
    """Fitness, fatigue and form after one day of training."""

    date: Optional[date]
    training_stress: float
    fitness: float
    fatigue: float
    form: float


class LoadModel:
    """Fitness-fatigue model driven by daily training stress.

    Fitness (CTL) and fatigue (ATL) are exponentially weighted moving averages of
    daily training stress with a long and a short time constant. Form (TSB) is
    their difference.
    """

    def __init__(self, settings: Optional[LoadModelSettings] = None):
        """Initialize the model.

        Args:
            settings: Time constants and load bounds. Defaults to the
                environment configuration (42 and 7 days).
        """
        self.settings = settings or LoadModelSettings.from_config()

    @property
    def fitness_time_constant(self) -> float:
        return self.settings.fitness_time_constant

    @property
    def fatigue_time_constant(self) -> float:
        return self.settings.fatigue_time_constant

    def step(self, fitness: float, fatigue: float, training_stress: float) -> tuple:
        """Advance the model by one day and return (fitness, fatigue)."""
        fitness = fitness + (training_stress - fitness) / self.settings.fitness_time_constant
        fatigue = fatigue + (training_stress - fatigue) / self.settings.fatigue_time_constant
        return fitness, fatigue

    def simulate(
        self,
        initial_fitness: float,
        initial_fatigue: float,
        daily_training_stress: Sequence[float],
        start_date: Optional[date] = None,
    ) -> List[LoadState]:
        """Evolve fitness, fatigue and form over a sequence of days.

        Args:
            initial_fitness: Fitness (CTL) before the first day
            initial_fatigue: Fatigue (ATL) before the first day
            daily_training_stress: Training stress for each day, in order
            start_date: Date of the first day; states carry no date when omitted

        Returns:
            One LoadState per input day. An empty input yields an empty list.
        """
        loads = self._prepare_loads(daily_training_stress)
        if len(loads) == 0:
            return []

        fitness = max(0.0, float(initial_fitness))
        fatigue = max(0.0, float(initial_fatigue))
        if fitness != initial_fitness or fatigue != initial_fatigue:
            logger.warning(
                "Negative initial state (fitness=%s, fatigue=%s) clamped to zero",
                initial_fitness, initial_fatigue,
            )

        states = []
        for i, tss in enumerate(loads):
            fitness, fatigue = self.step(fitness, fatigue, float(tss))
            day = start_date + timedelta(days=i) if start_date is not None else None
            states.append(LoadState(
                date=day,
                training_stress=float(tss),
                fitness=fitness,
                fatigue=fatigue,
                form=fitness - fatigue,
            ))

        logger.debug("Simulated %d days from fitness=%.1f fatigue=%.1f", len(states), initial_fitness, initial_fatigue)
        return states

    def simulate_series(
        self,
        daily_loads: pd.Series,
        initial_fitness: float = 0.0,
        initial_fatigue: float = 0.0,
    ) -> pd.DataFrame:
        """Run the model over a date-indexed load series.

        Args:
            daily_loads: Training stress indexed by calendar day
            initial_fitness: Fitness before the first day
            initial_fatigue: Fatigue before the first day

        Returns:
            DataFrame with date, training_load, fitness, fatigue and form columns
        """
        columns = ["date", "training_load", "fitness", "fatigue", "form"]
        if daily_loads.empty:
            return pd.DataFrame(columns=columns)

        daily_loads = daily_loads.sort_index()
        first_day = pd.Timestamp(daily_loads.index[0]).date()
        states = self.simulate(initial_fitness, initial_fatigue, daily_loads.values, start_date=first_day)

        return pd.DataFrame({
            "date": [pd.Timestamp(day) for day in daily_loads.index],
            "training_load": [s.training_stress for s in states],
            "fitness": [s.fitness for s in states],
            "fatigue": [s.fatigue for s in states],
            "form": [s.form for s in states],
        }, columns=columns)

    def _prepare_loads(self, daily_training_stress: Sequence[float]) -> np.ndarray:
        """Convert loads to an array and clip them to the physiological range."""
        loads = np.asarray(list(daily_training_stress), dtype=float)
        if loads.size == 0:
            return loads

        max_load = self.settings.max_daily_load
        out_of_range = (loads < 0) | (loads > max_load)
        if np.any(out_of_range):
            logger.warning(
                "Found %d training loads outside [0, %.0f], clipping",
                int(np.sum(out_of_range)), max_load,
            )
            loads = np.clip(loads, 0, max_load)

        return loads
