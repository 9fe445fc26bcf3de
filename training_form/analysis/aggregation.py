"""Weekly aggregation of daily loads and activities for phase detection."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .model import LoadModel
from .phases import ActivityRef, HRZoneDistribution, WeeklyMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingActivity:
    """A raw activity as supplied by the data source."""

    activity_id: str
    start: Union[datetime, date]
    activity_type: str = "unknown"
    duration: float = 0.0  # seconds
    distance: float = 0.0  # meters
    elevation_gain: float = 0.0  # meters
    training_stress: float = 0.0
    avg_heart_rate: Optional[float] = None
    hr_zone_seconds: Optional[Tuple[float, float, float, float, float]] = None


def daily_load_series(daily_loads: Union[pd.Series, Mapping[date, float]]) -> pd.Series:
    """Normalize daily loads to a gap-free calendar-day series.

    Loads on the same day are summed; days without a load are filled with zero.
    """
    series = daily_loads if isinstance(daily_loads, pd.Series) else pd.Series(dict(daily_loads), dtype=float)
    if series.empty:
        return pd.Series(dtype=float)

    series = series.copy()
    index = pd.to_datetime(series.index)
    if index.tz is not None:
        index = index.tz_localize(None)
    series.index = index.normalize()
    series = series.groupby(level=0).sum().sort_index()
    return series.resample("D").sum().astype(float)


def aggregate_weekly_metrics(
    daily_loads: Union[pd.Series, Mapping[date, float]],
    activities: Iterable[TrainingActivity] = (),
    model: Optional[LoadModel] = None,
    initial_fitness: float = 0.0,
    initial_fatigue: float = 0.0,
) -> List[WeeklyMetrics]:
    """Build one WeeklyMetrics per ISO week covered by the daily loads.

    Args:
        daily_loads: Training stress per calendar day
        activities: Activities used for distance, duration, elevation and
            heart-rate zone totals
        model: Load model used for fitness, fatigue and form
        initial_fitness: Fitness before the first day
        initial_fatigue: Fatigue before the first day

    Returns:
        Weekly metrics in chronological order, empty for empty input
    """
    loads = daily_load_series(daily_loads)
    if loads.empty:
        return []

    model = model or LoadModel()
    frame = model.simulate_series(loads, initial_fitness, initial_fatigue)
    frame["week_start"] = _week_start(frame["date"])

    weekly = frame.groupby("week_start").agg(
        total_tss=("training_load", "sum"),
        avg_fitness=("fitness", "mean"),
        avg_fatigue=("fatigue", "mean"),
        avg_form=("form", "mean"),
    )

    by_week = {}
    for activity in activities:
        week = _week_start(pd.Series([_local_day(activity.start)])).iloc[0]
        by_week.setdefault(week, []).append(activity)

    metrics = []
    for week_start, row in weekly.iterrows():
        week_activities = by_week.get(week_start, [])
        metrics.append(WeeklyMetrics(
            week_start=week_start.date(),
            week_end=(week_start + pd.Timedelta(days=6)).date(),
            total_distance=float(sum(a.distance for a in week_activities)),
            total_duration=float(sum(a.duration for a in week_activities)),
            total_elevation=float(sum(a.elevation_gain for a in week_activities)),
            activity_count=len(week_activities),
            avg_weekly_tss=float(row["total_tss"]),
            total_tss=float(row["total_tss"]),
            avg_fitness=float(row["avg_fitness"]),
            avg_fatigue=float(row["avg_fatigue"]),
            avg_form=float(row["avg_form"]),
            hr_zone_distribution=_zone_distribution(week_activities),
            activities=tuple(_activity_ref(a) for a in week_activities),
        ))

    unmatched = sum(len(acts) for week, acts in by_week.items() if week not in weekly.index)
    if unmatched:
        logger.warning("Ignored %d activities outside the load date range", unmatched)

    logger.debug("Aggregated %d days into %d weeks", len(loads), len(metrics))
    return metrics


def _local_day(start: Union[datetime, date]) -> pd.Timestamp:
    """Midnight of the activity's local calendar day, without timezone."""
    stamp = pd.Timestamp(start)
    if stamp.tz is not None:
        stamp = stamp.tz_localize(None)
    return stamp.normalize()


def _week_start(dates: pd.Series) -> pd.Series:
    """Monday of the ISO week for each date."""
    dates = pd.to_datetime(dates)
    return dates - pd.to_timedelta(dates.dt.weekday, unit="D")


def _zone_distribution(activities: List[TrainingActivity]) -> Optional[HRZoneDistribution]:
    zone_seconds = [a.hr_zone_seconds for a in activities if a.hr_zone_seconds is not None]
    if not zone_seconds:
        return None
    totals = [sum(zones[i] for zones in zone_seconds) for i in range(5)]
    total = sum(totals)
    if total <= 0:
        return None
    return HRZoneDistribution(*(t / total * 100 for t in totals))


def _activity_ref(activity: TrainingActivity) -> ActivityRef:
    return ActivityRef(
        activity_id=activity.activity_id,
        date=_local_day(activity.start).date(),
        activity_type=activity.activity_type,
        duration=activity.duration,
        distance=activity.distance,
        training_stress=activity.training_stress,
        avg_heart_rate=activity.avg_heart_rate,
    )
