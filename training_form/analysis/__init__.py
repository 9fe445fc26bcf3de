"""Analysis module for training load, form zones and phases."""

from .aggregation import TrainingActivity, aggregate_weekly_metrics
from .model import LoadModel, LoadModelSettings, LoadState
from .periodization import PeriodizationType, TrainingPhase
from .phases import DetectedPhase, HRZoneDistribution, PersonalRecord, PhaseDetectionConfig, PhaseDetector, WeeklyMetrics
from .predictor import FormPrediction, FormPredictor, PredictorSettings, RecoveryEstimate, TaperPlan, TaperStrategy
from .recommendations import PhaseRecommendation, RecommendationEngine, RecommendationSettings
from .trends import FormSnapshot, FormTrend, TrendAnalyzer, TrendSettings, build_snapshots
from .zones import FormZone, ZoneClassifier, ZoneInfo, ZoneThresholds

__all__ = [
    "LoadModel",
    "LoadModelSettings",
    "LoadState",
    "FormZone",
    "ZoneClassifier",
    "ZoneInfo",
    "ZoneThresholds",
    "PhaseDetector",
    "PhaseDetectionConfig",
    "DetectedPhase",
    "WeeklyMetrics",
    "HRZoneDistribution",
    "PersonalRecord",
    "TrainingPhase",
    "PeriodizationType",
    "TrendAnalyzer",
    "TrendSettings",
    "FormSnapshot",
    "FormTrend",
    "build_snapshots",
    "FormPredictor",
    "PredictorSettings",
    "FormPrediction",
    "TaperPlan",
    "TaperStrategy",
    "RecoveryEstimate",
    "RecommendationEngine",
    "RecommendationSettings",
    "PhaseRecommendation",
    "TrainingActivity",
    "aggregate_weekly_metrics",
]
