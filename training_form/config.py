"""Configuration management for the training form engine."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Database (snapshot history)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./training_form.db")

    # Load model time constants
    FITNESS_TIME_CONSTANT: float = float(os.getenv("FITNESS_TIME_CONSTANT", "42"))  # days
    FATIGUE_TIME_CONSTANT: float = float(os.getenv("FATIGUE_TIME_CONSTANT", "7"))  # days
    MAX_DAILY_LOAD: float = float(os.getenv("MAX_DAILY_LOAD", "1000"))  # Max for ultra-endurance events

    # Form zone boundaries (lower bound of the zone above)
    ZONE_OVERREACHED_MAX: float = float(os.getenv("ZONE_OVERREACHED_MAX", "-35"))
    ZONE_FATIGUED_MAX: float = float(os.getenv("ZONE_FATIGUED_MAX", "-25"))
    ZONE_PRODUCTIVE_MAX: float = float(os.getenv("ZONE_PRODUCTIVE_MAX", "-10"))
    ZONE_MAINTENANCE_MAX: float = float(os.getenv("ZONE_MAINTENANCE_MAX", "5"))
    ZONE_FRESH_MAX: float = float(os.getenv("ZONE_FRESH_MAX", "20"))
    RACE_FORM_CEILING: float = float(os.getenv("RACE_FORM_CEILING", "35"))

    # Fitness-level zone adjustment
    LOW_FITNESS_LIMIT: float = float(os.getenv("LOW_FITNESS_LIMIT", "40"))
    HIGH_FITNESS_LIMIT: float = float(os.getenv("HIGH_FITNESS_LIMIT", "80"))
    LOW_FITNESS_FACTOR: float = float(os.getenv("LOW_FITNESS_FACTOR", "0.8"))
    MODERATE_FITNESS_FACTOR: float = float(os.getenv("MODERATE_FITNESS_FACTOR", "1.0"))
    HIGH_FITNESS_FACTOR: float = float(os.getenv("HIGH_FITNESS_FACTOR", "1.2"))

    # Trend analysis
    TREND_THRESHOLD_PERCENT: float = float(os.getenv("TREND_THRESHOLD_PERCENT", "5"))
    REVERSAL_MIN_CHANGE: float = float(os.getenv("REVERSAL_MIN_CHANGE", "2"))

    # Phase detection
    MIN_PHASE_WEEKS: int = int(os.getenv("MIN_PHASE_WEEKS", "3"))
    VOLUME_LOW_HOURS: float = float(os.getenv("VOLUME_LOW_HOURS", "3"))
    VOLUME_MEDIUM_HOURS: float = float(os.getenv("VOLUME_MEDIUM_HOURS", "6"))
    VOLUME_HIGH_HOURS: float = float(os.getenv("VOLUME_HIGH_HOURS", "10"))
    LOW_WEEKLY_TSS: float = float(os.getenv("LOW_WEEKLY_TSS", "150"))
    PHASE_TREND_THRESHOLD_PERCENT: float = float(os.getenv("PHASE_TREND_THRESHOLD_PERCENT", "10"))

    # Prediction and taper planning
    PREDICTION_CONFIDENCE_DECAY: float = float(os.getenv("PREDICTION_CONFIDENCE_DECAY", "0.95"))  # per day
    MIN_PREDICTION_CONFIDENCE: float = float(os.getenv("MIN_PREDICTION_CONFIDENCE", "30"))
    TAPER_DURATION: int = int(os.getenv("TAPER_DURATION", "14"))
    TAPER_TARGET_FORM: float = float(os.getenv("TAPER_TARGET_FORM", "17"))
    TAPER_VOLUME_REDUCTION: float = float(os.getenv("TAPER_VOLUME_REDUCTION", "50"))  # percent
    TAPER_BASELINE_FACTOR: float = float(os.getenv("TAPER_BASELINE_FACTOR", "0.9"))
    REST_RECOVERY_HORIZON: int = int(os.getenv("REST_RECOVERY_HORIZON", "60"))  # days
    ACTIVE_RECOVERY_HORIZON: int = int(os.getenv("ACTIVE_RECOVERY_HORIZON", "30"))  # days
    ACTIVE_RECOVERY_FACTOR: float = float(os.getenv("ACTIVE_RECOVERY_FACTOR", "0.3"))

    # Phase recommendations
    MAX_PHASE_WEEKS: int = int(os.getenv("MAX_PHASE_WEEKS", "12"))
    RECOVERY_FORM_THRESHOLD: float = float(os.getenv("RECOVERY_FORM_THRESHOLD", "-25"))
    OVERREACHING_DAYS_LIMIT: int = int(os.getenv("OVERREACHING_DAYS_LIMIT", "7"))
    ZONE_CHURN_LIMIT: int = int(os.getenv("ZONE_CHURN_LIMIT", "4"))

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


config = Config()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging for scripts that embed the engine."""
    log_level = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("training_form").setLevel(log_level)
