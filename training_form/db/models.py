"""Database models for form snapshot history."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FormSnapshotRecord(Base):
    """One day of load state and zone for an athlete."""

    __tablename__ = "form_snapshots"
    __table_args__ = (UniqueConstraint("athlete_id", "date", name="uq_form_snapshot_athlete_date"),)

    id = Column(Integer, primary_key=True)
    athlete_id = Column(String(50), nullable=False, default="default", index=True)
    date = Column(Date, nullable=False)
    training_stress = Column(Float, default=0.0)  # Daily training stress
    fitness = Column(Float, nullable=False)  # CTL
    fatigue = Column(Float, nullable=False)  # ATL
    form = Column(Float, nullable=False)  # TSB
    zone = Column(String(30), nullable=False)
    delta_training_stress = Column(Float, default=0.0)
    delta_fitness = Column(Float, default=0.0)
    delta_fatigue = Column(Float, default=0.0)
    delta_form = Column(Float, default=0.0)
    zone_changed = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<FormSnapshotRecord(athlete={self.athlete_id}, date={self.date}, form={self.form:.1f}, zone={self.zone})>"
