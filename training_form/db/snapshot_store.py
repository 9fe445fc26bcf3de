"""Append and query form snapshot history."""

import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional

from ..analysis.trends import FormSnapshot
from ..analysis.zones import FormZone
from .database import Database
from .models import FormSnapshotRecord

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Snapshot history for one athlete, stored one row per day."""

    def __init__(self, database: Database, athlete_id: str = "default"):
        self.db = database
        self.athlete_id = athlete_id
        self.db.ensure_schema()

    def append(self, snapshot: FormSnapshot) -> None:
        """Store a snapshot, replacing any existing one for the same day."""
        self.extend([snapshot])

    def extend(self, snapshots: Iterable[FormSnapshot]) -> int:
        """Store several snapshots; returns how many were written."""
        count = 0
        with self.db.get_session() as session:
            for snapshot in snapshots:
                if snapshot.date is None:
                    raise ValueError("Snapshots must carry a date to be stored")

                record = session.query(FormSnapshotRecord).filter_by(
                    athlete_id=self.athlete_id, date=snapshot.date,
                ).first()
                if record is None:
                    record = FormSnapshotRecord(athlete_id=self.athlete_id, date=snapshot.date)
                    session.add(record)

                record.training_stress = snapshot.training_stress
                record.fitness = snapshot.fitness
                record.fatigue = snapshot.fatigue
                record.form = snapshot.form
                record.zone = snapshot.zone.value
                record.delta_training_stress = snapshot.delta_training_stress
                record.delta_fitness = snapshot.delta_fitness
                record.delta_fatigue = snapshot.delta_fatigue
                record.delta_form = snapshot.delta_form
                record.zone_changed = snapshot.zone_changed
                # Flush so a repeated date in the same batch updates this row
                session.flush()
                count += 1

        logger.debug("Stored %d snapshots for athlete %s", count, self.athlete_id)
        return count

    def query(self, start: Optional[date] = None, end: Optional[date] = None) -> List[FormSnapshot]:
        """Snapshots between two dates (inclusive), oldest first."""
        with self.db.get_session() as session:
            q = session.query(FormSnapshotRecord).filter_by(athlete_id=self.athlete_id)
            if start is not None:
                q = q.filter(FormSnapshotRecord.date >= start)
            if end is not None:
                q = q.filter(FormSnapshotRecord.date <= end)
            return [self._to_snapshot(r) for r in q.order_by(FormSnapshotRecord.date).all()]

    def latest(self) -> Optional[FormSnapshot]:
        """Most recent snapshot, or None when the history is empty."""
        with self.db.get_session() as session:
            record = (
                session.query(FormSnapshotRecord)
                .filter_by(athlete_id=self.athlete_id)
                .order_by(FormSnapshotRecord.date.desc())
                .first()
            )
            return self._to_snapshot(record) if record else None

    def recent(self, days: int, today: Optional[date] = None) -> List[FormSnapshot]:
        """Snapshots from the last ``days`` days, today included."""
        today = today or date.today()
        return self.query(start=today - timedelta(days=days - 1), end=today)

    @staticmethod
    def _to_snapshot(record: FormSnapshotRecord) -> FormSnapshot:
        return FormSnapshot(
            date=record.date,
            training_stress=record.training_stress or 0.0,
            fitness=record.fitness,
            fatigue=record.fatigue,
            form=record.form,
            zone=FormZone(record.zone),
            delta_training_stress=record.delta_training_stress or 0.0,
            delta_fitness=record.delta_fitness or 0.0,
            delta_fatigue=record.delta_fatigue or 0.0,
            delta_form=record.delta_form or 0.0,
            zone_changed=bool(record.zone_changed),
        )
