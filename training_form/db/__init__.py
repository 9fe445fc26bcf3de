"""Persistence for form snapshot history."""

from .database import Database
from .models import FormSnapshotRecord
from .snapshot_store import SnapshotStore

__all__ = ["Database", "FormSnapshotRecord", "SnapshotStore"]
