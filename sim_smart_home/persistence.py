"""
Snapshot persistence for settings and evaluation cycles.

Handles serialization of dataclasses and pydantic models to JSON columns
and wraps every operation in a transactional session.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, Mapping

from sqlalchemy import desc, select
from sqlalchemy.orm import Session, sessionmaker

from .db.models import CycleSnapshotRecord, SettingsSnapshotModel
from .db.session import SessionLocal


def _asdict_safe(obj: Any) -> Dict[str, Any]:
    """
    Convert dataclasses, pydantic models and mappings to plain dictionaries.

    Raises:
        TypeError: If obj type is not supported.
    """
    if obj is None:
        return {}
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    raise TypeError(f"Unsupported object type for serialization: {type(obj)!r}")


class PersistenceService:
    """
    Database persistence service for dashboard snapshots.

    All database operations use transactional sessions with automatic
    commit/rollback handling.

    Example:
        ```python
        service = PersistenceService()
        service.save_settings(store.get(), label="autosave")
        latest = service.load_latest_settings()   # dict or None
        ```
    """

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        """
        Args:
            session_factory: SQLAlchemy session factory. If None, uses the
                default SessionLocal from the db.session module.
        """
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager providing a transactional database session.

        Commits on success, rolls back on exception, always closes.
        """
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def save_settings(self, settings: Any, label: str | None = None) -> SettingsSnapshotModel:
        """Store a full copy of the settings."""
        with self.session() as session:
            record = SettingsSnapshotModel(label=label, data=_asdict_safe(settings))
            session.add(record)
            session.flush()
            return record

    def load_latest_settings(self) -> Dict[str, Any] | None:
        """Return the most recently saved settings, or None when nothing was saved."""
        with self.session() as session:
            stmt = (
                select(SettingsSnapshotModel)
                .order_by(desc(SettingsSnapshotModel.id))
                .limit(1)
            )
            record = session.execute(stmt).scalar_one_or_none()
            return dict(record.data) if record is not None else None

    def record_cycle(
        self,
        *,
        local_time: datetime,
        period: str,
        goal: str,
        stress_index: float,
        battery_soc_percent: float,
        payload: Mapping[str, Any],
    ) -> CycleSnapshotRecord:
        """
        Store the outcome of one evaluation cycle.

        Args:
            local_time: Simulated local time of the cycle.
            period: Tariff period label.
            goal: Approved strategy goal.
            stress_index: Stress index (0-1).
            battery_soc_percent: SoC after the step.
            payload: JSON-serializable dashboard snapshot.
        """
        with self.session() as session:
            record = CycleSnapshotRecord(
                local_time=local_time,
                period=period,
                goal=goal,
                stress_index=stress_index,
                battery_soc_percent=battery_soc_percent,
                payload=dict(payload),
            )
            session.add(record)
            session.flush()
            return record

    def list_cycles(self, limit: int = 50) -> list[CycleSnapshotRecord]:
        """
        Fetch the latest cycle snapshots, newest first.

        Args:
            limit: Maximum number of records to return.
        """
        with self.session() as session:
            stmt = (
                select(CycleSnapshotRecord)
                .order_by(desc(CycleSnapshotRecord.id))
                .limit(limit)
            )
            return list(session.execute(stmt).scalars().all())
