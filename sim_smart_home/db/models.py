"""
SQLAlchemy models for dashboard snapshot persistence.

Only simple snapshots are stored: the user settings object as saved after a
change, and one summary row per evaluation cycle.
"""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, func

from .session import Base


class TimestampMixin:
    """
    Mixin adding automatic created_at and updated_at timestamps.

    Notes:
        - Timestamps managed by database (server_default, onupdate)
        - created_at immutable after insert
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SettingsSnapshotModel(Base, TimestampMixin):
    """
    One saved copy of the user settings.

    Attributes:
        id: Primary key (auto-increment).
        label: Optional free-text label ("autosave", "cli", ...).
        data: Full settings object with field/space/energy/time sections (JSON).
    """
    __tablename__ = "settings_snapshots"

    id = Column(Integer, primary_key=True)
    label = Column(String(255), nullable=True)
    data = Column(JSON, nullable=False)


class CycleSnapshotRecord(Base, TimestampMixin):
    """
    Summary of one evaluation cycle.

    Attributes:
        id: Primary key (auto-increment).
        local_time: Simulated local wall-clock time of the cycle.
        period: Tariff period (peak/shoulder/offpeak).
        goal: Strategy goal approved by the arbiter.
        stress_index: Net-load stress (0-1).
        battery_soc_percent: Battery SoC after the step.
        payload: Complete dashboard snapshot (JSON).
    """
    __tablename__ = "cycle_snapshots"

    id = Column(Integer, primary_key=True)
    local_time = Column(DateTime(timezone=True), nullable=False)
    period = Column(String(32), nullable=False)
    goal = Column(String(32), nullable=False)
    stress_index = Column(Float, nullable=False)
    battery_soc_percent = Column(Float, nullable=False)
    payload = Column(JSON, nullable=False)
