"""
Evaluation cycle endpoints.

- GET /dashboard: Latest snapshot (runs a first cycle when none exists yet)
- POST /cycle: Run a cycle now
- GET /cycles: Stored cycle summaries, newest first
- GET /logs: Recent entries of the in-memory event log
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ...engine import DashboardEngine
from ...logging_setup import get_ring_buffer
from ...persistence import PersistenceService
from .. import dependencies
from ..schemas import dashboard as dash_schemas

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/dashboard", response_model=dash_schemas.DashboardResponse)
def get_dashboard(
    engine: DashboardEngine = Depends(dependencies.get_engine),
) -> dash_schemas.DashboardResponse:
    """
    Return the most recent dashboard snapshot.

    Raises:
        HTTPException 409: If the first cycle is requested while another is running.
    """
    snapshot = engine.latest or engine.run_cycle()
    if snapshot is None:
        raise HTTPException(status_code=409, detail="Evaluation cycle already in progress")
    return dash_schemas.DashboardResponse.model_validate(snapshot.as_dict())


@router.post("/cycle", response_model=dash_schemas.DashboardResponse)
def run_cycle(
    engine: DashboardEngine = Depends(dependencies.get_engine),
) -> dash_schemas.DashboardResponse:
    """
    Run one evaluation cycle immediately.

    Raises:
        HTTPException 409: If a cycle is already in progress (the trigger is dropped).
    """
    snapshot = engine.run_cycle()
    if snapshot is None:
        raise HTTPException(status_code=409, detail="Evaluation cycle already in progress")
    return dash_schemas.DashboardResponse.model_validate(snapshot.as_dict())


@router.get("/cycles", response_model=list[dash_schemas.CycleRecordResponse])
def list_cycles(
    limit: int = Query(50, ge=1, le=1000),
    include_payload: bool = False,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> list[dash_schemas.CycleRecordResponse]:
    records = persistence.list_cycles(limit=limit)
    responses = [dash_schemas.CycleRecordResponse.model_validate(record) for record in records]
    if not include_payload:
        responses = [response.model_copy(update={"payload": None}) for response in responses]
    return responses


@router.get("/logs", response_model=list[dash_schemas.LogEntry])
def get_logs(limit: int = Query(100, ge=1, le=500)) -> list[dash_schemas.LogEntry]:
    return [dash_schemas.LogEntry(**entry) for entry in get_ring_buffer().get_logs(limit)]
