"""
Natural-language advisor endpoints.

Both endpoints degrade gracefully: without a configured language model the
advisor answers with a fixed "offline" message instead of failing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...engine import DashboardEngine
from ...persistence import PersistenceService
from .. import dependencies
from ..schemas import advisor as advisor_schemas

router = APIRouter(prefix="/api/advisor", tags=["advisor"])


@router.post("/command", response_model=advisor_schemas.CommandResponse)
def run_command(
    payload: advisor_schemas.CommandRequest,
    engine: DashboardEngine = Depends(dependencies.get_engine),
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> advisor_schemas.CommandResponse:
    """
    Interpret a command and apply the whitelisted settings it proposes.

    Example:
        ```python
        # POST /api/advisor/command
        {"command": "make it warmer inside", "lang": "en"}

        # Response
        {
            "delta": {"space": {"indoor_target": 23.0}},
            "feedback": "Raising the set point; COP drops slightly.",
            "settings": {...}
        }
        ```
    """
    result = engine.handle_command(payload.command, lang=payload.lang)
    settings = engine.store.get()
    if result.delta:
        persistence.save_settings(settings, label="advisor")
    return advisor_schemas.CommandResponse(
        delta=result.delta,
        feedback=result.feedback,
        settings=settings,
    )


@router.get("/insight", response_model=advisor_schemas.InsightResponse)
def get_insight(
    lang: str = Query("en", pattern="^(en|zh)$"),
    engine: DashboardEngine = Depends(dependencies.get_engine),
) -> advisor_schemas.InsightResponse:
    return advisor_schemas.InsightResponse(
        insight=engine.insight(lang=lang),
        enabled=engine.advisor.enabled,
    )
