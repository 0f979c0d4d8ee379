"""
User settings endpoints.

Updates merge into a single section and are validated by the settings
models; every accepted change is saved as a new settings snapshot.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from ...engine import DashboardEngine
from ...persistence import PersistenceService
from ...settings_store import SECTIONS, HomeSettings
from .. import dependencies

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["settings"])


@router.get("/settings", response_model=HomeSettings)
def get_settings(
    engine: DashboardEngine = Depends(dependencies.get_engine),
) -> HomeSettings:
    return engine.store.get()


@router.patch("/settings/{section}", response_model=HomeSettings)
def update_settings(
    section: str,
    values: Dict[str, Any] = Body(...),
    engine: DashboardEngine = Depends(dependencies.get_engine),
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> HomeSettings:
    """
    Merge ``values`` into one settings section.

    Args:
        section: One of field, space, energy, time.
        values: Partial mapping of keys to new values.

    Returns:
        The complete settings after the update.

    Raises:
        HTTPException 404: Unknown section.
        HTTPException 422: A value fails validation.

    Example:
        ```python
        # PATCH /api/settings/space
        {"indoor_target": 21.0, "override": true}
        ```
    """
    if section not in SECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown settings section '{section}'")
    try:
        settings = engine.store.update(section, values)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc
    persistence.save_settings(settings, label=f"api:{section}")
    logger.info("Settings section '%s' updated: %s", section, sorted(values))
    return settings
