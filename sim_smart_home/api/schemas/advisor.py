"""
Natural-language advisor schemas.
"""

from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

from ...settings_store import HomeSettings


class CommandRequest(BaseModel):
    command: str = Field(..., min_length=1, description="Free-text instruction or question")
    lang: Literal["en", "zh"] = "en"


class CommandResponse(BaseModel):
    """
    Advisor answer to a command.

    Attributes:
        delta: Settings changes that were applied, by section (None if none).
        feedback: One-sentence explanation from the advisor.
        settings: Settings after the changes.
    """
    delta: Dict[str, Dict[str, Any]] | None
    feedback: str
    settings: HomeSettings


class InsightResponse(BaseModel):
    insight: str
    enabled: bool
