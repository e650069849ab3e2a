"""Pydantic models for remediation plans (static and AI-generated)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Impact = Literal["high", "medium", "low"]

IMPACT_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


class ActionItem(BaseModel):
    """A rule-based fix derived from a failing performance check."""

    model_config = ConfigDict(frozen=True)

    audit_id: str  # unique key into the Lighthouse audits map
    title: str
    fix: str
    impact: Impact
    savings: str | None = None  # e.g. "1.2s, 340 KiB"


class AIActionItem(BaseModel):
    """A single model-generated recommendation.

    The model is asked for camelCase ``stackTip``; both spellings load.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    action: str
    steps: list[str] = []
    why: str = ""
    difficulty: str = ""  # localized label: "Easy" | "Medium" | "Hard"
    stack_tip: str | None = Field(default=None, alias="stackTip")

    @field_validator("steps", mode="before")
    @classmethod
    def coerce_steps(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return v

    @field_validator("stack_tip", mode="before")
    @classmethod
    def blank_tip_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v
