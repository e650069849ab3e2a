"""Audit result models — the normalized output of one PageSpeed run and its stored form."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from perfally.schemas.lighthouse import LighthouseResult, parse_lighthouse_result
from perfally.schemas.plans import AIActionItem

logger = logging.getLogger(__name__)

Strategy = Literal["mobile", "desktop"]
Score = Annotated[int, Field(ge=0, le=100)]


class AuditMetrics(BaseModel):
    """Category scores plus lab and field metrics.

    Lab values come from the synthetic Lighthouse run; ``crux_*`` values are
    real-user 75th percentiles. Each field metric is independent of its lab
    counterpart — either, both or neither may be present.
    """

    model_config = ConfigDict(frozen=True)

    perf_score: Score
    seo_score: Score | None = None
    accessibility_score: Score | None = None
    best_practices_score: Score | None = None

    # Lab (Lighthouse)
    lcp: float | None = None
    cls: float | None = None
    inp: float | None = None  # lab runs never observe interactions
    fcp: float | None = None
    ttfb: float | None = None
    tbt: float | None = None
    speed_index: float | None = None

    # Field (CrUX, p75)
    crux_lcp: float | None = None
    crux_cls: float | None = None
    crux_inp: float | None = None
    crux_fcp: float | None = None

    def lab_value(self, key: str) -> float | None:
        return getattr(self, key, None)

    def field_value(self, key: str) -> float | None:
        """CrUX value for a core metric; TTFB has no field counterpart here."""
        return getattr(self, f"crux_{key}", None)

    def preferred_value(self, key: str) -> float | None:
        """Field value when present, else the lab value."""
        field = self.field_value(key)
        return field if field is not None else self.lab_value(key)


class NormalizedAuditMetrics(AuditMetrics):
    """Fresh result of a single audit run. Never mutated."""

    raw_payload: LighthouseResult
    tool_version: str = ""


class AuditSnapshot(AuditMetrics):
    """An audit as persisted and later fed into report generation.

    ``raw_payload`` stays opaque JSON here — stored payloads can be missing or
    from an older Lighthouse shape — and is validated on demand with
    :meth:`payload`.
    """

    raw_payload: Any = None
    tool_version: str = ""
    created_at: datetime
    ai_action_plan: list[AIActionItem] | None = None

    @field_validator("ai_action_plan", mode="wrap")
    @classmethod
    def tolerate_malformed_plan(
        cls, v: object, handler: ValidatorFunctionWrapHandler
    ) -> list[AIActionItem] | None:
        if not isinstance(v, list):
            return None
        try:
            return handler(v)
        except ValidationError as exc:
            logger.warning("Ignoring malformed stored AI action plan: %s", exc.error_count())
            return None

    @classmethod
    def from_metrics(
        cls,
        metrics: NormalizedAuditMetrics,
        *,
        created_at: datetime,
        ai_action_plan: list[AIActionItem] | None = None,
    ) -> "AuditSnapshot":
        data = metrics.model_dump(exclude={"raw_payload"})
        return cls(
            **data,
            raw_payload=metrics.raw_payload.model_dump(by_alias=True, exclude_none=True),
            created_at=created_at,
            ai_action_plan=ai_action_plan,
        )

    def payload(self) -> LighthouseResult | None:
        return parse_lighthouse_result(self.raw_payload)
