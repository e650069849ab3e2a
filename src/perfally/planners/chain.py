"""Plan-source chain — picks which remediation plan a page shows.

Sources are tried in order and the first one with items wins: the stored AI
plan, then the static rule-based plan. When neither has anything the page is
all-clear.
"""

from __future__ import annotations

from typing import Callable, Literal

from pydantic import BaseModel, ConfigDict

from perfally.planners.static_plan import get_action_plan
from perfally.schemas.audit import AuditSnapshot
from perfally.schemas.lighthouse import LighthouseResult
from perfally.schemas.plans import ActionItem, AIActionItem

PlanKind = Literal["ai", "static", "all-clear"]


class ResolvedPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: PlanKind
    ai_items: list[AIActionItem] = []
    static_items: list[ActionItem] = []

    @property
    def is_empty(self) -> bool:
        return not self.ai_items and not self.static_items


PlanSource = Callable[[AuditSnapshot, "LighthouseResult | None"], "ResolvedPlan | None"]


def stored_ai_plan(audit: AuditSnapshot, payload: LighthouseResult | None) -> ResolvedPlan | None:
    if not audit.ai_action_plan:
        return None
    return ResolvedPlan(kind="ai", ai_items=audit.ai_action_plan)


def static_plan(audit: AuditSnapshot, payload: LighthouseResult | None) -> ResolvedPlan | None:
    items = get_action_plan(payload)
    if not items:
        return None
    return ResolvedPlan(kind="static", static_items=items)


DEFAULT_SOURCES: tuple[PlanSource, ...] = (stored_ai_plan, static_plan)

ALL_CLEAR = ResolvedPlan(kind="all-clear")


def resolve_plan(
    audit: AuditSnapshot,
    payload: LighthouseResult | None,
    sources: tuple[PlanSource, ...] = DEFAULT_SOURCES,
) -> ResolvedPlan:
    for source in sources:
        plan = source(audit, payload)
        if plan is not None and not plan.is_empty:
            return plan
    return ALL_CLEAR
