"""Subscription plan tiers and what each one is entitled to."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

PlanTier = Literal["free", "starter", "pro", "agency"]

PLAN_TIERS: tuple[PlanTier, ...] = ("free", "starter", "pro", "agency")

UNLIMITED = -1


class PlanLimits(BaseModel):
    """Per-tier quotas. ``-1`` means unlimited."""

    model_config = ConfigDict(frozen=True)

    max_projects: int
    max_pages_per_project: int
    manual_runs_per_month: int
    ai_action_plans_per_month: int
    pdf_reports: bool
    branding: bool


PLAN_LIMITS: dict[str, PlanLimits] = {
    "free": PlanLimits(
        max_projects=1,
        max_pages_per_project=1,
        manual_runs_per_month=10,
        ai_action_plans_per_month=0,
        pdf_reports=False,
        branding=False,
    ),
    "starter": PlanLimits(
        max_projects=5,
        max_pages_per_project=5,
        manual_runs_per_month=UNLIMITED,
        ai_action_plans_per_month=20,
        pdf_reports=False,
        branding=False,
    ),
    "pro": PlanLimits(
        max_projects=20,
        max_pages_per_project=25,
        manual_runs_per_month=UNLIMITED,
        ai_action_plans_per_month=100,
        pdf_reports=True,
        branding=False,
    ),
    "agency": PlanLimits(
        max_projects=100,
        max_pages_per_project=UNLIMITED,
        manual_runs_per_month=UNLIMITED,
        ai_action_plans_per_month=UNLIMITED,
        pdf_reports=True,
        branding=True,
    ),
}


def get_limits(tier: str) -> PlanLimits:
    """Limits for ``tier``; unknown tiers get the free plan."""
    return PLAN_LIMITS.get(tier, PLAN_LIMITS["free"])


def within_limit(limit: int, used: int) -> bool:
    return limit == UNLIMITED or used < limit


def ai_plan_allowed(tier: str, used: int) -> bool:
    """Whether another AI action plan fits in this month's quota."""
    return within_limit(get_limits(tier).ai_action_plans_per_month, used)
