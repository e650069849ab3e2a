"""Audit runner — one page audit, plus an AI plan when the tier allows it."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from perfally.plan_limits import ai_plan_allowed
from perfally.planners.ai_plan import AIActionPlanner
from perfally.schemas.audit import AuditSnapshot, Strategy
from perfally.shared.pagespeed_client import PageSpeedClient

logger = logging.getLogger(__name__)


async def run_page_audit(
    url: str,
    strategy: Strategy,
    plan_tier: str,
    *,
    pagespeed: PageSpeedClient,
    planner: AIActionPlanner,
    ai_plans_used: int = 0,
) -> AuditSnapshot:
    """Audit ``url`` and return a snapshot ready to store.

    ``AuditServiceError`` from the audit propagates. The AI plan is only
    attempted when the tier's monthly quota has room; its failure leaves
    ``ai_action_plan`` empty and the report falls back to the static plan.
    """
    metrics = await pagespeed.run_audit(url, strategy)

    ai_plan = None
    if ai_plan_allowed(plan_tier, ai_plans_used):
        ai_plan = await planner.generate(url, metrics, metrics.raw_payload, plan_tier)
    else:
        logger.info("AI action plan quota exhausted for tier %s (%d used)", plan_tier, ai_plans_used)

    return AuditSnapshot.from_metrics(
        metrics,
        created_at=datetime.now(timezone.utc),
        ai_action_plan=ai_plan,
    )
