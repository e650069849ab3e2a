"""AI remediation planner — evidence-grounded action plans from a language model.

Any failure here collapses to ``None`` so the caller can fall back to the
static plan; an audit must never fail because plan generation did.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from perfally.grading import METRIC_INFO, METRIC_KEYS, format_kib, format_ms, format_optional
from perfally.planners.prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE
from perfally.schemas.audit import AuditMetrics
from perfally.schemas.config import ReportConfig
from perfally.schemas.lighthouse import PERFORMANCE, SEO, DetailItem, LighthouseAudit, LighthouseResult
from perfally.schemas.plans import AIActionItem
from perfally.shared.llm_client import CompletionClient, TokensCallback

logger = logging.getLogger(__name__)

MAX_PERFORMANCE_CHECKS = 10
MAX_SEO_CHECKS = 5
MAX_DETAIL_LINES = 4
PERFORMANCE_FAIL_BELOW = 0.9
SEO_FAIL_BELOW = 1.0

_FAST_TIERS = frozenset({"free", "starter"})

_plan_adapter = TypeAdapter(list[AIActionItem])


# ----------------------------------------------------------------------
# Evidence extraction
# ----------------------------------------------------------------------


def _failing(audits: list[LighthouseAudit], below: float, limit: int) -> list[LighthouseAudit]:
    seen: set[str] = set()
    picked: list[LighthouseAudit] = []
    for audit in audits:
        if audit.id in seen or audit.score is None or audit.score >= below:
            continue
        seen.add(audit.id)
        picked.append(audit)
    # sorted() is stable, so ties keep category order
    return sorted(picked, key=lambda a: a.score)[:limit]


def top_performance_checks(payload: LighthouseResult) -> list[LighthouseAudit]:
    return _failing(payload.audits_in(PERFORMANCE), PERFORMANCE_FAIL_BELOW, MAX_PERFORMANCE_CHECKS)


def top_seo_checks(payload: LighthouseResult) -> list[LighthouseAudit]:
    return _failing(payload.audits_in(SEO), SEO_FAIL_BELOW, MAX_SEO_CHECKS)


def _item_figures(item: DetailItem) -> list[str]:
    figures: list[str] = []
    has_savings = False
    if item.wasted_ms:
        figures.append(f"saves {format_ms(item.wasted_ms)}")
        has_savings = True
    elif item.wasted_bytes:
        figures.append(f"saves {format_kib(item.wasted_bytes)}")
        has_savings = True
    execution = item.duration if item.duration is not None else item.total
    if execution:
        figures.append(f"{format_ms(execution)} execution")
    if item.blocking_time:
        figures.append(f"{format_ms(item.blocking_time)} blocking")
    if not has_savings:
        size = item.transfer_size if item.transfer_size is not None else item.total_bytes
        if size:
            figures.append(format_kib(size))
    return figures


def detail_lines(audit: LighthouseAudit) -> list[str]:
    """Up to four ``identifier: figures`` lines for one check.

    Rows with no identifiable resource are dropped.
    """
    if audit.details is None:
        return []
    lines: list[str] = []
    for item in audit.details.items:
        identifier = item.identifier
        if not identifier:
            continue
        figures = _item_figures(item)
        lines.append(f"{identifier}: {', '.join(figures)}" if figures else identifier)
        if len(lines) == MAX_DETAIL_LINES:
            break
    return lines


def _check_heading(audit: LighthouseAudit) -> str:
    heading = f"- {audit.id} ({audit.title or audit.id}) score {audit.score:.2f}"
    if audit.display_value:
        heading += f" [{audit.display_value}]"
    return heading


def performance_evidence(payload: LighthouseResult | None) -> str:
    if payload is None:
        return "none identified"
    blocks: list[str] = []
    for audit in top_performance_checks(payload):
        block = [_check_heading(audit)]
        block.extend(f"    - {line}" for line in detail_lines(audit))
        blocks.append("\n".join(block))
    return "\n".join(blocks) if blocks else "none identified"


def seo_evidence(payload: LighthouseResult | None) -> str:
    if payload is None:
        return "none identified"
    lines = [_check_heading(audit) for audit in top_seo_checks(payload)]
    return "\n".join(lines) if lines else "none identified"


def stack_description(payload: LighthouseResult | None) -> str:
    if payload is None or not payload.stack_packs:
        return "not detected"
    return ", ".join(pack.title or pack.id for pack in payload.stack_packs)


def _score_line(label: str, score: int | None) -> str:
    shown = "N/A" if score is None else f"{score}/100"
    return f"- {label}: {shown} (target: 90+)"


def build_user_prompt(url: str, metrics: AuditMetrics, payload: LighthouseResult | None) -> str:
    scores = "\n".join([
        _score_line("Performance", metrics.perf_score),
        _score_line("SEO", metrics.seo_score),
        _score_line("Accessibility", metrics.accessibility_score),
        _score_line("Best practices", metrics.best_practices_score),
    ])
    metric_lines = []
    for key in METRIC_KEYS:
        info = METRIC_INFO[key]
        lab = format_optional(key, metrics.lab_value(key), "N/A")
        field = format_optional(key, metrics.field_value(key), "N/A")
        metric_lines.append(f"- {info.short_name} ({info.name}): {lab} | {field} (target: {info.target})")
    return USER_PROMPT_TEMPLATE.format(
        url=url,
        stack=stack_description(payload),
        scores=scores,
        metrics="\n".join(metric_lines),
        performance_evidence=performance_evidence(payload),
        seo_evidence=seo_evidence(payload),
    )


# ----------------------------------------------------------------------
# Response parsing
# ----------------------------------------------------------------------


def extract_json_array(text: str) -> list[Any] | None:
    """Return the first JSON array found in ``text``; prose around it is ignored.

    Nesting too deep for the decoder is treated as no array at all.
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, idx=start)
        except RecursionError:
            logger.warning("AI response nests JSON too deeply to parse")
            return None
        except ValueError:
            start = text.find("[", start + 1)
            continue
        if isinstance(obj, list):
            return obj
        start = text.find("[", start + 1)
    return None


def parse_action_plan(text: str) -> list[AIActionItem] | None:
    """Validated plan items, or ``None`` for an absent, empty or malformed array."""
    raw = extract_json_array(text)
    if not raw:
        return None
    try:
        return _plan_adapter.validate_python(raw)
    except ValidationError as exc:
        logger.warning("AI action plan items failed validation: %d error(s)", exc.error_count())
        return None


# ----------------------------------------------------------------------
# Planner
# ----------------------------------------------------------------------


class AIActionPlanner:
    """Generates an AI action plan for one audited page.

    ``client`` is ``None`` when no credential is configured, in which case
    :meth:`generate` returns ``None`` without any outbound call.
    """

    def __init__(self, client: CompletionClient | None, config: ReportConfig | None = None) -> None:
        self.client = client
        self.config = config or ReportConfig()

    def select_model(self, plan_tier: str) -> str:
        if plan_tier in _FAST_TIERS:
            return self.config.models.fast
        return self.config.models.quality

    async def generate(
        self,
        url: str,
        metrics: AuditMetrics,
        payload: LighthouseResult | None,
        plan_tier: str,
        *,
        on_tokens: TokensCallback | None = None,
    ) -> list[AIActionItem] | None:
        if self.client is None:
            return None

        model = self.select_model(plan_tier)
        try:
            user_message = build_user_prompt(url, metrics, payload)
            text = await self.client.simple_completion(
                model=model,
                system=SYSTEM_PROMPT,
                user_message=user_message,
                max_tokens=self.config.models.max_tokens,
                on_tokens=on_tokens,
            )
            plan = parse_action_plan(text)
        except Exception as exc:
            logger.warning("AI action plan generation failed for %s (%s): %s", url, model, exc)
            return None

        if plan is None:
            logger.warning("AI response for %s contained no usable action plan", url)
        else:
            logger.info("AI action plan for %s: %d item(s) from %s", url, len(plan), model)
        return plan


async def generate_ai_action_plan(
    url: str,
    metrics: AuditMetrics,
    payload: LighthouseResult | None,
    plan_tier: str,
    *,
    client: CompletionClient | None,
    config: ReportConfig | None = None,
) -> list[AIActionItem] | None:
    return await AIActionPlanner(client, config).generate(url, metrics, payload, plan_tier)
