"""Markdown report builder — the PDF report's content as a plain Markdown document."""

from __future__ import annotations

from datetime import datetime

from perfally.grading import GRADE_LABELS, METRIC_INFO, METRIC_KEYS, format_optional, grade_metric, grade_score, site_health
from perfally.output.findings import collect_findings, split_findings
from perfally.planners.chain import resolve_plan
from perfally.schemas.report import PageEntry, Project

_GRADE_ICONS = {"good": "🟢", "needs-improvement": "🟡", "poor": "🔴"}


def _score_cell(score: int | None) -> str:
    if score is None:
        return "—"
    return f"{_GRADE_ICONS[grade_score(score)]} {score}"


def _metric_cell(key: str, value: float | None) -> str:
    if value is None:
        return "—"
    return f"{_GRADE_ICONS[grade_metric(key, value)]} {format_optional(key, value)}"


def render_markdown_report(
    project: Project,
    pages: list[PageEntry],
    *,
    generated_at: datetime | None = None,
) -> str:
    """Render the audits of ``pages`` into a Markdown string."""
    sections: list[str] = []

    sections.append(f"# Performance Report: {project.name}\n")
    sections.append(f"{project.url} ({project.strategy})\n")
    if generated_at:
        sections.append(f"*Generated: {generated_at:%Y-%m-%d %H:%M}*\n")

    if len(pages) > 1:
        sections.append("## Pages at a Glance\n")
        sections.append("| Page | Health | Perf | SEO | A11y | BP | LCP |")
        sections.append("|------|--------|------|-----|------|----|-----|")
        for entry in pages:
            a = entry.audit
            health = site_health(a.perf_score, a.seo_score, a.accessibility_score)
            sections.append(
                f"| {entry.page.display_label} | {_score_cell(health)} | {_score_cell(a.perf_score)} "
                f"| {_score_cell(a.seo_score)} | {_score_cell(a.accessibility_score)} | {_score_cell(a.best_practices_score)} "
                f"| {_metric_cell('lcp', a.preferred_value('lcp'))} |"
            )
        sections.append("")

    for entry in pages:
        audit = entry.audit
        payload = audit.payload()
        health = site_health(audit.perf_score, audit.seo_score, audit.accessibility_score)

        sections.append(f"## {entry.page.display_label}\n")
        sections.append(f"{entry.page.url}, audited {audit.created_at:%Y-%m-%d}\n")
        sections.append(f"**Site health:** {health}/100 ({GRADE_LABELS[grade_score(health)]})\n")
        sections.append(
            f"Performance {_score_cell(audit.perf_score)} · SEO {_score_cell(audit.seo_score)} · "
            f"Accessibility {_score_cell(audit.accessibility_score)} · "
            f"Best practices {_score_cell(audit.best_practices_score)}\n"
        )

        sections.append("### Core Web Vitals\n")
        sections.append("| Metric | Lab | Real users (P75) | Target |")
        sections.append("|--------|-----|------------------|--------|")
        for key in METRIC_KEYS:
            info = METRIC_INFO[key]
            sections.append(
                f"| {info.short_name} | {_metric_cell(key, audit.lab_value(key))} "
                f"| {_metric_cell(key, audit.field_value(key))} | {info.target} |"
            )
        sections.append("")

        plan = resolve_plan(audit, payload)
        sections.append("### Action Plan (AI)\n" if plan.kind == "ai" else "### Action Plan\n")
        if plan.kind == "all-clear":
            sections.append("No critical issues found.\n")
        for i, item in enumerate(plan.ai_items, 1):
            difficulty = f" *({item.difficulty})*" if item.difficulty else ""
            sections.append(f"{i}. **{item.title}**{difficulty}: {item.action}")
            for step in item.steps:
                sections.append(f"   - {step}")
            if item.stack_tip:
                sections.append(f"   - Tip: {item.stack_tip}")
        for i, action in enumerate(plan.static_items, 1):
            savings = f" (saves {action.savings})" if action.savings else ""
            sections.append(f"{i}. **{action.title}** [{action.impact}]{savings}: {action.fix}")
        sections.append("")

        if payload is not None and payload.audits:
            seo, accessibility = split_findings(collect_findings(payload))
            sections.append("### SEO & Accessibility\n")
            if not seo and not accessibility:
                sections.append("No SEO or accessibility issues found.\n")
            for heading, group in (("SEO", seo), ("Accessibility", accessibility)):
                if group:
                    sections.append(f"**{heading}**\n")
                    for finding in group:
                        level = "critical" if finding.critical else "moderate"
                        sections.append(f"- [{level}] {finding.label}")
                    sections.append("")

    return "\n".join(sections)
