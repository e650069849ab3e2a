"""PDF report renderer — project cover, then summary, metrics, plan and findings per page.

Built with reportlab platypus on the standard A4 page. Output is produced with
``invariant=1`` so the same input and ``generated_at`` always yield the same
bytes.
"""

from __future__ import annotations

import functools
import io
import logging
from datetime import datetime, timezone
from typing import Literal, NamedTuple
from xml.sax.saxutils import escape

import httpx
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import StyleSheet1
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdfcanvas
from reportlab.platypus import (
    Flowable,
    Image,
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from perfally.grading import (
    GRADE_LABELS,
    METRIC_INFO,
    METRIC_KEYS,
    format_ms,
    format_optional,
    grade_metric,
    grade_score,
    site_health,
)
from perfally.output.findings import Finding, collect_findings, split_findings
from perfally.output.styles import (
    BODY_FONT,
    DIFFICULTY_GRADES,
    MUTED,
    PANEL,
    RULE,
    build_styles,
    grade_fill,
    grade_ink,
    hex_of,
    resolve_accent,
)
from perfally.planners.chain import resolve_plan
from perfally.schemas.audit import AuditSnapshot
from perfally.schemas.config import ReportConfig
from perfally.schemas.lighthouse import LighthouseResult
from perfally.schemas.report import Branding, PageEntry, Project

logger = logging.getLogger(__name__)

MARGIN = 18 * mm
CONTENT_WIDTH = A4[0] - 2 * MARGIN
ACCENT_BAR = 6
LOGO_MAX_WIDTH = 40 * mm
LOGO_MAX_HEIGHT = 16 * mm
LOGO_TIMEOUT = 10.0

SectionKind = Literal["project-cover", "summary", "metrics", "action-plan", "findings"]


class SectionSpec(NamedTuple):
    kind: SectionKind
    page_index: int | None = None


# ----------------------------------------------------------------------
# Layout
# ----------------------------------------------------------------------


def _has_findings_data(payload: LighthouseResult | None) -> bool:
    return payload is not None and bool(payload.audits)


def _layout(pages: list[PageEntry], payloads: list[LighthouseResult | None]) -> list[SectionSpec]:
    sections: list[SectionSpec] = []
    if len(pages) != 1:
        sections.append(SectionSpec("project-cover"))
    for index, entry in enumerate(pages):
        sections.append(SectionSpec("summary", index))
        sections.append(SectionSpec("metrics", index))
        sections.append(SectionSpec("action-plan", index))
        if _has_findings_data(payloads[index]):
            sections.append(SectionSpec("findings", index))
        else:
            logger.warning("No usable Lighthouse payload for %s; skipping findings", entry.page.url)
    return sections


def plan_sections(pages: list[PageEntry]) -> list[SectionSpec]:
    """Ordered sections the report will contain for ``pages``.

    Any page count other than one puts a single project cover up front, so an
    empty project still yields a cover-only report. A page whose raw
    payload is missing or unusable gets no findings section.
    """
    return _layout(pages, [entry.audit.payload() for entry in pages])


# ----------------------------------------------------------------------
# Canvas: accent bar and "page N / total" footer on every page
# ----------------------------------------------------------------------


class NumberedCanvas(pdfcanvas.Canvas):
    """Defers page output until the total page count is known."""

    def __init__(self, *args, footer_label: str = "PerfAlly", accent: colors.Color | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._page_states: list[dict] = []
        self.footer_label = footer_label
        self.accent = accent or resolve_accent(None)

    def showPage(self):
        self._page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._page_states)
        for state in self._page_states:
            self.__dict__.update(state)
            self._draw_chrome(total)
            super().showPage()
        super().save()

    def _draw_chrome(self, total: int) -> None:
        width, height = self._pagesize
        self.saveState()
        self.setFillColor(self.accent)
        self.rect(0, height - ACCENT_BAR, width, ACCENT_BAR, stroke=0, fill=1)
        self.setStrokeColor(RULE)
        self.line(MARGIN, 14 * mm, width - MARGIN, 14 * mm)
        self.setFont(BODY_FONT, 8)
        self.setFillColor(MUTED)
        self.drawString(MARGIN, 10 * mm, self.footer_label)
        self.drawRightString(width - MARGIN, 10 * mm, f"page {self._pageNumber} / {total}")
        self.restoreState()


# ----------------------------------------------------------------------
# Branding
# ----------------------------------------------------------------------


class _Logo:
    """Decoded logo bytes; a fresh flowable is made for each placement."""

    def __init__(self, data: bytes, width: float, height: float) -> None:
        self.data = data
        self.width = width
        self.height = height

    def flowable(self) -> Image:
        image = Image(io.BytesIO(self.data), width=self.width, height=self.height)
        image.hAlign = "LEFT"
        return image


def load_logo(url: str, http_client: httpx.Client | None = None) -> _Logo | None:
    """Fetch and decode the agency logo; ``None`` on any failure."""
    try:
        if http_client is not None:
            response = http_client.get(url, timeout=LOGO_TIMEOUT)
        else:
            response = httpx.get(url, timeout=LOGO_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
        data = response.content
        reader = ImageReader(io.BytesIO(data))
        width, height = reader.getSize()
        # getSize reads only the header; force a full decode
        reader.getRGBData()
    except Exception as exc:
        logger.warning("Could not load agency logo %s, omitting it: %s", url, exc)
        return None
    if not width or not height:
        return None
    scale = min(LOGO_MAX_WIDTH / width, LOGO_MAX_HEIGHT / height, 1.0)
    return _Logo(data, width * scale, height * scale)


class _Brand:
    def __init__(self, name: str, contact: str, accent: colors.Color, logo: _Logo | None) -> None:
        self.name = name
        self.contact = contact
        self.accent = accent
        self.logo = logo


def _resolve_brand(
    branding: Branding | None, config: ReportConfig, http_client: httpx.Client | None
) -> _Brand:
    defaults = config.brand
    default_accent = resolve_accent(defaults.accent_color)
    if branding is None:
        return _Brand(defaults.name, defaults.contact, default_accent, None)
    logo = load_logo(branding.agency_logo_url, http_client) if branding.agency_logo_url else None
    return _Brand(
        name=branding.agency_name or defaults.name,
        contact=branding.agency_contact or defaults.contact,
        accent=resolve_accent(branding.accent_color, hex_of(default_accent)),
        logo=logo,
    )


# ----------------------------------------------------------------------
# Small building blocks
# ----------------------------------------------------------------------


def _text(value: str) -> str:
    return escape(value)


def _colored(text: str, color: colors.Color) -> str:
    return f'<font color="{hex_of(color)}">{text}</font>'


def _score_grade(score: int | None) -> str | None:
    return None if score is None else grade_score(score)


def _score_text(score: int | None) -> str:
    return "—" if score is None else str(score)


def _metric_grade(key: str, value: float | None) -> str | None:
    return None if value is None else grade_metric(key, value)


def _grade_label(grade: str | None) -> str:
    return GRADE_LABELS[grade] if grade else "Not measured"


def _format_date(value: datetime) -> str:
    return value.strftime("%d %B %Y")


def _section_title(text: str, styles: StyleSheet1) -> Paragraph:
    return Paragraph(_text(text), styles["SectionTitle"])


def _page_badge(label: str | None, styles: StyleSheet1) -> list[Flowable]:
    if label is None:
        return []
    return [
        Paragraph("PAGE", styles["Badge"]),
        Paragraph(_text(label), styles["H3"]),
        Spacer(1, 4 * mm),
    ]


def _callout(title: str, body: str, grade: str, styles: StyleSheet1) -> Table:
    table = Table(
        [[Paragraph(_colored(f"<b>{_text(title)}</b>", grade_ink(grade)), styles["Body"])],
         [Paragraph(_text(body), styles["Small"])]],
        colWidths=[CONTENT_WIDTH],
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), grade_fill(grade)),
        ("BOX", (0, 0), (-1, -1), 0.75, grade_ink(grade)),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, 0), 8),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 8),
    ]))
    return table


def _grid_style(header_fill: colors.Color) -> TableStyle:
    return TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), header_fill),
        ("LINEBELOW", (0, 0), (-1, -1), 0.5, RULE),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ])


def _header_row(labels: list[str], styles: StyleSheet1) -> list[Paragraph]:
    return [Paragraph(f"<b>{_text(label)}</b>", styles["Cell"]) for label in labels]


# ----------------------------------------------------------------------
# Sections
# ----------------------------------------------------------------------


def _project_cover(
    project: Project,
    pages: list[PageEntry],
    brand: _Brand,
    styles: StyleSheet1,
    generated_at: datetime,
) -> list[Flowable]:
    story: list[Flowable] = []
    if brand.logo:
        story += [brand.logo.flowable(), Spacer(1, 6 * mm)]
    story += [
        Paragraph(_text(project.name), styles["CoverTitle"]),
        Paragraph(_text(project.url), styles["CoverUrl"]),
        Paragraph(
            _text(f"{project.strategy.capitalize()} performance report · {len(pages)} pages"),
            styles["Body"],
        ),
        Paragraph(_text(f"Generated {_format_date(generated_at)}"), styles["Muted"]),
        Spacer(1, 8 * mm),
        _section_title("Pages at a glance", styles),
    ]

    rows: list[list[Paragraph]] = [
        _header_row(["Page", "Health", "Perf", "SEO", "A11y", "BP", "LCP"], styles)
    ]
    for entry in pages:
        audit = entry.audit
        health = site_health(audit.perf_score, audit.seo_score, audit.accessibility_score)
        lcp = audit.preferred_value("lcp")
        cells = [
            (str(health), grade_score(health)),
            (_score_text(audit.perf_score), _score_grade(audit.perf_score)),
            (_score_text(audit.seo_score), _score_grade(audit.seo_score)),
            (_score_text(audit.accessibility_score), _score_grade(audit.accessibility_score)),
            (_score_text(audit.best_practices_score), _score_grade(audit.best_practices_score)),
            (format_optional("lcp", lcp), _metric_grade("lcp", lcp)),
        ]
        row = [Paragraph(_text(entry.page.display_label), styles["Cell"])]
        row += [Paragraph(_colored(f"<b>{_text(text)}</b>", grade_ink(grade)), styles["Cell"]) for text, grade in cells]
        rows.append(row)

    if pages:
        table = Table(rows, colWidths=[CONTENT_WIDTH - 6 * 20 * mm] + [20 * mm] * 6, repeatRows=1)
        table.setStyle(_grid_style(PANEL))
        story.append(table)
    else:
        story.append(Paragraph("No audited pages yet.", styles["Body"]))
    story.append(Spacer(1, 6 * mm))
    story.append(Paragraph(_text(f"Prepared by {brand.name} · {brand.contact}"), styles["Muted"]))
    return story


def _score_card(label: str, score: int | None, styles: StyleSheet1) -> list[Paragraph]:
    grade = _score_grade(score)
    return [
        Paragraph(_colored(_score_text(score), grade_ink(grade)), styles["CardValue"]),
        Paragraph(_text(label), styles["CardLabel"]),
    ]


def _summary(
    project: Project,
    entry: PageEntry,
    brand: _Brand,
    styles: StyleSheet1,
    generated_at: datetime,
    page_label: str | None,
) -> list[Flowable]:
    audit = entry.audit
    story: list[Flowable] = []
    if brand.logo:
        story += [brand.logo.flowable(), Spacer(1, 6 * mm)]
    story += _page_badge(page_label, styles)
    story += [
        Paragraph(_text(project.name), styles["CoverTitle"]),
        Paragraph(_text(entry.page.url), styles["CoverUrl"]),
        Paragraph(
            _text(
                f"{project.strategy.capitalize()} audit · audited {_format_date(audit.created_at)}"
                f" · generated {_format_date(generated_at)}"
            ),
            styles["Muted"],
        ),
        Spacer(1, 8 * mm),
    ]

    health = site_health(audit.perf_score, audit.seo_score, audit.accessibility_score)
    health_grade = grade_score(health)
    gauge = Table(
        [[Paragraph(_colored(str(health), grade_ink(health_grade)), styles["GaugeNumber"])],
         [Paragraph("Site health", styles["CardLabel"])],
         [Paragraph(_colored(GRADE_LABELS[health_grade], grade_ink(health_grade)), styles["CardLabel"])]],
        colWidths=[50 * mm],
    )
    gauge.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), grade_fill(health_grade)),
        ("BOX", (0, 0), (-1, -1), 1.5, grade_ink(health_grade)),
        ("TOPPADDING", (0, 0), (-1, 0), 10),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 10),
    ]))
    gauge.hAlign = "LEFT"
    story += [gauge, Spacer(1, 3 * mm)]
    story.append(Paragraph(
        _text("Performance 40% · SEO 30% · Accessibility 30%"), styles["Muted"],
    ))
    story.append(Spacer(1, 6 * mm))

    card_scores = [
        ("Performance", audit.perf_score),
        ("SEO", audit.seo_score),
        ("Accessibility", audit.accessibility_score),
        ("Best practices", audit.best_practices_score),
    ]
    cards = Table(
        [[_score_card(label, score, styles) for label, score in card_scores]],
        colWidths=[CONTENT_WIDTH / 4] * 4,
    )
    card_style = [("VALIGN", (0, 0), (-1, -1), "MIDDLE"), ("TOPPADDING", (0, 0), (-1, -1), 8),
                  ("BOTTOMPADDING", (0, 0), (-1, -1), 8)]
    for col, (_, score) in enumerate(card_scores):
        card_style.append(("BACKGROUND", (col, 0), (col, 0), grade_fill(_score_grade(score))))
        card_style.append(("BOX", (col, 0), (col, 0), 2, colors.white))
    cards.setStyle(TableStyle(card_style))
    story += [cards, Spacer(1, 8 * mm), _section_title("Core Web Vitals", styles)]

    rows: list[list[Paragraph]] = [_header_row(["Metric", "Value", "Rating"], styles)]
    for key in METRIC_KEYS:
        info = METRIC_INFO[key]
        value = audit.preferred_value(key)
        grade = _metric_grade(key, value)
        rows.append([
            Paragraph(_text(f"{info.short_name} · {info.name}"), styles["Cell"]),
            Paragraph(_colored(f"<b>{_text(format_optional(key, value))}</b>", grade_ink(grade)), styles["Cell"]),
            Paragraph(_colored(_text(_grade_label(grade)), grade_ink(grade)), styles["Cell"]),
        ])
    table = Table(rows, colWidths=[CONTENT_WIDTH * 0.55, CONTENT_WIDTH * 0.2, CONTENT_WIDTH * 0.25])
    table.setStyle(_grid_style(PANEL))
    story.append(table)
    story.append(Spacer(1, 3 * mm))
    story.append(Paragraph(
        _text("Real-user (field) values are shown when available, lab values otherwise."),
        styles["Muted"],
    ))
    return story


def _metrics_detail(audit: AuditSnapshot, styles: StyleSheet1, page_label: str | None) -> list[Flowable]:
    story: list[Flowable] = _page_badge(page_label, styles)
    story.append(_section_title("Metrics in detail", styles))

    rows: list[list[Paragraph]] = [_header_row(["Metric", "Lab", "Real users (P75)", "Target", "Rating"], styles)]
    for key in METRIC_KEYS:
        info = METRIC_INFO[key]
        lab = audit.lab_value(key)
        field = audit.field_value(key)
        grade = _metric_grade(key, audit.preferred_value(key))
        rows.append([
            Paragraph(f"<b>{_text(info.short_name)}</b>", styles["Cell"]),
            Paragraph(_colored(_text(format_optional(key, lab)), grade_ink(_metric_grade(key, lab))), styles["Cell"]),
            Paragraph(_colored(_text(format_optional(key, field)), grade_ink(_metric_grade(key, field))), styles["Cell"]),
            Paragraph(_text(info.target), styles["Cell"]),
            Paragraph(_colored(_text(_grade_label(grade)), grade_ink(grade)), styles["Cell"]),
        ])
    widths = [0.14, 0.18, 0.24, 0.2, 0.24]
    table = Table(rows, colWidths=[CONTENT_WIDTH * w for w in widths], repeatRows=1)
    table.setStyle(_grid_style(PANEL))
    story += [table, Spacer(1, 6 * mm)]

    for key in METRIC_KEYS:
        info = METRIC_INFO[key]
        story.append(Paragraph(f"<b>{_text(info.short_name)} · {_text(info.name)}</b>", styles["H3"]))
        story.append(Paragraph(_text(info.what), styles["Small"]))

    extras = []
    if audit.tbt is not None:
        extras.append(f"Total Blocking Time {format_ms(audit.tbt)}")
    if audit.speed_index is not None:
        extras.append(f"Speed Index {format_ms(audit.speed_index)}")
    if extras:
        story += [Spacer(1, 4 * mm), Paragraph(_text("Other lab measurements: " + " · ".join(extras)), styles["Muted"])]
    if audit.tool_version:
        story.append(Paragraph(_text(f"Lighthouse {audit.tool_version}"), styles["Muted"]))
    return story


def _action_plan(
    audit: AuditSnapshot,
    payload: LighthouseResult | None,
    styles: StyleSheet1,
    page_label: str | None,
) -> list[Flowable]:
    plan = resolve_plan(audit, payload)
    story: list[Flowable] = _page_badge(page_label, styles)
    story.append(_section_title("Action Plan (AI)" if plan.kind == "ai" else "Action Plan", styles))

    if plan.kind == "all-clear":
        story.append(_callout(
            "No critical issues found",
            "This page passed all the performance checks we have fixes for.",
            "good",
            styles,
        ))
        return story

    for number, item in enumerate(plan.ai_items, 1):
        grade = DIFFICULTY_GRADES.get(item.difficulty)
        block: list[Flowable] = [Paragraph(
            f"<b>{number}. {_text(item.title)}</b>"
            + (f"  {_colored(_text(item.difficulty), grade_ink(grade))}" if item.difficulty else ""),
            styles["H3"],
        )]
        block.append(Paragraph(_text(item.action), styles["Body"]))
        for step_number, step in enumerate(item.steps, 1):
            block.append(Paragraph(f"{step_number}. {_text(step)}", styles["Small"]))
        if item.why:
            block.append(Paragraph(f"<i>{_text(item.why)}</i>", styles["Muted"]))
        if item.stack_tip:
            block.append(Paragraph(f"<b>Tip:</b> {_text(item.stack_tip)}", styles["Small"]))
        block.append(Spacer(1, 4 * mm))
        story.append(KeepTogether(block))

    for number, action in enumerate(plan.static_items, 1):
        block = [
            Paragraph(
                f"<b>{number}. {_text(action.title)}</b>  "
                + _colored(_text(f"{action.impact} impact"), MUTED),
                styles["H3"],
            ),
            Paragraph(_text(action.fix), styles["Body"]),
        ]
        if action.savings:
            block.append(Paragraph(_text(f"Potential savings: {action.savings}"), styles["Muted"]))
        block.append(Spacer(1, 4 * mm))
        story.append(KeepTogether(block))
    return story


def _finding_rows(findings: list[Finding], styles: StyleSheet1) -> Table:
    rows = []
    style = [("VALIGN", (0, 0), (-1, -1), "MIDDLE"), ("LINEBELOW", (0, 0), (-1, -1), 0.5, RULE)]
    for row, finding in enumerate(findings):
        grade = "poor" if finding.critical else "needs-improvement"
        rows.append([
            "",
            Paragraph(_text(finding.label), styles["Cell"]),
            Paragraph(_colored(_text("Critical" if finding.critical else "Moderate"), grade_ink(grade)), styles["Cell"]),
        ])
        style.append(("BACKGROUND", (0, row), (0, row), grade_ink(grade)))
    table = Table(rows, colWidths=[3 * mm, CONTENT_WIDTH - 28 * mm, 25 * mm])
    table.setStyle(TableStyle(style))
    return table


def _findings(payload: LighthouseResult, styles: StyleSheet1, page_label: str | None) -> list[Flowable]:
    story: list[Flowable] = _page_badge(page_label, styles)
    story.append(_section_title("SEO & Accessibility", styles))
    findings = collect_findings(payload)
    if not findings:
        story.append(_callout("All clear", "No SEO or accessibility issues found.", "good", styles))
        return story

    seo, accessibility = split_findings(findings)
    for heading, group in (("SEO", seo), ("Accessibility", accessibility)):
        if not group:
            continue
        noun = "issue" if len(group) == 1 else "issues"
        story.append(Paragraph(_text(f"{heading} ({len(group)} {noun})"), styles["H3"]))
        story.append(_finding_rows(group, styles))
        story.append(Spacer(1, 5 * mm))
    return story


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------


def render_report(
    project: Project,
    pages: list[PageEntry],
    branding: Branding | None = None,
    *,
    config: ReportConfig | None = None,
    generated_at: datetime | None = None,
    http_client: httpx.Client | None = None,
) -> bytes:
    """Render the full report and return the PDF bytes.

    An empty ``pages`` list renders the project cover alone.
    """
    config = config or ReportConfig()
    generated_at = generated_at or datetime.now(timezone.utc)
    brand = _resolve_brand(branding, config, http_client)
    styles = build_styles(brand.accent)

    payloads = [entry.audit.payload() for entry in pages]
    multi_page = len(pages) > 1

    story: list[Flowable] = []
    for section in _layout(pages, payloads):
        if story:
            story.append(PageBreak())
        if section.kind == "project-cover":
            story += _project_cover(project, pages, brand, styles, generated_at)
            continue
        entry = pages[section.page_index]
        payload = payloads[section.page_index]
        page_label = entry.page.display_label if multi_page else None
        if section.kind == "summary":
            story += _summary(project, entry, brand, styles, generated_at, page_label)
        elif section.kind == "metrics":
            story += _metrics_detail(entry.audit, styles, page_label)
        elif section.kind == "action-plan":
            story += _action_plan(entry.audit, payload, styles, page_label)
        elif section.kind == "findings":
            story += _findings(payload, styles, page_label)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=16 * mm,
        bottomMargin=20 * mm,
        title=f"Performance report: {project.name}",
        author=brand.name,
        subject="Core Web Vitals report",
        creator=config.brand.name,
        invariant=1,
    )
    doc.build(
        story,
        canvasmaker=functools.partial(NumberedCanvas, footer_label=brand.name, accent=brand.accent),
    )
    logger.info("Rendered report for %s (%d page(s))", project.name, len(pages))
    return buffer.getvalue()
