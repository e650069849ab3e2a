"""SEO and accessibility findings for the report."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from perfally.schemas.lighthouse import ACCESSIBILITY, SEO, LighthouseResult

MAX_FINDINGS = 15

# Friendlier titles for common SEO checks; anything else uses the Lighthouse title.
SEO_AUDIT_LABELS: dict[str, str] = {
    "document-title": "Page title missing",
    "meta-description": "Meta description missing",
    "hreflang": "Invalid hreflang attributes",
    "canonical": "Invalid canonical link",
    "robots-txt": "robots.txt has errors",
    "link-text": "Links with generic text",
    "crawlable-anchors": "Links that can't be crawled",
    "is-crawlable": "Page blocked from indexing",
    "tap-targets": "Tap targets too small",
    "font-size": "Text too small to read",
    "viewport": "Viewport not configured",
    "structured-data": "Structured data errors",
    "http-status-code": "Page returns an error status",
    "image-alt": "Images without alt text",
}


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    score: float
    is_seo: bool

    @property
    def critical(self) -> bool:
        """A score of exactly 0 is critical; any other failing score is moderate."""
        return self.score == 0


def collect_findings(payload: LighthouseResult) -> list[Finding]:
    """Failing SEO checks followed by failing accessibility checks.

    A check referenced by both categories is listed once, as SEO. Only checks
    with a defined score below 1 count, capped at fifteen.
    """
    seo_ids = payload.audit_ids_in(SEO)
    refs: list[str] = []
    for category in (SEO, ACCESSIBILITY):
        cat = payload.categories.get(category)
        if cat is not None:
            refs.extend(ref.id for ref in cat.audit_refs)

    seen: set[str] = set()
    findings: list[Finding] = []
    for audit_id in refs:
        if audit_id in seen:
            continue
        seen.add(audit_id)
        audit = payload.audits.get(audit_id)
        if audit is None or not audit.is_failing:
            continue
        findings.append(Finding(
            id=audit_id,
            label=SEO_AUDIT_LABELS.get(audit_id) or audit.title or audit_id,
            score=audit.score,
            is_seo=audit_id in seo_ids,
        ))
        if len(findings) == MAX_FINDINGS:
            break
    return findings


def split_findings(findings: list[Finding]) -> tuple[list[Finding], list[Finding]]:
    """``(seo, accessibility)`` groups, each in collection order."""
    return [f for f in findings if f.is_seo], [f for f in findings if not f.is_seo]
