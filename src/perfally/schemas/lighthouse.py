"""Typed, immutable view of the Lighthouse result embedded in a PageSpeed response.

The upstream JSON is large and loosely shaped. It is validated once here and
everything downstream (planners, findings, report) reads these models instead
of poking at nested dicts.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

PERFORMANCE = "performance"
SEO = "seo"
ACCESSIBILITY = "accessibility"
BEST_PRACTICES = "best-practices"

ALL_CATEGORIES: tuple[str, ...] = (PERFORMANCE, SEO, ACCESSIBILITY, BEST_PRACTICES)


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class DetailItem(_Payload):
    """One row of an audit's ``details.items`` table.

    Only the fields used to build evidence lines are kept.
    """

    url: str | None = None
    entity: str | None = None
    group_label: str | None = Field(default=None, alias="groupLabel")
    label: str | None = None
    wasted_ms: float | None = Field(default=None, alias="wastedMs")
    wasted_bytes: float | None = Field(default=None, alias="wastedBytes")
    duration: float | None = None
    total: float | None = None
    blocking_time: float | None = Field(default=None, alias="blockingTime")
    transfer_size: float | None = Field(default=None, alias="transferSize")
    total_bytes: float | None = Field(default=None, alias="totalBytes")

    @field_validator("entity", mode="before")
    @classmethod
    def entity_text(cls, v: object) -> object:
        # Newer Lighthouse versions emit {"type": "link", "text": ..., "url": ...}
        if isinstance(v, dict):
            return v.get("text") or v.get("url")
        return v

    @field_validator("url", "group_label", "label", mode="before")
    @classmethod
    def non_string_to_none(cls, v: object) -> object:
        # Some tables put node/source-location objects in these columns
        return v if isinstance(v, str) or v is None else None

    @field_validator(
        "wasted_ms", "wasted_bytes", "duration", "total",
        "blocking_time", "transfer_size", "total_bytes",
        mode="before",
    )
    @classmethod
    def non_numeric_to_none(cls, v: object) -> object:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v

    @property
    def identifier(self) -> str | None:
        """Resource identifier in priority order: URL, entity, group label."""
        for candidate in (self.url, self.entity, self.group_label, self.label):
            if candidate:
                return candidate
        return None


class AuditDetails(_Payload):
    type: str = ""
    items: list[DetailItem] = []
    overall_savings_ms: float | None = Field(default=None, alias="overallSavingsMs")
    overall_savings_bytes: float | None = Field(default=None, alias="overallSavingsBytes")

    @field_validator("items", mode="before")
    @classmethod
    def keep_mapping_items(cls, v: object) -> object:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]


class LighthouseAudit(_Payload):
    """A single check. ``score`` is 0–1, or ``None`` for informational checks."""

    id: str
    title: str = ""
    description: str = ""
    score: float | None = None
    numeric_value: float | None = Field(default=None, alias="numericValue")
    display_value: str | None = Field(default=None, alias="displayValue")
    details: AuditDetails | None = None

    @field_validator("score", mode="before")
    @classmethod
    def non_numeric_score_to_none(cls, v: object) -> object:
        # scoreDisplayMode "notApplicable"/"manual" may carry null or strings
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v

    @property
    def is_failing(self) -> bool:
        """Defined score below a full pass."""
        return self.score is not None and self.score < 1


class AuditRef(_Payload):
    id: str
    weight: float = 0
    group: str | None = None


class Category(_Payload):
    id: str = ""
    title: str = ""
    score: float | None = None
    audit_refs: list[AuditRef] = Field(default=[], alias="auditRefs")


class StackPack(_Payload):
    id: str = ""
    title: str = ""


class LighthouseResult(_Payload):
    lighthouse_version: str = Field(default="", alias="lighthouseVersion")
    requested_url: str = Field(default="", alias="requestedUrl")
    final_url: str = Field(default="", alias="finalUrl")
    categories: dict[str, Category] = {}
    audits: dict[str, LighthouseAudit] = {}
    stack_packs: list[StackPack] = Field(default=[], alias="stackPacks")

    @field_validator("audits", mode="before")
    @classmethod
    def fill_audit_ids(cls, v: object) -> object:
        # The audit map is keyed by id; tolerate entries that omit "id".
        if not isinstance(v, dict):
            return v
        return {
            key: ({"id": key, **entry} if isinstance(entry, dict) else entry)
            for key, entry in v.items()
        }

    def category_score(self, category: str) -> float | None:
        cat = self.categories.get(category)
        return cat.score if cat else None

    def audits_in(self, category: str) -> list[LighthouseAudit]:
        """Checks referenced by a category, in upstream order, skipping dangling refs."""
        cat = self.categories.get(category)
        if cat is None:
            return []
        return [self.audits[ref.id] for ref in cat.audit_refs if ref.id in self.audits]

    def audit_ids_in(self, category: str) -> set[str]:
        cat = self.categories.get(category)
        return {ref.id for ref in cat.audit_refs} if cat else set()

    def numeric_value(self, audit_id: str) -> float | None:
        audit = self.audits.get(audit_id)
        return audit.numeric_value if audit else None


def parse_lighthouse_result(raw: Any) -> LighthouseResult | None:
    """Validate a stored raw payload, returning ``None`` when absent or unparseable."""
    if raw is None:
        return None
    if isinstance(raw, LighthouseResult):
        return raw
    try:
        if isinstance(raw, (str, bytes)):
            return LighthouseResult.model_validate_json(raw)
        return LighthouseResult.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Discarding unparseable Lighthouse payload: %s", exc.error_count())
        return None
