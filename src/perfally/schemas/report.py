"""Report input models — project, monitored pages and agency branding."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator

from perfally.schemas.audit import AuditSnapshot, Strategy


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    strategy: Strategy = "mobile"


class Page(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    label: str | None = None

    @property
    def display_label(self) -> str:
        """User label, else the URL path (``/`` for the root)."""
        if self.label:
            return self.label
        path = urlparse(self.url).path
        return path or "/"


class PageEntry(BaseModel):
    """One monitored page with its latest audit."""

    model_config = ConfigDict(frozen=True)

    page: Page
    audit: AuditSnapshot


class Branding(BaseModel):
    """White-label settings (top plan tier only)."""

    model_config = ConfigDict(frozen=True)

    accent_color: str | None = None
    agency_name: str | None = None
    agency_contact: str | None = None
    agency_logo_url: str | None = None

    @field_validator("accent_color", "agency_name", "agency_contact", "agency_logo_url", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("agency_logo_url")
    @classmethod
    def logo_must_be_absolute(cls, v: str | None) -> str | None:
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"agency_logo_url must be an absolute http(s) URL, got {v!r}")
        return v


class ReportRequest(BaseModel):
    """Everything needed to render a report, as loaded from a request file."""

    project: Project
    pages: list[PageEntry]
    branding: Branding | None = None

    @field_validator("pages")
    @classmethod
    def at_least_one_page(cls, v: list[PageEntry]) -> list[PageEntry]:
        if not v:
            raise ValueError("A report needs at least one page")
        return v
