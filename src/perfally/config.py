"""Loaders — perfally.yml config, report requests and stored audit snapshots."""

from pathlib import Path

import yaml

from perfally.schemas.audit import AuditSnapshot
from perfally.schemas.config import ReportConfig
from perfally.schemas.report import ReportRequest

_SECRET_KEYS = ("pagespeed_api_key", "openai_api_key")


def load_config(path: str | Path) -> ReportConfig:
    """Load and validate a config file.

    Raises ``FileNotFoundError`` if the path doesn't exist, ``ValueError`` if
    the file is not a YAML mapping and ``pydantic.ValidationError`` if the
    content is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = yaml.safe_load(path.read_text())
    # An empty file loads as None; every field has a default.
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    for key in _SECRET_KEYS:
        if key in raw:
            raise ValueError(f"{key} must be set in the environment, not in {path.name}")

    # Sections left with only commented-out entries load as None.
    for key in ("models", "brand"):
        if key in raw and raw[key] is None:
            del raw[key]

    return ReportConfig(**raw)


def load_snapshot(path: str | Path) -> AuditSnapshot:
    """Load an audit snapshot JSON file written by ``perfally audit``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audit file not found: {path}")
    return AuditSnapshot.model_validate_json(path.read_text())


def load_report_request(path: str | Path) -> ReportRequest:
    """Load a report request (YAML) describing a project and its pages.

    Each page's ``audit`` is either an inline snapshot mapping or a path to a
    snapshot JSON file, relative to the request file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Report request not found: {path}")

    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict):
        raise ValueError(f"Report request must be a YAML mapping, got {type(raw).__name__}")

    pages = raw.get("pages") or []
    if not isinstance(pages, list):
        raise ValueError("'pages' must be a list")

    entries = []
    for item in pages:
        if not isinstance(item, dict):
            raise ValueError(f"Each page must be a mapping, got {type(item).__name__}")
        audit = item.get("audit")
        if isinstance(audit, str):
            audit = load_snapshot(path.parent / audit)
        page = {key: item[key] for key in ("url", "label") if key in item}
        entries.append({"page": page, "audit": audit})

    return ReportRequest(
        project=raw.get("project"),
        pages=entries,
        branding=raw.get("branding"),
    )
