"""Shared test fixtures."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from perfally.schemas.audit import AuditSnapshot
from perfally.schemas.lighthouse import LighthouseResult
from perfally.shared.llm_client import LLMClient

FIXED_TIME = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

_PERFORMANCE_REFS = [
    "largest-contentful-paint",
    "cumulative-layout-shift",
    "first-contentful-paint",
    "server-response-time",
    "total-blocking-time",
    "speed-index",
    "uses-long-cache-ttl",
    "render-blocking-resources",
    "unused-javascript",
    "bootup-time",
    "font-display",
]

LIGHTHOUSE_RESULT: dict = {
    "lighthouseVersion": "12.2.1",
    "requestedUrl": "https://example.com/",
    "finalUrl": "https://example.com/",
    "categories": {
        "performance": {
            "id": "performance",
            "title": "Performance",
            "score": 0.625,
            "auditRefs": [{"id": audit_id, "weight": 1} for audit_id in _PERFORMANCE_REFS],
        },
        "seo": {
            "id": "seo",
            "title": "SEO",
            "score": 0.91,
            "auditRefs": [{"id": "meta-description"}, {"id": "document-title"}, {"id": "image-alt"}],
        },
        "accessibility": {
            "id": "accessibility",
            "title": "Accessibility",
            "score": 0.78,
            "auditRefs": [{"id": "image-alt"}, {"id": "color-contrast"}, {"id": "label"}],
        },
        "best-practices": {"id": "best-practices", "title": "Best Practices", "score": 1, "auditRefs": []},
    },
    "audits": {
        "largest-contentful-paint": {
            "id": "largest-contentful-paint", "title": "Largest Contentful Paint",
            "score": 0.4, "numericValue": 3120.5, "displayValue": "3.1 s",
        },
        "cumulative-layout-shift": {
            "id": "cumulative-layout-shift", "title": "Cumulative Layout Shift",
            "score": 0.9, "numericValue": 0.08,
        },
        "first-contentful-paint": {
            "id": "first-contentful-paint", "title": "First Contentful Paint",
            "score": 0.95, "numericValue": 1650,
        },
        "server-response-time": {
            "id": "server-response-time", "title": "Initial server response time was short",
            "score": 1, "numericValue": 420,
        },
        "total-blocking-time": {
            "id": "total-blocking-time", "title": "Total Blocking Time",
            "score": 0.6, "numericValue": 310,
        },
        "speed-index": {"id": "speed-index", "title": "Speed Index", "score": 0.7, "numericValue": 4100},
        "uses-long-cache-ttl": {
            "id": "uses-long-cache-ttl", "title": "Serve static assets with an efficient cache policy",
            "score": 0.6,
        },
        "render-blocking-resources": {
            "id": "render-blocking-resources",
            "title": "Eliminate render-blocking resources",
            "score": 0.3,
            "details": {
                "type": "opportunity",
                "overallSavingsMs": 1200,
                "overallSavingsBytes": 348160,
                "items": [
                    {"url": "https://example.com/style.css", "wastedMs": 780, "totalBytes": 40960},
                    {"url": "https://example.com/app.js", "wastedMs": 420},
                ],
            },
        },
        "unused-javascript": {
            "id": "unused-javascript",
            "title": "Reduce unused JavaScript",
            "score": 0.5,
            "details": {
                "type": "opportunity",
                "overallSavingsBytes": 204800,
                "items": [
                    {"url": "https://cdn.example.net/widget.js", "wastedBytes": 102400, "totalBytes": 153600},
                ],
            },
        },
        "bootup-time": {
            "id": "bootup-time",
            "title": "Reduce JavaScript execution time",
            "score": 0.45,
            "details": {
                "type": "table",
                "items": [
                    {"url": "https://example.com/app.js", "total": 1830.4, "scripting": 1500},
                    {"total": 55.0},
                    {"url": "https://cdn.example.net/widget.js", "total": 640},
                ],
            },
        },
        "font-display": {"id": "font-display", "title": "All text remains visible", "score": 1},
        "meta-description": {"id": "meta-description", "title": "Document does not have a meta description", "score": 0},
        "document-title": {"id": "document-title", "title": "Document has a title element", "score": 1},
        "image-alt": {"id": "image-alt", "title": "Image elements do not have [alt] attributes", "score": 0.5},
        "color-contrast": {"id": "color-contrast", "title": "Insufficient color contrast", "score": 0},
        "label": {"id": "label", "title": "Form elements have labels", "score": None},
    },
    "stackPacks": [{"id": "wordpress", "title": "WordPress"}],
}

PSI_RESPONSE: dict = {
    "id": "https://example.com/",
    "lighthouseResult": LIGHTHOUSE_RESULT,
    "loadingExperience": {
        "metrics": {
            "LARGEST_CONTENTFUL_PAINT_MS": {"percentile": 2300, "category": "FAST"},
            "CUMULATIVE_LAYOUT_SHIFT_SCORE": {"percentile": 5, "category": "FAST"},
        },
    },
    "originLoadingExperience": {
        "metrics": {
            "LARGEST_CONTENTFUL_PAINT_MS": {"percentile": 2900},
            "CUMULATIVE_LAYOUT_SHIFT_SCORE": {"percentile": 12},
            "INTERACTION_TO_NEXT_PAINT": {"percentile": 180},
            "FIRST_CONTENTFUL_PAINT_MS": {"percentile": 1500},
        },
    },
}


@pytest.fixture
def fixed_time() -> datetime:
    return FIXED_TIME


@pytest.fixture
def lighthouse_raw() -> dict:
    return copy.deepcopy(LIGHTHOUSE_RESULT)


@pytest.fixture
def psi_response() -> dict:
    return copy.deepcopy(PSI_RESPONSE)


@pytest.fixture
def payload(lighthouse_raw: dict) -> LighthouseResult:
    return LighthouseResult.model_validate(lighthouse_raw)


@pytest.fixture
def snapshot(lighthouse_raw: dict) -> AuditSnapshot:
    """A stored audit matching the sample payload, with no AI plan."""
    return AuditSnapshot(
        perf_score=63,
        seo_score=91,
        accessibility_score=78,
        best_practices_score=100,
        lcp=3120.5,
        cls=0.08,
        fcp=1650,
        ttfb=420,
        tbt=310,
        speed_index=4100,
        crux_lcp=2300,
        crux_cls=0.05,
        crux_inp=180,
        crux_fcp=1500,
        raw_payload=lighthouse_raw,
        tool_version="12.2.1",
        created_at=FIXED_TIME,
    )


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    cfg = tmp_path / "perfally.yml"
    cfg.write_text(
        """\
strategy: desktop
psi_timeout: 30
models:
  fast: "small-model"
  quality: "big-model"
output_directory: "{out}"
""".format(out=str(tmp_path / "output"))
    )
    return cfg


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Return an LLMClient with a mocked OpenAI SDK underneath."""
    client = LLMClient.__new__(LLMClient)
    client._client = AsyncMock()
    return client
