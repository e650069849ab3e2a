"""PageSpeed Insights client — one call returns Lighthouse lab data and CrUX field data.

Docs: https://developers.google.com/speed/docs/insights/v5/reference/pagespeedapi/runpagespeed
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from perfally.errors import AuditServiceError
from perfally.grading import round_half_up
from perfally.schemas.audit import NormalizedAuditMetrics, Strategy
from perfally.schemas.lighthouse import (
    ACCESSIBILITY,
    ALL_CATEGORIES,
    BEST_PRACTICES,
    PERFORMANCE,
    SEO,
    LighthouseResult,
)

logger = logging.getLogger(__name__)

PSI_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
DEFAULT_TIMEOUT = 60.0

# CrUX metric id per normalized field
_CRUX_KEYS = {
    "crux_lcp": "LARGEST_CONTENTFUL_PAINT_MS",
    "crux_cls": "CUMULATIVE_LAYOUT_SHIFT_SCORE",
    "crux_inp": "INTERACTION_TO_NEXT_PAINT",
    "crux_fcp": "FIRST_CONTENTFUL_PAINT_MS",
}

# Lighthouse audit id per normalized lab field
_LAB_AUDITS = {
    "lcp": "largest-contentful-paint",
    "cls": "cumulative-layout-shift",
    "fcp": "first-contentful-paint",
    "ttfb": "server-response-time",
    "tbt": "total-blocking-time",
    "speed_index": "speed-index",
}


def _percentile(experience: Any, key: str) -> float | None:
    if not isinstance(experience, dict):
        return None
    metrics = experience.get("metrics")
    if not isinstance(metrics, dict):
        return None
    metric = metrics.get(key)
    if not isinstance(metric, dict):
        return None
    # Flat integer, not percentiles.p75
    value = metric.get("percentile")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def extract_field_metrics(data: dict[str, Any]) -> dict[str, float | None]:
    """Real-user p75 values, page-level first, origin-level as fallback.

    Page-level data only exists for pages with enough traffic; the fallback is
    decided per metric. CrUX stores CLS multiplied by 100.
    """
    page = data.get("loadingExperience")
    origin = data.get("originLoadingExperience")
    values: dict[str, float | None] = {}
    for field, key in _CRUX_KEYS.items():
        value = _percentile(page, key)
        if value is None:
            value = _percentile(origin, key)
        values[field] = value
    if values["crux_cls"] is not None:
        values["crux_cls"] = values["crux_cls"] / 100
    return values


def _category_score(lhr: LighthouseResult, category: str) -> int | None:
    score = lhr.category_score(category)
    return None if score is None else round_half_up(score * 100)


def normalize_response(data: dict[str, Any]) -> NormalizedAuditMetrics:
    """Turn a decoded PSI response body into normalized metrics.

    Raises ``AuditServiceError`` when the body carries no usable Lighthouse
    result.
    """
    raw_lhr = data.get("lighthouseResult")
    if not isinstance(raw_lhr, dict):
        raise AuditServiceError("PageSpeed response has no lighthouseResult")
    try:
        lhr = LighthouseResult.model_validate(raw_lhr)
    except ValidationError as exc:
        raise AuditServiceError(f"Malformed lighthouseResult: {exc.error_count()} error(s)") from exc

    return NormalizedAuditMetrics(
        perf_score=_category_score(lhr, PERFORMANCE) or 0,
        seo_score=_category_score(lhr, SEO),
        accessibility_score=_category_score(lhr, ACCESSIBILITY),
        best_practices_score=_category_score(lhr, BEST_PRACTICES),
        # Lighthouse can't measure INP without real interactions
        inp=None,
        **{field: lhr.numeric_value(audit_id) for field, audit_id in _LAB_AUDITS.items()},
        **extract_field_metrics(data),
        raw_payload=lhr,
        tool_version=lhr.lighthouse_version,
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return f"PageSpeed API error {response.status_code}"


class PageSpeedClient:
    """Async wrapper around the PSI ``runPagespeed`` endpoint.

    Each ``run_audit`` makes exactly one request. Responses are never cached
    and failures are never retried; the caller decides what to do with an
    ``AuditServiceError``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._http = http_client

    def _params(self, url: str, strategy: Strategy) -> list[tuple[str, str]]:
        params = [("url", url), ("strategy", strategy)]
        params.extend(("category", category) for category in ALL_CATEGORIES)
        if self._api_key:
            params.append(("key", self._api_key))
        return params

    async def _get(self, params: list[tuple[str, str]]) -> httpx.Response:
        headers = {"Cache-Control": "no-cache"}
        if self._http is not None:
            return await self._http.get(PSI_ENDPOINT, params=params, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as http:
            return await http.get(PSI_ENDPOINT, params=params, headers=headers)

    async def run_audit(self, url: str, strategy: Strategy) -> NormalizedAuditMetrics:
        """Run a fresh audit of ``url`` and return its normalized metrics."""
        logger.info("Running PageSpeed audit: %s (%s)", url, strategy)
        try:
            response = await self._get(self._params(url, strategy))
        except httpx.HTTPError as exc:
            raise AuditServiceError(f"PageSpeed request failed: {exc}") from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning("PageSpeed returned %d for %s: %s", response.status_code, url, message)
            raise AuditServiceError(message, response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise AuditServiceError("PageSpeed response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise AuditServiceError("PageSpeed response is not a JSON object")

        metrics = normalize_response(data)
        logger.info(
            "Audit complete: %s perf=%d lighthouse=%s",
            url, metrics.perf_score, metrics.tool_version or "?",
        )
        return metrics
