"""Tests for the PageSpeed Insights client — httpx.MockTransport stands in for the API."""

from __future__ import annotations

import httpx
import pytest

from perfally.errors import AuditServiceError, PerfAllyError
from perfally.shared.pagespeed_client import PSI_ENDPOINT, PageSpeedClient, extract_field_metrics


def _client(handler, api_key: str | None = "test-key") -> PageSpeedClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PageSpeedClient(api_key, http_client=http, timeout=5)


class TestRequest:
    @pytest.mark.asyncio
    async def test_query_parameters(self, psi_response: dict) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=psi_response)

        await _client(handler).run_audit("https://example.com/", "mobile")

        assert len(seen) == 1
        request = seen[0]
        assert str(request.url).startswith(PSI_ENDPOINT)
        params = request.url.params
        assert params["url"] == "https://example.com/"
        assert params["strategy"] == "mobile"
        assert params.get_list("category") == ["performance", "seo", "accessibility", "best-practices"]
        assert params["key"] == "test-key"
        assert request.headers["cache-control"] == "no-cache"

    @pytest.mark.asyncio
    async def test_no_key_param_without_credential(self, psi_response: dict) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=psi_response)

        await _client(handler, api_key=None).run_audit("https://example.com/", "desktop")
        assert "key" not in seen[0].url.params
        assert seen[0].url.params["strategy"] == "desktop"


class TestNormalization:
    @pytest.mark.asyncio
    async def test_scores_and_lab_metrics(self, psi_response: dict) -> None:
        client = _client(lambda request: httpx.Response(200, json=psi_response))
        metrics = await client.run_audit("https://example.com/", "mobile")

        assert metrics.perf_score == 63  # 62.5 rounds half up
        assert metrics.seo_score == 91
        assert metrics.accessibility_score == 78
        assert metrics.best_practices_score == 100
        assert metrics.lcp == 3120.5
        assert metrics.cls == 0.08
        assert metrics.fcp == 1650
        assert metrics.ttfb == 420
        assert metrics.tbt == 310
        assert metrics.speed_index == 4100
        assert metrics.inp is None
        assert metrics.tool_version == "12.2.1"
        assert "render-blocking-resources" in metrics.raw_payload.audits

    @pytest.mark.asyncio
    async def test_field_metrics_prefer_page_then_origin(self, psi_response: dict) -> None:
        client = _client(lambda request: httpx.Response(200, json=psi_response))
        metrics = await client.run_audit("https://example.com/", "mobile")

        assert metrics.crux_lcp == 2300  # page-level
        assert metrics.crux_cls == pytest.approx(0.05)  # page-level, divided by 100
        assert metrics.crux_inp == 180  # origin fallback
        assert metrics.crux_fcp == 1500  # origin fallback

    def test_no_field_data(self) -> None:
        values = extract_field_metrics({})
        assert values == {"crux_lcp": None, "crux_cls": None, "crux_inp": None, "crux_fcp": None}

    @pytest.mark.asyncio
    async def test_missing_category_is_none(self, psi_response: dict) -> None:
        del psi_response["lighthouseResult"]["categories"]["seo"]
        psi_response["lighthouseResult"]["categories"]["accessibility"]["score"] = None
        client = _client(lambda request: httpx.Response(200, json=psi_response))
        metrics = await client.run_audit("https://example.com/", "mobile")

        assert metrics.seo_score is None
        assert metrics.accessibility_score is None
        assert metrics.perf_score == 63

    @pytest.mark.asyncio
    async def test_missing_performance_score_is_zero(self, psi_response: dict) -> None:
        psi_response["lighthouseResult"]["categories"]["performance"]["score"] = None
        client = _client(lambda request: httpx.Response(200, json=psi_response))
        metrics = await client.run_audit("https://example.com/", "mobile")
        assert metrics.perf_score == 0

    @pytest.mark.asyncio
    async def test_missing_lab_audit_is_none(self, psi_response: dict) -> None:
        del psi_response["lighthouseResult"]["audits"]["server-response-time"]
        client = _client(lambda request: httpx.Response(200, json=psi_response))
        metrics = await client.run_audit("https://example.com/", "mobile")
        assert metrics.ttfb is None


class TestErrors:
    @pytest.mark.asyncio
    async def test_upstream_message_is_used(self) -> None:
        body = {"error": {"code": 400, "message": "Lighthouse returned error: NO_FCP"}}
        client = _client(lambda request: httpx.Response(400, json=body))

        with pytest.raises(AuditServiceError) as exc_info:
            await client.run_audit("https://example.com/", "mobile")

        assert exc_info.value.message == "Lighthouse returned error: NO_FCP"
        assert exc_info.value.status_code == 400
        assert isinstance(exc_info.value, PerfAllyError)

    @pytest.mark.asyncio
    async def test_message_synthesized_from_status(self) -> None:
        client = _client(lambda request: httpx.Response(500, text="<html>oops</html>"))

        with pytest.raises(AuditServiceError) as exc_info:
            await client.run_audit("https://example.com/", "mobile")

        assert str(exc_info.value) == "PageSpeed API error 500"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        client = _client(lambda request: httpx.Response(429, json={}))

        with pytest.raises(AuditServiceError) as exc_info:
            await client.run_audit("https://example.com/", "mobile")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_transport_failure_has_no_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AuditServiceError) as exc_info:
            await _client(handler).run_audit("https://example.com/", "mobile")
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_body_without_lighthouse_result(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"id": "x"}))
        with pytest.raises(AuditServiceError, match="lighthouseResult"):
            await client.run_audit("https://example.com/", "mobile")

    @pytest.mark.asyncio
    async def test_body_not_json(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(AuditServiceError, match="not valid JSON"):
            await client.run_audit("https://example.com/", "mobile")
