"""Tests for the Typer CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from perfally.cli import _snapshot_filename, app
from perfally.errors import AuditServiceError
from perfally.schemas.audit import AuditSnapshot
from perfally.shared.pagespeed_client import PageSpeedClient, normalize_response

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PAGESPEED_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def request_file(tmp_path: Path, snapshot: AuditSnapshot) -> Path:
    (tmp_path / "home.json").write_text(snapshot.model_dump_json())
    path = tmp_path / "report.yml"
    path.write_text(
        "project:\n  name: Acme\n  url: https://example.com\n"
        "pages:\n  - url: https://example.com/\n    label: Home\n    audit: home.json\n"
        "branding:\n  agency_name: Pixel\n"
    )
    return path


class TestValidate:
    def test_valid_config(self, tmp_config: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(tmp_config)])
        assert result.exit_code == 0
        assert "Config is valid" in result.output
        assert "desktop" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        cfg = tmp_path / "bad.yml"
        cfg.write_text("strategy: tablet\n")
        result = runner.invoke(app, ["validate", "--config", str(cfg)])
        assert result.exit_code == 1
        assert "Config validation failed" in result.output


class TestAudit:
    def test_writes_snapshots(self, tmp_path: Path, psi_response: dict, monkeypatch: pytest.MonkeyPatch) -> None:
        run_audit = AsyncMock(return_value=normalize_response(psi_response))
        monkeypatch.setattr(PageSpeedClient, "run_audit", run_audit)
        out = tmp_path / "audits"

        result = runner.invoke(app, [
            "audit", "--url", "https://example.com/", "--url", "https://example.com/pricing",
            "--plan", "pro", "--dry-run", "--output", str(out),
        ])

        assert result.exit_code == 0, result.output
        assert run_audit.await_count == 2
        home = AuditSnapshot.model_validate_json((out / "example-com.json").read_text())
        assert home.perf_score == 63
        assert home.ai_action_plan is not None and len(home.ai_action_plan) == 4
        assert (out / "example-com-pricing.json").exists()

    def test_free_tier_gets_no_ai_plan(self, tmp_path: Path, psi_response: dict, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(PageSpeedClient, "run_audit", AsyncMock(return_value=normalize_response(psi_response)))
        out = tmp_path / "audits"

        result = runner.invoke(app, ["audit", "--url", "https://example.com/", "--dry-run", "--output", str(out)])

        assert result.exit_code == 0, result.output
        saved = json.loads((out / "example-com.json").read_text())
        assert saved["ai_action_plan"] is None

    def test_failure_exits_nonzero(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            PageSpeedClient, "run_audit", AsyncMock(side_effect=AuditServiceError("Quota exceeded", 429)),
        )
        result = runner.invoke(app, ["audit", "--url", "https://example.com/", "--output", str(tmp_path)])
        assert result.exit_code == 1

    def test_unknown_tier(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["audit", "--url", "https://example.com/", "--plan", "gold"])
        assert result.exit_code == 1
        assert "Unknown plan tier" in result.output

    def test_snapshot_filename(self) -> None:
        assert _snapshot_filename("https://example.com/") == "example-com.json"
        assert _snapshot_filename("https://Example.com/Blog/Post?x=1") == "example-com-blog-post.json"
        assert _snapshot_filename("not a url") == "not-a-url.json"


class TestPlan:
    def test_static_plan(self, tmp_path: Path, snapshot: AuditSnapshot) -> None:
        path = tmp_path / "home.json"
        path.write_text(snapshot.model_dump_json())
        result = runner.invoke(app, ["plan", "--audit", str(path)])
        assert result.exit_code == 0
        assert "Site health:" in result.output
        assert "Action Plan" in result.output
        assert "(AI)" not in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["plan", "--audit", str(tmp_path / "nope.json")])
        assert result.exit_code == 1


class TestReport:
    def test_writes_pdf_and_markdown(self, tmp_path: Path, request_file: Path) -> None:
        pdf = tmp_path / "out" / "acme.pdf"
        md = tmp_path / "acme.md"
        result = runner.invoke(app, [
            "report", "--request", str(request_file), "--output", str(pdf), "--markdown", str(md),
        ])
        assert result.exit_code == 0, result.output
        assert pdf.read_bytes().startswith(b"%PDF")
        assert md.read_text().startswith("# Performance Report: Acme")
        # Branding needs the agency plan
        assert "Branding ignored" in result.output

    def test_agency_keeps_branding(self, tmp_path: Path, request_file: Path) -> None:
        result = runner.invoke(app, [
            "report", "--request", str(request_file), "--output", str(tmp_path / "r.pdf"), "--plan", "agency",
        ])
        assert result.exit_code == 0, result.output
        assert "Branding ignored" not in result.output

    @pytest.mark.parametrize("tier", ["free", "starter"])
    def test_tier_without_pdf(self, tmp_path: Path, request_file: Path, tier: str) -> None:
        output = tmp_path / "r.pdf"
        result = runner.invoke(app, ["report", "--request", str(request_file), "--output", str(output), "--plan", tier])
        assert result.exit_code == 1
        assert not output.exists()

    def test_invalid_request(self, tmp_path: Path) -> None:
        bad = tmp_path / "report.yml"
        bad.write_text("project:\n  name: Acme\n  url: https://example.com\npages: []\n")
        result = runner.invoke(app, ["report", "--request", str(bad), "--output", str(tmp_path / "r.pdf")])
        assert result.exit_code == 1
