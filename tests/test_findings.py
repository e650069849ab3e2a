"""Tests for SEO and accessibility finding collection."""

from __future__ import annotations

from perfally.output.findings import MAX_FINDINGS, collect_findings, split_findings
from perfally.schemas.lighthouse import LighthouseResult


class TestCollectFindings:
    def test_sample_payload(self, payload: LighthouseResult) -> None:
        findings = collect_findings(payload)
        assert [(f.id, f.is_seo, f.critical) for f in findings] == [
            ("meta-description", True, True),
            ("image-alt", True, False),
            ("color-contrast", False, True),
        ]

    def test_labels(self, payload: LighthouseResult) -> None:
        labels = {f.id: f.label for f in collect_findings(payload)}
        assert labels["meta-description"] == "Meta description missing"
        # No friendly label: falls back to the Lighthouse title
        assert labels["color-contrast"] == "Insufficient color contrast"

    def test_shared_check_listed_once_as_seo(self, payload: LighthouseResult) -> None:
        findings = collect_findings(payload)
        assert [f.id for f in findings].count("image-alt") == 1
        seo, a11y = split_findings(findings)
        assert [f.id for f in seo] == ["meta-description", "image-alt"]
        assert [f.id for f in a11y] == ["color-contrast"]

    def test_capped(self) -> None:
        ids = [f"a11y-{i}" for i in range(20)]
        payload = LighthouseResult.model_validate({
            "categories": {"accessibility": {"auditRefs": [{"id": i} for i in ids]}},
            "audits": {i: {"score": 0} for i in ids},
        })
        findings = collect_findings(payload)
        assert len(findings) == MAX_FINDINGS
        assert findings[-1].id == ids[MAX_FINDINGS - 1]

    def test_nothing_failing(self) -> None:
        payload = LighthouseResult.model_validate({
            "categories": {"seo": {"auditRefs": [{"id": "document-title"}, {"id": "missing"}]}},
            "audits": {"document-title": {"score": 1}},
        })
        assert collect_findings(payload) == []
