"""Tests for plan tier limits."""

from __future__ import annotations

import pytest

from perfally.plan_limits import PLAN_TIERS, UNLIMITED, ai_plan_allowed, get_limits, within_limit


class TestPlanLimits:
    def test_every_tier_defined(self) -> None:
        for tier in PLAN_TIERS:
            assert get_limits(tier) is not None

    def test_unknown_tier_is_free(self) -> None:
        assert get_limits("enterprise") == get_limits("free")

    def test_tier_features(self) -> None:
        assert not get_limits("free").pdf_reports
        assert not get_limits("starter").pdf_reports
        assert get_limits("pro").pdf_reports
        assert not get_limits("pro").branding
        assert get_limits("agency").branding
        assert get_limits("agency").max_pages_per_project == UNLIMITED

    def test_within_limit(self) -> None:
        assert within_limit(5, 4)
        assert not within_limit(5, 5)
        assert within_limit(UNLIMITED, 10_000)
        assert not within_limit(0, 0)

    @pytest.mark.parametrize(
        "tier,used,allowed",
        [
            ("free", 0, False),
            ("starter", 19, True),
            ("starter", 20, False),
            ("pro", 99, True),
            ("pro", 100, False),
            ("agency", 5000, True),
        ],
    )
    def test_ai_plan_allowed(self, tier: str, used: int, allowed: bool) -> None:
        assert ai_plan_allowed(tier, used) is allowed
