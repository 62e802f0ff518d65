"""
tests/test_estimators.py

Unit tests for the benchmark table and the per-channel estimators.

Coverage
--------
- CTR lookup: tabulated positions, local pack tail, organic decay, floor
- Benchmark table contracts (frozen, unknown channel, duplicate positions)
- Keyword SEO: positive current/potential, ordering of the breakdown
- Position fallback clamp
- SMS, email, loyalty fixed expected values
- Zero / negative / NaN inputs never produce NaN or negative revenue
- Social basic and enhanced paths
- Direct mail households and linear frequency scaling
- Third-party net of commission
"""

from __future__ import annotations

import math

import pytest

from revenue_opportunity import estimators
from revenue_opportunity.benchmarks import BENCHMARKS, BenchmarkTable
from revenue_opportunity.models import FacebookMetrics, InstagramMetrics, KeywordEntry


# ---------------------------------------------------------------------------
# Benchmark table
# ---------------------------------------------------------------------------


class TestBenchmarkTable:
    @pytest.mark.parametrize(
        "channel, position, expected",
        [
            ("local_pack", 1, 33.0),
            ("local_pack", 3, 13.0),
            ("organic", 1, 18.0),
            ("organic", 5, 1.5),
        ],
    )
    def test_tabulated_positions(self, channel: str, position: int, expected: float) -> None:
        assert BENCHMARKS.lookup(channel, position) == expected

    def test_local_pack_beyond_top_three_uses_tail_rate(self) -> None:
        assert BENCHMARKS.lookup("local_pack", 4) == 1.0
        assert BENCHMARKS.lookup("local_pack", 20) == 1.0

    def test_organic_decays_then_floors(self) -> None:
        assert BENCHMARKS.lookup("organic", 6) == pytest.approx(0.3)
        assert BENCHMARKS.lookup("organic", 7) == pytest.approx(0.1)
        assert BENCHMARKS.lookup("organic", 50) == pytest.approx(0.1)

    def test_ctr_picks_curve_by_result_type(self) -> None:
        assert BENCHMARKS.ctr(2, is_local_pack=True) == 22.0
        assert BENCHMARKS.ctr(2, is_local_pack=False) == 7.0

    def test_unknown_channel_raises(self) -> None:
        with pytest.raises(KeyError):
            BENCHMARKS.lookup("billboard", 1)

    def test_duplicate_positions_rejected(self) -> None:
        with pytest.raises(ValueError):
            BenchmarkTable(local_pack_ctr=((1, 33.0), (1, 30.0)))

    def test_is_frozen(self) -> None:
        with pytest.raises((AttributeError, TypeError)):
            BENCHMARKS.sms_open_rate = 50.0  # type: ignore[misc]


# ---------------------------------------------------------------------------
# SEO
# ---------------------------------------------------------------------------


class TestKeywordSEO:
    def test_local_pack_keyword_improves_from_four_to_one(self) -> None:
        entry = KeywordEntry("pizza delivery near me", 2000, 4, 1, True)
        row = estimators.keyword_revenue(entry, 25.0)
        # 2000 searches x 1% CTR x 5% conversion x $25
        assert row.current == pytest.approx(25.0)
        # 2000 x 33% x 5% x $25
        assert row.potential == pytest.approx(825.0)
        assert 0 < row.current < row.potential

    def test_breakdown_sorted_by_gap(self) -> None:
        small = KeywordEntry("pizza restaurant", 100, 3, 2, False)
        big = KeywordEntry("pizza near me", 2000, 3, 1, True)
        current, potential, breakdown = estimators.keyword_seo([small, big], 25.0)
        assert [row.keyword for row in breakdown] == ["pizza near me", "pizza restaurant"]
        assert current == pytest.approx(sum(row.current for row in breakdown))
        assert potential == pytest.approx(sum(row.potential for row in breakdown))

    def test_zero_volume_keyword_is_worth_nothing(self) -> None:
        row = estimators.keyword_revenue(KeywordEntry("empty", 0, 4, 1, True), 25.0)
        assert row.current == 0.0
        assert row.potential == 0.0

    def test_no_keywords(self) -> None:
        assert estimators.keyword_seo([], 25.0) == (0, 0, ())


class TestPositionFallback:
    @pytest.mark.parametrize(
        "local, organic, expected",
        [
            (4, 8, 5),
            (2, 8, 5),
            (1, 2, 2),
            (3, None, 3),
            (None, 9, 5),
            (None, None, 3),
        ],
    )
    def test_worst_known_position_clamped(self, local, organic, expected) -> None:
        assert estimators.fallback_seo_position(local, organic) == expected

    def test_increase_from_position_five_to_one(self) -> None:
        # 7500 searches x (33% - 1%) x 5% x $25
        assert estimators.position_seo_increase(7500, 5, 1, 25.0) == pytest.approx(3000.0)

    def test_already_first_has_no_increase(self) -> None:
        assert estimators.position_seo_increase(7500, 1, 1, 25.0) == 0.0


# ---------------------------------------------------------------------------
# Owned audiences
# ---------------------------------------------------------------------------


class TestSMS:
    def test_fixed_expected_value(self) -> None:
        # 500 x 98% x 19.5% x 30% x $25 x 4 campaigns
        assert estimators.sms(500, 4, 25.0) == pytest.approx(2866.5)

    @pytest.mark.parametrize("ticket, campaigns", [(25.0, 4), (500.0, 30), (0.0, 0)])
    def test_empty_list_earns_nothing(self, ticket: float, campaigns: int) -> None:
        assert estimators.sms(0, campaigns, ticket) == 0.0

    def test_offer_discount_reduces_revenue(self) -> None:
        assert estimators.sms(500, 4, 25.0, offer_discount=20) == pytest.approx(2866.5 * 0.8)


class TestEmail:
    def test_fixed_expected_value(self) -> None:
        # 1000 x 28.4% x 4.2% x 2.8% x $25 x 4 campaigns
        assert estimators.email(1000, 25.0) == pytest.approx(33.3984)

    def test_campaign_override(self) -> None:
        assert estimators.email(1000, 25.0, campaigns_per_month=8) == pytest.approx(66.7968)

    def test_empty_list(self) -> None:
        assert estimators.email(0, 25.0) == 0.0


class TestLoyalty:
    def test_fixed_expected_value(self) -> None:
        # 600 customers x 50% enrolled x 2 visits x 20% more visits x $25 x 1.2
        assert estimators.loyalty(600, 50, 25.0, 2) == pytest.approx(3600.0)

    def test_no_customers(self) -> None:
        assert estimators.loyalty(0, 50, 25.0, 2) == 0.0


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------


class TestSocial:
    def test_basic_weights_instagram_over_facebook(self) -> None:
        instagram_only = estimators.social_basic(1000, 0, 20.0, improved_content=False)
        facebook_only = estimators.social_basic(0, 1000, 20.0, improved_content=False)
        assert instagram_only == pytest.approx(300.0)
        assert facebook_only == pytest.approx(100.0)

    def test_basic_improved_content_uplift(self) -> None:
        assert estimators.social_basic(1000, 1000, 20.0) == pytest.approx(500.0)

    def test_engagement_uses_recent_posts_only(self) -> None:
        metrics = InstagramMetrics(followers=1000, posts_count=50, total_likes=500)
        # 500 likes over the 10 most recent posts = 50 per post = 5%
        assert estimators.engagement_rate(metrics) == pytest.approx(5.0)

    def test_engaged_instagram_converts_at_higher_tier(self) -> None:
        metrics = InstagramMetrics(followers=1000, posts_count=50, total_likes=500)
        current, potential = estimators.instagram_enhanced(metrics, 20.0)
        assert current == pytest.approx(100.0)
        assert potential == pytest.approx(360.0)

    def test_quiet_instagram_converts_at_standard_tier(self) -> None:
        metrics = InstagramMetrics(followers=1000, posts_count=10, total_likes=100)
        _, potential = estimators.instagram_enhanced(metrics, 20.0)
        assert potential == pytest.approx(240.0)

    def test_facebook_latent_affinity(self) -> None:
        metrics = FacebookMetrics(followers=1000, likes=1500)
        current, potential = estimators.facebook_enhanced(metrics, 20.0)
        assert current == pytest.approx(100.0)
        # 1000 x 1.2% x $20 + 500 extra likes x 0.2% x $20
        assert potential == pytest.approx(260.0)

    def test_facebook_ads_and_inactive_page(self) -> None:
        running_ads = FacebookMetrics(followers=1000, likes=0, is_running_ads=True)
        inactive = FacebookMetrics(followers=1000, likes=0, is_active_page=False)
        assert estimators.facebook_enhanced(running_ads, 20.0)[1] == pytest.approx(600.0)
        assert estimators.facebook_enhanced(inactive, 20.0)[1] == pytest.approx(120.0)

    def test_zero_followers(self) -> None:
        metrics = InstagramMetrics(followers=0, posts_count=0, total_likes=0)
        assert estimators.engagement_rate(metrics) == 0.0
        assert estimators.instagram_enhanced(metrics, 20.0) == (0.0, 0.0)
        assert estimators.social_basic(0, 0, 20.0) == 0.0

    def test_synergy(self) -> None:
        assert estimators.cross_platform_synergy(100.0) == pytest.approx(110.0)


# ---------------------------------------------------------------------------
# Direct mail & third party
# ---------------------------------------------------------------------------


class TestDirectMail:
    def test_households_in_five_mile_radius(self) -> None:
        assert estimators.direct_mail_households(5) == pytest.approx(39269.9, abs=0.1)

    def test_scales_linearly_with_frequency(self) -> None:
        once = estimators.direct_mail(5, 1, 25.0)
        assert once > 0
        assert estimators.direct_mail(5, 2, 25.0) == pytest.approx(2 * once)
        assert estimators.direct_mail(5, 4, 25.0) == pytest.approx(4 * once)

    def test_no_mailers(self) -> None:
        assert estimators.direct_mail(5, 0, 25.0) == 0.0


class TestThirdParty:
    def test_net_of_commission(self) -> None:
        assert estimators.third_party_net(300, 25.0) == pytest.approx(5812.5)

    def test_no_orders(self) -> None:
        assert estimators.third_party_net(0, 25.0) == 0.0


# ---------------------------------------------------------------------------
# Degenerate inputs
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("bad", [0, -10, float("nan"), float("inf")])
def test_degenerate_inputs_never_produce_nan_or_negative(bad: float) -> None:
    values = [
        estimators.sms(bad, 4, 25.0),
        estimators.email(bad, 25.0),
        estimators.loyalty(bad, 50, 25.0, 2),
        estimators.social_basic(bad, bad, 25.0),
        estimators.social_current(bad, 25.0),
        estimators.direct_mail(bad, 1, 25.0),
        estimators.third_party_net(bad, 25.0),
        estimators.position_seo_increase(bad, 5, 1, 25.0),
    ]
    for value in values:
        assert not math.isnan(value)
        assert value == 0.0
