"""Restaurant marketing benchmarks: CTR curves and per-channel rate constants.

All rates are stored as percentages (33 means 33%), matching how the
industry studies publish them. Estimators divide by 100 at the point of use.
"""

from dataclasses import dataclass


CTRCurve = tuple[tuple[int, float], ...]

# Tabulated local pack positions stop at 3; anything below the pack gets a
# token amount of visibility.
LOCAL_PACK_TAIL_CTR = 1.0

# Organic long-tail decay: max(1.5 - 0.2 * position, 0.1)
ORGANIC_DECAY_START = 1.5
ORGANIC_DECAY_STEP = 0.2
ORGANIC_CTR_FLOOR = 0.1


@dataclass(frozen=True)
class BenchmarkTable:
    # SEO
    local_pack_ctr: CTRCurve = ((1, 33.0), (2, 22.0), (3, 13.0))
    organic_ctr: CTRCurve = ((1, 18.0), (2, 7.0), (3, 3.0), (4, 2.0), (5, 1.5))
    local_pack_attribution: float = 70.0
    organic_attribution: float = 30.0
    seo_conversion_rate: float = 5.0
    seo_search_multiplier: float = 2.5  # monthly searches per transaction
    seo_revenue_share: float = 10.0

    # SMS
    sms_open_rate: float = 98.0
    sms_click_rate: float = 19.5
    sms_click_conversion: float = 30.0
    sms_campaigns_per_month: int = 4
    opt_in_share: float = 30.0  # of monthly customers

    # Email
    email_open_rate: float = 28.4
    email_click_rate: float = 4.2
    email_conversion_rate: float = 2.8
    email_campaigns_per_month: int = 4

    # Social, basic follower model
    instagram_conversion: float = 1.5
    facebook_conversion: float = 0.5
    improved_content_uplift: float = 1.25
    social_revenue_share: float = 3.0

    # Social, engagement-aware model
    social_current_conversion: float = 0.5
    engaged_conversion: float = 1.8
    standard_conversion: float = 1.2
    engagement_threshold: float = 2.5
    instagram_engagement: float = 3.1
    facebook_engagement: float = 1.3
    recent_post_window: int = 10
    paid_promotion_multiplier: float = 2.5
    inactive_page_multiplier: float = 0.5
    latent_affinity_conversion: float = 0.2
    cross_platform_synergy: float = 10.0

    # Loyalty
    loyalty_visit_increase: float = 20.0
    loyalty_check_increase: float = 20.0
    loyalty_enrollment: float = 50.0
    loyalty_visits_per_month: float = 2.0
    loyal_customer_share: float = 20.0  # of monthly transactions

    # Direct mail
    households_per_sq_mile: float = 500.0
    direct_mail_response_rate: float = 2.96
    direct_mail_repeat_rate: float = 20.0
    direct_mail_radius: float = 5.0

    # Third-party delivery
    third_party_commission: float = 22.5

    def __post_init__(self):
        for name in ("local_pack_ctr", "organic_ctr"):
            positions = [pos for pos, _ in getattr(self, name)]
            if len(positions) != len(set(positions)):
                raise ValueError(f"{name} has duplicate positions: {positions}")

    def curve(self, channel: str) -> CTRCurve:
        if channel == "local_pack":
            return self.local_pack_ctr
        if channel == "organic":
            return self.organic_ctr
        raise KeyError(f"No CTR curve for channel {channel!r}")

    def lookup(self, channel: str, position: int) -> float:
        """
        CTR (percent) for a result position on the given SERP channel.

        Tabulated positions return the study value. Everything else degrades
        to an approximation instead of failing:

        >>> BENCHMARKS.lookup("local_pack", 2)
        22.0
        >>> BENCHMARKS.lookup("local_pack", 7)
        1.0
        >>> round(BENCHMARKS.lookup("organic", 6), 2)
        0.3
        >>> BENCHMARKS.lookup("organic", 40)
        0.1
        """
        for pos, rate in self.curve(channel):
            if pos == position:
                return rate
        if channel == "local_pack":
            return LOCAL_PACK_TAIL_CTR
        return max(ORGANIC_DECAY_START - ORGANIC_DECAY_STEP * position, ORGANIC_CTR_FLOOR)

    def ctr(self, position: int, is_local_pack: bool) -> float:
        return self.lookup("local_pack" if is_local_pack else "organic", position)


BENCHMARKS = BenchmarkTable()
