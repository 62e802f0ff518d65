"""Per-channel monthly revenue estimators.

Each function is pure: inputs + benchmark table in, dollars out. None of
them read another channel's result, so they can run in any order.
Zero (or negative) list sizes, follower counts and volumes produce 0.0.
"""

import math

from .benchmarks import BENCHMARKS, BenchmarkTable
from .models import FacebookMetrics, InstagramMetrics, KeywordEntry, KeywordRevenue


def _pct(rate: float) -> float:
    return rate / 100


def _positive(value: float) -> float:
    """Clamp non-finite and negative inputs to zero."""
    if value is None or not math.isfinite(value) or value <= 0:
        return 0.0
    return float(value)


# ---------------------------------------------------------------------------
# SEO
# ---------------------------------------------------------------------------

def keyword_revenue(
    keyword: KeywordEntry,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> KeywordRevenue:
    """Current and target-position revenue for a single keyword."""
    volume = _positive(keyword.search_volume)
    ticket = _positive(avg_ticket)
    conversion = _pct(benchmarks.seo_conversion_rate)

    def revenue_at(position: int) -> float:
        clicks = volume * benchmarks.ctr(position, keyword.is_local_pack) / 100
        return clicks * conversion * ticket

    return KeywordRevenue(
        keyword=keyword.keyword,
        search_volume=keyword.search_volume,
        current_position=keyword.current_position,
        target_position=keyword.target_position,
        current=revenue_at(keyword.current_position),
        potential=revenue_at(keyword.target_position),
    )


def keyword_seo(
    keywords: list[KeywordEntry] | tuple[KeywordEntry, ...],
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> tuple[float, float, tuple[KeywordRevenue, ...]]:
    """
    Keyword-level SEO revenue.

    Returns:
        (current, potential, breakdown) where breakdown is sorted by gap,
        biggest opportunity first.
    """
    rows = [keyword_revenue(kw, avg_ticket, benchmarks) for kw in keywords]
    current = sum(row.current for row in rows)
    potential = sum(row.potential for row in rows)
    breakdown = tuple(sorted(rows, key=lambda row: row.gap, reverse=True))
    return current, potential, breakdown


def fallback_seo_position(
    local_pack_position: int | None,
    organic_position: int | None,
) -> int:
    """
    Single aggregate position for the no-keyword SEO path.

    Takes the worse of the known positions. Anything outside the top 3 is
    treated as position 5; no known position is treated as 3. A strong
    local pack rank does not hide a weak organic one, so local pack #2 with
    organic #8 clamps to 5 rather than staying at 2.

    >>> fallback_seo_position(4, 8)
    5
    >>> fallback_seo_position(2, 8)
    5
    >>> fallback_seo_position(2, None)
    2
    >>> fallback_seo_position(None, None)
    3
    """
    known = [pos for pos in (local_pack_position, organic_position) if pos]
    if not known:
        return 3
    worst = max(known)
    return 5 if worst > 3 else worst


def position_seo_increase(
    monthly_searches: float,
    current_position: int,
    target_position: int,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Revenue gained by moving from current to target local pack position."""
    searches = _positive(monthly_searches)
    current_ctr = benchmarks.lookup("local_pack", current_position)
    target_ctr = benchmarks.lookup("local_pack", target_position)
    additional_visits = searches * _pct(target_ctr) - searches * _pct(current_ctr)
    conversions = additional_visits * _pct(benchmarks.seo_conversion_rate)
    return conversions * _positive(avg_ticket)


# ---------------------------------------------------------------------------
# Owned audiences
# ---------------------------------------------------------------------------

def sms(
    list_size: float,
    campaigns_per_month: float,
    avg_ticket: float,
    offer_discount: float = 0.0,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """open × click × purchase × ticket × campaigns. No list, no revenue."""
    size = _positive(list_size)
    if size == 0:
        return 0.0
    opens = size * _pct(benchmarks.sms_open_rate)
    clicks = opens * _pct(benchmarks.sms_click_rate)
    conversions = clicks * _pct(benchmarks.sms_click_conversion)
    revenue = conversions * _positive(avg_ticket) * (1 - _pct(offer_discount))
    return revenue * _positive(campaigns_per_month)


def email(
    list_size: float,
    avg_ticket: float,
    campaigns_per_month: float | None = None,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    if campaigns_per_month is None:
        campaigns_per_month = benchmarks.email_campaigns_per_month
    return (
        _positive(list_size)
        * _pct(benchmarks.email_open_rate)
        * _pct(benchmarks.email_click_rate)
        * _pct(benchmarks.email_conversion_rate)
        * _positive(avg_ticket)
        * _positive(campaigns_per_month)
    )


def loyalty(
    customers: float,
    enrollment_pct: float,
    avg_ticket: float,
    visits_per_month: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Extra visits from enrolled members, each at a higher check size."""
    members = _positive(customers) * _pct(_positive(enrollment_pct))
    additional_visits = (
        members * _positive(visits_per_month) * _pct(benchmarks.loyalty_visit_increase)
    )
    return additional_visits * _positive(avg_ticket) * (1 + _pct(benchmarks.loyalty_check_increase))


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------

def social_basic(
    instagram_followers: float,
    facebook_followers: float,
    avg_ticket: float,
    improved_content: bool = True,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Flat monthly follower conversion; Instagram converts better than Facebook."""
    ticket = _positive(avg_ticket)
    instagram = _positive(instagram_followers) * _pct(benchmarks.instagram_conversion) * ticket
    facebook = _positive(facebook_followers) * _pct(benchmarks.facebook_conversion) * ticket
    combined = instagram + facebook
    if improved_content:
        combined *= benchmarks.improved_content_uplift
    return combined


def social_current(
    followers: float,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Conservative revenue an audience brings in today."""
    return _positive(followers) * _pct(benchmarks.social_current_conversion) * _positive(avg_ticket)


def engagement_rate(
    metrics: InstagramMetrics,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Average likes per recent post as a percentage of followers."""
    followers = _positive(metrics.followers)
    recent_posts = min(_positive(metrics.posts_count), benchmarks.recent_post_window)
    if followers == 0 or recent_posts == 0:
        return 0.0
    avg_likes = _positive(metrics.total_likes) / recent_posts
    return avg_likes / followers * 100


def _tiered_conversion(engagement: float, benchmarks: BenchmarkTable) -> float:
    if engagement > benchmarks.engagement_threshold:
        return benchmarks.engaged_conversion
    return benchmarks.standard_conversion


def instagram_enhanced(
    metrics: InstagramMetrics,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> tuple[float, float]:
    """(current, potential) from real profile engagement."""
    followers = _positive(metrics.followers)
    ticket = _positive(avg_ticket)
    rate = _tiered_conversion(engagement_rate(metrics, benchmarks), benchmarks)
    current = followers * _pct(benchmarks.social_current_conversion) * ticket
    potential = followers * _pct(rate) * ticket
    return current, potential


def facebook_enhanced(
    metrics: FacebookMetrics,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> tuple[float, float]:
    """
    (current, potential) for a Facebook page.

    Page data carries no per-post likes, so the platform benchmark engagement
    picks the conversion tier. Paid promotion and page activity scale the
    potential; page likes beyond current followers add a latent-affinity term.
    """
    followers = _positive(metrics.followers)
    ticket = _positive(avg_ticket)
    rate = _tiered_conversion(benchmarks.facebook_engagement, benchmarks)

    current = followers * _pct(benchmarks.social_current_conversion) * ticket
    potential = followers * _pct(rate) * ticket
    if metrics.is_running_ads:
        potential *= benchmarks.paid_promotion_multiplier
    if not metrics.is_active_page:
        potential *= benchmarks.inactive_page_multiplier

    latent_fans = max(_positive(metrics.likes) - followers, 0.0)
    potential += latent_fans * _pct(benchmarks.latent_affinity_conversion) * ticket
    return current, potential


def cross_platform_synergy(
    combined_potential: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    return combined_potential * (1 + _pct(benchmarks.cross_platform_synergy))


# ---------------------------------------------------------------------------
# Offline and marketplace
# ---------------------------------------------------------------------------

def direct_mail_households(
    radius_miles: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Households inside a circular service area."""
    radius = _positive(radius_miles)
    return math.pi * radius ** 2 * benchmarks.households_per_sq_mile


def direct_mail(
    radius_miles: float,
    mailers_per_month: float,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Responders who turn into repeat customers, per month of mailings."""
    return (
        direct_mail_households(radius_miles, benchmarks)
        * _pct(benchmarks.direct_mail_response_rate)
        * _positive(avg_ticket)
        * _positive(mailers_per_month)
        * _pct(benchmarks.direct_mail_repeat_rate)
    )


def third_party_net(
    orders_per_month: float,
    avg_ticket: float,
    benchmarks: BenchmarkTable = BENCHMARKS,
) -> float:
    """Delivery-app revenue after commission."""
    gross = _positive(orders_per_month) * _positive(avg_ticket)
    return gross - gross * _pct(benchmarks.third_party_commission)
