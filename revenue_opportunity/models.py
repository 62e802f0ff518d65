"""Dataclasses shared by the revenue model, the state machine and the lookups."""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


CHANNELS = (
    "seo",
    "social",
    "sms",
    "email",
    "loyalty",
    "direct_mail",
    "third_party",
)

SOCIAL_PLATFORMS = ("instagram", "facebook")


@dataclass(frozen=True)
class KeywordEntry:
    keyword: str
    search_volume: int
    current_position: int
    target_position: int
    is_local_pack: bool  # True for Local Pack, False for organic results


@dataclass(frozen=True)
class InstagramMetrics:
    followers: int
    posts_count: int
    total_likes: int  # summed over the most recent posts only
    username: str | None = None
    profile_pic_url: str | None = None


@dataclass(frozen=True)
class FacebookMetrics:
    followers: int
    likes: int
    is_running_ads: bool = False
    is_active_page: bool = True
    page_name: str | None = None


@dataclass(frozen=True)
class SocialLinks:
    instagram: str | None = None
    facebook: str | None = None
    twitter: str | None = None
    youtube: str | None = None
    tiktok: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.instagram, self.facebook, self.twitter, self.youtube, self.tiktok))


@dataclass(frozen=True)
class SocialProfile:
    links: SocialLinks = field(default_factory=SocialLinks)
    instagram: InstagramMetrics | None = None
    facebook: FacebookMetrics | None = None


@dataclass(frozen=True)
class Restaurant:
    place_id: str
    name: str
    address: str = ""
    website: str | None = None
    rating: float | None = None
    review_count: int | None = None
    price_level: int | None = None
    photo_url: str | None = None
    estimated_monthly_revenue: float = 0.0
    estimated_avg_ticket: float = 0.0
    estimated_monthly_transactions: int = 0


DEFAULT_KEYWORDS = (
    KeywordEntry("pizza delivery near me", 2000, 4, 1, True),
    KeywordEntry("best pizza [city]", 800, 6, 2, True),
    KeywordEntry("pizza restaurant", 1200, 8, 3, False),
)


@dataclass(frozen=True)
class BusinessSnapshot:
    """Everything the aggregator needs about one restaurant.

    Frozen: the reducer derives a new snapshot per update message, so a
    snapshot handed to the aggregator (or kept in an Error's previous state)
    never changes underneath it.
    """

    # Google Places
    place_id: str | None = None
    place_name: str | None = None
    place_address: str | None = None
    place_rating: float | None = None
    place_review_count: int | None = None
    place_photo_url: str | None = None
    is_data_auto_detected: bool = False

    # Core business metrics
    monthly_revenue: float = 75000.0
    avg_ticket: float = 25.0
    monthly_transactions: int = 3000

    # Current marketing assets
    website: str | None = None
    instagram_followers: int = 0
    facebook_followers: int = 0
    social_links: SocialLinks = field(default_factory=SocialLinks)
    instagram_metrics: InstagramMetrics | None = None
    facebook_metrics: FacebookMetrics | None = None
    posts_per_week: int = 0
    email_list_size: int = 0
    sms_list_size: int = 0
    current_local_pack_position: int | None = 4
    current_organic_position: int | None = 8

    keywords: tuple[KeywordEntry, ...] = DEFAULT_KEYWORDS
    keywords_auto_detected: bool = False

    # Toggles
    offers_loyalty_program: bool = False
    uses_direct_mail: bool = False
    mailer_frequency: int = 0
    direct_mail_radius: float = 5.0
    uses_third_party_delivery: bool = False
    third_party_orders_per_month: int = 0

    @property
    def transactions(self) -> int:
        """Monthly transactions implied by revenue and ticket size."""
        if self.avg_ticket <= 0:
            return 0
        return math.floor(self.monthly_revenue / self.avg_ticket + 0.5)

    @property
    def has_website(self) -> bool:
        return bool(self.website)


@dataclass(frozen=True)
class ServiceRevenue:
    current: float
    potential: float

    @property
    def additional(self) -> float:
        return self.potential - self.current


@dataclass(frozen=True)
class KeywordRevenue:
    keyword: str
    search_volume: int
    current_position: int
    target_position: int
    current: float
    potential: float

    @property
    def gap(self) -> float:
        return self.potential - self.current


@dataclass(frozen=True)
class AggregateResult:
    channels: Mapping[str, ServiceRevenue]
    paths: Mapping[str, str]
    keyword_breakdown: tuple[KeywordRevenue, ...] = ()

    def __post_init__(self):
        # Consumers get read-only views; the aggregator builds fresh dicts per call.
        object.__setattr__(self, "channels", MappingProxyType(dict(self.channels)))
        object.__setattr__(self, "paths", MappingProxyType(dict(self.paths)))

    @property
    def total_additional_revenue(self) -> float:
        return sum(rev.additional for rev in self.channels.values())

    @property
    def total_current_revenue(self) -> float:
        return sum(rev.current for rev in self.channels.values())

    @property
    def total_potential_revenue(self) -> float:
        return sum(rev.potential for rev in self.channels.values())


@dataclass(frozen=True)
class ChannelOpportunity:
    channel: str
    label: str
    current: float
    potential: float
    gap: float
    confidence: str  # "High" | "Medium" | "Low"
    attribution: str


@dataclass(frozen=True)
class LeverTotals:
    current: float
    potential: float

    @property
    def missing(self) -> float:
        return self.potential - self.current
