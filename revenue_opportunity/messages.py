"""Every message the flow accepts, and every side effect it can request.

Messages come from two places: the user (field edits, navigation, levers)
and finished lookups. Lookup completions carry the session token they were
issued under so the reducer can drop answers meant for an abandoned flow.
"""

from dataclasses import dataclass
from enum import Enum

from .models import (
    FacebookMetrics,
    InstagramMetrics,
    KeywordEntry,
    Restaurant,
    SocialProfile,
)


class DetectionFailure(str, Enum):
    UNAVAILABLE = "unavailable"  # credentials not configured
    NOT_FOUND = "not_found"
    REQUEST_FAILED = "request_failed"
    NO_WEBSITE = "no_website"


# ---------------------------------------------------------------------------
# Navigation & flow
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NavigateToStep:
    step: int  # 1 search, 2-3 data entry, 4 analysis


@dataclass(frozen=True)
class SkipRestaurantSearch:
    pass


@dataclass(frozen=True)
class StartOver:
    pass


# ---------------------------------------------------------------------------
# Restaurant search
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchRestaurant:
    query: str


@dataclass(frozen=True)
class SelectRestaurant:
    restaurant: Restaurant


@dataclass(frozen=True)
class RestaurantSearchComplete:
    restaurant: Restaurant | None
    session: int


@dataclass(frozen=True)
class RestaurantSearchFailed:
    reason: DetectionFailure
    session: int
    detail: str = ""


# ---------------------------------------------------------------------------
# Social & keyword detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SocialDetectionSuccess:
    profile: SocialProfile
    session: int


@dataclass(frozen=True)
class SocialDetectionFailed:
    reason: DetectionFailure
    session: int
    detail: str = ""


@dataclass(frozen=True)
class InstagramMetricsFetched:
    metrics: InstagramMetrics
    session: int


@dataclass(frozen=True)
class FacebookMetricsFetched:
    metrics: FacebookMetrics
    session: int


@dataclass(frozen=True)
class KeywordsFetched:
    keywords: tuple[KeywordEntry, ...]
    session: int


# ---------------------------------------------------------------------------
# Data entry: one snapshot field per message
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UpdateMonthlyRevenue:
    value: float


@dataclass(frozen=True)
class UpdateAvgTicket:
    value: float


@dataclass(frozen=True)
class UpdateMonthlyTransactions:
    value: int


@dataclass(frozen=True)
class UpdateSocialFollowers:
    platform: str  # "instagram" | "facebook"
    value: int


@dataclass(frozen=True)
class UpdateEmailListSize:
    value: int


@dataclass(frozen=True)
class UpdateSMSListSize:
    value: int


@dataclass(frozen=True)
class UpdatePostsPerWeek:
    value: int


@dataclass(frozen=True)
class UpdateLocalPackPosition:
    value: int


@dataclass(frozen=True)
class UpdateOrganicPosition:
    value: int


@dataclass(frozen=True)
class SetOffersLoyaltyProgram:
    value: bool


@dataclass(frozen=True)
class SetUsesDirectMail:
    value: bool


@dataclass(frozen=True)
class UpdateMailerFrequency:
    value: int


@dataclass(frozen=True)
class UpdateDirectMailRadius:
    value: float


@dataclass(frozen=True)
class SetUsesThirdPartyDelivery:
    value: bool


@dataclass(frozen=True)
class UpdateThirdPartyOrders:
    value: int


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AddKeyword:
    keyword: KeywordEntry


@dataclass(frozen=True)
class UpdateKeyword:
    index: int
    keyword: KeywordEntry


@dataclass(frozen=True)
class RemoveKeyword:
    index: int


# ---------------------------------------------------------------------------
# Analysis & levers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RunAnalysis:
    pass


@dataclass(frozen=True)
class ToggleLever:
    lever_id: str


@dataclass(frozen=True)
class ResetAllLevers:
    pass


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ShowError:
    message: str


@dataclass(frozen=True)
class ClearError:
    pass


AppMsg = (
    NavigateToStep
    | SkipRestaurantSearch
    | StartOver
    | SearchRestaurant
    | SelectRestaurant
    | RestaurantSearchComplete
    | RestaurantSearchFailed
    | SocialDetectionSuccess
    | SocialDetectionFailed
    | InstagramMetricsFetched
    | FacebookMetricsFetched
    | KeywordsFetched
    | UpdateMonthlyRevenue
    | UpdateAvgTicket
    | UpdateMonthlyTransactions
    | UpdateSocialFollowers
    | UpdateEmailListSize
    | UpdateSMSListSize
    | UpdatePostsPerWeek
    | UpdateLocalPackPosition
    | UpdateOrganicPosition
    | SetOffersLoyaltyProgram
    | SetUsesDirectMail
    | UpdateMailerFrequency
    | UpdateDirectMailRadius
    | SetUsesThirdPartyDelivery
    | UpdateThirdPartyOrders
    | AddKeyword
    | UpdateKeyword
    | RemoveKeyword
    | RunAnalysis
    | ToggleLever
    | ResetAllLevers
    | ShowError
    | ClearError
)

# Completions of async lookups; subject to the session guard.
LOOKUP_RESULTS = (
    RestaurantSearchComplete,
    RestaurantSearchFailed,
    SocialDetectionSuccess,
    SocialDetectionFailed,
    InstagramMetricsFetched,
    FacebookMetricsFetched,
    KeywordsFetched,
)


# ---------------------------------------------------------------------------
# Commands: side effects the runner performs on the reducer's behalf
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchRestaurants:
    query: str
    session: int


@dataclass(frozen=True)
class DetectSocialProfiles:
    restaurant: Restaurant
    session: int


@dataclass(frozen=True)
class FetchRankedKeywords:
    website: str
    session: int


Cmd = SearchRestaurants | DetectSocialProfiles | FetchRankedKeywords
