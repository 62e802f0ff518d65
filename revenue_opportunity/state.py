"""Application states and the pure reducer that moves between them.

The flow is search -> social detection -> data entry -> analysis. The
screen is a function of ``AppModel.state`` alone; ``update`` is the only
way to get a new model and it never touches the old one.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Callable, Mapping

from . import messages as m
from .messages import Cmd
from .models import (
    CHANNELS,
    SOCIAL_PLATFORMS,
    AggregateResult,
    BusinessSnapshot,
    FacebookMetrics,
    InstagramMetrics,
    KeywordEntry,
    Restaurant,
    SocialLinks,
    SocialProfile,
)
from .revenue import aggregate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Loading:
    message: str = ""


@dataclass(frozen=True)
class RestaurantSearch:
    pass


@dataclass(frozen=True)
class SocialDetection:
    restaurant: Restaurant


@dataclass(frozen=True)
class DataEntry:
    snapshot: BusinessSnapshot


@dataclass(frozen=True)
class Analysis:
    snapshot: BusinessSnapshot
    result: AggregateResult
    levers: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "levers", MappingProxyType(dict(self.levers)))


@dataclass(frozen=True)
class Error:
    message: str
    previous: "AppState | None" = None


AppState = Loading | RestaurantSearch | SocialDetection | DataEntry | Analysis | Error


@dataclass(frozen=True)
class AppModel:
    state: AppState
    session: int = 0  # bumped whenever outstanding lookups become irrelevant


@dataclass(frozen=True)
class UpdateResult:
    model: AppModel
    cmds: tuple[Cmd, ...] = ()


class InvalidInput(ValueError):
    """A user-supplied value the snapshot cannot hold."""


def init() -> AppModel:
    return AppModel(state=RestaurantSearch())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _goto(model: AppModel, state: AppState, *cmds: Cmd, session: int | None = None) -> UpdateResult:
    next_session = model.session if session is None else session
    return UpdateResult(AppModel(state=state, session=next_session), tuple(cmds))


def _fail(model: AppModel, message: str) -> UpdateResult:
    logger.info("Input rejected: %s", message)
    return _goto(model, Error(message=message, previous=model.state))


def _with_snapshot(model: AppModel, snapshot: BusinessSnapshot) -> UpdateResult | None:
    """Swap in a new snapshot, keeping the screen. Analysis recomputes its result."""
    state = model.state
    if isinstance(state, DataEntry):
        return _goto(model, DataEntry(snapshot))
    if isinstance(state, Analysis):
        return _goto(model, Analysis(snapshot, aggregate(snapshot), state.levers))
    return None


def _current_snapshot(model: AppModel) -> BusinessSnapshot | None:
    if isinstance(model.state, (DataEntry, Analysis)):
        return model.state.snapshot
    return None


def _snapshot_for(restaurant: Restaurant, profile: SocialProfile | None = None) -> BusinessSnapshot:
    """Fresh snapshot seeded from a looked-up restaurant and its social presence."""
    defaults = BusinessSnapshot()
    snapshot = replace(
        defaults,
        place_id=restaurant.place_id,
        place_name=restaurant.name,
        place_address=restaurant.address,
        place_rating=restaurant.rating,
        place_review_count=restaurant.review_count,
        place_photo_url=restaurant.photo_url,
        website=restaurant.website,
        is_data_auto_detected=True,
        monthly_revenue=restaurant.estimated_monthly_revenue or defaults.monthly_revenue,
        avg_ticket=restaurant.estimated_avg_ticket or defaults.avg_ticket,
        monthly_transactions=(
            restaurant.estimated_monthly_transactions or defaults.monthly_transactions
        ),
    )
    if profile is None:
        return snapshot

    snapshot = replace(snapshot, social_links=profile.links)
    if profile.instagram is not None:
        snapshot = replace(
            snapshot,
            instagram_metrics=profile.instagram,
            instagram_followers=profile.instagram.followers,
        )
    if profile.facebook is not None:
        snapshot = replace(
            snapshot,
            facebook_metrics=profile.facebook,
            facebook_followers=profile.facebook.followers,
        )
    return snapshot


def _keyword_fetch(snapshot: BusinessSnapshot, session: int) -> tuple[Cmd, ...]:
    if snapshot.website:
        return (m.FetchRankedKeywords(website=snapshot.website, session=session),)
    return ()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _amount(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"Expected a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise InvalidInput(f"Value must be a non-negative number, got {value!r}")
    return float(value)


def _count(value) -> int:
    amount = _amount(value)
    if amount != int(amount):
        raise InvalidInput(f"Expected a whole number, got {value!r}")
    return int(amount)


def _position(value) -> int:
    position = _count(value)
    if position < 1:
        raise InvalidInput(f"Rank position must be 1 or higher, got {value!r}")
    return position


def _flag(value) -> bool:
    if not isinstance(value, bool):
        raise InvalidInput(f"Expected true or false, got {value!r}")
    return value


def _text(value) -> str:
    if not isinstance(value, str):
        raise InvalidInput(f"Expected text, got {value!r}")
    return value


def _optional(validate: Callable) -> Callable:
    def check(value):
        return None if value is None else validate(value)
    return check


def _keyword(entry: KeywordEntry) -> KeywordEntry:
    if not _text(entry.keyword).strip():
        raise InvalidInput("Keyword text cannot be empty")
    return replace(
        entry,
        search_volume=_count(entry.search_volume),
        current_position=_position(entry.current_position),
        target_position=_position(entry.target_position),
        is_local_pack=_flag(entry.is_local_pack),
    )


def _restaurant(restaurant: Restaurant) -> Restaurant:
    """Check a restaurant handed in by a message before it seeds a snapshot."""
    return replace(
        restaurant,
        place_id=_text(restaurant.place_id),
        name=_text(restaurant.name),
        address=_optional(_text)(restaurant.address),
        website=_optional(_text)(restaurant.website),
        rating=_optional(_amount)(restaurant.rating),
        review_count=_optional(_count)(restaurant.review_count),
        price_level=_optional(_count)(restaurant.price_level),
        photo_url=_optional(_text)(restaurant.photo_url),
        estimated_monthly_revenue=_amount(restaurant.estimated_monthly_revenue),
        estimated_avg_ticket=_amount(restaurant.estimated_avg_ticket),
        estimated_monthly_transactions=_count(restaurant.estimated_monthly_transactions),
    )


def _instagram(metrics: InstagramMetrics) -> InstagramMetrics:
    return replace(
        metrics,
        followers=_count(metrics.followers),
        posts_count=_count(metrics.posts_count),
        total_likes=_count(metrics.total_likes),
        username=_optional(_text)(metrics.username),
        profile_pic_url=_optional(_text)(metrics.profile_pic_url),
    )


def _facebook(metrics: FacebookMetrics) -> FacebookMetrics:
    return replace(
        metrics,
        followers=_count(metrics.followers),
        likes=_count(metrics.likes),
        is_running_ads=_flag(metrics.is_running_ads),
        is_active_page=_flag(metrics.is_active_page),
        page_name=_optional(_text)(metrics.page_name),
    )


def _profile(profile: SocialProfile) -> SocialProfile:
    links = profile.links
    return SocialProfile(
        links=SocialLinks(
            instagram=_optional(_text)(links.instagram),
            facebook=_optional(_text)(links.facebook),
            twitter=_optional(_text)(links.twitter),
            youtube=_optional(_text)(links.youtube),
            tiktok=_optional(_text)(links.tiktok),
        ),
        instagram=_optional(_instagram)(profile.instagram),
        facebook=_optional(_facebook)(profile.facebook),
    )


def _keyword_index(snapshot: BusinessSnapshot, index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(snapshot.keywords):
        raise InvalidInput(
            f"Keyword index {index!r} is out of range ({len(snapshot.keywords)} keywords)"
        )
    return index


# message type -> (snapshot field, validator)
_FIELD_UPDATES: dict[type, tuple[str, Callable]] = {
    m.UpdateMonthlyRevenue: ("monthly_revenue", _amount),
    m.UpdateAvgTicket: ("avg_ticket", _amount),
    m.UpdateMonthlyTransactions: ("monthly_transactions", _count),
    m.UpdateEmailListSize: ("email_list_size", _count),
    m.UpdateSMSListSize: ("sms_list_size", _count),
    m.UpdatePostsPerWeek: ("posts_per_week", _count),
    m.UpdateLocalPackPosition: ("current_local_pack_position", _position),
    m.UpdateOrganicPosition: ("current_organic_position", _position),
    m.SetOffersLoyaltyProgram: ("offers_loyalty_program", _flag),
    m.SetUsesDirectMail: ("uses_direct_mail", _flag),
    m.UpdateMailerFrequency: ("mailer_frequency", _count),
    m.UpdateDirectMailRadius: ("direct_mail_radius", _amount),
    m.SetUsesThirdPartyDelivery: ("uses_third_party_delivery", _flag),
    m.UpdateThirdPartyOrders: ("third_party_orders_per_month", _count),
}


# ---------------------------------------------------------------------------
# Handlers: return None when the message means nothing in the current state
# ---------------------------------------------------------------------------

def _start_over(model: AppModel, msg) -> UpdateResult:
    return _goto(model, RestaurantSearch(), session=model.session + 1)


def _navigate(model: AppModel, msg: m.NavigateToStep) -> UpdateResult | None:
    if msg.step == 1:
        return _start_over(model, msg)
    if msg.step not in (2, 3, 4):
        return _fail(model, f"Unknown step {msg.step!r}")

    state = model.state
    if msg.step in (2, 3) and isinstance(state, (DataEntry, Analysis)):
        return _goto(model, DataEntry(state.snapshot))
    if msg.step == 4 and isinstance(state, DataEntry):
        return _run_analysis(model, msg)
    return None


def _skip_search(model: AppModel, msg) -> UpdateResult | None:
    state = model.state
    if isinstance(state, (RestaurantSearch, Loading)):
        return _goto(model, DataEntry(BusinessSnapshot()), session=model.session + 1)
    if isinstance(state, SocialDetection):
        return _goto(model, DataEntry(_snapshot_for(state.restaurant)), session=model.session + 1)
    return None


def _search(model: AppModel, msg: m.SearchRestaurant) -> UpdateResult | None:
    if not isinstance(model.state, RestaurantSearch):
        return None
    if not isinstance(msg.query, str):
        return _fail(model, f"Search query must be text, got {msg.query!r}")
    query = msg.query.strip()
    if not query:
        return _fail(model, "Enter a restaurant name to search for")
    session = model.session + 1
    return _goto(
        model,
        Loading(message=f"Searching for {query}..."),
        m.SearchRestaurants(query=query, session=session),
        session=session,
    )


def _begin_detection(model: AppModel, restaurant: Restaurant) -> UpdateResult:
    try:
        restaurant = _restaurant(restaurant)
    except InvalidInput as exc:
        return _fail(model, f"Restaurant {restaurant.name!r}: {exc}")
    session = model.session + 1
    return _goto(
        model,
        SocialDetection(restaurant),
        m.DetectSocialProfiles(restaurant=restaurant, session=session),
        session=session,
    )


def _select(model: AppModel, msg: m.SelectRestaurant) -> UpdateResult | None:
    if not isinstance(model.state, (RestaurantSearch, Loading)):
        return None
    return _begin_detection(model, msg.restaurant)


def _search_complete(model: AppModel, msg: m.RestaurantSearchComplete) -> UpdateResult | None:
    if not isinstance(model.state, Loading):
        return None
    if msg.restaurant is None:
        logger.info("Restaurant search returned no match")
        return _goto(model, RestaurantSearch())
    return _begin_detection(model, msg.restaurant)


def _search_failed(model: AppModel, msg: m.RestaurantSearchFailed) -> UpdateResult | None:
    if not isinstance(model.state, Loading):
        return None
    logger.warning("Restaurant search unavailable (%s): %s", msg.reason.value, msg.detail)
    return _goto(model, DataEntry(BusinessSnapshot()))


def _detection_success(model: AppModel, msg: m.SocialDetectionSuccess) -> UpdateResult | None:
    state = model.state
    if not isinstance(state, SocialDetection):
        return None
    try:
        profile = _profile(msg.profile)
    except InvalidInput as exc:
        return _fail(model, f"Social profile: {exc}")
    snapshot = _snapshot_for(state.restaurant, profile)
    return _goto(model, DataEntry(snapshot), *_keyword_fetch(snapshot, model.session))


def _detection_failed(model: AppModel, msg: m.SocialDetectionFailed) -> UpdateResult | None:
    state = model.state
    if not isinstance(state, SocialDetection):
        return None
    logger.warning("Social detection failed (%s): %s", msg.reason.value, msg.detail)
    snapshot = _snapshot_for(state.restaurant)
    return _goto(model, DataEntry(snapshot), *_keyword_fetch(snapshot, model.session))


def _instagram_fetched(model: AppModel, msg: m.InstagramMetricsFetched) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    try:
        metrics = _instagram(msg.metrics)
    except InvalidInput as exc:
        return _fail(model, f"Instagram metrics: {exc}")
    return _with_snapshot(
        model,
        replace(snapshot, instagram_metrics=metrics, instagram_followers=metrics.followers),
    )


def _facebook_fetched(model: AppModel, msg: m.FacebookMetricsFetched) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    try:
        metrics = _facebook(msg.metrics)
    except InvalidInput as exc:
        return _fail(model, f"Facebook metrics: {exc}")
    return _with_snapshot(
        model,
        replace(snapshot, facebook_metrics=metrics, facebook_followers=metrics.followers),
    )


def _keywords_fetched(model: AppModel, msg: m.KeywordsFetched) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None or not msg.keywords:
        return None
    try:
        keywords = tuple(_keyword(entry) for entry in msg.keywords)
    except InvalidInput as exc:
        return _fail(model, f"Ranked keywords: {exc}")
    return _with_snapshot(
        model,
        replace(snapshot, keywords=keywords, keywords_auto_detected=True),
    )


def _update_field(model: AppModel, msg) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    name, validate = _FIELD_UPDATES[type(msg)]
    try:
        value = validate(msg.value)
    except InvalidInput as exc:
        return _fail(model, f"{name.replace('_', ' ').capitalize()}: {exc}")
    return _with_snapshot(model, replace(snapshot, **{name: value}))


def _update_followers(model: AppModel, msg: m.UpdateSocialFollowers) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    if msg.platform not in SOCIAL_PLATFORMS:
        return _fail(model, f"Unknown social platform {msg.platform!r}")
    try:
        value = _count(msg.value)
    except InvalidInput as exc:
        return _fail(model, f"{msg.platform.capitalize()} followers: {exc}")
    changes = {f"{msg.platform}_followers": value}
    # the enhanced estimate reads followers from the detected metrics
    metrics = getattr(snapshot, f"{msg.platform}_metrics")
    if metrics is not None:
        changes[f"{msg.platform}_metrics"] = replace(metrics, followers=value)
    return _with_snapshot(model, replace(snapshot, **changes))


def _add_keyword(model: AppModel, msg: m.AddKeyword) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    try:
        entry = _keyword(msg.keyword)
    except InvalidInput as exc:
        return _fail(model, str(exc))
    return _with_snapshot(model, replace(snapshot, keywords=snapshot.keywords + (entry,)))


def _update_keyword(model: AppModel, msg: m.UpdateKeyword) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    try:
        index = _keyword_index(snapshot, msg.index)
        entry = _keyword(msg.keyword)
    except InvalidInput as exc:
        return _fail(model, str(exc))
    keywords = list(snapshot.keywords)
    keywords[index] = entry
    return _with_snapshot(model, replace(snapshot, keywords=tuple(keywords)))


def _remove_keyword(model: AppModel, msg: m.RemoveKeyword) -> UpdateResult | None:
    snapshot = _current_snapshot(model)
    if snapshot is None:
        return None
    try:
        index = _keyword_index(snapshot, msg.index)
    except InvalidInput as exc:
        return _fail(model, str(exc))
    keywords = snapshot.keywords[:index] + snapshot.keywords[index + 1:]
    return _with_snapshot(model, replace(snapshot, keywords=keywords))


def _run_analysis(model: AppModel, msg) -> UpdateResult | None:
    state = model.state
    if not isinstance(state, DataEntry):
        return None
    return _goto(model, Analysis(state.snapshot, aggregate(state.snapshot)))


def _toggle_lever(model: AppModel, msg: m.ToggleLever) -> UpdateResult | None:
    state = model.state
    if not isinstance(state, Analysis):
        return None
    if msg.lever_id not in CHANNELS:
        return _fail(model, f"Unknown lever {msg.lever_id!r}")
    levers = dict(state.levers)
    levers[msg.lever_id] = not levers.get(msg.lever_id, False)
    return _goto(model, replace(state, levers=levers))


def _reset_levers(model: AppModel, msg) -> UpdateResult | None:
    state = model.state
    if not isinstance(state, Analysis):
        return None
    return _goto(model, replace(state, levers={}))


def _show_error(model: AppModel, msg: m.ShowError) -> UpdateResult:
    return _goto(model, Error(message=msg.message, previous=model.state))


def _clear_error(model: AppModel, msg) -> UpdateResult | None:
    state = model.state
    if not isinstance(state, Error):
        return None
    return _goto(model, state.previous if state.previous is not None else RestaurantSearch())


_HANDLERS: dict[type, Callable[[AppModel, object], UpdateResult | None]] = {
    m.NavigateToStep: _navigate,
    m.SkipRestaurantSearch: _skip_search,
    m.StartOver: _start_over,
    m.SearchRestaurant: _search,
    m.SelectRestaurant: _select,
    m.RestaurantSearchComplete: _search_complete,
    m.RestaurantSearchFailed: _search_failed,
    m.SocialDetectionSuccess: _detection_success,
    m.SocialDetectionFailed: _detection_failed,
    m.InstagramMetricsFetched: _instagram_fetched,
    m.FacebookMetricsFetched: _facebook_fetched,
    m.KeywordsFetched: _keywords_fetched,
    m.UpdateSocialFollowers: _update_followers,
    m.AddKeyword: _add_keyword,
    m.UpdateKeyword: _update_keyword,
    m.RemoveKeyword: _remove_keyword,
    m.RunAnalysis: _run_analysis,
    m.ToggleLever: _toggle_lever,
    m.ResetAllLevers: _reset_levers,
    m.ShowError: _show_error,
    m.ClearError: _clear_error,
    **{msg_type: _update_field for msg_type in _FIELD_UPDATES},
}


def update(model: AppModel, msg: m.AppMsg) -> UpdateResult:
    """
    Apply one message to the model.

    Returns the next model plus any lookups the runner should start. Lookup
    results from an earlier session, and messages that mean nothing in the
    current state, leave the model as it was. A current lookup result that
    lands while an error is shown updates the state behind the error.
    """
    if isinstance(msg, m.LOOKUP_RESULTS) and msg.session != model.session:
        logger.info(
            "Dropping stale %s from session %d (current session %d)",
            type(msg).__name__, msg.session, model.session,
        )
        return UpdateResult(model)

    handler = _HANDLERS.get(type(msg))
    if handler is None:
        raise TypeError(f"Unsupported message: {msg!r}")

    state = model.state
    if isinstance(msg, m.LOOKUP_RESULTS) and isinstance(state, Error) and state.previous is not None:
        # apply to the screen under the error; ClearError resumes it
        behind = update(AppModel(state=state.previous, session=model.session), msg)
        if behind.model.state is state.previous:
            return UpdateResult(model)
        return UpdateResult(
            AppModel(
                state=Error(message=state.message, previous=behind.model.state),
                session=behind.model.session,
            ),
            behind.cmds,
        )

    result = handler(model, msg)
    if result is None:
        logger.debug(
            "Ignoring %s in %s state", type(msg).__name__, type(model.state).__name__
        )
        return UpdateResult(model)
    return result
