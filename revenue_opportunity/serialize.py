"""JSON codec for the flow: messages in, read-only model snapshots out.

Messages are tagged with their class name:

    {"type": "UpdateMonthlyRevenue", "value": 82000}
    {"type": "AddKeyword", "keyword": {"keyword": "pizza", "search_volume": 900, ...}}
"""

from dataclasses import asdict, fields
from typing import Any

from . import messages as m
from .messages import AppMsg, DetectionFailure
from .models import (
    FacebookMetrics,
    InstagramMetrics,
    KeywordEntry,
    Restaurant,
    SocialLinks,
    SocialProfile,
)
from .revenue import lever_totals, opportunities
from .state import (
    AppModel,
    AppState,
    Analysis,
    DataEntry,
    Error,
    Loading,
    RestaurantSearch,
    SocialDetection,
)

MESSAGE_TYPES: dict[str, type] = {
    cls.__name__: cls
    for cls in (
        m.NavigateToStep,
        m.SkipRestaurantSearch,
        m.StartOver,
        m.SearchRestaurant,
        m.SelectRestaurant,
        m.RestaurantSearchComplete,
        m.RestaurantSearchFailed,
        m.SocialDetectionSuccess,
        m.SocialDetectionFailed,
        m.InstagramMetricsFetched,
        m.FacebookMetricsFetched,
        m.KeywordsFetched,
        m.UpdateMonthlyRevenue,
        m.UpdateAvgTicket,
        m.UpdateMonthlyTransactions,
        m.UpdateSocialFollowers,
        m.UpdateEmailListSize,
        m.UpdateSMSListSize,
        m.UpdatePostsPerWeek,
        m.UpdateLocalPackPosition,
        m.UpdateOrganicPosition,
        m.SetOffersLoyaltyProgram,
        m.SetUsesDirectMail,
        m.UpdateMailerFrequency,
        m.UpdateDirectMailRadius,
        m.SetUsesThirdPartyDelivery,
        m.UpdateThirdPartyOrders,
        m.AddKeyword,
        m.UpdateKeyword,
        m.RemoveKeyword,
        m.RunAnalysis,
        m.ToggleLever,
        m.ResetAllLevers,
        m.ShowError,
        m.ClearError,
    )
}

STEPS = {
    RestaurantSearch: 1,
    Loading: 1,
    SocialDetection: 2,
    DataEntry: 3,
    Analysis: 4,
}


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------

def _build(cls: type, data: Any):
    """Construct a dataclass from a JSON object, ignoring keys it does not have."""
    if not isinstance(data, dict):
        raise ValueError(f"{cls.__name__} must be an object, got {data!r}")
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


def _restaurant(data):
    return None if data is None else _build(Restaurant, data)


def _profile(data) -> SocialProfile:
    if not isinstance(data, dict):
        raise ValueError(f"SocialProfile must be an object, got {data!r}")
    instagram = data.get("instagram")
    facebook = data.get("facebook")
    return SocialProfile(
        links=_build(SocialLinks, data.get("links") or {}),
        instagram=_build(InstagramMetrics, instagram) if instagram else None,
        facebook=_build(FacebookMetrics, facebook) if facebook else None,
    )


def _keywords(items) -> tuple[KeywordEntry, ...]:
    if not isinstance(items, list):
        raise ValueError(f"keywords must be a list, got {items!r}")
    return tuple(_build(KeywordEntry, item) for item in items)


# field name -> converter, for fields that hold more than a JSON scalar
_FIELD_DECODERS = {
    "restaurant": _restaurant,
    "profile": _profile,
    "keyword": lambda data: _build(KeywordEntry, data),
    "keywords": _keywords,
    "reason": DetectionFailure,
}

_METRICS = {
    m.InstagramMetricsFetched: InstagramMetrics,
    m.FacebookMetricsFetched: FacebookMetrics,
}


def decode_message(data: dict[str, Any]) -> AppMsg:
    """
    Turn a tagged JSON object into a message.

    Raises:
        ValueError: unknown type tag, missing fields or malformed nested data.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Message must be an object, got {data!r}")
    tag = data.get("type")
    cls = MESSAGE_TYPES.get(tag)
    if cls is None:
        raise ValueError(f"Unknown message type {tag!r}")

    try:
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "metrics":
                value = _build(_METRICS[cls], value)
            elif f.name in _FIELD_DECODERS:
                value = _FIELD_DECODERS[f.name](value)
            kwargs[f.name] = value
        return cls(**kwargs)
    except TypeError as exc:
        raise ValueError(f"Invalid {tag} message: {exc}") from exc


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------

def _result(analysis: Analysis) -> dict[str, Any]:
    result = analysis.result
    return {
        "channels": {
            name: {
                "current": rev.current,
                "potential": rev.potential,
                "additional": rev.additional,
                "path": result.paths[name],
            }
            for name, rev in result.channels.items()
        },
        "total_current_revenue": result.total_current_revenue,
        "total_potential_revenue": result.total_potential_revenue,
        "total_additional_revenue": result.total_additional_revenue,
        "keyword_breakdown": [
            {**asdict(row), "gap": row.gap} for row in result.keyword_breakdown
        ],
    }


def _snapshot(snapshot) -> dict[str, Any]:
    return {**asdict(snapshot), "transactions": snapshot.transactions}


def encode_state(state: AppState) -> dict[str, Any]:
    body: dict[str, Any] = {"type": type(state).__name__, "step": STEPS.get(type(state))}

    if isinstance(state, Loading):
        body["message"] = state.message
    elif isinstance(state, SocialDetection):
        body["restaurant"] = asdict(state.restaurant)
    elif isinstance(state, DataEntry):
        body["snapshot"] = _snapshot(state.snapshot)
    elif isinstance(state, Analysis):
        totals = lever_totals(state.result, state.levers)
        body.update(
            snapshot=_snapshot(state.snapshot),
            result=_result(state),
            opportunities=[asdict(row) for row in opportunities(state.result)],
            levers=dict(state.levers),
            lever_totals={
                "current": totals.current,
                "potential": totals.potential,
                "missing": totals.missing,
            },
        )
    elif isinstance(state, Error):
        body["message"] = state.message
        body["previous"] = encode_state(state.previous) if state.previous is not None else None
    return body


def encode_model(model: AppModel) -> dict[str, Any]:
    return {"session": model.session, "state": encode_state(model.state)}

