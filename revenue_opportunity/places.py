"""Google Places lookup and first-pass restaurant metric estimates."""

import logging
from typing import Any

import httpx

from .config import LookupUnavailable, Settings
from .models import Restaurant

logger = logging.getLogger(__name__)

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
DETAIL_FIELDS = (
    "place_id",
    "name",
    "formatted_address",
    "website",
    "rating",
    "user_ratings_total",
    "price_level",
    "photos",
)

# Average ticket by Google price level (1 = inexpensive ... 4 = very expensive)
TICKET_BY_PRICE_LEVEL = {1: 15.0, 2: 25.0, 3: 40.0, 4: 70.0}
DEFAULT_AVG_TICKET = 25.0
BASE_MONTHLY_TRANSACTIONS = 1000


def estimate_restaurant_metrics(details: dict[str, Any]) -> Restaurant:
    """
    Rough revenue, ticket and volume estimates from public Places data.

    Ticket size follows price level. Volume scales with rating (3.0 stars
    = 1x up to 2x) and review count (100 reviews = 1x up to 3x).
    """
    avg_ticket = TICKET_BY_PRICE_LEVEL.get(details.get("price_level"), DEFAULT_AVG_TICKET)

    transactions = BASE_MONTHLY_TRANSACTIONS
    rating = details.get("rating")
    review_count = details.get("user_ratings_total")
    if rating and review_count:
        volume_multiplier = min((rating - 3) * 0.5 + 1, 2)
        review_multiplier = min(review_count / 100, 3)
        transactions = int(BASE_MONTHLY_TRANSACTIONS * volume_multiplier * review_multiplier + 0.5)

    photo_url = None
    photos = details.get("photos") or []
    if photos:
        photo_url = photos[0].get("photo_reference")

    return Restaurant(
        place_id=details.get("place_id", ""),
        name=details.get("name", "Unknown Restaurant"),
        address=details.get("formatted_address", ""),
        website=details.get("website"),
        rating=rating,
        review_count=review_count,
        price_level=details.get("price_level"),
        photo_url=photo_url,
        estimated_monthly_revenue=transactions * avg_ticket,
        estimated_avg_ticket=avg_ticket,
        estimated_monthly_transactions=transactions,
    )


async def search_restaurant(
    query: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> Restaurant | None:
    """
    Find the best-matching restaurant for a free-text query.

    Returns None when Places has no match.

    Raises:
        LookupUnavailable: no Google Places API key.
        httpx.HTTPError: the request failed.
        LookupError: Places answered with an error status.
    """
    if not settings.places_available:
        raise LookupUnavailable(
            "Google Places API key is missing. Set GOOGLE_PLACES_API_KEY."
        )

    if client is None:
        async with httpx.AsyncClient(timeout=settings.timeout_seconds) as owned:
            return await search_restaurant(query, settings, owned)

    response = await client.get(
        f"{PLACES_BASE_URL}/textsearch/json",
        params={
            "query": f"{query} restaurant",
            "type": "restaurant",
            "key": settings.google_places_api_key,
        },
    )
    response.raise_for_status()
    results = _places_payload(response.json(), "results")
    if not results:
        logger.info("No Places match for %r", query)
        return None

    place_id = results[0]["place_id"]
    response = await client.get(
        f"{PLACES_BASE_URL}/details/json",
        params={
            "place_id": place_id,
            "fields": ",".join(DETAIL_FIELDS),
            "key": settings.google_places_api_key,
        },
    )
    response.raise_for_status()
    details = _places_payload(response.json(), "result")
    if not details:
        return None
    return estimate_restaurant_metrics(details)


def _places_payload(data: dict[str, Any], key: str):
    status = data.get("status", "OK")
    if status == "ZERO_RESULTS":
        return None
    if status != "OK":
        raise LookupError(f"Places API error {status}: {data.get('error_message', '')}")
    return data.get(key)
