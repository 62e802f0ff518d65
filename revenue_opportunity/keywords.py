"""DataForSEO ranked keywords: what a restaurant's site already ranks for.

Each ranked keyword becomes a KeywordEntry: current position from the live
SERP, a realistic improvement target, and a Local Pack vs organic guess.
"""

import base64
import logging
import re
from typing import Any

import httpx

from .config import LookupUnavailable, Settings
from .models import KeywordEntry

logger = logging.getLogger(__name__)

RANKED_KEYWORDS_ENDPOINT = "https://api.dataforseo.com/v3/dataforseo_labs/google/ranked_keywords/live"
US_LOCATION_CODE = 2840
DATAFORSEO_OK = 20000

# Terms that make a top-3 result likely to be the map pack for a restaurant
LOCAL_INTENT_TERMS = ("near me", "restaurant", "pizza", "food")
LOCAL_SERP_MARKERS = ("local", "map", "pack")


def _extract_domain(url: str) -> str:
    """Strip protocol, www., and path from a URL to get bare domain.

    >>> _extract_domain("https://www.example.com/about")
    'example.com'
    """
    domain = re.sub(r"^https?://", "", url.strip())
    domain = re.sub(r"^www\.", "", domain)
    domain = domain.split("/")[0].split("?")[0]
    return domain.lower()


def _auth_header(login: str, password: str) -> str:
    credentials = f"{login}:{password}"
    return f"Basic {base64.b64encode(credentials.encode()).decode()}"


def target_position(position: int) -> int:
    """Move up by half the current rank, at most 3 places, never past #1.

    >>> target_position(1)
    1
    >>> target_position(4)
    2
    >>> target_position(12)
    9
    """
    return max(1, position - min(3, position // 2))


def is_local_pack(keyword: str, position: int, serp_item_types: list[str]) -> bool:
    """Guess whether a ranking is in the Local Pack rather than organic results."""
    if any(marker in item for item in serp_item_types for marker in LOCAL_SERP_MARKERS):
        return True
    kw = keyword.lower()
    return position <= 3 and any(term in kw for term in LOCAL_INTENT_TERMS)


def _parse_ranked_keywords(response: dict[str, Any]) -> list[KeywordEntry]:
    """Parse the Ranked Keywords API response into keyword entries."""
    entries: list[KeywordEntry] = []
    for task in response.get("tasks", []) or []:
        for result in task.get("result", []) or []:
            for item in result.get("items", []) or []:
                keyword_data = item.get("keyword_data", {}) or {}
                keyword = keyword_data.get("keyword", "")
                keyword_info = keyword_data.get("keyword_info", {}) or {}
                volume = keyword_info.get("search_volume") or 0

                serp_elem = item.get("ranked_serp_element", {}) or {}
                serp_item = serp_elem.get("serp_item", {}) or {}
                rank = serp_item.get("rank_absolute") or serp_item.get("rank_group") or 0

                serp_info = keyword_data.get("serp_info", {}) or {}
                serp_types = serp_info.get("serp_item_types", []) or []

                # Unranked rows have no position to improve from
                if not keyword or rank < 1:
                    continue

                entries.append(KeywordEntry(
                    keyword=keyword,
                    search_volume=int(volume),
                    current_position=int(rank),
                    target_position=target_position(int(rank)),
                    is_local_pack=is_local_pack(keyword, int(rank), serp_types),
                ))
    return entries


async def get_ranked_keywords(
    website: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    limit: int = 12,
) -> list[KeywordEntry]:
    """
    Fetch keywords the restaurant's domain actually ranks for in Google.

    Raises:
        LookupUnavailable: DataForSEO credentials are not configured.
        httpx.HTTPError: the request failed.
        LookupError: DataForSEO answered with an error status.
    """
    if not settings.keywords_available:
        raise LookupUnavailable(
            "DataForSEO not configured. Set DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD."
        )

    if client is None:
        async with httpx.AsyncClient(timeout=settings.timeout_seconds) as owned:
            return await get_ranked_keywords(website, settings, owned, limit)

    domain = _extract_domain(website)
    payload = [
        {
            "target": domain,
            "language_name": "English",
            "location_code": US_LOCATION_CODE,
            "order_by": ["keyword_data.keyword_info.search_volume,desc"],
            "limit": limit,
        }
    ]
    headers = {
        "Authorization": _auth_header(settings.dataforseo_login, settings.dataforseo_password),
        "Content-Type": "application/json",
    }

    response = await client.post(RANKED_KEYWORDS_ENDPOINT, json=payload, headers=headers)
    response.raise_for_status()
    data = response.json()

    status = data.get("status_code")
    if status is not None and status != DATAFORSEO_OK:
        raise LookupError(f"DataForSEO error {status}: {data.get('status_message', '')}")

    entries = _parse_ranked_keywords(data)
    logger.info("Found %d ranked keywords for %s", len(entries), domain)
    return entries
