"""Social presence detection for a restaurant.

Two steps:
- find profile links on the restaurant's own website (plain HTTP fetch,
  BeautifulSoup link scan)
- pull follower/engagement numbers for Instagram and Facebook through
  Apify actors, when an Apify token is configured

Metrics are best-effort per platform: one platform failing leaves the
other's numbers intact.
"""

import asyncio
import logging
import re
from typing import Any
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from .config import LookupUnavailable, Settings
from .messages import DetectionFailure
from .models import FacebookMetrics, InstagramMetrics, Restaurant, SocialLinks, SocialProfile

logger = logging.getLogger(__name__)

APIFY_BASE_URL = "https://api.apify.com/v2"
INSTAGRAM_ACTOR_ID = "shu8hvrXbJbY3Eb9W"
FACEBOOK_ACTOR_ID = "4Hv5RhChiaDk6iwad"
RECENT_POSTS = 10

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0"

# platform -> host pattern
PLATFORM_HOSTS = {
    "instagram": r"(^|\.)instagram\.com$",
    "facebook": r"(^|\.)(facebook\.com|fb\.com)$",
    "twitter": r"(^|\.)(twitter\.com|x\.com)$",
    "youtube": r"(^|\.)youtube\.com$",
    "tiktok": r"(^|\.)tiktok\.com$",
}

# Share buttons and embeds point at the platform, not at the restaurant
IGNORED_PATHS = re.compile(r"^/(sharer|share|intent|plugins|dialog|embed|p/|reel/|watch)", re.I)


class DetectionError(LookupError):
    def __init__(self, reason: DetectionFailure, detail: str = ""):
        super().__init__(detail or reason.value)
        self.reason = reason
        self.detail = detail


def find_social_links(html: str, base_url: str) -> SocialLinks:
    """First profile link per platform found in the page's anchors."""
    soup = BeautifulSoup(html, "html.parser")
    found: dict[str, str] = {}

    for a_tag in soup.find_all("a", href=True):
        href = a_tag["href"].strip()
        if href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        url = urljoin(base_url, href)
        parsed = urlparse(url)
        host = parsed.netloc.lower().split(":")[0]
        if not parsed.path.strip("/") or IGNORED_PATHS.search(parsed.path):
            continue

        for platform, pattern in PLATFORM_HOSTS.items():
            if platform not in found and re.search(pattern, host):
                found[platform] = f"https://{host}{parsed.path.rstrip('/')}"
                break

    return SocialLinks(**found)


def _parse_instagram_profile(item: dict[str, Any]) -> InstagramMetrics:
    posts = item.get("latestPosts") or []
    total_likes = sum(int(post.get("likesCount") or 0) for post in posts[:RECENT_POSTS])
    return InstagramMetrics(
        followers=int(item.get("followersCount") or 0),
        posts_count=int(item.get("postsCount") or 0),
        total_likes=total_likes,
        username=item.get("username"),
        profile_pic_url=item.get("profilePicUrl"),
    )


def _truthy(value: Any) -> bool:
    return value is True or value == 1 or str(value).lower() == "true"


def _parse_facebook_page(item: dict[str, Any]) -> FacebookMetrics:
    if item.get("error"):
        raise DetectionError(
            DetectionFailure.NOT_FOUND,
            f"Access restricted: {item.get('errorDescription') or item['error']}",
        )
    followers = (
        item.get("followers") or item.get("followersCount")
        or item.get("fanCount") or item.get("fans") or 0
    )
    likes = item.get("likes") or item.get("pageLikes") or item.get("likesCount") or 0
    return FacebookMetrics(
        followers=int(followers),
        likes=int(likes),
        is_running_ads=_truthy(item.get("ad_status")),
        is_active_page=_truthy(item.get("is_business_page_active")),
        page_name=item.get("name") or item.get("pageName") or item.get("title"),
    )


async def _run_actor(
    client: httpx.AsyncClient,
    actor_id: str,
    actor_input: dict[str, Any],
    token: str,
) -> list[dict[str, Any]]:
    response = await client.post(
        f"{APIFY_BASE_URL}/acts/{actor_id}/run-sync-get-dataset-items",
        params={"token": token},
        json=actor_input,
    )
    response.raise_for_status()
    return response.json() or []


async def fetch_instagram_metrics(
    url: str,
    settings: Settings,
    client: httpx.AsyncClient,
) -> InstagramMetrics:
    if not settings.social_metrics_available:
        raise LookupUnavailable("Apify token is missing. Set APIFY_TOKEN.")
    items = await _run_actor(
        client,
        INSTAGRAM_ACTOR_ID,
        {
            "directUrls": [url],
            "resultsType": "details",
            "searchLimit": 1,
            "searchType": "user",
            "resultsLimit": RECENT_POSTS,
        },
        settings.apify_token,
    )
    if not items:
        raise DetectionError(DetectionFailure.NOT_FOUND, f"No Instagram data for {url}")
    return _parse_instagram_profile(items[0])


async def fetch_facebook_metrics(
    url: str,
    settings: Settings,
    client: httpx.AsyncClient,
) -> FacebookMetrics:
    if not settings.social_metrics_available:
        raise LookupUnavailable("Apify token is missing. Set APIFY_TOKEN.")
    if not url.startswith("http"):
        url = f"https://{url}"
    items = await _run_actor(
        client, FACEBOOK_ACTOR_ID, {"startUrls": [{"url": url}]}, settings.apify_token
    )
    if not items:
        raise DetectionError(DetectionFailure.NOT_FOUND, f"No Facebook data for {url}")
    return _parse_facebook_page(items[0])


async def _best_effort(platform: str, fetch):
    try:
        return await fetch
    except (LookupError, httpx.HTTPError, ValueError) as exc:
        logger.warning("Could not fetch %s metrics: %s", platform, exc)
        return None


async def detect_social_profile(
    restaurant: Restaurant,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> SocialProfile:
    """
    Find a restaurant's social profiles and, where possible, their metrics.

    Raises:
        DetectionError: no website to scan, or no profile links on it.
        httpx.HTTPError: the website could not be fetched.
    """
    if not restaurant.website:
        raise DetectionError(DetectionFailure.NO_WEBSITE, f"{restaurant.name} has no website")

    if client is None:
        async with httpx.AsyncClient(
            timeout=settings.timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as owned:
            return await detect_social_profile(restaurant, settings, owned)

    url = restaurant.website
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"

    response = await client.get(url)
    response.raise_for_status()
    links = find_social_links(response.text, str(response.url))
    if links.is_empty:
        raise DetectionError(DetectionFailure.NOT_FOUND, f"No social links on {url}")

    if not settings.social_metrics_available:
        logger.info("APIFY_TOKEN not set; keeping social links without metrics")
        return SocialProfile(links=links)

    async def nothing():
        return None

    instagram, facebook = await asyncio.gather(
        _best_effort("instagram", fetch_instagram_metrics(links.instagram, settings, client))
        if links.instagram else nothing(),
        _best_effort("facebook", fetch_facebook_metrics(links.facebook, settings, client))
        if links.facebook else nothing(),
    )
    return SocialProfile(links=links, instagram=instagram, facebook=facebook)
