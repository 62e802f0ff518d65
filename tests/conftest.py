"""Shared fixtures: sample restaurants and an in-memory Lookups double."""

from __future__ import annotations

import asyncio

import pytest

from revenue_opportunity.models import (
    FacebookMetrics,
    InstagramMetrics,
    KeywordEntry,
    Restaurant,
    SocialLinks,
    SocialProfile,
)


TONYS = Restaurant(
    place_id="place-tonys",
    name="Tony's Pizzeria",
    address="12 Main St, Springfield",
    website="https://tonyspizza.example",
    rating=4.5,
    review_count=250,
    price_level=2,
    estimated_monthly_revenue=109375.0,
    estimated_avg_ticket=25.0,
    estimated_monthly_transactions=4375,
)

NO_SITE = Restaurant(place_id="place-nosite", name="Corner Slice")

TONYS_PROFILE = SocialProfile(
    links=SocialLinks(
        instagram="https://instagram.com/tonyspizza",
        facebook="https://facebook.com/tonyspizza",
    ),
    instagram=InstagramMetrics(followers=1000, posts_count=50, total_likes=500),
    facebook=FacebookMetrics(followers=1000, likes=1500),
)

TONYS_KEYWORDS = [
    KeywordEntry("pizza near me", 3000, 5, 2, True),
    KeywordEntry("tonys pizza springfield", 400, 1, 1, False),
]


class FakeLookups:
    """Lookups double. Pass an exception instance to make that lookup fail."""

    def __init__(
        self,
        restaurant=TONYS,
        profile=TONYS_PROFILE,
        keywords=None,
        hold_detection: bool = False,
    ):
        self.restaurant = restaurant
        self.profile = profile
        self.keywords = TONYS_KEYWORDS if keywords is None else keywords
        self.hold_detection = hold_detection
        self.calls: list[tuple[str, object]] = []

    async def search_restaurant(self, query):
        self.calls.append(("search", query))
        if isinstance(self.restaurant, Exception):
            raise self.restaurant
        return self.restaurant

    async def detect_social(self, restaurant):
        self.calls.append(("detect", restaurant.name))
        if self.hold_detection:
            await asyncio.Event().wait()
        if isinstance(self.profile, Exception):
            raise self.profile
        return self.profile

    async def ranked_keywords(self, website):
        self.calls.append(("keywords", website))
        if isinstance(self.keywords, Exception):
            raise self.keywords
        return list(self.keywords)


@pytest.fixture()
def lookups() -> FakeLookups:
    return FakeLookups()
