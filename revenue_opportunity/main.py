"""Orchestration: messages in, reducer, lookups out, completions back in.

FlowRunner is the single owner of the AppModel. It applies one message at a
time and turns each command the reducer returns into an asyncio task. Lookup
failures never escape a task; they come back as failure messages.
"""

import asyncio
import logging
from typing import Callable, Protocol

import httpx

from . import keywords, places, social
from .config import LookupUnavailable, Settings
from .messages import (
    AppMsg,
    Cmd,
    DetectionFailure,
    DetectSocialProfiles,
    FetchRankedKeywords,
    KeywordsFetched,
    RestaurantSearchComplete,
    RestaurantSearchFailed,
    RunAnalysis,
    SearchRestaurant,
    SearchRestaurants,
    SkipRestaurantSearch,
    SocialDetectionFailed,
    SocialDetectionSuccess,
)
from .models import KeywordEntry, Restaurant, SocialProfile
from .state import (
    AppModel,
    DataEntry,
    Error,
    Loading,
    RestaurantSearch,
    SocialDetection,
    init,
    update,
)

logger = logging.getLogger(__name__)


class Lookups(Protocol):
    async def search_restaurant(self, query: str) -> Restaurant | None: ...

    async def detect_social(self, restaurant: Restaurant) -> SocialProfile: ...

    async def ranked_keywords(self, website: str) -> list[KeywordEntry]: ...


class LiveLookups:
    """Lookups backed by Google Places, the restaurant's website, Apify and DataForSEO."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client

    async def search_restaurant(self, query: str) -> Restaurant | None:
        return await places.search_restaurant(query, self.settings, self._client)

    async def detect_social(self, restaurant: Restaurant) -> SocialProfile:
        return await social.detect_social_profile(restaurant, self.settings, self._client)

    async def ranked_keywords(self, website: str) -> list[KeywordEntry]:
        return await keywords.get_ranked_keywords(website, self.settings, self._client)


def _failure_reason(exc: Exception) -> DetectionFailure:
    if isinstance(exc, social.DetectionError):
        return exc.reason
    if isinstance(exc, LookupUnavailable):
        return DetectionFailure.UNAVAILABLE
    return DetectionFailure.REQUEST_FAILED


class FlowRunner:
    def __init__(
        self,
        lookups: Lookups,
        model: AppModel | None = None,
        on_change: Callable[[AppModel], None] | None = None,
    ):
        self.lookups = lookups
        self.model = model or init()
        self.on_change = on_change
        self._tasks: dict[asyncio.Task, int] = {}

    def send(self, msg: AppMsg) -> AppModel:
        """Apply one message to completion and start any lookups it asks for."""
        previous_session = self.model.session
        result = update(self.model, msg)
        self.model = result.model

        if self.model.session != previous_session:
            self._cancel_stale(self.model.session)
        for cmd in result.cmds:
            self._schedule(cmd)

        if self.on_change:
            self.on_change(self.model)
        return self.model

    async def settle(self) -> AppModel:
        """Wait until no lookups are outstanding, including ones started meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.model

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _schedule(self, cmd: Cmd) -> None:
        task = asyncio.get_running_loop().create_task(self._run(cmd))
        self._tasks[task] = cmd.session
        task.add_done_callback(lambda t: self._tasks.pop(t, None))

    def _cancel_stale(self, session: int) -> None:
        current = asyncio.current_task() if _loop_running() else None
        for task, task_session in list(self._tasks.items()):
            if task_session != session and task is not current:
                task.cancel()

    async def _run(self, cmd: Cmd) -> None:
        msg = await self._perform(cmd)
        self.send(msg)

    async def _perform(self, cmd: Cmd) -> AppMsg:
        if isinstance(cmd, SearchRestaurants):
            try:
                restaurant = await self.lookups.search_restaurant(cmd.query)
            except Exception as exc:
                logger.warning("Restaurant search for %r failed: %s", cmd.query, exc)
                return RestaurantSearchFailed(_failure_reason(exc), cmd.session, str(exc))
            return RestaurantSearchComplete(restaurant, cmd.session)

        if isinstance(cmd, DetectSocialProfiles):
            try:
                profile = await self.lookups.detect_social(cmd.restaurant)
            except Exception as exc:
                logger.warning("Social detection for %s failed: %s", cmd.restaurant.name, exc)
                return SocialDetectionFailed(_failure_reason(exc), cmd.session, str(exc))
            return SocialDetectionSuccess(profile, cmd.session)

        if isinstance(cmd, FetchRankedKeywords):
            try:
                found = await self.lookups.ranked_keywords(cmd.website)
            except Exception as exc:
                logger.warning("Ranked keyword lookup for %s failed: %s", cmd.website, exc)
                found = []
            return KeywordsFetched(tuple(found), cmd.session)

        raise TypeError(f"Unsupported command: {cmd!r}")


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


async def analyze_restaurant(
    query: str | None,
    settings: Settings,
    edits: list[AppMsg] | tuple[AppMsg, ...] = (),
    on_progress: Callable[[str], None] | None = None,
    lookups: Lookups | None = None,
) -> AppModel:
    """
    Run the whole flow for one restaurant and return the Analysis model.

    Steps:
        1. Search Google Places for the query (skipped when query is None)
        2. Detect social profiles and ranked keywords
        3. Apply manual edits on top of what was detected
        4. Aggregate

    Raises:
        RuntimeError: no restaurant matched, or an edit was rejected.
    """
    def _progress(msg: str):
        if on_progress:
            on_progress(msg)

    def _describe(model: AppModel):
        state = model.state
        if isinstance(state, SocialDetection):
            _progress(f"Found {state.restaurant.name}. Detecting social profiles...")
        elif isinstance(state, Loading):
            _progress(state.message)

    runner = FlowRunner(lookups or LiveLookups(settings), on_change=_describe)

    if query:
        runner.send(SearchRestaurant(query))
        await runner.settle()
        if isinstance(runner.model.state, RestaurantSearch):
            raise RuntimeError(f"No restaurant found for {query!r}")
        if isinstance(runner.model.state, Error):
            raise RuntimeError(runner.model.state.message)
    else:
        runner.send(SkipRestaurantSearch())

    for msg in edits:
        runner.send(msg)
        if isinstance(runner.model.state, Error):
            raise RuntimeError(runner.model.state.message)

    if not isinstance(runner.model.state, DataEntry):
        raise RuntimeError(f"Unexpected state {type(runner.model.state).__name__}")

    _progress("Calculating revenue opportunity...")
    return runner.send(RunAnalysis())
