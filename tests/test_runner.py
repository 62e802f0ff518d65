"""
tests/test_runner.py

Tests for FlowRunner and analyze_restaurant, using an in-memory Lookups
double. Each test drives its own event loop with asyncio.run.

Coverage
--------
- Full flow: search -> detection -> keywords -> data entry
- Lookup failures turn into failure messages, never exceptions
- StartOver cancels outstanding lookups
- on_change sees every model
- analyze_restaurant end to end, including manual edits and no match
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import NO_SITE, TONYS, TONYS_KEYWORDS, FakeLookups

from revenue_opportunity import messages as m
from revenue_opportunity.config import LookupUnavailable, Settings
from revenue_opportunity.main import FlowRunner, analyze_restaurant
from revenue_opportunity.models import BusinessSnapshot
from revenue_opportunity.social import DetectionError
from revenue_opportunity.state import Analysis, DataEntry, RestaurantSearch, SocialDetection


# ---------------------------------------------------------------------------
# FlowRunner
# ---------------------------------------------------------------------------


class TestFlowRunner:
    def test_search_runs_to_data_entry(self, lookups: FakeLookups) -> None:
        async def scenario():
            runner = FlowRunner(lookups)
            runner.send(m.SearchRestaurant("tonys springfield"))
            return await runner.settle()

        model = asyncio.run(scenario())
        snapshot = model.state.snapshot
        assert isinstance(model.state, DataEntry)
        assert snapshot.place_name == "Tony's Pizzeria"
        assert snapshot.instagram_metrics is not None
        assert snapshot.keywords == tuple(TONYS_KEYWORDS)
        assert lookups.calls == [
            ("search", "tonys springfield"),
            ("detect", "Tony's Pizzeria"),
            ("keywords", "https://tonyspizza.example"),
        ]

    def test_search_unavailable_falls_back_to_manual_entry(self) -> None:
        lookups = FakeLookups(restaurant=LookupUnavailable("no key"))

        async def scenario():
            runner = FlowRunner(lookups)
            runner.send(m.SearchRestaurant("tonys"))
            return await runner.settle()

        model = asyncio.run(scenario())
        assert model.state == DataEntry(BusinessSnapshot())

    @pytest.mark.parametrize(
        "error",
        [
            DetectionError(m.DetectionFailure.NOT_FOUND, "no links"),
            httpx.ConnectError("refused"),
            RuntimeError("actor crashed"),
        ],
    )
    def test_detection_failure_keeps_flow_going(self, error: Exception) -> None:
        lookups = FakeLookups(profile=error)

        async def scenario():
            runner = FlowRunner(lookups)
            runner.send(m.SelectRestaurant(TONYS))
            return await runner.settle()

        model = asyncio.run(scenario())
        assert isinstance(model.state, DataEntry)
        assert model.state.snapshot.place_name == "Tony's Pizzeria"
        assert model.state.snapshot.keywords_auto_detected is True

    def test_keyword_failure_keeps_sample_keywords(self) -> None:
        lookups = FakeLookups(keywords=LookupError("DataForSEO error 40100"))

        async def scenario():
            runner = FlowRunner(lookups)
            runner.send(m.SelectRestaurant(TONYS))
            return await runner.settle()

        model = asyncio.run(scenario())
        assert model.state.snapshot.keywords == BusinessSnapshot().keywords
        assert model.state.snapshot.keywords_auto_detected is False

    def test_no_website_skips_keyword_lookup(self) -> None:
        lookups = FakeLookups(profile=DetectionError(m.DetectionFailure.NO_WEBSITE))

        async def scenario():
            runner = FlowRunner(lookups)
            runner.send(m.SelectRestaurant(NO_SITE))
            return await runner.settle()

        model = asyncio.run(scenario())
        assert isinstance(model.state, DataEntry)
        assert [call[0] for call in lookups.calls] == ["detect"]

    def test_start_over_cancels_outstanding_lookups(self) -> None:
        lookups = FakeLookups(hold_detection=True)

        async def scenario():
            runner = FlowRunner(lookups)
            runner.send(m.SelectRestaurant(TONYS))
            await asyncio.sleep(0)
            assert runner.pending == 1
            assert isinstance(runner.model.state, SocialDetection)
            runner.send(m.StartOver())
            await runner.settle()
            return runner

        runner = asyncio.run(scenario())
        assert runner.pending == 0
        assert runner.model.state == RestaurantSearch()
        assert runner.model.session == 2

    def test_on_change_sees_every_model(self, lookups: FakeLookups) -> None:
        seen = []

        async def scenario():
            runner = FlowRunner(lookups, on_change=seen.append)
            runner.send(m.SelectRestaurant(TONYS))
            await runner.settle()

        asyncio.run(scenario())
        kinds = [type(model.state).__name__ for model in seen]
        assert kinds == ["SocialDetection", "DataEntry", "DataEntry"]

    def test_send_without_loop_for_pure_messages(self) -> None:
        runner = FlowRunner(FakeLookups())
        runner.send(m.SkipRestaurantSearch())
        runner.send(m.UpdateSMSListSize(500))
        model = runner.send(m.RunAnalysis())
        assert isinstance(model.state, Analysis)
        assert runner.pending == 0


# ---------------------------------------------------------------------------
# analyze_restaurant
# ---------------------------------------------------------------------------


class TestAnalyzeRestaurant:
    def test_end_to_end_with_edits(self, lookups: FakeLookups) -> None:
        progress = []
        model = asyncio.run(
            analyze_restaurant(
                "tonys",
                Settings(),
                edits=[m.UpdateSMSListSize(500), m.SetOffersLoyaltyProgram(True)],
                on_progress=progress.append,
                lookups=lookups,
            )
        )
        state = model.state
        assert isinstance(state, Analysis)
        assert state.snapshot.sms_list_size == 500
        assert state.result.paths["social"] == "enhanced"
        assert state.result.paths["seo"] == "keywords"
        assert progress[0] == "Searching for tonys..."
        assert progress[-1] == "Calculating revenue opportunity..."

    def test_skip_search(self) -> None:
        lookups = FakeLookups()
        model = asyncio.run(analyze_restaurant(None, Settings(), lookups=lookups))
        assert isinstance(model.state, Analysis)
        assert model.state.snapshot.place_name is None
        assert lookups.calls == []

    def test_no_match(self) -> None:
        with pytest.raises(RuntimeError, match="No restaurant found"):
            asyncio.run(
                analyze_restaurant("nowhere", Settings(), lookups=FakeLookups(restaurant=None))
            )

    def test_rejected_edit(self) -> None:
        with pytest.raises(RuntimeError, match="non-negative"):
            asyncio.run(
                analyze_restaurant(
                    None,
                    Settings(),
                    edits=[m.UpdateMonthlyRevenue(-5)],
                    lookups=FakeLookups(),
                )
            )
