"""Tests for the pure matchers and the three extraction strategies."""

import pytest

from tourwatch.errors import AccessError
from tourwatch.extract.base import MatchPolicy, match_contains, match_exact, parse_status
from tourwatch.extract.strategies import (
    DirectDocumentStrategy,
    FrameScanStrategy,
    WholeDocumentStrategy,
    default_strategies,
)
from tourwatch.models import AvailabilityStatus
from tourwatch.scraper.base import MarkerQuery

QUERY = MarkerQuery()


class TestParseStatus:
    def test_known(self):
        assert parse_status("Available") == AvailabilityStatus.AVAILABLE
        assert parse_status("SellingOut") == AvailabilityStatus.SELLING_OUT

    def test_unknown(self):
        assert parse_status("SoldOut") is None
        assert parse_status("") is None


class TestMatchExact:
    def test_document_order(self, marker):
        markers = [marker("Available", "20"), marker("SellingOut", "19")]
        matches = match_exact(markers, ["19", "20"])
        assert [(m.date, m.status) for m in matches] == [
            ("20", AvailabilityStatus.AVAILABLE),
            ("19", AvailabilityStatus.SELLING_OUT),
        ]

    def test_concatenated_text_does_not_match(self, marker):
        assert match_exact([marker("Available", "1920")], ["19", "20"]) == []

    def test_child_text_trimmed(self, marker):
        matches = match_exact([marker("Available", " 20 ")], ["20"])
        assert [m.date for m in matches] == ["20"]

    def test_one_match_per_qualifying_child(self, marker):
        matches = match_exact([marker("Available", "20", "Tour", "21")], ["20", "21"])
        assert [m.date for m in matches] == ["20", "21"]

    def test_context_is_marker_text(self, marker):
        matches = match_exact([marker("Available", "20", text="20 Available 12:00")], ["20"])
        assert matches[0].context == "20 Available 12:00"

    def test_unknown_status_skipped(self, marker):
        assert match_exact([marker("Closed", "20")], ["20"]) == []


class TestMatchContains:
    def test_over_matches_by_substring(self, marker):
        matches = match_contains([marker("Available", text="2021")], ["20"])
        assert len(matches) == 1
        assert matches[0].date == "20"
        assert matches[0].context == "2021"

    def test_labels_in_configured_order(self, marker):
        matches = match_contains([marker("SellingOut", text="19 20")], ["20", "19"])
        assert [m.date for m in matches] == ["20", "19"]

    def test_empty_text_skipped(self, marker):
        assert match_contains([marker("Available", text="")], ["20"]) == []


class TestDirectDocumentStrategy:
    def test_matches_inside_container(self, fake_page, snapshot, marker):
        page = fake_page(
            snapshot=snapshot(marker("Available", "20"), marker("SellingOut", "19"))
        )
        matches = DirectDocumentStrategy().attempt(page, ["19", "20"], QUERY)
        assert [m.date for m in matches] == ["20", "19"]

    def test_ignores_markers_outside_container(self, fake_page, snapshot, marker):
        page = fake_page(
            snapshot=snapshot(
                marker("Available", "20", in_container=False),
                marker("SellingOut", "19"),
            )
        )
        matches = DirectDocumentStrategy().attempt(page, ["19", "20"], QUERY)
        assert [m.date for m in matches] == ["19"]

    def test_no_container(self, fake_page, snapshot, marker):
        page = fake_page(
            snapshot=snapshot(marker("Available", "20", in_container=False), has_container=False)
        )
        assert DirectDocumentStrategy().attempt(page, ["20"], QUERY) == []

    def test_exact_policy(self):
        assert DirectDocumentStrategy.match_policy == MatchPolicy.EXACT


class TestFrameScanStrategy:
    def test_skips_inaccessible_and_empty_frames(self, fake_page, fake_frame, snapshot, marker):
        blocked = fake_frame(name="iframe 1", error=AccessError("cross-origin"))
        no_calendar = fake_frame(snapshot(has_container=False), name="iframe 2")
        calendar = fake_frame(snapshot(marker("Available", "20")), name="iframe 3")
        page = fake_page(frames=[blocked, no_calendar, calendar])

        matches = FrameScanStrategy(frame_settle_ms=250).attempt(page, ["20"], QUERY)

        assert [m.date for m in matches] == ["20"]
        assert blocked.settled == [250]
        assert calendar.settled == [250]

    def test_first_non_empty_frame_wins(self, fake_page, fake_frame, snapshot, marker):
        first = fake_frame(snapshot(marker("Available", "20")), name="iframe 1")
        second = fake_frame(snapshot(marker("SellingOut", "20")), name="iframe 2")
        page = fake_page(frames=[first, second])

        matches = FrameScanStrategy(frame_settle_ms=0).attempt(page, ["20"], QUERY)

        assert [m.status for m in matches] == [AvailabilityStatus.AVAILABLE]
        assert second.snapshot_calls == 0

    def test_container_without_matches_continues(self, fake_page, fake_frame, snapshot, marker):
        first = fake_frame(snapshot(marker("Available", "25")), name="iframe 1")
        second = fake_frame(snapshot(marker("Available", "20")), name="iframe 2")
        page = fake_page(frames=[first, second])

        matches = FrameScanStrategy(frame_settle_ms=0).attempt(page, ["20"], QUERY)

        assert [m.date for m in matches] == ["20"]

    def test_no_frames(self, fake_page):
        assert FrameScanStrategy().attempt(fake_page(), ["20"], QUERY) == []


class TestWholeDocumentStrategy:
    def test_ignores_container_boundary(self, fake_page, snapshot, marker):
        page = fake_page(
            snapshot=snapshot(
                marker("Available", text="Sat 20", in_container=False), has_container=False
            )
        )
        matches = WholeDocumentStrategy().attempt(page, ["20"], QUERY)
        assert [m.date for m in matches] == ["20"]

    def test_contains_policy(self):
        assert WholeDocumentStrategy.match_policy == MatchPolicy.CONTAINS


def test_default_order():
    strategies = default_strategies(frame_settle_ms=1234)
    assert [s.strategy_id for s in strategies] == [
        "direct_document",
        "frame_scan",
        "whole_document",
    ]
    assert strategies[1].frame_settle_ms == 1234


@pytest.mark.parametrize(
    "strategy_cls", [DirectDocumentStrategy, FrameScanStrategy, WholeDocumentStrategy]
)
def test_strategies_have_names(strategy_cls):
    assert strategy_cls.strategy_id
    assert strategy_cls.strategy_name
