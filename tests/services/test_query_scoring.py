"""Unit tests for search console query scoring."""

import pytest

from blogforge.schemas.content_plan import GSCQueryRow
from blogforge.services.query_scoring import (
    QueryIntent,
    expected_ctr,
    filter_garbage_queries,
    opportunity_score,
    query_depth_score,
    score_queries,
    tag_intent,
)


def _row(query: str, impressions: float = 500, position: float = 8, ctr: float = 0.02) -> GSCQueryRow:
    return GSCQueryRow(query=query, impressions=impressions, clicks=0, ctr=ctr, position=position)


class TestGarbageFilter:
    def test_single_word_dropped_regardless_of_metrics(self) -> None:
        assert filter_garbage_queries([_row("buy", impressions=1000, position=5)]) == []

    def test_branded_query_dropped_case_insensitive(self) -> None:
        rows = [_row("restora photo app review"), _row("old photo repair tips")]
        kept = filter_garbage_queries(rows, brand_name="Restora")
        assert [r.query for r in kept] == ["old photo repair tips"]

    @pytest.mark.parametrize(
        "row",
        [
            _row("low volume query", impressions=19),
            _row("far off page query", position=51),
            _row("dead ctr deep query", position=25, ctr=0.0005),
        ],
    )
    def test_thresholds(self, row: GSCQueryRow) -> None:
        assert filter_garbage_queries([row]) == []

    def test_dead_ctr_on_page_one_is_kept(self) -> None:
        assert len(filter_garbage_queries([_row("page one zero ctr", position=4, ctr=0.0)])) == 1

    def test_boundaries_are_kept(self) -> None:
        kept = filter_garbage_queries([_row("exactly twenty impressions", impressions=20, position=50, ctr=0.01)])
        assert len(kept) == 1


class TestIntent:
    @pytest.mark.parametrize(
        ("query", "intent"),
        [
            ("photo restoration app", QueryIntent.TRANSACTIONAL),
            ("best photo restoration", QueryIntent.COMMERCIAL),
            ("restore photo software vs service", QueryIntent.TRANSACTIONAL),
            ("how to fix torn photos", QueryIntent.INFORMATIONAL),
        ],
    )
    def test_tag_intent(self, query: str, intent: QueryIntent) -> None:
        assert tag_intent(query) == intent


class TestExpectedCtr:
    @pytest.mark.parametrize(
        ("position", "ctr"),
        [(1, 0.30), (2.4, 0.20), (2.5, 0.12), (10, 0.03), (12, 0.01), (20, 0.01), (21, 0.005)],
    )
    def test_curve(self, position: float, ctr: float) -> None:
        assert expected_ctr(position) == ctr


class TestOpportunityScore:
    def test_quick_win_example(self) -> None:
        assert opportunity_score(500, 12, 0.004, 4, 1000) == 50

    def test_bounds(self) -> None:
        assert opportunity_score(1000, 1, 0.0, 8, 1000) <= 100
        assert opportunity_score(0, 50, 1.0, 1, 1000) >= 0
        assert opportunity_score(10, 10, 0.0, 2, 0) >= 0

    def test_depth_score_steps(self) -> None:
        assert [query_depth_score(n) for n in (2, 3, 4, 5, 9)] == [0.3, 0.5, 0.7, 1.0, 1.0]


def test_score_queries_returns_max_impressions_of_survivors() -> None:
    rows = [
        _row("buy", impressions=5000),
        _row("restore faded photos", impressions=800),
        _row("fix scratched photo at home", impressions=200),
    ]
    scored, max_impressions = score_queries(rows)

    assert max_impressions == 800
    assert [q.query for q in scored] == ["restore faded photos", "fix scratched photo at home"]
    assert all(0 <= q.opportunity_score <= 100 for q in scored)
    assert scored[1].word_count == 5


def test_score_queries_empty_after_filter() -> None:
    assert score_queries([_row("buy")]) == ([], 0.0)
