"""Unit tests for query clustering and cluster categorization."""

import pytest

from blogforge.schemas.content_plan import GSCQueryRow
from blogforge.services.query_clustering import (
    ClusterCategory,
    categorize_cluster,
    cluster_queries,
    query_similarity,
)
from blogforge.services.query_scoring import (
    QueryIntent,
    ScoredQuery,
    expected_ctr,
    score_queries,
)


def _scored(
    query: str,
    score: int = 40,
    impressions: float = 100,
    position: float = 8,
    ctr: float = 0.02,
) -> ScoredQuery:
    return ScoredQuery(
        query=query,
        impressions=impressions,
        clicks=0,
        ctr=ctr,
        position=position,
        intent=QueryIntent.INFORMATIONAL,
        word_count=len(query.split()),
        expected_ctr=expected_ctr(position),
        opportunity_score=score,
    )


class TestSimilarity:
    def test_symmetric(self) -> None:
        a, b = "restore old photos", "old photos restore free"
        assert query_similarity(a, b) == query_similarity(b, a)

    def test_values(self) -> None:
        assert query_similarity("a b", "a b") == 1.0
        assert query_similarity("a b", "c d") == 0.0
        assert query_similarity("Restore Photos", "restore photos online") == pytest.approx(2 / 3)
        assert query_similarity("", "") == 0.0


class TestCategorize:
    def test_quick_win(self) -> None:
        query = _scored("best budget laptop 2024", impressions=500, position=12, ctr=0.004)
        assert categorize_cluster(query, 1000) == ClusterCategory.QUICK_WIN

    def test_ctr_at_expected_is_not_a_quick_win(self) -> None:
        query = _scored("best budget laptop 2024", score=30, impressions=500, position=12, ctr=0.01)
        assert categorize_cluster(query, 1000) == ClusterCategory.NEW_OPPORTUNITY

    def test_high_potential(self) -> None:
        query = _scored("deep ranking query", impressions=200, position=30, ctr=0.0)
        assert categorize_cluster(query, 1000) == ClusterCategory.HIGH_POTENTIAL

    def test_strategic(self) -> None:
        query = _scored("strong page one query", score=60, impressions=60, position=3, ctr=0.2)
        assert categorize_cluster(query, 1000) == ClusterCategory.STRATEGIC

    def test_new_opportunity(self) -> None:
        query = _scored("tiny query", score=60, impressions=10, position=3, ctr=0.2)
        assert categorize_cluster(query, 1000) == ClusterCategory.NEW_OPPORTUNITY

    def test_quick_win_outranks_strategic(self) -> None:
        query = _scored("best budget laptop 2024", score=60, impressions=500, position=12, ctr=0.004)
        assert categorize_cluster(query, 1000) == ClusterCategory.QUICK_WIN

    def test_high_potential_outranks_strategic(self) -> None:
        query = _scored("deep ranking query", score=60, impressions=200, position=30, ctr=0.0)
        assert categorize_cluster(query, 1000) == ClusterCategory.HIGH_POTENTIAL


class TestClusterQueries:
    def test_every_query_in_exactly_one_cluster(self) -> None:
        queries = [
            _scored("restore old photos", 50),
            _scored("restore old photos free", 70),
            _scored("colorize black and white photos", 60),
            _scored("restore photos", 30),
        ]
        clusters = cluster_queries(queries, max_impressions=100, threshold=0.4)

        members = [c.primary_keyword for c in clusters] + [
            kw for c in clusters for kw in c.supporting_keywords
        ]
        assert sorted(members) == sorted(q.query for q in queries)

    def test_highest_score_becomes_primary(self) -> None:
        queries = [_scored("restore old photos", 50), _scored("restore old photos free", 70)]
        clusters = cluster_queries(queries, max_impressions=100, threshold=0.4)

        assert len(clusters) == 1
        assert clusters[0].primary_keyword == "restore old photos free"
        assert clusters[0].supporting_keywords == ["restore old photos"]
        assert clusters[0].opportunity_score == 70

    def test_ties_keep_input_order(self) -> None:
        queries = [_scored("alpha beta", 40), _scored("gamma delta", 40)]
        clusters = cluster_queries(queries, max_impressions=100, threshold=0.4)
        assert [c.primary_keyword for c in clusters] == ["alpha beta", "gamma delta"]

    def test_similarity_must_exceed_threshold(self) -> None:
        # Jaccard("a b", "a c") == 1/3
        clusters = cluster_queries(
            [_scored("a b", 50), _scored("a c", 40)], max_impressions=100, threshold=1 / 3
        )
        assert len(clusters) == 2

    def test_prompt_dict_uses_enum_values(self) -> None:
        clusters = cluster_queries([_scored("a b", 50)], max_impressions=100, threshold=0.4)
        data = clusters[0].to_prompt_dict()
        assert data["intent"] == "informational"
        assert data["category"] in {c.value for c in ClusterCategory}


class TestScoreThenCluster:
    def test_filtered_rows_never_reach_a_cluster(self) -> None:
        rows = [
            GSCQueryRow(query="restore old photos", impressions=400, ctr=0.02, position=9),
            GSCQueryRow(query="restore old photos free", impressions=300, ctr=0.01, position=11),
            GSCQueryRow(query="colorize black and white photos", impressions=200, ctr=0.03, position=6),
            GSCQueryRow(query="acme restore old photos", impressions=900, ctr=0.02, position=4),
            GSCQueryRow(query="photos", impressions=800, ctr=0.02, position=5),
            GSCQueryRow(query="restore old photos online", impressions=5, ctr=0.0, position=9),
            GSCQueryRow(query="old photos restore far away", impressions=100, ctr=0.0, position=60),
        ]
        scored, max_impressions = score_queries(rows, brand_name="Acme")
        clusters = cluster_queries(scored, max_impressions=max_impressions, threshold=0.4)

        members = {c.primary_keyword for c in clusters} | {
            kw for c in clusters for kw in c.supporting_keywords
        }
        assert members == {
            "restore old photos",
            "restore old photos free",
            "colorize black and white photos",
        }
        assert max_impressions == 400
