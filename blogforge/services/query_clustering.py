"""Greedy clustering of scored queries and strategic categorization.

Queries are visited by opportunity score (highest first, ties in input
order). Each unvisited query becomes a cluster primary and absorbs every
other unvisited query whose word-set Jaccard similarity exceeds the
threshold. Every query ends up in exactly one cluster.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from blogforge.core.config import get_settings
from blogforge.core.logging import get_logger
from blogforge.services.query_scoring import QueryIntent, ScoredQuery

logger = get_logger(__name__)

QUICK_WIN_MIN_POSITION = 7
QUICK_WIN_MAX_POSITION = 20
HIGH_POTENTIAL_MIN_POSITION = 20
HIGH_POTENTIAL_MAX_POSITION = 40
STRATEGIC_MIN_SCORE = 50
HIGH_IMPRESSIONS_SHARE = 0.10
MEDIUM_IMPRESSIONS_SHARE = 0.05
LOW_CTR_RATIO = 0.5


class ClusterCategory(str, Enum):
    QUICK_WIN = "quick_win"
    HIGH_POTENTIAL = "high_potential"
    STRATEGIC = "strategic"
    NEW_OPPORTUNITY = "new_opportunity"


@dataclass
class KeywordCluster:
    primary_keyword: str
    intent: QueryIntent
    opportunity_score: int
    impressions: float
    position: float
    ctr: float
    expected_ctr: float
    category: ClusterCategory
    supporting_keywords: list[str] = field(default_factory=list)

    def to_prompt_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["intent"] = self.intent.value
        data["category"] = self.category.value
        return data


def query_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the lowercase whitespace-token sets."""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def categorize_cluster(query: ScoredQuery, max_impressions: float) -> ClusterCategory:
    """Assign a strategic category; earlier rules take priority."""
    high_impressions = max_impressions * HIGH_IMPRESSIONS_SHARE
    medium_impressions = max_impressions * MEDIUM_IMPRESSIONS_SHARE
    is_low_ctr = query.ctr < query.expected_ctr * LOW_CTR_RATIO

    if (
        QUICK_WIN_MIN_POSITION <= query.position <= QUICK_WIN_MAX_POSITION
        and query.impressions >= medium_impressions
        and is_low_ctr
    ):
        return ClusterCategory.QUICK_WIN
    if (
        query.impressions >= high_impressions
        and HIGH_POTENTIAL_MIN_POSITION < query.position <= HIGH_POTENTIAL_MAX_POSITION
    ):
        return ClusterCategory.HIGH_POTENTIAL
    if query.opportunity_score >= STRATEGIC_MIN_SCORE and query.impressions >= medium_impressions:
        return ClusterCategory.STRATEGIC
    return ClusterCategory.NEW_OPPORTUNITY


def cluster_queries(
    queries: list[ScoredQuery],
    max_impressions: float,
    threshold: float | None = None,
) -> list[KeywordCluster]:
    """Group similar queries around their highest-scoring member.

    Args:
        queries: Scored queries, in input order.
        max_impressions: Largest impression count among the queries.
        threshold: Similarity that must be exceeded to join a cluster.
            Defaults to settings.query_similarity_threshold.
    """
    if threshold is None:
        threshold = get_settings().query_similarity_threshold

    # sorted() is stable, so equal scores keep input order
    ordered = sorted(queries, key=lambda q: q.opportunity_score, reverse=True)
    used = [False] * len(ordered)
    clusters: list[KeywordCluster] = []

    for i, primary in enumerate(ordered):
        if used[i]:
            continue
        used[i] = True
        supporting: list[str] = []
        for j in range(i + 1, len(ordered)):
            if used[j]:
                continue
            if query_similarity(primary.query, ordered[j].query) > threshold:
                used[j] = True
                supporting.append(ordered[j].query)

        clusters.append(
            KeywordCluster(
                primary_keyword=primary.query,
                supporting_keywords=supporting,
                intent=primary.intent,
                opportunity_score=primary.opportunity_score,
                impressions=primary.impressions,
                position=primary.position,
                ctr=primary.ctr,
                expected_ctr=primary.expected_ctr,
                category=categorize_cluster(primary, max_impressions),
            )
        )

    logger.info(
        "Clustered search console queries",
        extra={"query_count": len(queries), "cluster_count": len(clusters)},
    )
    return clusters
