"""Search Console query scoring.

Turns raw GSC query rows into scored, intent-tagged queries:

1. filter_garbage_queries drops branded, thin, far-off-page and one-word rows
2. tag_intent classifies by keyword markers
3. opportunity_score blends reach, rank, CTR gap and query depth into 0-100

Everything here is pure and synchronous.
"""

import math
from dataclasses import dataclass
from enum import Enum

from blogforge.core.logging import get_logger
from blogforge.schemas.content_plan import GSCQueryRow

logger = get_logger(__name__)

MIN_IMPRESSIONS = 20
MAX_POSITION = 50
DEAD_CTR = 0.001
DEAD_CTR_POSITION = 20
MIN_WORDS = 2

# Industry CTR curve for page-one positions
EXPECTED_CTR_BY_POSITION: dict[int, float] = {
    1: 0.30,
    2: 0.20,
    3: 0.12,
    4: 0.08,
    5: 0.06,
    6: 0.04,
    7: 0.03,
    8: 0.03,
    9: 0.03,
    10: 0.03,
}
PAGE_TWO_CTR = 0.01
DEEP_CTR = 0.005

TRANSACTIONAL_MARKERS = (
    "tool",
    "software",
    "app",
    "generator",
    "maker",
    "creator",
    "download",
    "login",
    "sign up",
)
COMMERCIAL_MARKERS = (
    "best",
    "top",
    "vs",
    "review",
    "alternative",
    "pricing",
    "compare",
    "cheap",
    "free",
)

WEIGHT_IMPRESSIONS = 0.4
WEIGHT_POSITION = 0.3
WEIGHT_CTR_GAP = 0.2
WEIGHT_DEPTH = 0.1


class QueryIntent(str, Enum):
    TRANSACTIONAL = "transactional"
    COMMERCIAL = "commercial"
    INFORMATIONAL = "informational"


@dataclass(frozen=True)
class ScoredQuery:
    query: str
    impressions: float
    clicks: float
    ctr: float
    position: float
    intent: QueryIntent
    word_count: int
    expected_ctr: float
    opportunity_score: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def word_count(query: str) -> int:
    return len(query.split())


def filter_garbage_queries(
    rows: list[GSCQueryRow], brand_name: str | None = None
) -> list[GSCQueryRow]:
    """Drop rows that are not worth writing about.

    A row is dropped when the query contains the brand name
    (case-insensitive), has fewer than 20 impressions, ranks beyond 50,
    has a dead CTR (< 0.1%) while ranking beyond 20, or is a single word.
    """
    brand = (brand_name or "").strip().lower()
    kept: list[GSCQueryRow] = []
    for row in rows:
        query = row.query.lower()
        if brand and brand in query:
            continue
        if row.impressions < MIN_IMPRESSIONS:
            continue
        if row.position > MAX_POSITION:
            continue
        if row.ctr < DEAD_CTR and row.position > DEAD_CTR_POSITION:
            continue
        if word_count(query) < MIN_WORDS:
            continue
        kept.append(row)
    return kept


def tag_intent(query: str) -> QueryIntent:
    """Classify a query; transactional markers win over commercial ones."""
    q = query.lower()
    if any(marker in q for marker in TRANSACTIONAL_MARKERS):
        return QueryIntent.TRANSACTIONAL
    if any(marker in q for marker in COMMERCIAL_MARKERS):
        return QueryIntent.COMMERCIAL
    return QueryIntent.INFORMATIONAL


def expected_ctr(position: float) -> float:
    if position <= 10:
        return EXPECTED_CTR_BY_POSITION.get(max(1, _round_half_up(position)), 0.03)
    if position <= 20:
        return PAGE_TWO_CTR
    return DEEP_CTR


def query_depth_score(words: int) -> float:
    """Longer queries are more specific and easier to satisfy."""
    if words >= 5:
        return 1.0
    if words == 4:
        return 0.7
    if words == 3:
        return 0.5
    return 0.3


def opportunity_score(
    impressions: float,
    position: float,
    ctr: float,
    words: int,
    max_impressions: float,
) -> int:
    """Weighted 0-100 opportunity score."""
    impressions_norm = impressions / max_impressions if max_impressions > 0 else 0.0
    position_inverse = max(0.0, (MAX_POSITION - position) / MAX_POSITION)
    ctr_gap = max(0.0, expected_ctr(position) - ctr)

    raw = (
        impressions_norm * WEIGHT_IMPRESSIONS
        + position_inverse * WEIGHT_POSITION
        + ctr_gap * WEIGHT_CTR_GAP
        + query_depth_score(words) * WEIGHT_DEPTH
    )
    return min(100, max(0, _round_half_up(raw * 100)))


def score_queries(
    rows: list[GSCQueryRow], brand_name: str | None = None
) -> tuple[list[ScoredQuery], float]:
    """Filter and score rows.

    Returns:
        (scored queries in input order, max impressions among survivors)
    """
    kept = filter_garbage_queries(rows, brand_name)
    logger.info(
        "Filtered search console queries",
        extra={"input_rows": len(rows), "kept_rows": len(kept)},
    )
    if not kept:
        return [], 0.0

    max_impressions = max(row.impressions for row in kept)
    scored = []
    for row in kept:
        words = word_count(row.query)
        scored.append(
            ScoredQuery(
                query=row.query,
                impressions=row.impressions,
                clicks=row.clicks,
                ctr=row.ctr,
                position=row.position,
                intent=tag_intent(row.query),
                word_count=words,
                expected_ctr=expected_ctr(row.position),
                opportunity_score=opportunity_score(
                    row.impressions, row.position, row.ctr, words, max_impressions
                ),
            )
        )
    return scored, max_impressions
