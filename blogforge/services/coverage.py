"""Answer coverage: which user questions existing articles already answer.

After an article completes, the model extracts the 3-7 questions it
meaningfully answers. Plan generation reads those rows back so new plans
skip questions that are already strongly covered.

Coverage analysis is best-effort: failures are logged and never reach the
caller.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.config import get_settings
from blogforge.core.logging import gemini_logger, get_logger
from blogforge.integrations.gemini import GeminiClient
from blogforge.models.answer_coverage import AnswerCoverage, CoverageStrength
from blogforge.repositories.coverage import CoverageRepository
from blogforge.utils.llm_json import parse_llm_json

logger = get_logger(__name__)

ARTICLE_TEXT_BUDGET = 15000

INTENT_ROLES = (
    "Core Answer",
    "Decision",
    "Comparison",
    "Problem-Specific",
    "Emotional/Use-Case",
    "Authority/Edge",
)

STRONG_STRENGTHS = (CoverageStrength.STRONG.value, CoverageStrength.DOMINANT.value)


class AnswerUnit(BaseModel):
    question: str = Field(..., min_length=1)
    intent_role: str = "Core Answer"
    coverage_strength: str = CoverageStrength.PARTIAL.value

    @field_validator("intent_role")
    @classmethod
    def known_role(cls, v: str) -> str:
        return v if v in INTENT_ROLES else "Core Answer"

    @field_validator("coverage_strength")
    @classmethod
    def known_strength(cls, v: str) -> str:
        v = v.strip().lower()
        valid = {s.value for s in CoverageStrength}
        return v if v in valid else CoverageStrength.PARTIAL.value


@dataclass
class CoverageSummary:
    strongly_answered: list[str] = field(default_factory=list)
    partially_answered: list[str] = field(default_factory=list)
    total: int = 0


def summarize_coverage(rows: list[AnswerCoverage]) -> CoverageSummary:
    return CoverageSummary(
        strongly_answered=[r.question for r in rows if r.coverage_strength in STRONG_STRENGTHS],
        partially_answered=[
            r.question for r in rows if r.coverage_strength == CoverageStrength.PARTIAL.value
        ],
        total=len(rows),
    )


def build_coverage_prompt(article_content: str, keyword: str, cluster: str) -> str:
    truncated = article_content[:ARTICLE_TEXT_BUDGET]
    if len(article_content) > ARTICLE_TEXT_BUDGET:
        truncated += " ...[truncated]"
    return f"""You are an expert SEO analyst. Analyze the following blog article content and extract the distinct USER QUESTIONS that it meaningfully answers.

ARTICLE KEYWORD: "{keyword}"
CLUSTER: "{cluster}"

ARTICLE CONTENT:
{truncated}

YOUR TASK:
1. Identify 3-7 distinct user questions that this article answers well.
2. For each question, classify its "Intent Role" from these options:
   - "Core Answer" (What is X? How does X work?)
   - "Decision" (Should I use X? Is X worth it?)
   - "Comparison" (X vs Y, Best X tools)
   - "Problem-Specific" (Fix [specific issue] with X)
   - "Emotional/Use-Case" (Personal stories, emotional connection)
   - "Authority/Edge" (Deep expertise, edge cases, why things fail)

RULES:
- Each question must be a FULL user question, not a tag/label.
  ✅ "How much does AI photo restoration cost?"
  ❌ "cost"
- Only include questions that are MEANINGFULLY answered (not just mentioned).
- Assign a coverage strength:
  - "partial": Mentioned but not deeply covered
  - "strong": Dedicated section or comprehensive answer
  - "dominant": THE authoritative answer on this question

OUTPUT (Strict JSON Array):
[
  {{
    "question": "How much does AI photo restoration cost?",
    "intent_role": "Decision",
    "coverage_strength": "strong"
  }}
]"""


class CoverageService:
    """Reads and records answer coverage for a user's articles."""

    def __init__(self, gemini: GeminiClient | None = None) -> None:
        self._gemini = gemini

    async def get_coverage_context(
        self, session: AsyncSession, user_id: str, brand_id: str | None = None
    ) -> list[AnswerCoverage]:
        return await CoverageRepository(session).list_for(user_id, brand_id)

    async def analyze_article_coverage(
        self,
        session: AsyncSession,
        article_id: str,
        article_content: str,
        keyword: str,
        cluster: str | None,
        user_id: str,
        brand_id: str | None = None,
    ) -> int:
        """Extract answered questions and store them. Returns rows written."""
        if self._gemini is None:
            return 0

        result = await self._gemini.generate(
            build_coverage_prompt(article_content, keyword, cluster or "General"),
            model=get_settings().gemini_fast_model,
            json_output=True,
        )
        if not result.success:
            gemini_logger.graceful_fallback("analyze_article_coverage", result.error or "request failed")
            return 0

        parsed = parse_llm_json(result.text, list[AnswerUnit])
        if not parsed.ok or not parsed.value:
            logger.warning(
                "No answer units extracted",
                extra={"article_id": article_id, "error": parsed.error},
            )
            return 0

        try:
            written = await CoverageRepository(session).replace_for_article(
                article_id,
                user_id,
                brand_id,
                [unit.model_dump() for unit in parsed.value],
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(
                "Failed to save answer coverage",
                extra={"article_id": article_id, "error": str(e)},
                exc_info=True,
            )
            return 0

        logger.info(
            "Saved answer coverage",
            extra={"article_id": article_id, "answer_units": written},
        )
        return written
