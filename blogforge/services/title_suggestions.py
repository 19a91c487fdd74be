"""Title suggestions for a keyword.

Uses the article-type title prompt (no colons, no parentheses, keyword
front-loaded), optionally grounded in the brand profile. Always returns
at most five titles; an unusable model response is an LLMResponseError.
"""

from pydantic import BaseModel, Field

from blogforge.core.config import get_settings
from blogforge.core.logging import get_logger
from blogforge.integrations.gemini import GeminiClient
from blogforge.schemas.brand import BrandDetails
from blogforge.services.article_prompts import DEFAULT_ARTICLE_TYPE, build_title_prompt
from blogforge.services.errors import LLMResponseError
from blogforge.utils.llm_json import parse_llm_json

logger = get_logger(__name__)

MAX_TITLES = 5

TITLES_SCHEMA = {
    "type": "OBJECT",
    "properties": {"titles": {"type": "ARRAY", "items": {"type": "STRING"}}},
    "required": ["titles"],
}


class _TitlesEnvelope(BaseModel):
    titles: list[str] = Field(default_factory=list)


class TitleSuggestionService:
    def __init__(self, gemini: GeminiClient) -> None:
        self._gemini = gemini

    async def suggest(
        self,
        keyword: str,
        article_type: str = DEFAULT_ARTICLE_TYPE,
        brand: BrandDetails | None = None,
    ) -> list[str]:
        """Return up to five distinct titles for the keyword.

        Raises:
            LLMResponseError: The model call failed or returned no titles.
        """
        result = await self._gemini.generate(
            build_title_prompt(keyword, article_type, brand),
            model=get_settings().gemini_fast_model,
            response_schema=TITLES_SCHEMA,
        )
        if not result.success:
            raise LLMResponseError("suggest_titles", result.error or "request failed")

        parsed = parse_llm_json(result.text, _TitlesEnvelope)
        if not parsed.ok or parsed.value is None:
            raise LLMResponseError("suggest_titles", parsed.error or "unparseable response")

        titles: list[str] = []
        seen: set[str] = set()
        for title in parsed.value.titles:
            cleaned = title.strip().strip('"')
            if cleaned and cleaned.lower() not in seen:
                seen.add(cleaned.lower())
                titles.append(cleaned)
        if not titles:
            raise LLMResponseError("suggest_titles", "model returned no titles")

        logger.info(
            "Generated title suggestions",
            extra={"keyword": keyword[:100], "article_type": article_type, "count": len(titles[:MAX_TITLES])},
        )
        return titles[:MAX_TITLES]
