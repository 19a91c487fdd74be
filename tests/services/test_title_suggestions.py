"""Tests for keyword title suggestions."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from blogforge.services.errors import LLMResponseError
from blogforge.services.title_suggestions import MAX_TITLES, TitleSuggestionService
from tests.conftest import completion


def _service(result: object) -> TitleSuggestionService:
    gemini = MagicMock()
    gemini.generate = AsyncMock(return_value=result)
    return TitleSuggestionService(gemini)


async def test_dedupes_and_caps_titles() -> None:
    titles = [
        "How to Restore Old Photos",
        "how to restore old photos",
        '"Restore Old Photos at Home"',
        "Old Photo Restoration Basics",
        "Fix Faded Photos Fast",
        "Restore Torn Family Photos",
        "Bring Old Photos Back to Life",
    ]
    service = _service(completion(json.dumps({"titles": titles})))

    result = await service.suggest("restore old photos", "howto")

    assert len(result) == MAX_TITLES
    assert result[0] == "How to Restore Old Photos"
    assert result[1] == "Restore Old Photos at Home"
    assert len({t.lower() for t in result}) == len(result)


async def test_failed_request_raises() -> None:
    with pytest.raises(LLMResponseError):
        await _service(completion(success=False)).suggest("restore old photos")


async def test_unparseable_response_raises() -> None:
    with pytest.raises(LLMResponseError):
        await _service(completion("Sorry, I cannot help with that")).suggest("restore old photos")


async def test_empty_titles_raise() -> None:
    with pytest.raises(LLMResponseError):
        await _service(completion('{"titles": ["  "]}')).suggest("restore old photos")
