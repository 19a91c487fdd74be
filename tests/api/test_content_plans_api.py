"""Integration tests for content plan endpoints.

ERROR LOGGING REQUIREMENTS (verified by tests):
- Missing plans and items return NOT_FOUND
- Lost plan version races return CONFLICT
- Provider failures return PLAN_GENERATION_FAILED
"""

import json
from collections.abc import Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.models.brand import Brand
from blogforge.repositories.content_plan import ContentPlanRepository
from tests.conftest import completion

ROWS = [
    {"query": "restore old photos", "impressions": 900, "clicks": 5, "ctr": 0.005, "position": 12},
    {"query": "restore old photos free", "impressions": 300, "clicks": 1, "ctr": 0.003, "position": 15},
]


def _item(item_id: str, scheduled_date: str, status: str = "pending") -> dict[str, Any]:
    return {
        "id": item_id,
        "title": f"Title {item_id}",
        "main_keyword": f"keyword {item_id}",
        "supporting_keywords": [],
        "article_type": "informational",
        "cluster": "Restoration",
        "scheduled_date": scheduled_date,
        "status": status,
        "article_category": "Core Answers",
    }


async def _plan(session: AsyncSession) -> str:
    plan = await ContentPlanRepository(session).create(
        user_id="user-1",
        plan_data=[_item("item-1", "2026-05-01"), _item("item-2", "2026-05-02")],
    )
    await session.commit()
    return plan.id


@pytest.fixture
def no_idea_universe() -> Iterator[None]:
    with patch(
        "blogforge.services.content_plan_generator.expand_idea_universe",
        new=AsyncMock(return_value=[]),
    ):
        yield


class TestGeneratePlan:
    async def test_generates_and_stores_plan(
        self,
        async_client: AsyncClient,
        mock_gemini: MagicMock,
        brand: Brand,
        no_idea_universe: None,
    ) -> None:
        posts = [
            {
                "title": f"Restoration Topic {i}",
                "main_keyword": f"restore photos {i}",
                "supporting_keywords": ["photo repair"],
                "article_type": "howto" if i % 2 else "informational",
                "cluster": "Restoration",
                "intent_role": "Core Answer",
                "article_category": "Core Answers" if i < 3 else "Conversion Pages",
                "parent_question": f"Question {i}?",
            }
            for i in range(5)
        ]
        mock_gemini.generate.return_value = completion(json.dumps({"posts": posts}))

        response = await async_client.post(
            "/api/v1/content-plans",
            json={"user_id": "user-1", "brand_id": brand.id, "competitor_seeds": ["photo restoration"]},
        )

        assert response.status_code == 201
        body = response.json()
        assert len(body["plan_data"]) == 5
        assert body["automation_status"] == "paused"
        assert body["gsc_enhanced"] is False
        assert body["category_distribution"]["Core Answers"] == 3
        assert body["category_distribution"]["Conversion Pages"] == 2

        fetched = await async_client.get(f"/api/v1/content-plans/{body['id']}")
        assert fetched.status_code == 200
        assert [item["title"] for item in fetched.json()["plan_data"]][0] == "Restoration Topic 0"

    async def test_unknown_brand(self, async_client: AsyncClient, no_idea_universe: None) -> None:
        response = await async_client.post(
            "/api/v1/content-plans", json={"user_id": "user-1", "brand_id": "missing"}
        )

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_unparseable_plan(
        self,
        async_client: AsyncClient,
        mock_gemini: MagicMock,
        brand: Brand,
        no_idea_universe: None,
    ) -> None:
        mock_gemini.generate.return_value = completion("no plan today")

        response = await async_client.post(
            "/api/v1/content-plans", json={"user_id": "user-1", "brand_id": brand.id}
        )

        assert response.status_code == 502
        assert response.json()["code"] == "PLAN_GENERATION_FAILED"


class TestGenerateGSCPlan:
    async def test_generates_gsc_plan(
        self, async_client: AsyncClient, mock_gemini: MagicMock, brand: Brand
    ) -> None:
        mock_gemini.generate.return_value = completion(
            json.dumps(
                [
                    {
                        "gsc_query": "restore old photos",
                        "target_keyword": "restore old photos",
                        "title": "Bring Old Photos Back",
                        "article_type": "howto",
                        "badge": "quick_win",
                        "impact": "High",
                    }
                ]
            )
        )

        response = await async_client.post(
            "/api/v1/content-plans/gsc",
            json={"user_id": "user-1", "brand_id": brand.id, "rows": ROWS},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["gsc_enhanced"] is True
        assert body["plan_data"][0]["gsc_query"] == "restore old photos"
        assert body["plan_data"][0]["gsc_impressions"] is not None

    async def test_all_rows_filtered(self, async_client: AsyncClient, brand: Brand) -> None:
        response = await async_client.post(
            "/api/v1/content-plans/gsc",
            json={
                "user_id": "user-1",
                "brand_id": brand.id,
                "rows": [{"query": "a", "impressions": 5, "position": 40}],
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_empty_rows_rejected(self, async_client: AsyncClient, brand: Brand) -> None:
        response = await async_client.post(
            "/api/v1/content-plans/gsc",
            json={"user_id": "user-1", "brand_id": brand.id, "rows": []},
        )

        assert response.status_code == 422


class TestAutomation:
    async def test_activate_and_pause(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        plan_id = await _plan(db_session)

        activated = await async_client.put(
            f"/api/v1/content-plans/{plan_id}/automation", json={"catch_up_mode": "skip"}
        )
        assert activated.status_code == 200
        assert activated.json()["automation_status"] == "active"
        assert activated.json()["catch_up_mode"] == "skip"

        paused = await async_client.delete(f"/api/v1/content-plans/{plan_id}/automation")
        assert paused.status_code == 200
        assert paused.json()["automation_status"] == "paused"
        assert paused.json()["catch_up_mode"] == "skip"

    async def test_unknown_mode_rejected(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        plan_id = await _plan(db_session)

        response = await async_client.put(
            f"/api/v1/content-plans/{plan_id}/automation", json={"catch_up_mode": "burst"}
        )

        assert response.status_code == 422

    async def test_missing_plan(self, async_client: AsyncClient) -> None:
        response = await async_client.put(
            "/api/v1/content-plans/missing/automation", json={"catch_up_mode": "gradual"}
        )

        assert response.status_code == 404


class TestUpdatePlanItem:
    async def test_updates_one_item(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        plan_id = await _plan(db_session)

        response = await async_client.patch(
            f"/api/v1/content-plans/{plan_id}/items/item-2",
            json={"title": "Scanning Old Prints", "scheduled_date": "2026-05-09"},
        )

        assert response.status_code == 200
        items = {item["id"]: item for item in response.json()["plan_data"]}
        assert items["item-2"]["title"] == "Scanning Old Prints"
        assert items["item-2"]["scheduled_date"] == "2026-05-09"
        assert items["item-1"]["title"] == "Title item-1"

    async def test_missing_item(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        plan_id = await _plan(db_session)

        response = await async_client.patch(
            f"/api/v1/content-plans/{plan_id}/items/item-9", json={"title": "Anything"}
        )

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_conflict(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        plan_id = await _plan(db_session)

        with patch.object(
            ContentPlanRepository, "compare_and_swap_plan_data", AsyncMock(return_value=False)
        ):
            response = await async_client.patch(
                f"/api/v1/content-plans/{plan_id}/items/item-1", json={"status": "skipped"}
            )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_bad_date_rejected(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        plan_id = await _plan(db_session)

        response = await async_client.patch(
            f"/api/v1/content-plans/{plan_id}/items/item-1", json={"scheduled_date": "next week"}
        )

        assert response.status_code == 422
