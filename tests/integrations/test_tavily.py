"""Tests for TavilyClient against an httpx.MockTransport."""

import json

import httpx

from blogforge.integrations.tavily import TavilyClient


def _client(handler, max_retries: int = 2) -> TavilyClient:  # type: ignore[no-untyped-def]
    return TavilyClient(
        api_key="tv-key",
        api_url="https://tavily.test",
        max_retries=max_retries,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


async def test_search_parses_hits_and_skips_entries_without_url() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"url": "https://a.test", "title": "A", "content": "c", "raw_content": "raw"},
                    {"title": "no url"},
                ]
            },
        )

    client = _client(handler)
    response = await client.search("photo restoration", max_results=5)

    assert response.success
    assert [hit.url for hit in response.results] == ["https://a.test"]
    assert response.results[0].raw_content == "raw"
    body = json.loads(seen[0].content)
    assert body == {
        "query": "photo restoration",
        "search_depth": "advanced",
        "max_results": 5,
        "include_raw_content": True,
    }
    assert seen[0].headers["Authorization"] == "Bearer tv-key"
    await client.close()


async def test_auth_failure() -> None:
    client = _client(lambda request: httpx.Response(403))
    response = await client.search("q")
    assert not response.success
    assert response.status_code == 403
    await client.close()


async def test_rate_limit_is_retried_until_exhausted() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(429)

    client = _client(handler, max_retries=3)
    response = await client.search("q")

    assert not response.success
    assert response.error == "HTTP 429"
    assert calls == 3
    await client.close()


async def test_non_json_body_is_a_failure() -> None:
    client = _client(lambda request: httpx.Response(200, text="<html>gateway</html>"))
    response = await client.search("q")
    assert not response.success
    assert response.status_code == 200
    assert "not JSON" in (response.error or "")
    await client.close()
