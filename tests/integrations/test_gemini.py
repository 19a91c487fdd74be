"""Tests for GeminiClient against an httpx.MockTransport."""

import json
from typing import Any

import httpx
import pytest

from blogforge.integrations.gemini import GeminiClient, extract_text


def _ok(text: str) -> dict[str, Any]:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 34},
    }


class _Recorder:
    """MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def _client(recorder: _Recorder, api_key: str | None = "test-key") -> GeminiClient:
    return GeminiClient(
        api_key=api_key,
        base_url="https://gemini.test/v1beta",
        default_model="fast-model",
        max_retries=2,
        retry_delay=0,
        transport=httpx.MockTransport(recorder),
    )


def test_extract_text_joins_parts() -> None:
    data = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
    assert extract_text(data) == "ab"
    assert extract_text({}) == ""


class TestGenerate:
    async def test_success_with_json_output(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_ok('{"x": 1}')))
        client = _client(recorder)

        result = await client.generate("prompt", system_prompt="sys", json_output=True)

        assert result.success
        assert result.text == '{"x": 1}'
        assert result.finish_reason == "STOP"
        assert result.input_tokens == 12
        request = recorder.requests[0]
        assert request.url.path.endswith("/models/fast-model:generateContent")
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert body["systemInstruction"]["parts"][0]["text"] == "sys"
        await client.close()

    async def test_grounded_call_drops_schema_and_adds_search_tool(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_ok("facts")))
        client = _client(recorder)

        await client.generate("p", model="research", response_schema={"type": "OBJECT"}, grounded=True)

        body = json.loads(recorder.requests[0].content)
        assert body["tools"] == [{"google_search": {}}]
        assert "responseSchema" not in body["generationConfig"]
        assert "responseMimeType" not in body["generationConfig"]
        await client.close()

    async def test_auth_failure_is_not_retried(self) -> None:
        recorder = _Recorder(httpx.Response(401, json={}))
        client = _client(recorder)

        result = await client.generate("p")

        assert not result.success
        assert result.status_code == 401
        assert len(recorder.requests) == 1
        await client.close()

    async def test_server_error_retries_then_fails(self) -> None:
        recorder = _Recorder(httpx.Response(503, json={}))
        client = _client(recorder)

        result = await client.generate("p")

        assert not result.success
        assert result.status_code == 503
        assert len(recorder.requests) == 2
        await client.close()

    async def test_server_error_then_success(self) -> None:
        recorder = _Recorder(httpx.Response(500, json={}), httpx.Response(200, json=_ok("ok")))
        client = _client(recorder)

        result = await client.generate("p")

        assert result.success
        assert result.text == "ok"
        await client.close()

    async def test_empty_text_is_a_failure(self) -> None:
        recorder = _Recorder(
            httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]})
        )
        client = _client(recorder)

        result = await client.generate("p")

        assert not result.success
        assert result.finish_reason == "SAFETY"
        await client.close()

    async def test_non_json_body_is_a_failure(self) -> None:
        recorder = _Recorder(httpx.Response(200, text="<html>gateway</html>"))
        client = _client(recorder)

        result = await client.generate("p")

        assert not result.success
        assert result.status_code == 200
        assert "not JSON" in (result.error or "")
        assert len(recorder.requests) == 1
        await client.close()

    async def test_missing_key_makes_no_request(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_ok("x")))
        client = _client(recorder, api_key=None)
        client._api_key = None
        client._available = False

        result = await client.generate("p")

        assert not client.available
        assert not result.success
        assert recorder.requests == []


class TestEmbed:
    async def test_embed_returns_values(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"embedding": {"values": [0.1, 0.2]}}))
        client = _client(recorder)

        result = await client.embed("topic")

        assert result.success
        assert result.values == pytest.approx([0.1, 0.2])
        assert ":embedContent" in recorder.requests[0].url.path
        await client.close()

    async def test_embed_empty_values(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"embedding": {}}))
        client = _client(recorder)

        result = await client.embed("topic")

        assert not result.success
        await client.close()
