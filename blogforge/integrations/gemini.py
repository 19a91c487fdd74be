"""Google Gemini integration client (Generative Language REST API).

Features:
- Async HTTP client using httpx (direct REST calls)
- Structured JSON output via responseMimeType / responseSchema
- Optional Google Search grounding for research prompts
- Text embeddings for topic memory
- Circuit breaker, retry with exponential backoff
- Handles timeouts, rate limits (429), auth failures (401/403)

ERROR LOGGING REQUIREMENTS:
- Log all outbound API calls with model, timing and retry attempt
- Log request/response bodies at DEBUG level (truncated)
- Log and handle: timeouts, rate limits (429), auth failures (401/403)
- Log token usage when the response reports it
- Never log the API key
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from blogforge.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from blogforge.core.config import get_settings
from blogforge.core.logging import gemini_logger, get_logger, mask_api_key

logger = get_logger(__name__)


@dataclass
class CompletionResult:
    """Result of a generateContent request."""

    success: bool
    text: str | None = None
    finish_reason: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    error: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0


@dataclass
class EmbeddingResult:
    """Result of an embedContent request."""

    success: bool
    values: list[float] = field(default_factory=list)
    error: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0


@dataclass
class _RawResponse:
    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    status_code: int | None = None
    duration_ms: float = 0.0


class GeminiError(Exception):
    """Base exception for Gemini API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GeminiTimeoutError(GeminiError):
    """Raised when a request times out."""

    pass


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def extract_text(response_data: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = response_data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiClient:
    """Async client for the Gemini generateContent and embedContent endpoints."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str | None = None,
        embedding_model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        max_output_tokens: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key. Defaults to settings.
            base_url: REST base URL. Defaults to settings.
            default_model: Model used when a call does not name one.
            embedding_model: Model used by embed(). Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
            max_retries: Maximum retry attempts. Defaults to settings.
            retry_delay: Base delay between retries. Defaults to settings.
            max_output_tokens: Response token cap. Defaults to settings.
            transport: Optional httpx transport (used by tests).
        """
        settings = get_settings()

        self._api_key = api_key or settings.gemini_api_key
        self._base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._model = default_model or settings.gemini_fast_model
        self._embedding_model = embedding_model or settings.gemini_embedding_model
        self._timeout = timeout or settings.gemini_timeout
        self._max_retries = max_retries or settings.gemini_max_retries
        self._retry_delay = retry_delay if retry_delay is not None else settings.gemini_retry_delay
        self._max_output_tokens = max_output_tokens or settings.gemini_max_output_tokens
        self._transport = transport

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.gemini_circuit_failure_threshold,
                recovery_timeout=settings.gemini_circuit_recovery_timeout,
            ),
            name="gemini",
        )

        self._client: httpx.AsyncClient | None = None
        self._available = bool(self._api_key)

    @property
    def available(self) -> bool:
        """Check if Gemini is configured and available."""
        return self._available

    @property
    def model(self) -> str:
        return self._model

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
            if self._api_key:
                headers["x-goog-api-key"] = self._api_key
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("Gemini client closed")

    async def _post(self, path: str, body: dict[str, Any], model: str) -> _RawResponse:
        """POST with retries and circuit breaking; never raises for HTTP failures."""
        if not self._available:
            return _RawResponse(success=False, error="Gemini not configured (missing API key)")

        if not await self._circuit_breaker.can_execute():
            gemini_logger.graceful_fallback(path, "Circuit breaker open")
            return _RawResponse(success=False, error="Circuit breaker is open")

        client = await self._get_client()
        start_time = time.monotonic()
        last_error: Exception | None = None

        for attempt in range(self._max_retries):
            attempt_start = time.monotonic()
            try:
                response = await client.post(path, json=body)
                duration_ms = (time.monotonic() - attempt_start) * 1000

                if response.status_code == 429:
                    retry_after_str = response.headers.get("retry-after")
                    retry_after = float(retry_after_str) if retry_after_str else None
                    gemini_logger.rate_limit(model, retry_after=retry_after)
                    await self._circuit_breaker.record_failure()
                    if attempt < self._max_retries - 1 and retry_after and retry_after <= 60:
                        await asyncio.sleep(retry_after)
                        continue
                    return _RawResponse(
                        success=False,
                        error="Rate limit exceeded",
                        status_code=429,
                        duration_ms=duration_ms,
                    )

                if response.status_code in (401, 403):
                    gemini_logger.auth_failure(response.status_code)
                    await self._circuit_breaker.record_failure()
                    return _RawResponse(
                        success=False,
                        error=f"Authentication failed ({response.status_code})",
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )

                if response.status_code >= 500:
                    error_msg = f"Server error ({response.status_code})"
                    gemini_logger.api_call_error(
                        model,
                        duration_ms,
                        response.status_code,
                        error_msg,
                        "ServerError",
                        retry_attempt=attempt,
                    )
                    await self._circuit_breaker.record_failure()
                    if attempt < self._max_retries - 1:
                        await asyncio.sleep(self._retry_delay * (2**attempt))
                        continue
                    return _RawResponse(
                        success=False,
                        error=error_msg,
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )

                if response.status_code >= 400:
                    error_body = _json_or_none(response)
                    error_msg = (
                        error_body.get("error", {}).get("message", str(error_body))
                        if isinstance(error_body, dict)
                        else "Client error"
                    )
                    gemini_logger.api_call_error(
                        model,
                        duration_ms,
                        response.status_code,
                        error_msg,
                        "ClientError",
                        retry_attempt=attempt,
                    )
                    return _RawResponse(
                        success=False,
                        error=f"Client error ({response.status_code}): {error_msg}",
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )

                data = _json_or_none(response)
                if not isinstance(data, dict):
                    gemini_logger.api_call_error(
                        model,
                        duration_ms,
                        response.status_code,
                        "Response body is not a JSON object",
                        "InvalidResponse",
                        retry_attempt=attempt,
                    )
                    await self._circuit_breaker.record_failure()
                    return _RawResponse(
                        success=False,
                        error="Invalid response body (not JSON)",
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )

                await self._circuit_breaker.record_success()
                return _RawResponse(
                    success=True,
                    data=data,
                    status_code=response.status_code,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )

            except httpx.TimeoutException:
                duration_ms = (time.monotonic() - attempt_start) * 1000
                gemini_logger.timeout(model, self._timeout)
                await self._circuit_breaker.record_failure()
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(self._retry_delay * (2**attempt))
                    continue
                last_error = GeminiTimeoutError(f"Request timed out after {self._timeout}s")

            except httpx.RequestError as e:
                duration_ms = (time.monotonic() - attempt_start) * 1000
                gemini_logger.api_call_error(
                    model, duration_ms, None, str(e), type(e).__name__, retry_attempt=attempt
                )
                await self._circuit_breaker.record_failure()
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(self._retry_delay * (2**attempt))
                    continue
                last_error = GeminiError(f"Request failed: {e}")

        return _RawResponse(
            success=False,
            error=str(last_error) if last_error else "Request failed after all retries",
            duration_ms=(time.monotonic() - start_time) * 1000,
        )

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        system_prompt: str | None = None,
        response_schema: dict[str, Any] | None = None,
        json_output: bool = False,
        grounded: bool = False,
        temperature: float | None = None,
    ) -> CompletionResult:
        """Run a single generateContent call.

        Args:
            prompt: The user prompt.
            model: Model name; defaults to the client's default model.
            system_prompt: Optional system instruction.
            response_schema: OpenAPI-style schema for structured output.
                Implies JSON output.
            json_output: Ask for application/json without a schema.
            grounded: Enable the google_search tool. Grounded calls cannot
                use a response schema, so the schema is dropped.
            temperature: Optional sampling temperature.
        """
        model_name = model or self._model
        generation_config: dict[str, Any] = {"maxOutputTokens": self._max_output_tokens}
        if temperature is not None:
            generation_config["temperature"] = temperature
        if not grounded and (response_schema is not None or json_output):
            generation_config["responseMimeType"] = "application/json"
            if response_schema is not None:
                generation_config["responseSchema"] = response_schema

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if grounded:
            body["tools"] = [{"google_search": {}}]

        gemini_logger.api_call_start(model_name, len(prompt), grounded=grounded)
        gemini_logger.request_body(model_name, prompt)

        raw = await self._post(f"/models/{model_name}:generateContent", body, model_name)
        if not raw.success:
            return CompletionResult(
                success=False,
                error=raw.error,
                status_code=raw.status_code,
                duration_ms=raw.duration_ms,
            )

        text = extract_text(raw.data)
        candidates = raw.data.get("candidates") or []
        finish_reason = candidates[0].get("finishReason") if candidates else None
        usage = raw.data.get("usageMetadata") or {}
        input_tokens = usage.get("promptTokenCount")
        output_tokens = usage.get("candidatesTokenCount")

        gemini_logger.api_call_success(
            model_name,
            raw.duration_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
        )
        gemini_logger.response_body(model_name, text, raw.duration_ms)
        if input_tokens and output_tokens:
            gemini_logger.token_usage(model_name, input_tokens, output_tokens)

        if not text:
            return CompletionResult(
                success=False,
                error=f"Empty response (finish reason: {finish_reason})",
                finish_reason=finish_reason,
                status_code=raw.status_code,
                duration_ms=raw.duration_ms,
            )

        return CompletionResult(
            success=True,
            text=text,
            finish_reason=finish_reason,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            status_code=raw.status_code,
            duration_ms=raw.duration_ms,
        )

    async def embed(self, text: str) -> EmbeddingResult:
        """Embed text with the configured embedding model."""
        model_name = self._embedding_model
        body = {
            "model": f"models/{model_name}",
            "content": {"parts": [{"text": text}]},
        }
        raw = await self._post(f"/models/{model_name}:embedContent", body, model_name)
        if not raw.success:
            return EmbeddingResult(
                success=False,
                error=raw.error,
                status_code=raw.status_code,
                duration_ms=raw.duration_ms,
            )
        values = (raw.data.get("embedding") or {}).get("values") or []
        if not values:
            return EmbeddingResult(success=False, error="Empty embedding", duration_ms=raw.duration_ms)
        return EmbeddingResult(success=True, values=list(values), duration_ms=raw.duration_ms)


# Global Gemini client instance
gemini_client: GeminiClient | None = None


async def init_gemini() -> GeminiClient:
    """Initialize the global Gemini client."""
    global gemini_client
    if gemini_client is None:
        gemini_client = GeminiClient()
        if gemini_client.available:
            logger.info(
                "Gemini client initialized",
                extra={"model": gemini_client.model, "api_key": mask_api_key(gemini_client._api_key)},
            )
        else:
            logger.info("Gemini not configured (missing API key)")
    return gemini_client


async def close_gemini() -> None:
    """Close the global Gemini client."""
    global gemini_client
    if gemini_client:
        await gemini_client.close()
        gemini_client = None


async def get_gemini() -> GeminiClient:
    """Dependency for getting the Gemini client."""
    global gemini_client
    if gemini_client is None:
        await init_gemini()
    return gemini_client  # type: ignore[return-value]
