"""fal.ai image generation client for featured images.

Calls the synchronous ``fal.run`` endpoint and downloads the first
generated image so it can be copied into our own storage.

ERROR LOGGING REQUIREMENTS:
- Log generation and download calls with timing
- Log and handle: timeouts, auth failures (401/403), empty results
"""

import time
from dataclasses import dataclass

import httpx

from blogforge.core.config import get_settings
from blogforge.core.logging import fal_logger, get_logger

logger = get_logger(__name__)


@dataclass
class ImageResult:
    success: bool
    url: str | None = None
    data: bytes | None = None
    content_type: str = "image/png"
    error: str | None = None
    duration_ms: float = 0.0


class FalClient:
    """Generates a single image per prompt and fetches its bytes."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        model: str | None = None,
        width: int | None = None,
        height: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.fal_api_key
        self._api_url = (api_url or settings.fal_api_url).rstrip("/")
        self._model = model or settings.fal_model
        self._width = width or settings.fal_image_width
        self._height = height or settings.fal_image_height
        self._timeout = timeout or settings.fal_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def generate(self, prompt: str) -> ImageResult:
        """Generate one image and download it.

        HTTP failures come back as an unsuccessful result; image generation
        is best-effort so nothing here is retried.
        """
        if not self.available:
            return ImageResult(success=False, error="fal not configured (missing API key)")

        endpoint = f"{self._api_url}/{self._model}"
        body = {
            "prompt": prompt,
            "image_size": {"width": self._width, "height": self._height},
            "num_inference_steps": 8,
            "num_images": 1,
            "enable_safety_checker": True,
            "output_format": "png",
        }
        client = await self._get_client()
        start_time = time.monotonic()
        fal_logger.api_call_start(self._model)

        try:
            response = await client.post(
                endpoint,
                json=body,
                headers={"Authorization": f"Key {self._api_key}"},
            )
            duration_ms = (time.monotonic() - start_time) * 1000
            if response.status_code in (401, 403):
                fal_logger.auth_failure(response.status_code)
                return ImageResult(
                    success=False,
                    error=f"Authentication failed ({response.status_code})",
                    duration_ms=duration_ms,
                )
            if response.status_code >= 400:
                fal_logger.api_call_error(
                    self._model,
                    duration_ms,
                    response.status_code,
                    response.text[:200],
                    "HTTPError",
                )
                return ImageResult(
                    success=False,
                    error=f"Image generation failed ({response.status_code})",
                    duration_ms=duration_ms,
                )

            try:
                data = response.json()
            except ValueError:
                fal_logger.api_call_error(
                    self._model,
                    duration_ms,
                    response.status_code,
                    response.text[:200],
                    "InvalidResponse",
                )
                return ImageResult(
                    success=False,
                    error="Invalid response body (not JSON)",
                    duration_ms=duration_ms,
                )

            images = (data.get("images") if isinstance(data, dict) else None) or []
            image_url = images[0].get("url") if images and isinstance(images[0], dict) else None
            if not image_url:
                return ImageResult(
                    success=False, error="No image returned", duration_ms=duration_ms
                )

            download = await client.get(image_url)
            download.raise_for_status()
            duration_ms = (time.monotonic() - start_time) * 1000
            fal_logger.api_call_success(self._model, duration_ms, result_count=1)
            return ImageResult(
                success=True,
                url=image_url,
                data=download.content,
                content_type=download.headers.get("content-type", "image/png"),
                duration_ms=duration_ms,
            )

        except httpx.TimeoutException:
            fal_logger.timeout(self._model, self._timeout)
            return ImageResult(
                success=False,
                error=f"Request timed out after {self._timeout}s",
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        except httpx.HTTPError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            fal_logger.api_call_error(self._model, duration_ms, None, str(e), type(e).__name__)
            return ImageResult(success=False, error=str(e), duration_ms=duration_ms)


fal_client: FalClient | None = None


async def init_fal() -> FalClient:
    global fal_client
    if fal_client is None:
        fal_client = FalClient()
    return fal_client


async def close_fal() -> None:
    global fal_client
    if fal_client:
        await fal_client.close()
        fal_client = None


async def get_fal() -> FalClient:
    """Dependency for getting the fal client."""
    global fal_client
    if fal_client is None:
        await init_fal()
    return fal_client  # type: ignore[return-value]
