"""Object storage client for generated images (Cloudflare R2 over the S3 API).

Features:
- boto3 client against any S3-compatible endpoint
- Blocking boto3 calls run in the default executor
- Circuit breaker, retry with exponential backoff
- Public URL resolution (R2 public domain, app image proxy, localhost)

ERROR LOGGING REQUIREMENTS:
- Log all storage operations with key, timing and retry attempt
- Log and handle: auth failures, missing objects, connection errors
- Never log credentials
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import boto3
from botocore.config import Config as BotoConfig  # type: ignore[import-not-found]
from botocore.exceptions import (  # type: ignore[import-not-found]
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
)

from blogforge.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from blogforge.core.config import get_settings
from blogforge.core.logging import get_logger, storage_logger

logger = get_logger(__name__)

LOCAL_APP_URL = "http://localhost:3000"

_AUTH_ERROR_CODES = ("AccessDenied", "InvalidAccessKeyId", "SignatureDoesNotMatch")


class S3Error(Exception):
    """Base exception for storage errors."""

    def __init__(self, message: str, operation: str | None = None, key: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.key = key


class S3AuthError(S3Error):
    pass


class S3NotFoundError(S3Error):
    pass


class S3CircuitOpenError(S3Error):
    pass


def build_public_url(
    key: str, public_domain: str | None = None, app_url: str | None = None
) -> str:
    """Resolve the URL a browser should use for a stored object.

    Preference order: the bucket's public domain, then the app's image
    proxy route, then the local development server.
    """
    key = key.lstrip("/")
    if public_domain:
        return f"{public_domain.rstrip('/')}/{key}"
    base = (app_url or LOCAL_APP_URL).rstrip("/")
    return f"{base}/api/images/{key}"


class S3Client:
    """Async wrapper around a boto3 S3 client."""

    def __init__(
        self,
        bucket: str | None = None,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        public_domain: str | None = None,
        app_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        settings = get_settings()

        self._bucket = bucket or settings.s3_bucket_name
        self._endpoint_url = endpoint_url or settings.s3_endpoint_url
        self._access_key = access_key or settings.s3_access_key
        self._secret_key = secret_key or settings.s3_secret_key
        self._region = region or settings.s3_region
        self._public_domain = public_domain or settings.r2_public_domain
        self._app_url = app_url or settings.app_url
        self._timeout = timeout or settings.s3_timeout
        self._max_retries = max_retries or settings.s3_max_retries
        self._retry_delay = retry_delay if retry_delay is not None else settings.s3_retry_delay

        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.s3_circuit_failure_threshold,
                recovery_timeout=settings.s3_circuit_recovery_timeout,
            ),
            name="s3",
        )

        self._client: Any = None
        self._available = bool(self._bucket and self._access_key and self._secret_key)

    @property
    def available(self) -> bool:
        """Check if storage is configured."""
        return self._available

    @property
    def bucket(self) -> str | None:
        return self._bucket

    def _get_client(self) -> Any:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "service_name": "s3",
                "aws_access_key_id": self._access_key,
                "aws_secret_access_key": self._secret_key,
                "region_name": self._region,
                "config": BotoConfig(
                    connect_timeout=self._timeout,
                    read_timeout=self._timeout,
                    retries={"max_attempts": 0},
                ),
            }
            if self._endpoint_url:
                kwargs["endpoint_url"] = self._endpoint_url
            self._client = boto3.client(**kwargs)
        return self._client

    async def _execute_with_retry(
        self, operation: str, func: Callable[[], Any], key: str
    ) -> Any:
        """Run a blocking boto3 call with retries.

        Raises:
            S3CircuitOpenError: If the circuit breaker is open
            S3AuthError: On credential errors (not retried)
            S3NotFoundError: If the object does not exist (not retried)
            S3Error: After retries are exhausted
        """
        if not self._available:
            raise S3Error("Storage not configured", operation=operation, key=key)

        if not await self._circuit_breaker.can_execute():
            raise S3CircuitOpenError("Circuit breaker is open", operation=operation, key=key)

        last_error: S3Error | None = None
        for attempt in range(self._max_retries):
            start_time = time.monotonic()
            storage_logger.api_call_start(f"{operation} {key}", retry_attempt=attempt)
            try:
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, func)
                storage_logger.api_call_success(
                    f"{operation} {key}", (time.monotonic() - start_time) * 1000
                )
                await self._circuit_breaker.record_success()
                return result

            except ClientError as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                error_message = e.response.get("Error", {}).get("Message", str(e))
                storage_logger.api_call_error(
                    f"{operation} {key}",
                    duration_ms,
                    None,
                    error_message,
                    f"ClientError:{error_code}",
                    retry_attempt=attempt,
                )
                if error_code in _AUTH_ERROR_CODES:
                    await self._circuit_breaker.record_failure()
                    raise S3AuthError(
                        f"Authentication failed: {error_message}", operation=operation, key=key
                    ) from e
                if error_code in ("NoSuchKey", "404"):
                    raise S3NotFoundError(
                        f"Object not found: {key}", operation=operation, key=key
                    ) from e
                await self._circuit_breaker.record_failure()
                last_error = S3Error(
                    f"Storage error ({error_code}): {error_message}", operation=operation, key=key
                )

            except (EndpointConnectionError, BotoCoreError) as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                storage_logger.api_call_error(
                    f"{operation} {key}",
                    duration_ms,
                    None,
                    str(e),
                    type(e).__name__,
                    retry_attempt=attempt,
                )
                await self._circuit_breaker.record_failure()
                last_error = S3Error(f"Storage error: {e}", operation=operation, key=key)

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._retry_delay * (2**attempt))

        raise last_error or S3Error(
            "Operation failed after all retries", operation=operation, key=key
        )

    async def put_object(
        self, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        """Store bytes under key and return the key."""
        client = self._get_client()

        def put() -> str:
            client.put_object(Bucket=self._bucket, Key=key, Body=data, ContentType=content_type)
            return key

        await self._execute_with_retry("put_object", put, key)
        return key

    async def get_object(self, key: str) -> tuple[bytes, str]:
        """Fetch an object's bytes and content type."""
        client = self._get_client()

        def get() -> tuple[bytes, str]:
            response = client.get_object(Bucket=self._bucket, Key=key)
            body: bytes = response["Body"].read()
            return body, response.get("ContentType") or "application/octet-stream"

        result: tuple[bytes, str] = await self._execute_with_retry("get_object", get, key)
        return result

    def public_url(self, key: str) -> str:
        return build_public_url(key, self._public_domain, self._app_url)


# Global storage client instance
s3_client: S3Client | None = None


async def init_s3() -> S3Client:
    """Initialize the global storage client."""
    global s3_client
    if s3_client is None:
        s3_client = S3Client()
        if s3_client.available:
            logger.info("Storage client initialized", extra={"s3_bucket": s3_client.bucket})
        else:
            logger.info("Storage not configured (missing credentials or bucket)")
    return s3_client


async def close_s3() -> None:
    global s3_client
    s3_client = None


async def get_s3() -> S3Client:
    """Dependency for getting the storage client."""
    global s3_client
    if s3_client is None:
        await init_s3()
    return s3_client  # type: ignore[return-value]
