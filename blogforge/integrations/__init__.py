"""Integrations layer - External service clients.

Integrations handle communication with external APIs and services.
They abstract the details of external service protocols.
"""

from blogforge.integrations.fal import (
    FalClient,
    ImageResult,
    close_fal,
    get_fal,
    init_fal,
)
from blogforge.integrations.gemini import (
    CompletionResult,
    EmbeddingResult,
    GeminiClient,
    GeminiError,
    GeminiTimeoutError,
    close_gemini,
    get_gemini,
    init_gemini,
)
from blogforge.integrations.s3 import (
    S3AuthError,
    S3CircuitOpenError,
    S3Client,
    S3Error,
    S3NotFoundError,
    build_public_url,
    close_s3,
    get_s3,
    init_s3,
)
from blogforge.integrations.tavily import (
    SearchHit,
    SearchResponse,
    TavilyClient,
    close_tavily,
    get_tavily,
    init_tavily,
)

__all__ = [
    # fal.ai
    "FalClient",
    "ImageResult",
    "close_fal",
    "get_fal",
    "init_fal",
    # Gemini
    "CompletionResult",
    "EmbeddingResult",
    "GeminiClient",
    "GeminiError",
    "GeminiTimeoutError",
    "close_gemini",
    "get_gemini",
    "init_gemini",
    # Object storage
    "S3AuthError",
    "S3CircuitOpenError",
    "S3Client",
    "S3Error",
    "S3NotFoundError",
    "build_public_url",
    "close_s3",
    "get_s3",
    "init_s3",
    # Tavily
    "SearchHit",
    "SearchResponse",
    "TavilyClient",
    "close_tavily",
    "get_tavily",
    "init_tavily",
]
