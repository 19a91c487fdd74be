"""Application configuration loaded from environment variables.

Everything the content engine talks to (database, Gemini, Tavily, fal,
object storage) is configured here. Provider keys are optional so the
service can boot without them; the affected clients report themselves
unavailable instead.
"""

from functools import lru_cache

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Blogforge")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    port: int = Field(default=8000, description="Port to bind to")
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    app_url: str | None = Field(
        default=None,
        description="Public base URL of the web app, used for image proxy URLs",
    )

    # Database
    database_url: PostgresDsn = Field(
        ...,
        description="PostgreSQL connection string",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    db_slow_query_threshold_ms: int = Field(
        default=100, description="Threshold for slow query warnings (ms)"
    )
    db_connect_timeout: int = Field(
        default=60, description="Connection timeout in seconds"
    )
    db_command_timeout: int = Field(
        default=60, description="Command timeout in seconds"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format: json or text")

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative Language API key",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL",
    )
    gemini_research_model: str = Field(
        default="gemini-2.5-flash",
        description="Model for grounded competitor research and intros",
    )
    gemini_fast_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for outlines, sections, metadata and plans",
    )
    gemini_polish_model: str = Field(
        default="gemini-2.5-pro",
        description="Model for the final editorial polish and GSC plans",
    )
    gemini_embedding_model: str = Field(
        default="text-embedding-004",
        description="Embedding model used for topic memory",
    )
    gemini_timeout: float = Field(
        default=120.0, description="Gemini request timeout in seconds"
    )
    gemini_max_retries: int = Field(
        default=3, description="Maximum retry attempts for Gemini requests"
    )
    gemini_retry_delay: float = Field(
        default=1.0, description="Base delay between retries in seconds"
    )
    gemini_max_output_tokens: int = Field(
        default=8192, description="Maximum tokens in a Gemini response"
    )
    gemini_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    gemini_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )

    # Tavily web search
    tavily_api_key: str | None = Field(
        default=None, description="Tavily search API key"
    )
    tavily_api_url: str = Field(
        default="https://api.tavily.com", description="Tavily API base URL"
    )
    tavily_timeout: float = Field(
        default=60.0, description="Tavily request timeout in seconds"
    )
    tavily_max_retries: int = Field(
        default=3, description="Maximum retry attempts for Tavily requests"
    )
    tavily_retry_delay: float = Field(
        default=1.0, description="Base delay between retries in seconds"
    )
    tavily_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    tavily_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )

    # fal.ai image generation
    fal_api_key: str | None = Field(default=None, description="fal.ai API key")
    fal_api_url: str = Field(
        default="https://fal.run", description="fal.ai synchronous run endpoint"
    )
    fal_model: str = Field(
        default="fal-ai/z-image/turbo", description="Image model identifier"
    )
    fal_image_width: int = Field(default=1200, description="Featured image width")
    fal_image_height: int = Field(default=800, description="Featured image height")
    fal_timeout: float = Field(
        default=120.0, description="Image generation timeout in seconds"
    )

    # Object storage (Cloudflare R2 via the S3 API)
    s3_bucket_name: str | None = Field(
        default=None, description="Bucket for generated images"
    )
    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint (R2 account endpoint)"
    )
    s3_access_key: str | None = Field(default=None, description="Access key ID")
    s3_secret_key: str | None = Field(default=None, description="Secret access key")
    s3_region: str = Field(default="auto", description="Storage region")
    s3_timeout: float = Field(default=30.0, description="Request timeout in seconds")
    s3_max_retries: int = Field(default=3, description="Maximum retry attempts")
    s3_retry_delay: float = Field(
        default=1.0, description="Base delay between retries in seconds"
    )
    s3_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    s3_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )
    r2_public_domain: str | None = Field(
        default=None,
        description="Public base URL serving the bucket (e.g. https://images.example.com)",
    )

    # Content pipeline tuning
    section_delay_seconds: float = Field(
        default=0.5, description="Pause between section writes"
    )
    competitor_text_budget: int = Field(
        default=15000, description="Max competitor characters sent to the LLM"
    )
    plan_topup_max_attempts: int = Field(
        default=2, description="Bounded top-up rounds when a plan comes back short"
    )
    query_similarity_threshold: float = Field(
        default=0.4, description="Jaccard similarity above which queries cluster"
    )
    topic_duplicate_threshold: float = Field(
        default=0.85, description="Cosine similarity marking a topic as duplicate"
    )

    # Watchman
    watchman_enabled: bool = Field(
        default=True, description="Run the hourly plan dispatcher"
    )
    watchman_cron: str = Field(
        default="0 * * * *", description="Crontab expression for the dispatcher"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
