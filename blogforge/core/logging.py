"""Structured logging configuration.

All logs go to stdout. JSON format in production, plain text locally.

ERROR LOGGING REQUIREMENTS:
- Database connection errors with masked connection string
- Slow queries (>100ms) at WARNING level
- Transaction failures with rollback context
- Migration start/end with version info
- Provider API calls with model/endpoint, timing and retry attempt
- Rate limits (429) and auth failures (401/403) at WARNING level
- Pipeline phase transitions with article_id, and the failing phase on error
- Scheduler lifecycle and job execution outcome
"""

import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from pythonjsonlogger import jsonlogger

from blogforge.core.config import get_settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined]
    """JSON formatter that stamps every record with UTC time and level."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(UTC).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def mask_connection_string(conn_str: str) -> str:
    """Mask the password in a user:password@host connection string."""
    if not conn_str:
        return ""
    return re.sub(r"(://[^:]+:)([^@]+)(@)", r"\1****\3", conn_str)


def mask_api_key(key: str | None) -> str | None:
    """Keep only the last four characters of an API key."""
    if not key:
        return None
    if len(key) <= 4:
        return "****"
    return "****" + key[-4:]


def truncate_text(text: str, max_length: int = 500) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... (truncated, {len(text)} chars)"


def setup_logging() -> None:
    """Configure the root logger from settings."""
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    formatter: logging.Formatter
    if settings.log_format == "json":
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class DatabaseLogger:
    """Logger for database operations."""

    def __init__(self) -> None:
        self.logger = get_logger("database")

    def connection_error(self, error: Exception, connection_string: str) -> None:
        """Log database connection error with masked connection string."""
        self.logger.error(
            "Database connection failed",
            extra={
                "connection_string": mask_connection_string(connection_string),
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
        )

    def slow_query(
        self, query: str, duration_ms: float, table: str | None = None
    ) -> None:
        """Log slow query at WARNING level."""
        self.logger.warning(
            "Slow query detected",
            extra={
                "duration_ms": duration_ms,
                "query": query[:500],
                "table": table,
            },
        )

    def transaction_failure(
        self, error: Exception, table: str | None = None, context: str | None = None
    ) -> None:
        """Log transaction failure with rollback context."""
        self.logger.error(
            "Transaction failed, rolling back",
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
                "table": table,
                "rollback_context": context,
            },
        )

    def migration_start(self, version: str, description: str) -> None:
        self.logger.info(
            "Starting database migration",
            extra={"migration_version": version, "description": description},
        )

    def migration_end(self, version: str, success: bool) -> None:
        level = logging.INFO if success else logging.ERROR
        self.logger.log(
            level,
            "Database migration completed",
            extra={"migration_version": version, "success": success},
        )

    def version_conflict(self, table: str, record_id: str, expected_version: int) -> None:
        """Log a lost optimistic-concurrency race at INFO level."""
        self.logger.info(
            "Optimistic update lost race",
            extra={
                "table": table,
                "record_id": record_id,
                "expected_version": expected_version,
            },
        )


db_logger = DatabaseLogger()


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


class GeminiLogger:
    """Logger for Gemini generateContent / embedContent calls.

    Request and response bodies are only logged at DEBUG and truncated.
    API keys never appear in log records.
    """

    def __init__(self) -> None:
        self.logger = get_logger("gemini")

    def api_call_start(
        self,
        model: str,
        prompt_length: int,
        retry_attempt: int = 0,
        grounded: bool = False,
    ) -> None:
        self.logger.debug(
            f"Gemini API call: {model}",
            extra={
                "model": model,
                "prompt_length": prompt_length,
                "retry_attempt": retry_attempt,
                "grounded": grounded,
            },
        )

    def api_call_success(
        self,
        model: str,
        duration_ms: float,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        finish_reason: str | None = None,
    ) -> None:
        self.logger.debug(
            f"Gemini API call completed: {model}",
            extra={
                "model": model,
                "duration_ms": round(duration_ms, 2),
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "finish_reason": finish_reason,
                "success": True,
            },
        )

    def api_call_error(
        self,
        model: str,
        duration_ms: float,
        status_code: int | None,
        error: str,
        error_type: str,
        retry_attempt: int = 0,
    ) -> None:
        """Log failed API call; 4xx at WARNING, everything else at ERROR."""
        level = logging.WARNING if status_code and 400 <= status_code < 500 else logging.ERROR
        self.logger.log(
            level,
            f"Gemini API call failed: {model}",
            extra={
                "model": model,
                "duration_ms": round(duration_ms, 2),
                "status_code": status_code,
                "error": error,
                "error_type": error_type,
                "retry_attempt": retry_attempt,
                "success": False,
            },
        )

    def timeout(self, model: str, timeout_seconds: float) -> None:
        self.logger.warning(
            "Gemini API request timeout",
            extra={"model": model, "timeout_seconds": timeout_seconds},
        )

    def rate_limit(self, model: str, retry_after: float | None = None) -> None:
        self.logger.warning(
            "Gemini API rate limit hit (429)",
            extra={"model": model, "retry_after_seconds": retry_after},
        )

    def auth_failure(self, status_code: int) -> None:
        self.logger.warning(
            f"Gemini API authentication failed ({status_code})",
            extra={"status_code": status_code},
        )

    def request_body(self, model: str, prompt: str) -> None:
        self.logger.debug(
            "Gemini API request body",
            extra={"model": model, "prompt": truncate_text(prompt, 500)},
        )

    def response_body(self, model: str, response_text: str, duration_ms: float) -> None:
        self.logger.debug(
            "Gemini API response body",
            extra={
                "model": model,
                "response_text": truncate_text(response_text, 500),
                "duration_ms": round(duration_ms, 2),
            },
        )

    def token_usage(self, model: str, input_tokens: int, output_tokens: int) -> None:
        """Log token usage at INFO level."""
        self.logger.info(
            "Gemini API token usage",
            extra={
                "model": model,
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
        )

    def graceful_fallback(self, operation: str, reason: str) -> None:
        """Log when a caller falls back because Gemini is unavailable or unusable."""
        self.logger.info(
            "Gemini unavailable, using fallback",
            extra={"operation": operation, "reason": reason},
        )


gemini_logger = GeminiLogger()


# ---------------------------------------------------------------------------
# Other HTTP providers (Tavily search, fal images, object storage)
# ---------------------------------------------------------------------------


class ProviderLogger:
    """Logger shared by the smaller request/response providers."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        self.logger = get_logger(provider)

    def api_call_start(self, endpoint: str, retry_attempt: int = 0) -> None:
        self.logger.debug(
            f"{self.provider} API call: {endpoint}",
            extra={"endpoint": endpoint, "retry_attempt": retry_attempt},
        )

    def api_call_success(
        self, endpoint: str, duration_ms: float, result_count: int | None = None
    ) -> None:
        self.logger.debug(
            f"{self.provider} API call completed: {endpoint}",
            extra={
                "endpoint": endpoint,
                "duration_ms": round(duration_ms, 2),
                "result_count": result_count,
                "success": True,
            },
        )

    def api_call_error(
        self,
        endpoint: str,
        duration_ms: float,
        status_code: int | None,
        error: str,
        error_type: str,
        retry_attempt: int = 0,
    ) -> None:
        level = logging.WARNING if status_code and 400 <= status_code < 500 else logging.ERROR
        self.logger.log(
            level,
            f"{self.provider} API call failed: {endpoint}",
            extra={
                "endpoint": endpoint,
                "duration_ms": round(duration_ms, 2),
                "status_code": status_code,
                "error": error,
                "error_type": error_type,
                "retry_attempt": retry_attempt,
                "success": False,
            },
        )

    def timeout(self, endpoint: str, timeout_seconds: float) -> None:
        self.logger.warning(
            f"{self.provider} request timeout",
            extra={"endpoint": endpoint, "timeout_seconds": timeout_seconds},
        )

    def rate_limit(self, endpoint: str, retry_after: float | None = None) -> None:
        self.logger.warning(
            f"{self.provider} rate limit hit (429)",
            extra={"endpoint": endpoint, "retry_after_seconds": retry_after},
        )

    def auth_failure(self, status_code: int) -> None:
        self.logger.warning(
            f"{self.provider} authentication failed ({status_code})",
            extra={"status_code": status_code},
        )


tavily_logger = ProviderLogger("tavily")
fal_logger = ProviderLogger("fal")
storage_logger = ProviderLogger("storage")


# ---------------------------------------------------------------------------
# Blog generation pipeline
# ---------------------------------------------------------------------------


class PipelineLogger:
    """Logger for the per-article generation pipeline.

    Every record carries the article_id so a single run can be followed
    end to end. Failures always carry the phase they happened in.
    """

    def __init__(self) -> None:
        self.logger = get_logger("pipeline")

    def run_start(self, article_id: str, keyword: str, article_type: str) -> None:
        self.logger.info(
            "Blog generation started",
            extra={
                "article_id": article_id,
                "keyword": keyword[:200],
                "article_type": article_type,
            },
        )

    def phase_start(self, article_id: str, phase: str) -> None:
        self.logger.info(
            f"Phase started: {phase}",
            extra={"article_id": article_id, "phase": phase},
        )

    def phase_complete(self, article_id: str, phase: str, duration_ms: float) -> None:
        self.logger.info(
            f"Phase completed: {phase}",
            extra={
                "article_id": article_id,
                "phase": phase,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def phase_failed(
        self, article_id: str, phase: str, error: str, error_type: str
    ) -> None:
        self.logger.error(
            f"Phase failed: {phase}",
            extra={
                "article_id": article_id,
                "phase": phase,
                "error": error,
                "error_type": error_type,
            },
            exc_info=True,
        )

    def section_written(
        self, article_id: str, index: int, total: int, heading: str, draft_length: int
    ) -> None:
        self.logger.debug(
            f"Section {index}/{total} written",
            extra={
                "article_id": article_id,
                "section_index": index,
                "total_sections": total,
                "heading": heading[:200],
                "draft_length": draft_length,
            },
        )

    def best_effort_skipped(self, article_id: str, field: str, reason: str) -> None:
        """Log a best-effort asset that was left empty."""
        self.logger.warning(
            f"Best-effort step skipped: {field}",
            extra={"article_id": article_id, "field": field, "reason": reason},
        )

    def run_complete(self, article_id: str, duration_ms: float, word_count: int) -> None:
        self.logger.info(
            "Blog generation completed",
            extra={
                "article_id": article_id,
                "duration_ms": round(duration_ms, 2),
                "word_count": word_count,
            },
        )


pipeline_logger = PipelineLogger()


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class SchedulerLogger:
    """Logger for APScheduler lifecycle and job execution."""

    def __init__(self) -> None:
        self.logger = get_logger("scheduler")

    def scheduler_start(self, job_count: int) -> None:
        self.logger.info("Scheduler started", extra={"job_count": job_count})

    def scheduler_stop(self, graceful: bool) -> None:
        self.logger.info("Scheduler stopped", extra={"graceful": graceful})

    def job_added(
        self,
        job_id: str,
        job_name: str | None,
        trigger: str,
        next_run: str | None = None,
    ) -> None:
        self.logger.info(
            "Job added to scheduler",
            extra={
                "job_id": job_id,
                "job_name": job_name,
                "trigger": trigger,
                "next_run": next_run,
            },
        )

    def job_removed(self, job_id: str) -> None:
        self.logger.info("Job removed from scheduler", extra={"job_id": job_id})

    def job_execution_success(self, job_id: str, scheduled_time: str | None = None) -> None:
        self.logger.info(
            "Job execution completed",
            extra={"job_id": job_id, "scheduled_time": scheduled_time, "success": True},
        )

    def job_execution_error(self, job_id: str, error: str, error_type: str) -> None:
        self.logger.error(
            "Job execution failed",
            extra={
                "job_id": job_id,
                "success": False,
                "error": error,
                "error_type": error_type,
            },
        )

    def job_missed(self, job_id: str, scheduled_time: str) -> None:
        self.logger.warning(
            "Job execution missed",
            extra={"job_id": job_id, "scheduled_time": scheduled_time},
        )

    def watchman_sweep(
        self,
        active_plans: int,
        triggered: int,
        completed_plans: int,
        skipped: int,
        duration_ms: float,
    ) -> None:
        """Log the outcome of one plan-dispatch sweep at INFO level."""
        self.logger.info(
            "Watchman sweep finished",
            extra={
                "active_plans": active_plans,
                "triggered": triggered,
                "completed_plans": completed_plans,
                "skipped_items": skipped,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def scheduler_not_available(self, operation: str, reason: str) -> None:
        self.logger.warning(
            "Scheduler not available",
            extra={"operation": operation, "reason": reason},
        )


scheduler_logger = SchedulerLogger()
