"""Date helpers shared by prompts and plan scheduling."""

from datetime import UTC, date, datetime, timedelta


def utc_today() -> date:
    return datetime.now(UTC).date()


def current_date_context(today: date | None = None) -> str:
    """One-line date context injected at the top of time-sensitive prompts."""
    today = today or utc_today()
    return (
        f"Today's date is {today.strftime('%B')} {today.day}, {today.year}. "
        f"The current year is {today.year}. Treat anything from before "
        f"{today.year - 1} as potentially outdated."
    )


def schedule_date(start: date, offset_days: int) -> str:
    """ISO date for item N of a plan starting on ``start``."""
    return (start + timedelta(days=offset_days)).isoformat()
