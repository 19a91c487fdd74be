"""Unit tests for date helpers."""

from datetime import date

from blogforge.utils.dates import current_date_context, schedule_date


def test_current_date_context_names_year_and_cutoff() -> None:
    context = current_date_context(date(2026, 3, 5))
    assert "March 5, 2026" in context
    assert "The current year is 2026" in context
    assert "before 2025" in context


def test_schedule_date_offsets_from_start() -> None:
    assert schedule_date(date(2026, 1, 30), 0) == "2026-01-30"
    assert schedule_date(date(2026, 1, 30), 3) == "2026-02-02"
