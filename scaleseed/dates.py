"""Date helpers. Every generated date derives from REFERENCE_DATE."""

from datetime import date, datetime, timedelta, timezone

# A Monday; fixed so that reseeding produces identical dates.
REFERENCE_DATE = date(2025, 1, 6)
REFERENCE_TS = datetime(2025, 1, 6, tzinfo=timezone.utc)


def add_business_days(start: date, days: int) -> date:
    """Add ``days`` Monday-Friday days to ``start``."""
    weeks, remainder = divmod(days, 5)
    result = start + timedelta(weeks=weeks)
    if not is_weekday(start) and weeks:
        # A weekend start lands on the same weekend day; step back to Friday.
        result -= timedelta(days=start.weekday() - 4)
    added = 0
    while added < remainder:
        result += timedelta(days=1)
        if is_weekday(result):
            added += 1
    return result


def is_weekday(d: date) -> bool:
    return d.weekday() < 5


def fmt_date(d: date) -> str:
    """Format as YYYY-MM-DD."""
    return d.isoformat()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
