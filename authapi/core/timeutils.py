"""UTC helpers shared by the token and lockout logic."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def humanize_remaining(until: datetime, now: datetime) -> str:
    """Render the time left until ``until`` as "in 5 minutes" / "in 2 hours"."""
    seconds = max(int((as_utc(until) - as_utc(now)).total_seconds()), 0)
    if seconds < 60:
        return "in a few seconds"
    minutes = seconds // 60
    if minutes < 60:
        return f"in {minutes} minute{'s' if minutes != 1 else ''}"
    hours = round(minutes / 60)
    return f"in {hours} hour{'s' if hours != 1 else ''}"
