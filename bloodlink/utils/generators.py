from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def calculate_expiry_date(donation_date: datetime, shelf_life_days: int) -> datetime:
    """Expiry of a donated unit under the fixed shelf-life policy"""
    return donation_date + timedelta(days=shelf_life_days)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed, floored"""
    return (later - earlier) // timedelta(days=1)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
