from datetime import date, datetime
from typing import Optional


def parse_date(value) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` or a full ISO datetime (truncated to its date).

    Returns None when the value is empty; raises ValueError when malformed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("Date must be a string")

    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    # "2024-06-01T00:00:00.000Z" as sent by browsers
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).date()
