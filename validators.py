import re
from datetime import date, datetime
from typing import Optional, Union

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Coerce a stored or submitted value into a calendar date.

    SQLite hands dates back as ISO strings; timestamps keep only their
    date part.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class ISBNValidator:
    """ISBN normalization: digits and a check-character X, upper-cased."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        s = re.sub(r"[^0-9Xx]", "", raw)
        return s.upper()


class TextValidator:
    """Minimal checks for free-text member and book fields."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def validate_email(email: Optional[str]) -> bool:
        if TextValidator.is_blank(email):
            return False
        return bool(_EMAIL_RE.match(email.strip()))

    @staticmethod
    def like_pattern(query: Optional[str]) -> str:
        """Wrap a search term for a substring LIKE match."""
        return f"%{(query or '').strip()}%"
