"""PDF metadata helpers."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

__all__ = ["parse_pdf_date"]

# D:YYYYMMDDHHmmSSOHH'mm' with every part after the year optional
_PDF_DATE_RE = re.compile(
    r"^(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    r"(?:([Zz+\-])(\d{2})?'?(\d{2})?'?)?"
)


def parse_pdf_date(value: Any) -> Optional[datetime]:
    """Parse a PDF date string such as "D:20240105123000+01'00'".

    Returns None for missing or malformed values.
    """
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    if isinstance(value, bytes):
        value = value.decode("latin-1", errors="ignore")

    match = _PDF_DATE_RE.match(str(value).strip())
    if not match:
        return None

    year, month, day, hour, minute, second, sign, tz_hour, tz_minute = match.groups()
    tzinfo = None
    if sign in ("Z", "z"):
        tzinfo = timezone.utc
    elif sign in ("+", "-"):
        offset = timedelta(hours=int(tz_hour or 0), minutes=int(tz_minute or 0))
        tzinfo = timezone(offset if sign == "+" else -offset)

    try:
        return datetime(
            int(year),
            int(month or 1),
            int(day or 1),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            tzinfo=tzinfo,
        )
    except ValueError:
        return None
