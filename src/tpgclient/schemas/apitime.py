from __future__ import annotations

from datetime import datetime
import re


# Wire layout used by every TPG timestamp, e.g. "2018-12-14T08:34:36+0100".
API_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# `strptime("%z")` also accepts "Z" and "+01:00"; the API never sends those, so we gate on the exact shape first.
_API_TIME_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}[+-][0-9]{4}")


class APITimeParseError(ValueError):
    """Raised when a string does not match the API timestamp layout."""

    def __init__(self, raw: str, reason: str | None = None) -> None:
        message = f"Invalid TPG timestamp {raw!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.raw = raw


def parse_api_time(raw: str) -> datetime:
    """
    Parse `YYYY-MM-DDTHH:MM:SS±HHMM` into a timezone-aware `datetime`.

    The offset sign is mandatory and has no colon; fractional seconds are rejected.
    """

    if not isinstance(raw, str) or _API_TIME_RE.fullmatch(raw) is None:
        raise APITimeParseError(str(raw))
    try:
        return datetime.strptime(raw, API_TIME_FORMAT)
    except ValueError as exc:
        # Shape is right but a field is out of range (month 14, hour 99, ...).
        raise APITimeParseError(raw, str(exc)) from exc


def render_api_time(value: datetime) -> str:
    # Human-readable form only (error messages); not sent back to the API.
    return str(value)

