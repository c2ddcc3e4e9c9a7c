"""Pick a reference date out of a free-text chat message."""

import re
from datetime import date, datetime, timedelta

import structlog
from dateutil import parser as date_parser

logger = structlog.get_logger(__name__)

_RELATIVE_WORDS = {
    "today": 0,
    "now": 0,
    "yesterday": -1,
}

_MONTHS = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?|"
    r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)

# Explicit date expressions handed to dateutil, most specific first
_DATE_PATTERNS = (
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b"),
    re.compile(r"\b\d{4}/\d{1,2}/\d{1,2}\b"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b"),
    re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:{_MONTHS})\.?(?:,?\s+\d{{4}})?\b", re.I),
    re.compile(rf"\b(?:{_MONTHS})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b", re.I),
)

_DAYS_AGO = re.compile(r"\b(\d{1,3})\s+days?\s+ago\b", re.I)
# Forward-looking forms only count with "as of": "due tomorrow" or "due in 7 days"
# describe which invoices to look at, not the date to age them against
_AS_OF_TOMORROW = re.compile(r"\bas\s+(?:of|at)\s+tomorrow\b", re.I)
_AS_OF_DAYS_AHEAD = re.compile(r"\bas\s+(?:of|at)\s+(\d{1,3})\s+days?\s+from\s+(?:now|today)\b", re.I)
_RELATIVE = re.compile(r"\b(" + "|".join(_RELATIVE_WORDS) + r")\b", re.I)


def parse_reference_date(text: str, today: date | None = None) -> date | None:
    """Return the date mentioned in ``text``, or None when there is none.

    Understands ISO and slash dates, day/month names ("10 Jan 2024",
    "Jan 10"), "N days ago", today and yesterday. Future dates relative to
    today need "as of" ("as of tomorrow", "as of 5 days from now").
    Unparseable expressions yield None; they never raise.
    """
    today = today or date.today()
    if not text:
        return None

    for pattern in _DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            default = datetime(today.year, today.month, 1)
            return date_parser.parse(match.group(0), default=default).date()
        except (ValueError, OverflowError) as e:
            logger.debug("date_parse_failed", expression=match.group(0), error=str(e))
            return None

    if match := _DAYS_AGO.search(text):
        return today - timedelta(days=int(match.group(1)))
    if match := _AS_OF_DAYS_AHEAD.search(text):
        return today + timedelta(days=int(match.group(1)))
    if _AS_OF_TOMORROW.search(text):
        return today + timedelta(days=1)
    if match := _RELATIVE.search(text):
        return today + timedelta(days=_RELATIVE_WORDS[match.group(1).lower()])
    return None

