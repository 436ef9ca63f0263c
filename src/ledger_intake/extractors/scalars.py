"""
Locale-aware scalar parsers.

Amounts: 1.234,56 (European), 1,234.56 (US), $ / € / £ / ¥ / ₿ / AR$ / ARS$
symbols, (50.00) and -50.00 negation.
Dates: DD/MM/YYYY, DD-MM-YYYY, DD/MM/YY, YYYY-MM-DD, DD-MMM-YY (English and
Spanish month abbreviations), relative words (hoy/ayer/anteayer), plus a
generic format list.
Legacy spreadsheet serial dates (1899-12-30 epoch with the 1900 leap-year
adjustment).

None of these functions raise on malformed input: amounts degrade to 0,
dates degrade to today.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

# Years < 50 become 20xx, >= 50 become 19xx
TWO_DIGIT_YEAR_PIVOT = 50

SPREADSHEET_EPOCH = date(1899, 12, 30)

# Serials above this carry the phantom 1900-02-29
SPREADSHEET_LEAP_BUG_SERIAL = 59

# Range of serials treated as statement dates (roughly 2009-07 .. 2064-04)
SERIAL_DATE_MIN = 40000
SERIAL_DATE_MAX = 60000

# Local-currency marker first so "AR$" is consumed whole instead of leaving "AR"
CURRENCY_SYMBOLS_RE = re.compile(r"ARS?\$|[$€£¥₿\s]", re.IGNORECASE)

AMOUNT_TOKEN_RE = re.compile(r"^-?\(?-?[\d.,]*\d[\d.,]*\)?$")

# Patterns for classifying whole tokens (CSV cells)
DATE_TOKEN_PATTERNS = [
    re.compile(r"^\d{1,2}[/-]\d{1,2}[/-]\d{2,4}$"),  # DD/MM/YYYY or MM/DD/YYYY
    re.compile(r"^\d{4}[/-]\d{1,2}[/-]\d{1,2}$"),  # YYYY-MM-DD
    re.compile(r"^\d{1,2}\s+[^\W\d_]+\s+\d{4}$"),  # DD Month YYYY
    re.compile(r"^\d{1,2}-[^\W\d_]{3}-\d{2}$"),  # DD-MMM-YY
]

# (regex, layout) tried in order by parse_date
DATE_LAYOUTS = [
    (re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$"), "dmy"),
    (re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2})$"), "dmy2"),
    (re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$"), "ymd"),
    (re.compile(r"^(\d{1,2})-([^\W\d_]{3})-(\d{2})$"), "d_mon_y2"),
]

# Generic fallback formats (includes US month-first layouts)
GENERIC_DATE_FORMATS = [
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
]

# English and Spanish abbreviations
MONTH_ABBREVIATIONS = {
    "jan": 1,
    "ene": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "abr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "ago": 8,
    "sep": 9,
    "set": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
    "dic": 12,
}

# Checked in order: "anteayer" contains "ayer"
RELATIVE_DATE_WORDS = [
    (re.compile(r"\b(?:anteayer|antes\s+de\s+ayer|day\s+before\s+yesterday)\b", re.IGNORECASE), 2),
    (re.compile(r"\b(?:ayer|yesterday)\b", re.IGNORECASE), 1),
    (re.compile(r"\b(?:hoy|today)\b", re.IGNORECASE), 0),
]


def today_iso(today: Optional[date] = None) -> str:
    """Today's date (or the injected one) as YYYY-MM-DD."""
    return (today or date.today()).isoformat()


def expand_two_digit_year(year: int) -> int:
    """Map a 2-digit year through the fixed pivot."""
    if year >= 100:
        return year
    return 2000 + year if year < TWO_DIGIT_YEAR_PIVOT else 1900 + year


def _safe_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def strip_currency_symbols(value: str) -> str:
    """Remove currency symbols, the AR$/ARS$ marker and all whitespace."""
    return CURRENCY_SYMBOLS_RE.sub("", value).strip()


def looks_like_date(value: str) -> bool:
    """Check if a whole token looks like a date."""
    token = value.strip()
    return any(pattern.match(token) for pattern in DATE_TOKEN_PATTERNS)


def looks_like_amount(value: str) -> bool:
    """Check if a whole token looks like a (possibly negated) number."""
    cleaned = strip_currency_symbols(value)
    return bool(cleaned) and bool(AMOUNT_TOKEN_RE.match(cleaned))


def _normalize_separators(number: str) -> str:
    """
    Turn a digit string with ',' / '.' separators into a Decimal literal.

    Both present: the later one is the decimal separator.
    One kind only: repeated => thousands; single with exactly 3 trailing
    digits => thousands; otherwise decimal.
    """
    last_comma = number.rfind(",")
    last_dot = number.rfind(".")

    if last_comma >= 0 and last_dot >= 0:
        if last_comma > last_dot:
            return number.replace(".", "").replace(",", ".")
        return number.replace(",", "")

    separator = "," if last_comma >= 0 else "." if last_dot >= 0 else None
    if separator is None:
        return number

    trailing_digits = len(number) - number.rfind(separator) - 1
    if number.count(separator) > 1 or trailing_digits == 3:
        return number.replace(separator, "")
    return number.replace(separator, ".")


def parse_amount(value: Any) -> Decimal:
    """
    Parse an amount token into a signed Decimal.

    Returns Decimal("0") for None or anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")
    if not isinstance(value, str):
        return Decimal("0")

    cleaned = strip_currency_symbols(value)
    negative = (cleaned.startswith("(") and cleaned.endswith(")")) or cleaned.startswith("-")
    cleaned = cleaned.replace("(", "").replace(")", "")
    if cleaned.startswith("-"):
        cleaned = cleaned[1:]

    try:
        amount = Decimal(_normalize_separators(cleaned))
    except InvalidOperation:
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return -amount if negative else amount


def resolve_relative_date(value: str, today: Optional[date] = None) -> Optional[str]:
    """Resolve hoy/ayer/anteayer (and English equivalents) found in ``value``."""
    base = today or date.today()
    for pattern, days_back in RELATIVE_DATE_WORDS:
        if pattern.search(value):
            return (base - timedelta(days=days_back)).isoformat()
    return None


def _parse_layout(match: re.Match, layout: str) -> Optional[str]:
    if layout == "dmy":
        return _safe_iso(int(match.group(3)), int(match.group(2)), int(match.group(1)))
    if layout == "dmy2":
        year = expand_two_digit_year(int(match.group(3)))
        return _safe_iso(year, int(match.group(2)), int(match.group(1)))
    if layout == "ymd":
        return _safe_iso(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    if layout == "d_mon_y2":
        month = MONTH_ABBREVIATIONS.get(match.group(2).lower())
        if month:
            year = expand_two_digit_year(int(match.group(3)))
            return _safe_iso(year, month, int(match.group(1)))
    return None


def parse_date(value: Any, today: Optional[date] = None) -> str:
    """
    Parse a date token into YYYY-MM-DD.

    Day-first layouts win over month-first ones; anything unparseable
    returns today's date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return today_iso(today)

    trimmed = value.strip()
    if not trimmed:
        return today_iso(today)

    for pattern, layout in DATE_LAYOUTS:
        match = pattern.match(trimmed)
        if match:
            parsed = _parse_layout(match, layout)
            if parsed:
                return parsed

    for date_format in GENERIC_DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, date_format).date().isoformat()
        except ValueError:
            continue

    relative = resolve_relative_date(trimmed, today)
    if relative:
        return relative

    return today_iso(today)


def serial_to_date(serial: float) -> str:
    """
    Convert a legacy spreadsheet serial day number to YYYY-MM-DD.

    Epoch 1899-12-30; serials above 59 are shifted back one more day for
    the phantom 1900-02-29.
    """
    days = int(serial)
    if days > SPREADSHEET_LEAP_BUG_SERIAL:
        days -= 1
    return (SPREADSHEET_EPOCH + timedelta(days=days)).isoformat()


def is_serial_date(value: Any) -> bool:
    """Check if a cell value is a number in the plausible statement-date serial range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return SERIAL_DATE_MIN < value < SERIAL_DATE_MAX


def parse_cell_amount(value: Any) -> Decimal:
    """Parse an amount from a spreadsheet cell (number or text)."""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return parse_amount(value)
    if isinstance(value, str):
        return parse_amount(value)
    return Decimal("0")
