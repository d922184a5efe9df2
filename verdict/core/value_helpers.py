"""Value normalization helpers.

Extraction sources print the same value in many ways ("1.234,56",
"1234.56 EUR", "BE 0123.456.789", "01/03/2026"). These helpers turn raw
strings into comparable values. They return None instead of raising when a
value cannot be parsed, so callers can treat unparseable data as missing.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

_CURRENCY_NOISE = re.compile(r"[€$£\s]|EUR|USD|GBP", re.IGNORECASE)
_IDENTIFIER_NOISE = re.compile(r"[\s.\-/]")
_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d.%m.%Y", "%d-%m-%Y", "%Y/%m/%d")
_CENT = Decimal("0.01")
_MAX_INTEGER_DIGITS = 15
_MAX_FRACTION_DIGITS = 8


def _grouped(text: str, separator: str) -> bool:
    """True for "1.234" / "12.345.678" style digit grouping with ``separator``."""
    pattern = rf"-?[1-9]\d{{0,2}}(?:{re.escape(separator)}\d{{3}})+"
    return re.fullmatch(pattern, text) is not None


def _in_range(amount: Decimal) -> bool:
    """Exponent forms such as "5E40" parse as Decimals but are not amounts."""
    if not amount.is_finite():
        return False
    if amount.is_zero():
        return True
    return (
        amount.adjusted() < _MAX_INTEGER_DIGITS
        and amount.as_tuple().exponent >= -_MAX_FRACTION_DIGITS
    )


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_amount(value: Any, grouping: bool = True) -> Decimal | None:
    """Parse a monetary amount into an exact Decimal.

    Handles both decimal conventions:
    - "1,234.56" / "1234.56" -> 1234.56
    - "1.234,56" / "1234,56" -> 1234.56
    - "1,234" / "1.234" -> 1234 (a lone separator followed by exactly
      three digits is read as digit grouping when ``grouping`` is set)
    Currency symbols, codes and spaces are ignored. Values with more than 15
    integer digits or 8 decimals are treated as unparseable.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if _in_range(value) else None
    if isinstance(value, (int, float)):
        amount = Decimal(str(value))
        return amount if _in_range(amount) else None

    text = _CURRENCY_NOISE.sub("", str(value))
    if not text:
        return None

    negative = text.startswith("(") and text.endswith(")")
    text = text.strip("()")

    if "," in text and "." in text:
        # The right-most separator is the decimal mark
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif grouping and _grouped(text, ","):
        text = text.replace(",", "")
    elif grouping and _grouped(text, "."):
        text = text.replace(".", "")
    elif "," in text:
        text = text.replace(",", ".")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not _in_range(amount):
        return None
    return -amount if negative else amount


def format_amount(amount: Decimal) -> str:
    """Canonical string for an amount: at least two decimals.

    "100" -> "100.00", "12.5" -> "12.50", "0.125" stays "0.125".
    """
    try:
        cents = amount.quantize(_CENT)
    except InvalidOperation:
        return str(amount)
    if amount == cents:
        return str(cents)
    return str(amount.normalize())


def round_cents(amount: Decimal) -> Decimal:
    try:
        return amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return amount


def parse_rate(value: Any) -> Decimal | None:
    """Parse a VAT rate into a percentage.

    "21", "21%", "21.00 %", "21,0" -> 21. Fractions such as "0.21" are read
    as 21%.
    """
    if is_blank(value):
        return None
    text = str(value).replace("%", "").strip()
    rate = parse_amount(text, grouping=False)
    if rate is None:
        return None
    if Decimal("0") < rate < Decimal("1"):
        rate = rate * 100
    return rate


def format_rate(rate: Decimal) -> str:
    """Render a rate without trailing zeros: 21.00 -> "21", 5.50 -> "5.5"."""
    return format(rate.normalize(), "f")


def parse_date(value: Any) -> date | None:
    """Parse a printed date. Day-first formats are assumed for slashes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    # ISO timestamps: keep the date part
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_identifier(value: Any) -> str | None:
    """Uppercase and strip whitespace and separators.

    "be 0123.456.789" -> "BE0123456789", "BE68 5390 0754 7034" -> "BE68539007547034".
    """
    if is_blank(value):
        return None
    return _IDENTIFIER_NOISE.sub("", str(value)).upper()


def normalize_text(value: Any) -> str | None:
    """Trim, collapse whitespace, casefold."""
    if is_blank(value):
        return None
    return " ".join(str(value).split()).casefold()
