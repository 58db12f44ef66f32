"""Field normalization for extracted invoice values.

Pure functions converting semi-structured values (Brazilian written dates,
currency strings, punctuated CNPJ/CPF numbers) into the canonical record
representation. None of them raise on malformed input: anything that cannot
be converted with confidence becomes None.

Amount parsing uses price-parser once the decimal separator is settled:
https://github.com/scrapinghub/price-parser
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser
from price_parser import Price

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d/%m/%y",
)

_ISO_DATETIME_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]")

_WRITTEN_DATE = re.compile(
    r"^(\d{1,2})\s*(?:de\s+)?([a-zç]+)\.?\s*(?:de\s+)?(\d{4})$",
    re.IGNORECASE,
)

_PT_MONTHS = {
    "janeiro": 1,
    "jan": 1,
    "fevereiro": 2,
    "fev": 2,
    "março": 3,
    "marco": 3,
    "mar": 3,
    "abril": 4,
    "abr": 4,
    "maio": 5,
    "mai": 5,
    "junho": 6,
    "jun": 6,
    "julho": 7,
    "jul": 7,
    "agosto": 8,
    "ago": 8,
    "setembro": 9,
    "set": 9,
    "outubro": 10,
    "out": 10,
    "novembro": 11,
    "nov": 11,
    "dezembro": 12,
    "dez": 12,
}

# Two unrelated defaults: a dateutil parse is only trusted when both agree,
# i.e. day, month and year all came from the input.
_DEFAULT_A = datetime(1901, 1, 1)
_DEFAULT_B = datetime(1902, 2, 2)

_NUMBER_RUN = re.compile(r"\d[\d.,]*")
_DIGIT_GAP = re.compile(r"(?<=\d)[ \u00a0\u202f](?=\d)")
_NULL_WORDS = frozenset({"", "null", "none"})
_ASCII_DIGITS = frozenset("0123456789")
_INSTALLMENTS = re.compile(r"\s*(-?\d+(?:[.,]\d+)?)\s*(?:x|parcelas?)?\s*", re.IGNORECASE)


def normalize_date(value: Any) -> date | None:
    """Convert a date-like value to a calendar date.

    Day-first interpretation is assumed for numeric forms (DD/MM/YYYY),
    which is how dates are written on Brazilian invoices.

    Args:
        value: date, datetime or string

    Returns:
        The date, or None if no confident conversion exists
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    iso_match = _ISO_DATETIME_PREFIX.match(text)
    if iso_match:
        text = iso_match.group(1)

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    written = _parse_written_date(text)
    if written is not None:
        return written

    try:
        first = date_parser.parse(text, dayfirst=True, default=_DEFAULT_A)
        second = date_parser.parse(text, dayfirst=True, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first.date()


def _parse_written_date(text: str) -> date | None:
    """Parse '15 de janeiro de 2024' and '15 jan 2024'."""
    match = _WRITTEN_DATE.match(text)
    if not match:
        return None
    day, month_name, year = match.groups()
    month = _PT_MONTHS.get(month_name.lower())
    if month is None:
        return None
    try:
        return date(int(year), month, int(day))
    except ValueError:
        return None


def normalize_amount(value: Any) -> Decimal | None:
    """Convert a currency value to a non-negative decimal.

    Examples: "R$ 3.449,00" -> 3449.00, "3012,00" -> 3012.00,
    "1,100.00" -> 1100.00, "3.449" -> 3449.

    Args:
        value: Number or currency string

    Returns:
        Decimal amount, or None for negative, ambiguous or malformed input
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float | Decimal):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
        return amount if amount.is_finite() and amount >= 0 else None
    if not isinstance(value, str):
        return None

    text = _DIGIT_GAP.sub("", value.strip())
    if not text or "-" in text:
        return None

    runs = _NUMBER_RUN.findall(text)
    if len(runs) != 1:
        return None
    number = runs[0].rstrip(".,")

    separator = _conversion_separator(number)
    if separator is None:
        return None

    price = Price.fromstring(number, decimal_separator=separator)
    if price.amount is None or price.amount < 0:
        return None
    return price.amount


def _conversion_separator(number: str) -> str | None:
    """Pick the decimal separator to hand to price-parser.

    Returns None when the grouping is ambiguous. A number with thousands
    separators only gets the opposite character, so every separator present
    is dropped during conversion.
    """
    has_dot = "." in number
    has_comma = "," in number

    if has_dot and has_comma:
        decimal_sep = "." if number.rfind(".") > number.rfind(",") else ","
        thousands_sep = "," if decimal_sep == "." else "."
        if number.count(decimal_sep) != 1:
            return None
        integer_part = number[: number.rfind(decimal_sep)]
        if not _is_thousands_grouping(integer_part, thousands_sep):
            return None
        return decimal_sep

    if not has_dot and not has_comma:
        return "."

    sep = "." if has_dot else ","
    other = "," if has_dot else "."
    head = number.rpartition(sep)[0]
    if _is_thousands_grouping(number, sep) and head != "0":
        return other
    if number.count(sep) == 1:
        return sep
    return None


def _is_thousands_grouping(integer_part: str, thousands_sep: str) -> bool:
    groups = integer_part.split(thousands_sep)
    return 1 <= len(groups[0]) <= 3 and all(len(group) == 3 for group in groups[1:])


def normalize_digits(value: Any) -> str | None:
    """Keep only the decimal digits of a value, in their original order.

    "18.944.113/0002-91" -> "18944113000291", "000.207.590" -> "000207590".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        return None
    digits = "".join(ch for ch in value if ch in _ASCII_DIGITS)
    return digits or None


def normalize_tax_id(value: Any) -> str | None:
    """Normalize a CNPJ or CPF to its digits."""
    return normalize_digits(value)


def normalize_text(value: Any) -> str | None:
    """Strip free text; empty strings and literal nulls become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float | Decimal):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.lower() in _NULL_WORDS:
        return None
    return text


def normalize_installments(value: Any) -> int | None:
    """Convert an installment count to int, keeping its sign.

    Accepts integers, integral floats and strings such as "3", "3x" or
    "3 parcelas". Fractional counts below one round down, so "-2.5" or 0.5
    come back non-positive; other fractional counts become None.
    Positivity is checked by the caller.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        match = _INSTALLMENTS.fullmatch(value)
        if not match:
            return None
        value = Decimal(match.group(1).replace(",", "."))
    if isinstance(value, float | Decimal):
        return _integral_count(Decimal(str(value)))
    return None


def _integral_count(count: Decimal) -> int | None:
    if not count.is_finite():
        return None
    if count == count.to_integral_value():
        return int(count)
    if count < 1:
        return math.floor(count)
    return None
