# shopbati/services/formatting.py
"""
Locale-aware money and date formatting for customer-facing documents.

Everything here fails loudly: a bad amount or timestamp raises instead of
printing "NaN" or "Invalid Date" on an invoice.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Dict, Tuple, Union
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


@dataclass(frozen=True)
class LocaleFormat:
    decimal_sep: str
    group_sep: str
    symbol_first: bool
    symbol_space: bool
    months: Tuple[str, ...]
    long_date: str        # uses {day} {month} {year}
    time_joiner: str


_FR_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)
_EN_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_DE_MONTHS = (
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
)

LOCALES: Dict[str, LocaleFormat] = {
    "fr_FR": LocaleFormat(",", " ", False, True, _FR_MONTHS, "{day} {month} {year}", " à "),
    "en_US": LocaleFormat(".", ",", True, False, _EN_MONTHS, "{month} {day}, {year}", " at "),
    "en_GB": LocaleFormat(".", ",", True, False, _EN_MONTHS, "{day} {month} {year}", " at "),
    "de_DE": LocaleFormat(",", ".", False, True, _DE_MONTHS, "{day}. {month} {year}", " um "),
}

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
}


def _locale(name: str) -> LocaleFormat:
    try:
        return LOCALES[name]
    except KeyError:
        raise ValueError(f"unsupported locale: {name!r}") from None


def to_decimal(value: Amount) -> Decimal:
    """Coerce a money value to a finite Decimal, rejecting anything ambiguous."""
    if isinstance(value, bool):
        raise TypeError("amount must be a number, not bool")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        dec = Decimal(str(value))
    elif isinstance(value, str):
        try:
            dec = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"not a decimal amount: {value!r}") from None
    else:
        raise TypeError(f"amount must be a number, got {type(value).__name__}")
    if not dec.is_finite():
        raise ValueError(f"amount must be finite, got {value!r}")
    return dec


def _group(digits: str, sep: str) -> str:
    out = []
    while len(digits) > 3:
        out.insert(0, digits[-3:])
        digits = digits[:-3]
    out.insert(0, digits)
    return sep.join(out)


def format_number(amount: Amount, locale: str = "fr_FR") -> str:
    """Two-decimal number with locale separators, e.g. '1 234,50'."""
    loc = _locale(locale)
    dec = to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if dec < 0 else ""
    whole, frac = f"{abs(dec):.2f}".split(".")
    return f"{sign}{_group(whole, loc.group_sep)}{loc.decimal_sep}{frac}"


def format_currency(amount: Amount, currency: str = "EUR", locale: str = "fr_FR") -> str:
    loc = _locale(locale)
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()}")
    number = format_number(amount, locale)
    if loc.symbol_first:
        if number.startswith("-"):
            return f"-{symbol}{number[1:]}"
        return f"{symbol}{number}"
    space = " " if loc.symbol_space else ""
    return f"{number}{space}{symbol}"


def parse_timestamp(value: Union[str, datetime], tz: str = "UTC") -> datetime:
    """ISO-8601 string (or datetime) -> aware datetime in ``tz``. Naive input is UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        if not value.strip():
            raise ValueError("empty timestamp")
        try:
            dt = dateutil_parser.isoparse(value.strip())
        except (ValueError, OverflowError) as e:
            raise ValueError(f"invalid ISO-8601 timestamp: {value!r}") from e
    else:
        raise TypeError(f"timestamp must be str or datetime, got {type(value).__name__}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(ZoneInfo(tz))


def format_date(value: Union[str, datetime], locale: str = "fr_FR", tz: str = "Europe/Paris",
                with_time: bool = False) -> str:
    """Long-form localized date, e.g. '15 janvier 2025' or '15 janvier 2025 à 11:00'."""
    loc = _locale(locale)
    dt = parse_timestamp(value, tz)
    text = loc.long_date.format(day=dt.day, month=loc.months[dt.month - 1], year=dt.year)
    if with_time:
        text += f"{loc.time_joiner}{dt:%H:%M}"
    return text
