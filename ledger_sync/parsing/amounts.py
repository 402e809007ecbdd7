"""
Amount/Locale Normalizer

Turns a free-text numeric token ("1.250,50", "1,250.50", "12,3") into a
Decimal, resolving which of '.' and ',' is the decimal separator.

Rules:
- Both separators present: the one whose rightmost occurrence is later
  is the decimal separator; every occurrence of the other is grouping.
- Only ',' present: ',' is the decimal separator. If it occurs more than
  once, the last occurrence is the decimal point and the rest are grouping.
- Only '.' present: depends on DotSeparatorMode. STRICT_DECIMAL leaves the
  token as-is ("1.000" -> 1.0); THOUSANDS_HEURISTIC reads tokens whose
  dot-groups after the first all have exactly three digits as integers.

A parse failure and an exact zero both come back as None ("unreliable"),
so callers route the signal to "unrecognized" instead of storing a
zero-amount transaction.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from ledger_sync.config.settings import DotSeparatorMode


_TOKEN_PATTERN = re.compile(r"[+-]?[\d.,]+")
_GROUPED_DOTS = re.compile(r"\d{1,3}(?:\.\d{3})+")


def decimal_separator(token: str) -> Optional[str]:
    """
    Return the decimal separator a mixed token uses, or None if the token
    carries at most one kind of separator.
    """
    if "." in token and "," in token:
        return "," if token.rfind(",") > token.rfind(".") else "."
    return None


def normalize_token(
    token: str,
    dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
) -> Optional[str]:
    """
    Rewrite a locale-formatted token into canonical "1234.56" form.

    Returns None when the token is not a number at all.
    """
    cleaned = re.sub(r"\s+", "", token or "")
    if not cleaned or not _TOKEN_PATTERN.fullmatch(cleaned):
        return None

    sign = ""
    if cleaned[0] in "+-":
        sign = "-" if cleaned[0] == "-" else ""
        cleaned = cleaned[1:]

    separator = decimal_separator(cleaned)
    if separator == ",":
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif separator == ".":
        cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        head, _, tail = cleaned.rpartition(",")
        cleaned = f"{head.replace(',', '')}.{tail}"
    elif "." in cleaned and dot_mode == DotSeparatorMode.THOUSANDS_HEURISTIC:
        if _GROUPED_DOTS.fullmatch(cleaned):
            cleaned = cleaned.replace(".", "")

    return sign + cleaned


def parse_signed_amount(
    token: str,
    dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
    allow_zero: bool = False,
) -> Optional[Decimal]:
    """
    Parse a possibly signed token into a Decimal.

    Args:
        token: Raw token, e.g. "-1.250,50"
        dot_mode: How to read tokens that only contain '.'
        allow_zero: Accept an exact zero (bank balances) instead of
            treating it as unreliable

    Returns:
        The parsed value, or None if the token is unparseable (or zero
        and `allow_zero` is False)
    """
    canonical = normalize_token(token, dot_mode)
    if canonical is None:
        return None
    try:
        value = Decimal(canonical)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    if value == 0 and not allow_zero:
        return None
    return value


def parse_amount(
    token: str,
    dot_mode: DotSeparatorMode = DotSeparatorMode.STRICT_DECIMAL,
) -> Optional[Decimal]:
    """
    Parse an amount captured from SMS or notification text.

    Always non-negative; None means the amount is unreliable.
    """
    value = parse_signed_amount(token, dot_mode)
    return abs(value) if value is not None else None
