"""Validator Functions

Pure, stateless checks returning ``True`` when the value passes. They know
nothing about codes, messages or locations; ``rules.py`` wraps them into
binding-level rules that produce error stubs.

Features:
- Compiled regex caching shared across threads (patterns are immutable)
- Phone numbers checked against the bundled ``phonenumbers`` metadata, no network
- Luhn checksum for card numbers
- Numeric bounds compared as floats regardless of the value's own type
"""
from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Mapping, Set, Sized
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Any, Callable, Collection, Iterable
from urllib.parse import urlsplit

import phonenumbers
from phonenumbers import NumberParseException


class _Missing:
    """Sentinel for a field that is not present on the record at all."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

DEFAULT_URL_SCHEMES = frozenset({"http", "https", "ftp", "ftps", "ws", "wss"})


def is_absent(value: Any) -> bool:
    """None and MISSING both mean the field holds no value."""
    return value is None or value is MISSING


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def as_float(value: int | float | Decimal) -> float:
    """Float view of a number; integers too large for a float saturate to +/-inf."""
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


# ============================================================================
# Size and range
# ============================================================================

def validate_length(value: Any, *, min: float | None = None, max: float | None = None,
                    equal: float | None = None) -> bool:
    """Count characters of a string or items of a sized collection against bounds.

    Negative bounds and ``max < min`` can never be satisfied, so every count fails.
    """
    if isinstance(value, bool) or not isinstance(value, Sized):
        return False
    bounds = [b for b in (min, max, equal) if b is not None]
    if any(as_float(b) < 0 for b in bounds):
        return False
    count = len(value)
    if equal is not None and count != as_float(equal):
        return False
    if min is not None and count < as_float(min):
        return False
    if max is not None and count > as_float(max):
        return False
    return True


def validate_range(value: Any, *, min: float | None = None, max: float | None = None,
                   exclusive_min: bool = False, exclusive_max: bool = False) -> bool:
    """Numeric bounds, compared as floats. NaN never satisfies a range."""
    if not is_number(value):
        return False
    num = as_float(value)
    if math.isnan(num):
        return False
    if min is not None:
        lo = as_float(min)
        if num < lo or (exclusive_min and num == lo):
            return False
    if max is not None:
        hi = as_float(max)
        if num > hi or (exclusive_max and num == hi):
            return False
    return True


# ============================================================================
# Format validators
# ============================================================================

# RFC 5322 dot-atom local part, LDH domain labels with an alphabetic TLD
_EMAIL_LOCAL = re.compile(r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*")
_EMAIL_DOMAIN = re.compile(r"(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}")


def validate_email(value: Any) -> bool:
    if not isinstance(value, str) or len(value) > 254:
        return False
    local, sep, domain = value.rpartition("@")
    if not sep or not local or len(local) > 64:
        return False
    return bool(_EMAIL_LOCAL.fullmatch(local) and _EMAIL_DOMAIN.fullmatch(domain))


def validate_url(value: Any, schemes: Collection[str] = DEFAULT_URL_SCHEMES) -> bool:
    """Absolute URL with an allowed scheme and a non-empty host."""
    if not isinstance(value, str) or not value or any(c.isspace() for c in value):
        return False
    try:
        parsed = urlsplit(value)
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    return parsed.scheme.lower() in schemes and bool(parsed.hostname)


_PHONE_CHARS = re.compile(r"\+?[\d\s().\-]+")


def validate_phone(value: Any, region: str | None = None) -> bool:
    """E.164-style number validated against the phonenumbers metadata table.

    Without a leading ``+`` the number is read in ``region`` when given,
    otherwise the digits are taken to start with a country code.
    """
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not _PHONE_CHARS.fullmatch(text) or not 2 <= sum(c.isdigit() for c in text) <= 15:
        return False
    if not text.startswith("+") and region is None:
        text = f"+{text}"
    try:
        number = phonenumbers.parse(text, None if text.startswith("+") else region)
    except NumberParseException:
        return False
    return phonenumbers.is_valid_number(number)


_CARD_SEPARATORS = re.compile(r"[\s-]")


def _luhn_check(digits: str) -> bool:
    """Every second digit from the right is doubled and digit-summed; total mod 10 must be 0."""
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def validate_credit_card(value: Any) -> bool:
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return False
    digits = _CARD_SEPARATORS.sub("", value)
    if not (digits.isascii() and digits.isdigit()) or not 13 <= len(digits) <= 19:
        return False
    return _luhn_check(digits)


def validate_ip_v4(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        IPv4Address(value)
    except ValueError:
        return False
    return True


def validate_ip_v6(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        IPv6Address(value)
    except ValueError:
        return False
    return True


def validate_ip(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        ip_address(value)
    except ValueError:
        return False
    return True


# ============================================================================
# Content validators
# ============================================================================

def validate_contains(value: Any, needle: Any) -> bool:
    """Substring for text, key for mappings, member for other collections."""
    if isinstance(value, str):
        return isinstance(needle, str) and needle in value
    if isinstance(value, (Mapping, Set, list, tuple)):
        return needle in value
    return False


@lru_cache(maxsize=None)
def compile_pattern(pattern: str, flags: int = 0) -> re.Pattern[str]:
    """Compile once per (pattern, flags); the result is shared read-only."""
    return re.compile(pattern, flags)


def validate_regex(value: Any, pattern: str | re.Pattern[str], flags: int = 0) -> bool:
    """True if the pattern matches anywhere in the value."""
    if not isinstance(value, str):
        return False
    compiled = pattern if isinstance(pattern, re.Pattern) else compile_pattern(pattern, flags)
    return compiled.search(value) is not None


def validate_must_match(value: Any, other: Any) -> bool:
    """Two fields of one record must be present and equal."""
    if is_absent(value) or is_absent(other):
        return False
    return value == other


def validate_non_control_character(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return not any(unicodedata.category(c) == "Cc" for c in value)


def validate_in(value: Any, collection: Iterable[Any], *, negate: bool = False) -> bool:
    """Membership by equality; ``negate`` turns it into a deny-list check."""
    found = any(value == allowed for allowed in collection)
    return not found if negate else found


def validate_required(value: Any) -> bool:
    return not is_absent(value)


# ============================================================================
# Time validators
# ============================================================================

class TimeOp(str, Enum):
    BEFORE = "before"
    BEFORE_OR_EQUAL = "before_or_equal"
    AFTER = "after"
    AFTER_OR_EQUAL = "after_or_equal"
    BEFORE_NOW = "before_now"
    AFTER_NOW = "after_now"
    IN_PERIOD = "in_period"


def _now_like(value: date) -> date:
    if isinstance(value, datetime):
        return datetime.now(value.tzinfo)
    return date.today()


def _align(value: date, target: date) -> tuple[date, date]:
    """Compare a datetime against a plain date by its calendar day."""
    if isinstance(value, datetime) and not isinstance(target, datetime):
        return value.date(), target
    if isinstance(target, datetime) and not isinstance(value, datetime):
        return value, target.date()
    return value, target


def validate_time(value: Any, op: TimeOp | str, target: date | Callable[[], date] | None = None,
                  duration: timedelta | None = None) -> bool:
    """Compare a date/datetime against a target moment or period.

    ``target`` may be a callable evaluated per check. ``in_period`` accepts
    values between ``target`` and ``target + duration`` inclusive; a negative
    duration spans backwards. Naive/aware mixes never compare and fail.
    """
    if not isinstance(value, date):
        return False
    op = TimeOp(op)
    if op in (TimeOp.BEFORE_NOW, TimeOp.AFTER_NOW):
        target = _now_like(value)
    elif callable(target):
        target = target()
    if not isinstance(target, date):
        return False
    left, right = _align(value, target)
    try:
        if op in (TimeOp.BEFORE, TimeOp.BEFORE_NOW):
            return left < right
        if op is TimeOp.BEFORE_OR_EQUAL:
            return left <= right
        if op in (TimeOp.AFTER, TimeOp.AFTER_NOW):
            return left > right
        if op is TimeOp.AFTER_OR_EQUAL:
            return left >= right
        end = right + (duration or timedelta())
        lo, hi = (right, end) if end >= right else (end, right)
        return lo <= left <= hi
    except TypeError:
        return False
