"""Binding-Level Rules

A rule pairs one validator function with its static parameters and the
optional ``code``/``message`` overrides declared at the binding. Rules are
frozen dataclasses, safe to share across threads and validation runs.

``check`` returns ``None`` on success or an error *stub*: a field error with
the rule's default code and its params, but no location and no message.
The engine locates the stub and applies the overrides.

Usage:
    Length(min=1, max=64)
    Range(min=100, max=9999, code="cvv")
    Regex(r"^[a-z]{2}$", message="two lowercase letters")
    Custom(check_username)
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sized
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Iterable

from ..config import get_settings
from ..result import Err, Ok
from .errors import ValidationError
from .validators import (
    TimeOp,
    as_float,
    compile_pattern,
    is_absent,
    is_number,
    validate_contains,
    validate_credit_card,
    validate_email,
    validate_in,
    validate_ip,
    validate_ip_v4,
    validate_ip_v6,
    validate_length,
    validate_must_match,
    validate_non_control_character,
    validate_phone,
    validate_range,
    validate_time,
    validate_url,
)

if TYPE_CHECKING:
    from .bindings import RecordView


@dataclass(frozen=True, slots=True)
class Rule(ABC):
    """Base class for binding-level rules."""
    code: str | None = field(default=None, kw_only=True)
    message: str | None = field(default=None, kw_only=True)

    _name: ClassVar[str] = "rule"
    checks_absent: ClassVar[bool] = False

    @property
    def name(self) -> str:
        """Default error code, used when the binding does not override it."""
        return self._name

    @abstractmethod
    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        """Validate a present value. Returns None or an error stub."""

    def _fail(self, **params: Any) -> ValidationError:
        return ValidationError.field(self.name, params=params)

    def _mismatch(self, expected: str, value: Any) -> ValidationError:
        return self._fail(expected_type=expected, actual_type=type(value).__name__)


def _number_param(value: Any) -> int | float:
    return value if isinstance(value, (int, float)) else as_float(value)


# ============================================================================
# Size and range
# ============================================================================

@dataclass(frozen=True, slots=True)
class Length(Rule):
    """Characters of a string or items of a collection."""
    min: int | None = None
    max: int | None = None
    equal: int | None = None

    _name: ClassVar[str] = "length"

    def __post_init__(self):
        if self.min is None and self.max is None and self.equal is None:
            raise ValueError("length rule needs at least one of min, max or equal")

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if isinstance(value, bool) or not isinstance(value, Sized):
            return self._mismatch("string or collection", value)
        if validate_length(value, min=self.min, max=self.max, equal=self.equal):
            return None
        bounds = {k: _number_param(v) for k, v in (("min", self.min), ("max", self.max), ("equal", self.equal))
            if v is not None}
        return self._fail(actual=len(value), **bounds)


@dataclass(frozen=True, slots=True)
class Range(Rule):
    """Numeric bounds; reported bounds are always floats."""
    min: float | None = None
    max: float | None = None
    exclusive_min: bool = False
    exclusive_max: bool = False

    _name: ClassVar[str] = "range"

    def __post_init__(self):
        if self.min is None and self.max is None:
            raise ValueError("range rule needs min or max")

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if not is_number(value):
            return self._mismatch("number", value)
        if validate_range(value, min=self.min, max=self.max,
                          exclusive_min=self.exclusive_min, exclusive_max=self.exclusive_max):
            return None
        bounds = {k: as_float(v) for k, v in (("min", self.min), ("max", self.max)) if v is not None}
        return self._fail(actual=_number_param(value), **bounds)


# ============================================================================
# Format rules
# ============================================================================

@dataclass(frozen=True, slots=True)
class _StringFormat(Rule):
    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if not isinstance(value, str):
            return self._mismatch("string", value)
        return None if self._valid(value) else self._fail(actual=value)

    @abstractmethod
    def _valid(self, value: str) -> bool: ...


@dataclass(frozen=True, slots=True)
class Email(_StringFormat):
    _name: ClassVar[str] = "email"

    def _valid(self, value: str) -> bool:
        return validate_email(value)


@dataclass(frozen=True, slots=True)
class Url(_StringFormat):
    """Absolute URL; ``schemes`` defaults to ``Settings.url_schemes``."""
    schemes: frozenset[str] | None = None

    _name: ClassVar[str] = "url"

    def __post_init__(self):
        if self.schemes is not None:
            object.__setattr__(self, "schemes", frozenset(s.lower() for s in self.schemes))

    def _valid(self, value: str) -> bool:
        return validate_url(value, self.schemes if self.schemes is not None else get_settings().url_schemes)


@dataclass(frozen=True, slots=True)
class Phone(_StringFormat):
    """Phone number; ``region`` defaults to ``Settings.phone_default_region``."""
    region: str | None = None

    _name: ClassVar[str] = "phone"

    def _valid(self, value: str) -> bool:
        return validate_phone(value, self.region or get_settings().phone_default_region)


@dataclass(frozen=True, slots=True)
class CreditCard(_StringFormat):
    _name: ClassVar[str] = "credit_card"

    def _valid(self, value: str) -> bool:
        return validate_credit_card(value)


@dataclass(frozen=True, slots=True)
class NonControlCharacter(_StringFormat):
    _name: ClassVar[str] = "non_control_character"

    def _valid(self, value: str) -> bool:
        return validate_non_control_character(value)


@dataclass(frozen=True, slots=True)
class Ip(_StringFormat):
    """IP address of either family, or only ``version`` 4 or 6."""
    version: int | None = None

    def __post_init__(self):
        if self.version not in (None, 4, 6):
            raise ValueError(f"ip version must be 4 or 6, got {self.version}")

    @property
    def name(self) -> str:
        return f"ip_v{self.version}" if self.version else "ip"

    def _valid(self, value: str) -> bool:
        if self.version == 4:
            return validate_ip_v4(value)
        if self.version == 6:
            return validate_ip_v6(value)
        return validate_ip(value)


# ============================================================================
# Content rules
# ============================================================================

@dataclass(frozen=True, slots=True)
class Contains(Rule):
    """Substring of a string, key of a mapping or member of a collection."""
    needle: Any

    _name: ClassVar[str] = "contains"

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if validate_contains(value, self.needle):
            return None
        return self._fail(needle=self.needle, actual=value)


@dataclass(frozen=True, slots=True)
class DoesNotContain(Contains):
    _name: ClassVar[str] = "does_not_contain"

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if not validate_contains(value, self.needle):
            return None
        return self._fail(needle=self.needle, actual=value)


@dataclass(frozen=True, slots=True)
class Regex(Rule):
    """Pattern must match anywhere in the value. Compiled once, then shared."""
    pattern: str | re.Pattern[str]
    flags: int = 0
    compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    _name: ClassVar[str] = "regex"

    def __post_init__(self):
        compiled = self.pattern if isinstance(self.pattern, re.Pattern) else compile_pattern(self.pattern, self.flags)
        object.__setattr__(self, "compiled", compiled)

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if not isinstance(value, str):
            return self._mismatch("string", value)
        compiled = self.compiled
        if compiled.search(value):
            return None
        return self._fail(pattern=compiled.pattern, actual=value)


@dataclass(frozen=True, slots=True)
class MustMatch(Rule):
    """Field must equal the sibling field ``other`` of the same record."""
    other: str

    _name: ClassVar[str] = "must_match"

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if validate_must_match(value, view.get(self.other)):
            return None
        return self._fail(other=self.other)


@dataclass(frozen=True, slots=True)
class In(Rule):
    """Value must equal one of ``values``."""
    values: tuple[Any, ...]

    _name: ClassVar[str] = "in"
    _negate: ClassVar[bool] = False

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if validate_in(value, self.values, negate=self._negate):
            return None
        return self._fail(actual=value)


@dataclass(frozen=True, slots=True)
class NotIn(In):
    """Value must not equal any of ``values``."""
    _name: ClassVar[str] = "not_in"
    _negate: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class Required(Rule):
    """Field must be present. The only rule that sees absent values."""
    _name: ClassVar[str] = "required"
    checks_absent: ClassVar[bool] = True

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        return self._fail() if is_absent(value) else None


@dataclass(frozen=True, slots=True)
class Time(Rule):
    """Date/datetime compared against a target moment, ``now`` or a period."""
    op: TimeOp | str
    target: date | Callable[[], date] | None = None
    duration: timedelta | None = None

    _name: ClassVar[str] = "time"

    def __post_init__(self):
        object.__setattr__(self, "op", TimeOp(self.op))
        if self.op not in (TimeOp.BEFORE_NOW, TimeOp.AFTER_NOW) and self.target is None:
            raise ValueError(f"time rule '{self.op.value}' needs a target")
        if self.op is TimeOp.IN_PERIOD and self.duration is None:
            raise ValueError("time rule 'in_period' needs a duration")

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        if not isinstance(value, date):
            return self._mismatch("date or datetime", value)
        if validate_time(value, self.op, self.target, self.duration):
            return None
        target = self.target() if callable(self.target) else self.target
        params = {"op": self.op.value, "actual": value.isoformat(),
            "target": target.isoformat() if isinstance(target, date) else "now"}
        if self.duration is not None:
            params["duration_seconds"] = self.duration.total_seconds()
        return self._fail(**params)


# ============================================================================
# Custom rule
# ============================================================================

@dataclass(frozen=True, slots=True)
class Custom(Rule):
    """Delegates to ``fn(value)``.

    The function returns ``Ok``/``None`` on success, or ``Err(ValidationError)``
    (a bare ``ValidationError`` is accepted too). The error keeps its own code
    unless the binding overrides it. Exceptions raised by ``fn`` propagate.

    Usage:
        def unique_username(name: str) -> Result[None, ValidationError]:
            if name in TAKEN:
                return Err(ValidationError.field("terrible_username"))
            return Ok(None)

        Custom(unique_username)
    """
    fn: Callable[[Any], Any]

    _name: ClassVar[str] = "custom"

    def check(self, value: Any, view: RecordView) -> ValidationError | None:
        match self.fn(value):
            case None | Ok():
                return None
            case Err(ValidationError() as error) | (ValidationError() as error):
                return error
            case other:
                raise TypeError(f"custom validator {self.fn!r} returned {other!r}; expected Ok, Err or None")


def rules(*items: Rule | Iterable[Rule]) -> tuple[Rule, ...]:
    """Flatten rule arguments into a tuple, keeping declaration order."""
    flat: list[Rule] = []
    for item in items:
        flat.extend([item] if isinstance(item, Rule) else item)
    return tuple(flat)
