"""Validation Error System

Every failure carries a stable code, an optional human message, typed params
and the location of the offending field inside the record tree. Errors are
collected, never short-circuited, and nested records merge their errors into
the parent collection under a path prefix.

Report Format:
[
    {
        "location": "/card/cvv",
        "code": "range",
        "message": "Value must be between 100.0 and 9999.0, got 1",
        "params": {"actual": 1, "min": 100.0, "max": 9999.0}
    }
]
"""
from __future__ import annotations

from dataclasses import dataclass, field as dc_field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Mapping, overload

from .params import ParamValue

if TYPE_CHECKING:
    from .report import ErrorReport

Segment = str | int


class FieldguardError(Exception):
    """Base class for engine faults. Validation failures are never raised as these."""


class SchemaNotFoundError(FieldguardError, LookupError):
    """No schema is registered for a record's type."""


class RecursionDepthError(FieldguardError, RecursionError):
    """Nested traversal exceeded the configured depth."""


# ============================================================================
# Location
# ============================================================================

def _check_segment(segment: Any) -> Segment:
    if isinstance(segment, bool) or not isinstance(segment, (str, int)):
        raise ValueError(f"Location segment must be a field name or index, got {segment!r}")
    if isinstance(segment, int) and segment < 0:
        raise ValueError(f"Location index must be non-negative, got {segment}")
    return segment


def _escape(segment: Segment) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


@dataclass(frozen=True, slots=True)
class Location:
    """JSON-Pointer-like path of a field in a record tree.

    ``Location(("preferences", 0, "name"))`` renders as ``/preferences/0/name``.
    The empty location renders as ``""`` and denotes the record root.
    """
    segments: tuple[Segment, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "segments", tuple(_check_segment(s) for s in self.segments))

    @classmethod
    def of(cls, *segments: Segment) -> Location:
        return cls(segments)

    @classmethod
    def parse(cls, pointer: str) -> Location:
        """Inverse of ``str(location)``; all-digit tokens become indices."""
        if not pointer:
            return cls()
        if not pointer.startswith("/"):
            raise ValueError(f"Location must start with '/', got {pointer!r}")
        tokens = [_unescape(t) for t in pointer[1:].split("/")]
        return cls(tuple(int(t) if t.isascii() and t.isdigit() else t for t in tokens))

    @property
    def is_root(self) -> bool:
        return not self.segments

    def child(self, segment: Segment) -> Location:
        return Location((*self.segments, segment))

    def prefixed(self, *segments: Segment) -> Location:
        return Location((*segments, *self.segments)) if segments else self

    def __str__(self) -> str:
        return "".join(f"/{_escape(s)}" for s in self.segments)

    def __len__(self) -> int:
        return len(self.segments)


ROOT = Location()


# ============================================================================
# Stock messages
# ============================================================================

def _bounds(p: Mapping[str, ParamValue]) -> str:
    lo, hi = p.get("min", "?"), p.get("max", "?")
    if "min" in p and "max" in p:
        return f"between {lo} and {hi}"
    return f"at least {lo}" if "min" in p else f"at most {hi}"


def _length_message(p: Mapping[str, ParamValue]) -> str:
    if "expected_type" in p:
        return f"Expected {p['expected_type']}, got {p.get('actual_type', '?')}"
    if "equal" in p:
        return f"Length must be exactly {p['equal']}, got {p.get('actual', '?')}"
    return f"Length must be {_bounds(p)}, got {p.get('actual', '?')}"


def _range_message(p: Mapping[str, ParamValue]) -> str:
    if "expected_type" in p:
        return f"Expected {p['expected_type']}, got {p.get('actual_type', '?')}"
    return f"Value must be {_bounds(p)}, got {p.get('actual', '?')}"


_MESSAGE_TEMPLATES: dict[str, Callable[[Mapping[str, ParamValue]], str]] = {
    "length": _length_message,
    "range": _range_message,
    "email": lambda p: f"Invalid email address: {p.get('actual', '?')}",
    "url": lambda p: f"Invalid URL: {p.get('actual', '?')}",
    "phone": lambda p: f"Invalid phone number: {p.get('actual', '?')}",
    "credit_card": lambda p: "Invalid credit card number",
    "contains": lambda p: f"Value must contain '{p.get('needle', '?')}'",
    "does_not_contain": lambda p: f"Value must not contain '{p.get('needle', '?')}'",
    "regex": lambda p: f"Value does not match pattern: {p.get('pattern', '?')}",
    "must_match": lambda p: f"Value must match field '{p.get('other', '?')}'",
    "non_control_character": lambda p: "Value must not contain control characters",
    "in": lambda p: f"Value '{p.get('actual', '?')}' is not an allowed value",
    "not_in": lambda p: f"Value '{p.get('actual', '?')}' is not allowed",
    "required": lambda p: "This field is required",
    "nested": lambda p: f"Expected {p.get('expected_type', '?')}, got {p.get('actual_type', '?')}",
    "ip": lambda p: f"Invalid IP address: {p.get('actual', '?')}",
    "ip_v4": lambda p: f"Invalid IPv4 address: {p.get('actual', '?')}",
    "ip_v6": lambda p: f"Invalid IPv6 address: {p.get('actual', '?')}",
    "time": lambda p: f"Time {p.get('actual', '?')} must be {str(p.get('op', '?')).replace('_', ' ')} {p.get('target', '?')}",
}


def default_message(code: str, params: Mapping[str, ParamValue]) -> str | None:
    """Stock message for a built-in code, or None when the code has no template."""
    template = _MESSAGE_TEMPLATES.get(code)
    return template(params) if template else None


# ============================================================================
# Validation Error
# ============================================================================

class ErrorKind(str, Enum):
    FIELD = "field"
    SCHEMA = "schema"


def _freeze_params(params: Mapping[str, Any] | None) -> Mapping[str, ParamValue]:
    return MappingProxyType({k: ParamValue.of(v) for k, v in (params or {}).items()})


@dataclass(frozen=True, slots=True)
class ValidationError:
    """One validation failure.

    Validators return *stubs*: a FIELD error with code and params but no
    location. The engine locates them and fills in the message. Changes after
    construction go through the ``with_*`` builders, which return new errors.
    """
    kind: ErrorKind
    code: str
    message: str | None = None
    params: Mapping[str, ParamValue] = dc_field(default_factory=dict)
    location: Location = ROOT

    def __post_init__(self):
        if not self.code:
            raise ValueError("Validation error code must be non-empty")
        object.__setattr__(self, "params", _freeze_params(self.params))
        if isinstance(self.location, str):
            object.__setattr__(self, "location", Location.parse(self.location))
        elif not isinstance(self.location, Location):
            object.__setattr__(self, "location", Location(tuple(self.location)))

    @classmethod
    def field(cls, code: str, *, message: str | None = None, params: Mapping[str, Any] | None = None,
              field: str | None = None) -> ValidationError:
        """Field error; ``field`` pre-locates it (for schema rules naming a field)."""
        return cls(ErrorKind.FIELD, code, message, params or {}, Location.of(field) if field else ROOT)

    @classmethod
    def schema(cls, code: str, *, message: str | None = None, params: Mapping[str, Any] | None = None) -> ValidationError:
        return cls(ErrorKind.SCHEMA, code, message, params or {})

    @property
    def is_field(self) -> bool: return self.kind is ErrorKind.FIELD

    @property
    def is_schema(self) -> bool: return self.kind is ErrorKind.SCHEMA

    def with_message(self, message: str | None) -> ValidationError:
        return replace(self, message=message)

    def with_code(self, code: str) -> ValidationError:
        return replace(self, code=code)

    def with_param(self, name: str, value: Any) -> ValidationError:
        return replace(self, params={**self.params, name: value})

    def at(self, location: Location) -> ValidationError:
        return replace(self, location=location)

    def prefixed(self, *segments: Segment) -> ValidationError:
        return replace(self, location=self.location.prefixed(*segments))

    def to_dict(self) -> dict[str, Any]:
        """Serialize with plain Python param values."""
        return {"location": str(self.location), "code": self.code, "message": self.message,
            "params": {k: v.to_python() for k, v in self.params.items()}}

    def __str__(self) -> str:
        where = str(self.location) or "<root>"
        return f"{where}: [{self.code}] {self.message or ''}".rstrip()


# ============================================================================
# Collection
# ============================================================================

class ValidationErrors:
    """Ordered errors of one validation run. Empty means the record is valid."""

    __slots__ = ("_errors",)

    def __init__(self, errors: Iterable[ValidationError] = ()):
        self._errors: list[ValidationError] = []
        self.extend(errors)

    def add(self, error: ValidationError) -> None:
        if error.is_field and error.location.is_root:
            raise ValueError(f"Field error '{error.code}' has no location")
        self._errors.append(error)

    def extend(self, errors: Iterable[ValidationError]) -> None:
        for error in errors:
            self.add(error)

    def merge(self, child: ValidationErrors, *prefix: Segment) -> None:
        """Append a nested record's errors with ``prefix`` prepended to each location."""
        for error in child:
            self.add(error.prefixed(*prefix))

    def is_empty(self) -> bool:
        return not self._errors

    def field_errors(self) -> list[ValidationError]:
        return [e for e in self._errors if e.is_field]

    def schema_errors(self) -> list[ValidationError]:
        return [e for e in self._errors if e.is_schema]

    def errors_at(self, location: Location | str) -> list[ValidationError]:
        if isinstance(location, str):
            location = Location.parse(location)
        return [e for e in self._errors if e.location == location]

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return tuple(self._errors)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._errors]

    def to_report(self) -> ErrorReport:
        from .report import ErrorReport

        return ErrorReport.from_errors(self)

    def raise_if_errors(self, message: str = "Validation failed") -> None:
        if self._errors:
            raise ValidationFailed(self, message=message)

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[ValidationError]:
        return iter(self._errors)

    @overload
    def __getitem__(self, index: int) -> ValidationError: ...
    @overload
    def __getitem__(self, index: slice) -> list[ValidationError]: ...
    def __getitem__(self, index):
        return self._errors[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationErrors):
            return NotImplemented
        return self._errors == other._errors

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ValidationErrors({self._errors!r})"

    def __str__(self) -> str:
        return "\n".join(str(e) for e in self._errors)


class ValidationFailed(Exception):
    """Raised by callers that prefer exceptions over ``Err`` results."""

    def __init__(self, errors: ValidationErrors, *, message: str = "Validation failed"):
        super().__init__(message)
        self.message, self.errors = message, errors

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return f"{self.message}: {self.errors[0]}"
        return f"{self.message} ({len(self.errors)} errors)"
