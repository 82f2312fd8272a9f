"""Monadic Result Types

Validation outcomes are values, not exceptions. ``validate`` returns
``Ok(None)`` when a record passes and ``Err(ValidationErrors)`` otherwise,
so callers branch with ``is_ok()`` or structural pattern matching:

    match engine.validate(signup):
        case Ok():
            ...
        case Err(errors):
            render(errors.to_report())
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, NoReturn, TypeVar, Union, final

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T = None  # type: ignore[assignment]

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def unwrap_or(self, default: T) -> T:
        return self.value

    def expect(self, msg: str) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U, Any]:
        """Transform the success value."""
        return Ok(f(self.value))

    def map_err(self, f: Callable[[Any], F]) -> Result[T, F]:
        return self  # type: ignore

    def and_then(self, f: Callable[[T], Result[U, Any]]) -> Result[U, Any]:
        """Chain operations that may fail."""
        return f(self.value)

    def match(self, ok: Callable[[T], U], err: Callable[[Any], U]) -> U:
        return ok(self.value)


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_err(self) -> E:
        return self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def expect(self, msg: str) -> NoReturn:
        """Raise with context. Validation collections raise ``ValidationFailed``."""
        from .validation.errors import ValidationErrors, ValidationFailed

        if isinstance(self.error, ValidationErrors):
            raise ValidationFailed(self.error, message=msg)
        raise ValueError(f"{msg}: {self.error}")

    def map(self, f: Callable[[Any], U]) -> Result[U, E]:
        return self  # type: ignore

    def map_err(self, f: Callable[[E], F]) -> Result[Any, F]:
        """Transform the error."""
        return Err(f(self.error))

    def and_then(self, f: Callable[[Any], Result[U, E]]) -> Result[U, E]:
        return self  # type: ignore

    def match(self, ok: Callable[[Any], U], err: Callable[[E], U]) -> U:
        return err(self.error)


Result = Union[Ok[T], Err[E]]


def ok(value: T = None) -> Ok[T]:  # type: ignore[assignment]
    return Ok(value)


def err(error: E) -> Err[E]:
    return Err(error)


def ensure(condition: bool, error: E) -> Result[None, E]:
    """Guard that returns Err if condition is False."""
    return Ok(None) if condition else Err(error)
