"""Modifier Functions

Value transforms applied to a field before its validators run. String
modifiers leave other types untouched and map over lists/tuples of strings,
so ``Trim()`` on ``tags: list[str]`` trims every tag.

Usage:
    FieldBinding("email", modifiers=(Trim(), Lowercase()), rules=(Email(),))
    FieldBinding("slug", modifiers=(CustomModifier(slugify),))
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar


def _map_strings(fn: Callable[[str], str], value: Any) -> Any:
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, list) and any(isinstance(v, str) for v in value):
        return [fn(v) if isinstance(v, str) else v for v in value]
    if isinstance(value, tuple) and any(isinstance(v, str) for v in value):
        return tuple(fn(v) if isinstance(v, str) else v for v in value)
    return value


def _capitalize(v: str) -> str:
    # str.capitalize() would also lowercase the tail
    return v[:1].upper() + v[1:]


class Modifier(ABC):
    """Base class for modifiers. ``apply`` returns the value to store back."""

    name: ClassVar[str] = "modifier"

    @abstractmethod
    def apply(self, value: Any) -> Any: ...

    def __call__(self, value: Any) -> Any: return self.apply(value)


@dataclass(frozen=True, slots=True)
class Trim(Modifier):
    name: ClassVar[str] = "trim"

    def apply(self, value: Any) -> Any: return _map_strings(str.strip, value)


@dataclass(frozen=True, slots=True)
class Lowercase(Modifier):
    name: ClassVar[str] = "lowercase"

    def apply(self, value: Any) -> Any: return _map_strings(str.lower, value)


@dataclass(frozen=True, slots=True)
class Uppercase(Modifier):
    name: ClassVar[str] = "uppercase"

    def apply(self, value: Any) -> Any: return _map_strings(str.upper, value)


@dataclass(frozen=True, slots=True)
class Capitalize(Modifier):
    """First character upper case, the rest unchanged."""
    name: ClassVar[str] = "capitalize"

    def apply(self, value: Any) -> Any: return _map_strings(_capitalize, value)


@dataclass(frozen=True, slots=True)
class CustomModifier(Modifier):
    """Caller-supplied transform.

    ``fn`` either returns the new value or mutates the value in place and
    returns ``None``; in the latter case the (mutated) value is kept.
    """
    fn: Callable[[Any], Any]

    name: ClassVar[str] = "custom"

    def apply(self, value: Any) -> Any:
        result = self.fn(value)
        return value if result is None else result


def modifier(fn: Callable[[Any], Any]) -> CustomModifier:
    """Decorator turning a function into a modifier.

    Usage:
        @modifier
        def collapse_spaces(v: str) -> str:
            return " ".join(v.split())
    """
    return CustomModifier(fn)
