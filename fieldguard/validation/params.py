"""Typed diagnostic parameters attached to validation errors.

Python's numeric tower treats ``1 == 1.0 == True``. Error params must not:
a range bound declared as a float never equals an integer count, so every
param carries its kind and equality compares kind first.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamKind(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


Scalar = str | int | float | bool


@dataclass(frozen=True, slots=True, eq=False)
class ParamValue:
    """Tagged scalar: string, integer, float or boolean."""
    kind: ParamKind
    value: Scalar

    @classmethod
    def of(cls, value: Any) -> ParamValue:
        """Infer the kind of a raw value. Non-scalars are rendered as strings."""
        if isinstance(value, ParamValue):
            return value
        if isinstance(value, bool):
            return cls(ParamKind.BOOL, value)
        if isinstance(value, int):
            return cls(ParamKind.INT, value)
        if isinstance(value, float):
            return cls(ParamKind.FLOAT, value)
        if isinstance(value, str):
            return cls(ParamKind.STRING, value)
        return cls(ParamKind.STRING, str(value))

    @classmethod
    def string(cls, value: str) -> ParamValue: return cls(ParamKind.STRING, str(value))

    @classmethod
    def integer(cls, value: int) -> ParamValue: return cls(ParamKind.INT, int(value))

    @classmethod
    def floating(cls, value: float) -> ParamValue: return cls(ParamKind.FLOAT, float(value))

    @classmethod
    def boolean(cls, value: bool) -> ParamValue: return cls(ParamKind.BOOL, bool(value))

    def to_python(self) -> Scalar:
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParamValue):
            if not isinstance(other, (str, int, float, bool)):
                return NotImplemented
            other = ParamValue.of(other)
        return self.kind is other.kind and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        if self.kind is ParamKind.BOOL:
            return "true" if self.value else "false"
        return str(self.value)

    def __repr__(self) -> str:
        return f"{self.kind.value}({self.value!r})"
