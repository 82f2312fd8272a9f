"""Caller-facing error report.

The engine hands back ``ValidationErrors``; these pydantic models give the
ordered ``{location, code, message, params}`` shape callers render or
serialize (``report.model_dump_json()``).
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr

if TYPE_CHECKING:
    from .errors import ValidationError, ValidationErrors

ParamScalar = StrictBool | StrictInt | StrictFloat | StrictStr


class ErrorReportEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str
    code: str = Field(min_length=1)
    message: str | None = None
    params: dict[str, ParamScalar] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: ValidationError) -> ErrorReportEntry:
        return cls(**error.to_dict())


class ErrorReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    errors: list[ErrorReportEntry] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def locations(self) -> list[str]:
        return [e.location for e in self.errors]

    @classmethod
    def from_errors(cls, errors: ValidationErrors) -> ErrorReport:
        return cls(errors=[ErrorReportEntry.from_error(e) for e in errors])
