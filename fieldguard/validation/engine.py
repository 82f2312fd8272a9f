"""Composition Engine

Runs a record's schema depth-first:

1. Per field, in declaration order: modifiers (``modify``), then each rule in
   declared order. Absent values (missing or ``None``) only meet ``Required``.
2. Nested records recurse with the field segment as prefix; collections
   recurse per element with ``[segment, index]`` (``[segment, key]`` for
   mappings). A nested value with no schema is a ``nested`` field error.
3. Record-level rules run last on a read-only ``RecordView`` of the fully
   modified record, even when field rules already failed.

Errors are collected in one ``ValidationErrors``; nothing short-circuits.
A run keeps no state outside its own call, so independent records can be
validated from many threads at once.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Iterator

from ..config import Settings, get_settings
from ..logging import engine_logger
from ..result import Err, Ok, Result
from .bindings import DEFAULT_REGISTRY, FieldBinding, RecordView, Schema, SchemaRegistry, read_field, write_field
from .errors import (
    ErrorKind,
    Location,
    RecursionDepthError,
    Segment,
    ValidationError,
    ValidationErrors,
    default_message,
)
from .rules import Rule
from .validators import is_absent

log = engine_logger()


def _locate(stub: ValidationError, rule: Rule, location: Location) -> ValidationError:
    """Attach location, binding overrides and the stock message to a rule's stub."""
    if stub.is_schema:
        stub = ValidationError(ErrorKind.FIELD, stub.code, stub.message, stub.params, stub.location)
    error = stub.at(location) if stub.location.is_root else stub.prefixed(*location.segments)
    if rule.code:
        error = error.with_code(rule.code)
    message = rule.message or error.message or default_message(stub.code, error.params)
    return error.with_message(message)


def _schema_rule_errors(outcome: Any, rule: Any) -> Iterator[ValidationError]:
    match outcome:
        case None | Ok():
            return
        case Err(ValidationErrors() as errors):
            yield from errors
        case Err(ValidationError() as error) | (ValidationError() as error):
            yield error
        case _:
            raise TypeError(f"schema rule {rule!r} returned {outcome!r}; expected Ok, Err or None")


def _elements(value: Any) -> Iterator[tuple[Segment, Any]]:
    """Non-None elements with their segment: index for sequences, key for mappings."""
    items = value.items() if isinstance(value, Mapping) else enumerate(value)
    for key, element in items:
        if element is not None:
            yield _segment(key), element


def _segment(key: Any) -> Segment:
    if isinstance(key, str) or (isinstance(key, int) and not isinstance(key, bool) and key >= 0):
        return key
    return str(key)


def _shape_error(expected: str, value: Any, location: Location) -> ValidationError:
    params = {"expected_type": expected, "actual_type": type(value).__name__}
    return ValidationError.field("nested", message=default_message("nested", params), params=params).at(location)


class Engine:
    """Validation/normalization runtime bound to a schema registry and settings."""

    def __init__(self, registry: SchemaRegistry | None = None, settings: Settings | None = None):
        self.registry = registry or DEFAULT_REGISTRY
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, record: Any, schema: Schema | None = None) -> Result[None, ValidationErrors]:
        """Run every rule and return ``Ok(None)`` or ``Err`` with all errors."""
        errors = self._collect(record, schema or self.registry.resolve(record), 0)
        log.debug("record_validated", record_type=type(record).__name__, error_count=len(errors))
        return Ok(None) if errors.is_empty() else Err(errors)

    def modify(self, record: Any, schema: Schema | None = None) -> None:
        """Apply modifiers in place, depth-first. Never fails on values."""
        self._modify(record, schema or self.registry.resolve(record), 0)
        log.debug("record_modified", record_type=type(record).__name__)

    def validify(self, record: Any, schema: Schema | None = None) -> Result[None, ValidationErrors]:
        """``modify`` then ``validate``."""
        schema = schema or self.registry.resolve(record)
        self.modify(record, schema)
        return self.validate(record, schema)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _guard(self, record: Any, depth: int) -> None:
        if depth > self.settings.max_depth:
            log.warning("recursion_depth_exceeded", record_type=type(record).__name__, max_depth=self.settings.max_depth)
            raise RecursionDepthError(f"Record nesting exceeds max_depth={self.settings.max_depth}")

    def _child_schema(self, binding: FieldBinding, value: Any) -> Schema | None:
        return binding.schema or self.registry.get(type(value))

    def _collect_child(self, binding: FieldBinding, value: Any, location: Location, depth: int) -> ValidationErrors:
        """Errors of a nested record, prefixed with ``location``; a shape error if it has no schema."""
        if (schema := self._child_schema(binding, value)) is None:
            return ValidationErrors([_shape_error("record", value, location)])
        errors = ValidationErrors()
        errors.merge(self._collect(value, schema, depth + 1), *location.segments)
        return errors

    def _collect(self, record: Any, schema: Schema, depth: int) -> ValidationErrors:
        """Errors of one record, located relative to that record."""
        self._guard(record, depth)
        errors = ValidationErrors()
        view = RecordView(record)

        for binding in schema.fields:
            value = read_field(record, binding.name)
            absent = is_absent(value)
            location = Location.of(binding.segment)

            for rule in binding.rules:
                if absent and not rule.checks_absent:
                    continue
                if (stub := rule.check(None if absent else value, view)) is not None:
                    errors.add(_locate(stub, rule, location))

            if absent or not binding.recurses:
                continue
            if binding.nested:
                errors.extend(self._collect_child(binding, value, location, depth))
            elif isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                errors.add(_shape_error("collection", value, location))
            else:
                for key, element in _elements(value):
                    errors.extend(self._collect_child(binding, element, location.child(key), depth))

        for rule in schema.rules:
            errors.extend(_schema_rule_errors(rule(view), rule))

        if errors and depth:
            log.debug("nested_record_invalid", record_type=type(record).__name__, depth=depth, error_count=len(errors))
        return errors

    def _modify(self, record: Any, schema: Schema, depth: int) -> None:
        self._guard(record, depth)
        for binding in schema.fields:
            value = read_field(record, binding.name)
            if is_absent(value):
                continue
            for mod in binding.modifiers:
                if (new := mod.apply(value)) is not value:
                    write_field(record, binding.name, new)
                    value = new
            if binding.nested:
                self._modify_child(binding, value, depth)
            elif binding.collection and isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
                for _, element in _elements(value):
                    self._modify_child(binding, element, depth)

    def _modify_child(self, binding: FieldBinding, value: Any, depth: int) -> None:
        # shape mismatches are reported by validate
        if (schema := self._child_schema(binding, value)) is not None:
            self._modify(value, schema, depth + 1)


_default_engine: Engine | None = None


def default_engine() -> Engine:
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine


def validate(record: Any, schema: Schema | None = None) -> Result[None, ValidationErrors]:
    return default_engine().validate(record, schema)


def modify(record: Any, schema: Schema | None = None) -> None:
    default_engine().modify(record, schema)


def validify(record: Any, schema: Schema | None = None) -> Result[None, ValidationErrors]:
    return default_engine().validify(record, schema)
