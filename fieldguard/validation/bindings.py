"""Field Bindings and Schema Registration

The engine never inspects annotations. Each record type is described by a
``Schema``: an ordered tuple of ``FieldBinding`` (field name, location
segment, modifiers, rules, nested/collection flags) plus record-level rules.
Schemas are built programmatically and registered per type.

Usage:
    @validatable(
        FieldBinding("mail", rules=(Email(),)),
        FieldBinding("first_name", path="firstName", rules=(Length(min=1),)),
        FieldBinding("card", nested=True),
        FieldBinding("preferences", collection=True),
        schema_rules=(check_signup,),
    )
    @dataclass
    class SignupData: ...

    # or, without decorating the class
    register(SignupData, SchemaBuilder()
        .field("mail", Email())
        .field("first_name", Length(min=1), path="firstName")
        .nested("card")
        .collection("preferences")
        .schema_rule(check_signup)
        .build())
"""
from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Iterable, TypeVar

from .errors import SchemaNotFoundError
from .modifiers import Modifier
from .rules import Rule
from .validators import MISSING

T = TypeVar("T")

SchemaRule = Callable[[Any], Any]


# ============================================================================
# Record access
# ============================================================================

def read_field(record: Any, name: str) -> Any:
    """Value of ``name`` on a mapping or attribute record, MISSING if absent."""
    if isinstance(record, Mapping):
        return record.get(name, MISSING)
    return getattr(record, name, MISSING)


def write_field(record: Any, name: str, value: Any) -> None:
    if isinstance(record, MutableMapping):
        record[name] = value
    else:
        setattr(record, name, value)


class RecordView:
    """Read-only accessor over a record, handed to rules for cross-field checks.

    Fields read as ``view["name"]``, ``view.name`` or ``view.get("name")``
    whether the record is a mapping or an attribute object. There is no
    write path.
    """

    __slots__ = ("_record",)

    def __init__(self, record: Any):
        object.__setattr__(self, "_record", record)

    def get(self, name: str) -> Any:
        return read_field(self._record, name)

    def __contains__(self, name: str) -> bool:
        return read_field(self._record, name) is not MISSING

    def __getitem__(self, name: str) -> Any:
        value = read_field(self._record, name)
        if value is MISSING:
            raise KeyError(name)
        return value

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        value = read_field(self._record, name)
        if value is MISSING:
            raise AttributeError(name)
        return value

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"RecordView is read-only; cannot set '{name}'")


# ============================================================================
# Bindings
# ============================================================================

@dataclass(frozen=True, slots=True)
class FieldBinding:
    """How one field is normalized and validated.

    ``path`` is the location segment reported in errors (for renamed
    fields); it defaults to ``name``. ``nested`` marks a validatable record,
    ``collection`` a sequence of validatable records, or a mapping whose
    values are (keys become the location segment). ``schema`` pins the
    nested schema instead of looking it up by the value's type.
    """
    name: str
    rules: tuple[Rule, ...] = ()
    modifiers: tuple[Modifier, ...] = ()
    path: str | None = None
    nested: bool = False
    collection: bool = False
    schema: Schema | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("field binding needs a name")
        if self.nested and self.collection:
            raise ValueError(f"field '{self.name}' cannot be both nested and a collection")
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "modifiers", tuple(self.modifiers))

    @property
    def segment(self) -> str:
        return self.path or self.name

    @property
    def recurses(self) -> bool:
        return self.nested or self.collection


@dataclass(frozen=True, slots=True)
class Schema:
    """Ordered field bindings plus record-level rules for one record type.

    Schema rules take a read-only ``RecordView`` of the (already modified)
    record and return ``Ok``/``None``, ``Err`` holding a ``ValidationErrors``
    or a single ``ValidationError``, or a bare ``ValidationError``.
    """
    fields: tuple[FieldBinding, ...] = ()
    rules: tuple[SchemaRule, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "rules", tuple(self.rules))


class SchemaBuilder:
    """Fluent registration step producing a ``Schema``."""

    def __init__(self):
        self._fields: list[FieldBinding] = []
        self._rules: list[SchemaRule] = []

    def field(self, name: str, *rules: Rule, modifiers: Iterable[Modifier] = (), path: str | None = None) -> SchemaBuilder:
        self._fields.append(FieldBinding(name, tuple(rules), tuple(modifiers), path))
        return self

    def nested(self, name: str, *rules: Rule, modifiers: Iterable[Modifier] = (), path: str | None = None,
               schema: Schema | None = None) -> SchemaBuilder:
        self._fields.append(FieldBinding(name, tuple(rules), tuple(modifiers), path, nested=True, schema=schema))
        return self

    def collection(self, name: str, *rules: Rule, modifiers: Iterable[Modifier] = (), path: str | None = None,
                   schema: Schema | None = None) -> SchemaBuilder:
        self._fields.append(FieldBinding(name, tuple(rules), tuple(modifiers), path, collection=True, schema=schema))
        return self

    def schema_rule(self, fn: SchemaRule) -> SchemaBuilder:
        self._rules.append(fn)
        return self

    def build(self) -> Schema:
        return Schema(tuple(self._fields), tuple(self._rules))


# ============================================================================
# Registry
# ============================================================================

class SchemaRegistry:
    """Maps record types to schemas. Lookup walks the MRO, so subclasses inherit."""

    def __init__(self):
        self._schemas: dict[type, Schema] = {}
        self._lock = RLock()

    def register(self, record_type: type, schema: Schema) -> None:
        with self._lock:
            self._schemas[record_type] = schema

    def get(self, record_type: type) -> Schema | None:
        for klass in record_type.__mro__:
            if (schema := self._schemas.get(klass)) is not None:
                return schema
        return None

    def resolve(self, record: Any) -> Schema:
        if (schema := self.get(type(record))) is None:
            raise SchemaNotFoundError(f"No schema registered for {type(record).__name__}")
        return schema

    def __contains__(self, record_type: type) -> bool:
        return self.get(record_type) is not None


DEFAULT_REGISTRY = SchemaRegistry()


def register(record_type: type, schema: Schema, *, registry: SchemaRegistry | None = None) -> None:
    (registry or DEFAULT_REGISTRY).register(record_type, schema)


def validatable(*fields: FieldBinding, schema_rules: Iterable[SchemaRule] = (),
                registry: SchemaRegistry | None = None) -> Callable[[type[T]], type[T]]:
    """Class decorator registering a schema for the decorated type."""
    def decorator(cls: type[T]) -> type[T]:
        register(cls, Schema(fields, tuple(schema_rules)), registry=registry)
        return cls
    return decorator
