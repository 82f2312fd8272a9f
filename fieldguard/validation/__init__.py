"""Record Validation and Normalization

Schemas bind record fields to modifiers and rules; the engine runs them
depth-first, collects every failure with its location, and returns
``Ok(None)`` or ``Err(ValidationErrors)``.

Key Features:
- Stable error codes, typed params and JSON-Pointer locations (``/card/cvv``)
- Nested records and collections of records, merged under path prefixes
- Modifiers (trim, case folding, custom) applied before validation
- Record-level rules for cross-field checks
- Registration without reflection: ``SchemaBuilder`` / ``@validatable``

Usage:
    from fieldguard.validation import (
        FieldBinding, SchemaBuilder, validatable, validate, validify,
        Email, Length, Range, Trim, Lowercase, ValidationError,
    )

    @validatable(
        FieldBinding("email", rules=(Email(),), modifiers=(Trim(), Lowercase())),
        FieldBinding("age", rules=(Range(min=18),)),
    )
    @dataclass
    class Signup:
        email: str
        age: int

    result = validify(Signup(email=" Bob@Example.com ", age=17))
    if result.is_err():
        return result.unwrap_err().to_report()
"""

from .params import ParamKind, ParamValue

from .errors import (
    ROOT,
    ErrorKind,
    FieldguardError,
    Location,
    RecursionDepthError,
    SchemaNotFoundError,
    ValidationError,
    ValidationErrors,
    ValidationFailed,
    default_message,
)

from .validators import (
    MISSING,
    TimeOp,
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
    validate_regex,
    validate_required,
    validate_time,
    validate_url,
)

from .rules import (
    Rule,
    Length,
    Range,
    Email,
    Url,
    Phone,
    CreditCard,
    NonControlCharacter,
    Ip,
    Contains,
    DoesNotContain,
    Regex,
    MustMatch,
    In,
    NotIn,
    Required,
    Time,
    Custom,
    rules,
)

from .modifiers import (
    Modifier,
    Trim,
    Lowercase,
    Uppercase,
    Capitalize,
    CustomModifier,
    modifier,
)

from .bindings import (
    DEFAULT_REGISTRY,
    FieldBinding,
    RecordView,
    Schema,
    SchemaBuilder,
    SchemaRegistry,
    register,
    validatable,
)

from .engine import Engine, default_engine, modify, validate, validify

from .report import ErrorReport, ErrorReportEntry

__all__ = [
    # Params
    "ParamKind",
    "ParamValue",
    # Errors
    "ROOT",
    "ErrorKind",
    "FieldguardError",
    "Location",
    "RecursionDepthError",
    "SchemaNotFoundError",
    "ValidationError",
    "ValidationErrors",
    "ValidationFailed",
    "default_message",
    # Validator functions
    "MISSING",
    "TimeOp",
    "validate_contains",
    "validate_credit_card",
    "validate_email",
    "validate_in",
    "validate_ip",
    "validate_ip_v4",
    "validate_ip_v6",
    "validate_length",
    "validate_must_match",
    "validate_non_control_character",
    "validate_phone",
    "validate_range",
    "validate_regex",
    "validate_required",
    "validate_time",
    "validate_url",
    # Rules
    "Rule",
    "Length",
    "Range",
    "Email",
    "Url",
    "Phone",
    "CreditCard",
    "NonControlCharacter",
    "Ip",
    "Contains",
    "DoesNotContain",
    "Regex",
    "MustMatch",
    "In",
    "NotIn",
    "Required",
    "Time",
    "Custom",
    "rules",
    # Modifiers
    "Modifier",
    "Trim",
    "Lowercase",
    "Uppercase",
    "Capitalize",
    "CustomModifier",
    "modifier",
    # Bindings
    "DEFAULT_REGISTRY",
    "FieldBinding",
    "RecordView",
    "Schema",
    "SchemaBuilder",
    "SchemaRegistry",
    "register",
    "validatable",
    # Engine
    "Engine",
    "default_engine",
    "modify",
    "validate",
    "validify",
    # Report
    "ErrorReport",
    "ErrorReportEntry",
]
