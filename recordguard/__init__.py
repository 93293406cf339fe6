"""
recordguard - run every constraint on a record, report every violation.

Usage:
    from recordguard import FieldDefinition, Model, STRING, INTEGER, validate

    User = Model("User", {
        "name": FieldDefinition(STRING, allow_null=False),
        "email": FieldDefinition(STRING, validate={"isEmail": True}),
        "age": INTEGER,
    })

    try:
        await validate(User.build({"email": "nope"}))
    except ValidationError as e:
        e.errors   # [ValidationErrorItem(field="name", ...), ...]
"""

from .context import current_registry, validation_context
from .custom import Callback, Sync, to_custom_validator
from .errors import (
    RAW_KEY_NAME,
    ConfigurationError,
    ErrorOrigin,
    RecordGuardError,
    UnknownPredicateError,
    ValidationError,
    ValidationErrorItem,
    ValidationInProgressError,
)
from .hooks import Hooks, HookType
from .model import (
    BLOB,
    BOOLEAN,
    DATE,
    FLOAT,
    INTEGER,
    JSON,
    STRING,
    TEXT,
    BelongsTo,
    DataType,
    FieldDefinition,
    Model,
    RawExpression,
    Record,
    fn,
    literal,
)
from .options import ValidationOptions
from .predicates import Predicate, PredicateRegistry, default_registry
from .types import Err, Ok
from .validator import RecordValidator, validate, validate_sync

__all__ = [
    # Result types
    "Ok",
    "Err",
    # Model
    "Model",
    "Record",
    "FieldDefinition",
    "BelongsTo",
    "DataType",
    "STRING",
    "TEXT",
    "INTEGER",
    "FLOAT",
    "BOOLEAN",
    "DATE",
    "JSON",
    "BLOB",
    "RawExpression",
    "literal",
    "fn",
    # Validators
    "Sync",
    "Callback",
    "to_custom_validator",
    "Predicate",
    "PredicateRegistry",
    "default_registry",
    # Orchestration
    "RecordValidator",
    "ValidationOptions",
    "validate",
    "validate_sync",
    "validation_context",
    "current_registry",
    "Hooks",
    "HookType",
    # Errors
    "RAW_KEY_NAME",
    "ErrorOrigin",
    "RecordGuardError",
    "ConfigurationError",
    "UnknownPredicateError",
    "ValidationInProgressError",
    "ValidationError",
    "ValidationErrorItem",
]
