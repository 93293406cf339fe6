"""
Builtin predicate invocation and test-spec argument normalization.
"""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ErrorOrigin, ValidationErrorItem
from .predicates import LOCALE_AWARE, Predicate, PredicateRegistry
from .types import Err, Ok, TestSpec

# Predicates that historically took an options object instead of positional args.
OPTIONS_OBJECT_PREDICATES = frozenset(
    {Predicate.IS_URL.value, Predicate.IS_URL_LEGACY.value, Predicate.IS_EMAIL.value}
)


def to_text(value: Any) -> str:
    """Textual form of a value, as predicates see it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def custom_message(test: TestSpec) -> str | None:
    if isinstance(test, Mapping):
        return test.get("msg")
    return None


def normalize_legacy_test(test: TestSpec, validator_type: str) -> TestSpec:
    """
    Reduce isURL/isEmail specs to an options object.

    A spec holding a message override keeps only the message; `True` becomes
    an empty options object.
    """
    if validator_type not in OPTIONS_OBJECT_PREDICATES:
        return test
    if isinstance(test, Mapping) and test.get("msg"):
        return {"msg": test["msg"]}
    if test is True:
        return {}
    return test


def extract_validator_args(test: TestSpec, validator_type: str, field: str) -> list[Any]:
    """
    Positional arguments for a predicate, taken from its test spec.

    Locale-aware predicates given anything but a locale string, and isIP given
    anything but a list, are called with no arguments.
    """
    if isinstance(test, Mapping) and "args" in test:
        validator_args = test["args"]
    else:
        validator_args = test

    is_localized = not isinstance(validator_args, str) and validator_type in LOCALE_AWARE

    if isinstance(validator_args, (list, tuple)):
        return list(validator_args)
    if validator_type == Predicate.IS_IMMUTABLE.value:
        return [validator_args, field]
    if is_localized or validator_type == Predicate.IS_IP.value:
        return []
    return [validator_args]


def invoke_builtin_validator(
    value: Any,
    test: TestSpec,
    validator_type: str,
    field: str,
    registry: PredicateRegistry,
    record: Any = None,
) -> Ok[None] | Err[ValidationErrorItem]:
    """
    Run one named predicate against a field value.

    An unknown predicate name raises UnknownPredicateError. A falsy result or
    an exception from the predicate is returned as an Err.
    """
    predicate = registry.resolve(validator_type)
    test = normalize_legacy_test(test, validator_type)
    validator_args = extract_validator_args(test, validator_type, field)

    try:
        passed = predicate(to_text(value), *validator_args)
    except Exception as e:
        return Err(
            ValidationErrorItem.with_original(
                e,
                message=str(e) or f"Validation {validator_type} on {field} failed",
                origin=ErrorOrigin.FUNCTION,
                field=field,
                value=value,
                instance=record,
                validator_key=validator_type,
                validator_name=validator_type,
                validator_args=tuple(validator_args),
            )
        )

    if passed:
        return Ok(None)

    message = custom_message(test) or f"Validation {validator_type} on {field} failed"
    return Err(
        ValidationErrorItem.with_original(
            message,
            message=message,
            origin=ErrorOrigin.FUNCTION,
            field=field,
            value=value,
            instance=record,
            validator_key=validator_type,
            validator_name=validator_type,
            validator_args=tuple(validator_args),
        )
    )
