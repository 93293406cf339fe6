"""
Error types for recordguard.

A validation run never raises on the first violation. Every failing check is
recorded as a ValidationErrorItem and the run ends with one ValidationError
carrying the whole report. Only configuration mistakes and hook failures are
raised directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Sequence

RAW_KEY_NAME = "original"


class ErrorOrigin(str, Enum):
    """Where a violation was detected."""

    CORE = "CORE"
    FUNCTION = "FUNCTION"


class RecordGuardError(Exception):
    """Base class for all recordguard exceptions."""


class ConfigurationError(RecordGuardError):
    """Raised for programmer errors; never collected into a report."""


class UnknownPredicateError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"Invalid validator function: {name}")
        self.name = name


class ValidationInProgressError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("Validations already in progress.")


@dataclass(frozen=True, slots=True)
class ValidationErrorItem:
    """
    One recorded violation.

    `field` is the attribute name for field checks and the validator name for
    record-level validators. `validator_name` and `validator_args` are only
    set for builtin predicate failures. The raw error that caused the item is
    kept in `extras` under RAW_KEY_NAME and does not take part in equality.
    """

    message: str
    origin: ErrorOrigin
    field: str
    value: Any = None
    instance: Any = field(default=None, repr=False, compare=False)
    validator_key: str | None = None
    validator_name: str | None = None
    validator_args: tuple[Any, ...] | None = None
    extras: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )

    @classmethod
    def with_original(
        cls, original: Any, /, **kwargs: Any
    ) -> ValidationErrorItem:
        """Build an item carrying the raw error in its diagnostic slot."""
        return cls(**kwargs, extras=MappingProxyType({RAW_KEY_NAME: original}))

    @property
    def original(self) -> Any:
        return self.extras.get(RAW_KEY_NAME)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "message": self.message,
            "origin": self.origin.value,
            "field": self.field,
            "value": self.value,
            "validator_key": self.validator_key,
        }
        if self.validator_name is not None:
            result["validator_name"] = self.validator_name
            result["validator_args"] = list(self.validator_args or ())
        return result


class ValidationError(RecordGuardError):
    """Aggregate failure of one validation run."""

    def __init__(
        self,
        message: str | None = None,
        errors: Sequence[ValidationErrorItem] = (),
    ):
        self.errors: list[ValidationErrorItem] = list(errors)
        if not message:
            if self.errors:
                message = ",\n".join(
                    f"Validation error: {item.message}" for item in self.errors
                )
            else:
                message = "Validation error"
        super().__init__(message)
        self.message = message

    def get(self, field: str) -> list[ValidationErrorItem]:
        """Return the items recorded against `field`, in report order."""
        return [item for item in self.errors if item.field == field]

    def to_list(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self.errors]
