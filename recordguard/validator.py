"""
Record validation orchestrator.

Runs every structural check, builtin predicate and custom validator for a
record concurrently, lets all of them settle, and raises one ValidationError
holding every violation found.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping

from .builtin import invoke_builtin_validator
from .context import current_registry, hooks_enabled
from .custom import (
    check_call_shape,
    invoke_custom_validator,
    is_custom_validator,
    to_custom_validator,
)
from .errors import ValidationError, ValidationErrorItem, ValidationInProgressError
from .hooks import HookType
from .model import Record
from .options import ValidationOptions
from .predicates import PredicateRegistry
from .schema import check_schema
from .types import Err, Ok, TestSpec, failures

logger = logging.getLogger(__name__)


def _raise_unexpected(outcomes: Iterable[Any]) -> None:
    """Re-raise anything that settled as an exception rather than a result."""
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome


class RecordValidator:
    """
    Validates one record, once.

    Usage:
        validator = RecordValidator(record, {"skip": ["nickname"]})
        await validator.run()   # returns the record or raises ValidationError

    Unknown predicate names and malformed record-level validators are
    rejected here, before anything runs.
    """

    def __init__(
        self,
        record: Record,
        options: ValidationOptions | Mapping[str, Any] | None = None,
        *,
        registry: PredicateRegistry | None = None,
    ):
        if not isinstance(options, ValidationOptions):
            options = ValidationOptions.model_validate(dict(options or {}))
        self.options = options.resolve(record.model.fields, default_hooks=hooks_enabled())
        self.record = record
        self.registry = (registry or current_registry()).for_record(record)
        self.errors: list[ValidationErrorItem] = []
        self.in_progress = False
        self._check_configuration()

    @property
    def skip(self) -> frozenset[str]:
        return self.options.skip or frozenset()

    def _check_configuration(self) -> None:
        for field, tests in self.record.validators.items():
            if field in self.skip:
                continue
            for validator_type, test in tests.items():
                if is_custom_validator(test):
                    check_call_shape(to_custom_validator(test), validator_type)
                else:
                    self.registry.resolve(validator_type)
        for validator_type, validator in self.record.model.validate.items():
            if validator_type not in self.skip:
                check_call_shape(to_custom_validator(validator), validator_type)

    async def run(self) -> Record:
        """Validate the record, wrapped in lifecycle hooks unless disabled."""
        if self.in_progress:
            raise ValidationInProgressError()
        self.in_progress = True

        if self.options.hooks:
            return await self._validate_and_run_hooks()
        await self._validate()
        return self.record

    async def _validate(self) -> None:
        logger.debug("Validating %r", self.record)
        outcomes = await asyncio.gather(
            self._builtin_validators(),
            self._custom_validators(),
            return_exceptions=True,
        )
        _raise_unexpected(outcomes)

        if self.errors:
            logger.debug("Validation of %r failed with %d error(s)", self.record, len(self.errors))
            raise ValidationError(None, self.errors)

    async def _validate_and_run_hooks(self) -> Record:
        hooks = self.record.model.hooks
        await hooks.run(HookType.BEFORE_VALIDATE, self.record, self.options)
        try:
            await self._validate()
        except Exception as error:
            new_error = await hooks.run(
                HookType.VALIDATION_FAILED, self.record, self.options, error
            )
            if isinstance(new_error, BaseException) and new_error is not error:
                raise new_error from error
            raise
        await hooks.run(HookType.AFTER_VALIDATE, self.record, self.options)
        return self.record

    async def _builtin_validators(self) -> None:
        """Schema checks for every field, then field validators concurrently."""
        validators = self.record.validators
        pending = []
        for field, definition in self.record.model.fields.items():
            if field in self.skip:
                continue

            value = self.record.values.get(field)

            if not definition.auto_generated and not definition.auto_increment:
                self.errors.extend(check_schema(self.record, field, value, definition))

            if field in validators:
                pending.append(self._builtin_attr_validate(value, field, validators[field]))

        logger.debug("Running validators for %d field(s)", len(pending))
        _raise_unexpected(await asyncio.gather(*pending, return_exceptions=True))

    async def _custom_validators(self) -> None:
        pending = [
            self._run_custom_validator(validator, validator_type)
            for validator_type, validator in self.record.model.validate.items()
            if validator_type not in self.skip
        ]
        logger.debug("Running %d record validator(s)", len(pending))
        _raise_unexpected(await asyncio.gather(*pending, return_exceptions=True))

    async def _run_custom_validator(self, validator: Any, validator_type: str) -> None:
        result = await invoke_custom_validator(validator, validator_type, self.record)
        if isinstance(result, Err):
            self.errors.append(result.error)

    async def _builtin_attr_validate(
        self, value: Any, field: str, tests: Mapping[str, TestSpec]
    ) -> None:
        """Run every validator registered on one field and record the failures."""
        # A null value is reported by the schema check, if at all.
        if value is None:
            return

        checks = []
        for validator_type, test in tests.items():
            if is_custom_validator(test):
                checks.append(
                    invoke_custom_validator(
                        test,
                        validator_type,
                        self.record,
                        field_scoped=True,
                        value=value,
                        field=field,
                    )
                )
            else:
                checks.append(self._invoke_builtin_validator(value, test, validator_type, field))

        results = await asyncio.gather(*checks, return_exceptions=True)
        _raise_unexpected(results)
        self.errors.extend(failures(results))

    async def _invoke_builtin_validator(
        self, value: Any, test: TestSpec, validator_type: str, field: str
    ) -> Ok[None] | Err[ValidationErrorItem]:
        return invoke_builtin_validator(
            value, test, validator_type, field, self.registry, self.record
        )


async def validate(record: Record, **options: Any) -> Record:
    """
    Validate a record.

    Args:
        record: The record to validate
        **options: `skip`, `fields`, `hooks`; anything else is passed to hooks

    Returns:
        The record, if every check passed

    Raises:
        ValidationError: With one item per violation found
        ConfigurationError: For unknown predicates or a reused validator
    """
    return await RecordValidator(record, options).run()


def validate_sync(record: Record, **options: Any) -> Record:
    """Run validate() to completion on a fresh event loop."""
    return asyncio.run(validate(record, **options))
