"""
Structural checks implied by a field's definition (nullability, text shape).
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from datetime import date, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from .errors import ErrorOrigin, ValidationErrorItem
from .model import BelongsTo, FieldDefinition, RawExpression, Record, is_string_type

NOT_NULL_KEY = "is_null"
NOT_A_STRING_KEY = "not_a_string"

_SCALARS = (str, int, float, complex, Decimal, UUID, date, time, timedelta, Enum)
_BUFFERS = (bytes, bytearray, memoryview)


def is_object_value(value: Any) -> bool:
    """True for arrays and objects a text column cannot hold."""
    if isinstance(value, (RawExpression, *_BUFFERS)):
        return False
    if isinstance(value, (list, tuple, Set, Mapping)):
        return True
    return value is not None and not isinstance(value, _SCALARS)


def _loaded_by_association(record: Record, definition: FieldDefinition) -> bool:
    for association in record.model.associations:
        if isinstance(association, BelongsTo) and association.foreign_key == definition.field_name:
            return bool(record.get(association.accessor))
    return False


def check_schema(
    record: Record, field: str, value: Any, definition: FieldDefinition
) -> list[ValidationErrorItem]:
    """Return the structural violations for one field value."""
    errors: list[ValidationErrorItem] = []

    if not definition.allow_null and value is None:
        if not _loaded_by_association(record, definition):
            not_null = definition.validate.get("notNull")
            message = None
            if isinstance(not_null, Mapping):
                message = not_null.get("msg")
            errors.append(
                ValidationErrorItem(
                    message=message or f"{record.model.name}.{field} cannot be null",
                    origin=ErrorOrigin.CORE,
                    field=field,
                    value=value,
                    instance=record,
                    validator_key=NOT_NULL_KEY,
                )
            )

    if is_string_type(definition.type) and is_object_value(value):
        errors.append(
            ValidationErrorItem(
                message=f"{field} cannot be an array or an object",
                origin=ErrorOrigin.CORE,
                field=field,
                value=value,
                instance=record,
                validator_key=NOT_A_STRING_KEY,
            )
        )

    return errors
