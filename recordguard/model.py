"""
Minimal record model consumed by the validator.

Field definitions, associations and the record value store. Only the parts
the validator reads are modelled here; persistence is someone else's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .hooks import Hooks


class DataType:
    """Declared column type. Usable as a class or as an instance."""

    key = "ABSTRACT"

    def __repr__(self) -> str:
        return self.key


class STRING(DataType):
    key = "STRING"

    def __init__(self, length: int = 255):
        self.length = length

    def __repr__(self) -> str:
        return f"STRING({self.length})"


class TEXT(DataType):
    key = "TEXT"


class INTEGER(DataType):
    key = "INTEGER"


class FLOAT(DataType):
    key = "FLOAT"


class BOOLEAN(DataType):
    key = "BOOLEAN"


class DATE(DataType):
    key = "DATE"


class JSON(DataType):
    key = "JSON"


class BLOB(DataType):
    key = "BLOB"


def is_string_type(data_type: DataType | type[DataType] | None) -> bool:
    """True for bounded and unbounded text types, as class or instance."""
    if isinstance(data_type, type):
        return issubclass(data_type, (STRING, TEXT))
    return isinstance(data_type, (STRING, TEXT))


class RawExpression:
    """
    Opaque value passed through to the storage layer untouched.

    Never validated as a field value.
    """

    def __init__(self, text: str, *args: Any):
        self.text = text
        self.args = args

    def __repr__(self) -> str:
        if self.args:
            return f"{type(self).__name__}({self.text!r}, {self.args!r})"
        return f"{type(self).__name__}({self.text!r})"


def literal(text: str) -> RawExpression:
    return RawExpression(text)


def fn(name: str, *args: Any) -> RawExpression:
    return RawExpression(name, *args)


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """Per-field metadata: type, nullability and validator registrations."""

    type: DataType | type[DataType] | None = None
    allow_null: bool = True
    auto_generated: bool = False
    auto_increment: bool = False
    field_name: str | None = None
    validate: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BelongsTo:
    """To-one association whose foreign key lives on this model."""

    foreign_key: str
    accessor: str


class Model:
    """
    Schema for a family of records.

    Usage:
        User = Model(
            "User",
            {
                "name": FieldDefinition(STRING, allow_null=False),
                "email": FieldDefinition(STRING, validate={"isEmail": True}),
            },
            validate={"name_or_email": Sync(lambda r: ...)},
        )
    """

    def __init__(
        self,
        name: str,
        fields: Mapping[str, FieldDefinition | DataType | type[DataType]],
        *,
        validate: Mapping[str, Any] | None = None,
        associations: Iterable[BelongsTo] = (),
        hooks: Hooks | None = None,
    ):
        self.name = name
        self.fields: dict[str, FieldDefinition] = {}
        for attr, definition in fields.items():
            if not isinstance(definition, FieldDefinition):
                definition = FieldDefinition(type=definition)
            if definition.field_name is None:
                definition = FieldDefinition(
                    type=definition.type,
                    allow_null=definition.allow_null,
                    auto_generated=definition.auto_generated,
                    auto_increment=definition.auto_increment,
                    field_name=attr,
                    validate=definition.validate,
                )
            self.fields[attr] = definition
        self.validate = dict(validate or {})
        self.associations = list(associations)
        self.hooks = hooks if hooks is not None else Hooks()

    def build(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> Record:
        return Record(self, values, **kwargs)

    def __repr__(self) -> str:
        return f"Model({self.name!r})"


class Record:
    """
    One instance of a Model: current values, previous values and loaded
    related objects.
    """

    def __init__(
        self,
        model: Model,
        values: Mapping[str, Any] | None = None,
        *,
        is_new_record: bool = True,
    ):
        self.model = model
        self.values: dict[str, Any] = dict(values or {})
        self.is_new_record = is_new_record
        self._previous: dict[str, Any] = dict(self.values)
        self._related: dict[str, Any] = {}

    @property
    def validators(self) -> dict[str, Mapping[str, Any]]:
        """Per-field validator registrations, only for fields that have any."""
        return {
            attr: definition.validate
            for attr, definition in self.model.fields.items()
            if definition.validate
        }

    def get(self, key: str) -> Any:
        """Return a field value or a loaded related object."""
        if key in self._related:
            return self._related[key]
        return self.values.get(key)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def set_related(self, accessor: str, obj: Any) -> None:
        self._related[accessor] = obj

    def previous(self, key: str) -> Any:
        return self._previous.get(key)

    def mark_persisted(self) -> None:
        """Snapshot current values as the previous ones."""
        self._previous = dict(self.values)
        self.is_new_record = False

    async def validate(self, **options: Any) -> Record:
        from .validator import validate

        return await validate(self, **options)

    def validate_sync(self, **options: Any) -> Record:
        from .validator import validate_sync

        return validate_sync(self, **options)

    def __repr__(self) -> str:
        return f"<{self.model.name} {self.values!r}>"
