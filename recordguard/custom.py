"""
Custom validator declarations and their invocation.

A custom validator states its calling convention up front:

    Sync(fn)       fn(value) / fn(record); may return an awaitable
    Callback(fn)   fn(value, done) / fn(record, done); done(error=None);
                   fn may be a coroutine function

Field validators receive the field value, record-level validators receive
the record. Any exception, or a truthy error passed to `done`, is a failure.
A validator that cannot take those arguments is rejected by check_call_shape.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable

from .errors import ConfigurationError, ErrorOrigin, ValidationErrorItem
from .types import Err, Ok

FALLBACK_MESSAGE = "Validation error"

_UNSET = object()


@dataclass(frozen=True, slots=True)
class Sync:
    """Validator that returns (or raises) when called."""

    fn: Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Callback:
    """Validator that reports its outcome through a completion callback."""

    fn: Callable[..., None]


CustomValidator = Sync | Callback


def is_custom_validator(test: Any) -> bool:
    return isinstance(test, (Sync, Callback)) or callable(test)


def to_custom_validator(v: Any) -> CustomValidator:
    """
    Coerce a registration to a custom validator.

    Conversion rules:
        Sync | Callback -> pass through
        Callable -> Sync
    """
    if isinstance(v, (Sync, Callback)):
        return v
    if callable(v):
        return Sync(v)
    raise TypeError(f"Cannot convert {type(v).__name__} to custom validator")


def check_call_shape(validator: CustomValidator, name: str) -> None:
    """
    Raise ConfigurationError if `validator` cannot take the arguments it will
    be called with: one for Sync, two for Callback.
    """
    argc = 2 if isinstance(validator, Callback) else 1
    try:
        signature = inspect.signature(validator.fn)
    except (TypeError, ValueError):
        return
    try:
        signature.bind(*([None] * argc))
    except TypeError as e:
        kind = type(validator).__name__
        raise ConfigurationError(
            f"{kind} validator {name!r} must accept {argc} positional argument(s): {e}"
        ) from None


def error_message(raw_error: Any) -> str:
    """Message for a raw failure: exception text, a string, or the fallback."""
    if isinstance(raw_error, BaseException):
        return str(raw_error) or FALLBACK_MESSAGE
    if isinstance(raw_error, str) and raw_error:
        return raw_error
    return FALLBACK_MESSAGE


async def _call_with_callback(fn: Callable[..., None], arg: Any) -> Any:
    """Adapt a single-shot completion callback to an awaitable outcome."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def settle(error: Any) -> None:
        if not future.done():
            future.set_result(error)

    def done(error: Any = None, *_: Any) -> None:
        loop.call_soon_threadsafe(settle, error)

    try:
        outcome = fn(arg, done)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        settle(e)
    error = await future
    if error:
        return error
    return _UNSET


async def invoke_custom_validator(
    validator: Any,
    validator_type: str,
    record: Any,
    *,
    field_scoped: bool = False,
    value: Any = None,
    field: str | None = None,
) -> Ok[None] | Err[ValidationErrorItem]:
    """
    Run one custom validator.

    Record-level validators (field_scoped=False) get the record and are keyed
    by `validator_type`; field validators get `value` and are keyed by `field`.
    """
    validator = to_custom_validator(validator)
    arg = value if field_scoped else record
    error_key = field if field_scoped and field is not None else validator_type

    raw_error: Any = _UNSET
    if isinstance(validator, Callback):
        raw_error = await _call_with_callback(validator.fn, arg)
    else:
        try:
            outcome = validator.fn(arg)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            raw_error = e

    if raw_error is _UNSET:
        return Ok(None)

    return Err(
        ValidationErrorItem.with_original(
            raw_error,
            message=error_message(raw_error),
            origin=ErrorOrigin.FUNCTION,
            field=error_key,
            value=value,
            instance=record,
            validator_key=validator_type,
        )
    )
