"""
Type definitions for recordguard.

Every check settles to a Result: Ok(None) when it passes, Err(item) carrying
a ValidationErrorItem when it does not.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Error result containing an error value."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True


# Type aliases
PredicateFn = Callable[..., bool]
Done = Callable[..., None]
TestSpec = Any


def failures(results: Iterable[Any]) -> list[Any]:
    """Unwrap the error of every Err in `results`, keeping order."""
    return [result.error for result in results if isinstance(result, Err)]
