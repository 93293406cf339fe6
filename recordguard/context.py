"""
Context manager for validation defaults (predicate registry, hooks flag).
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .predicates import PredicateRegistry

_registry: ContextVar[PredicateRegistry | None] = ContextVar("registry", default=None)
_hooks: ContextVar[bool] = ContextVar("hooks", default=True)


def current_registry() -> PredicateRegistry:
    """Registry in effect for the current context."""
    from .predicates import default_registry

    registry = _registry.get()
    return registry if registry is not None else default_registry


def hooks_enabled() -> bool:
    return _hooks.get()


@contextmanager
def validation_context(
    *, registry: PredicateRegistry | None = None, hooks: bool | None = None
):
    """
    Context manager for validation defaults.

    Args:
        registry: Predicate registry used to resolve builtin test names.
        hooks: Default for the `hooks` option when a call does not set it.

    Example:
        registry = default_registry.copy()
        registry.extend("isEven", lambda s: int(s) % 2 == 0)

        with validation_context(registry=registry, hooks=False):
            await validate(record)
    """
    tokens = []
    if registry is not None:
        tokens.append((_registry, _registry.set(registry)))
    if hooks is not None:
        tokens.append((_hooks, _hooks.set(hooks)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
