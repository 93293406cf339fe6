"""
Lifecycle hooks run around validation.
"""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class HookType(str, Enum):
    BEFORE_VALIDATE = "beforeValidate"
    AFTER_VALIDATE = "afterValidate"
    VALIDATION_FAILED = "validationFailed"


class Hooks:
    """
    Ordered hook lists keyed by HookType.

    Hooks may be plain functions or coroutine functions. They run one after
    another; an exception from any hook propagates to the caller.
    """

    def __init__(self) -> None:
        self._hooks: dict[HookType, list[Callable[..., Any]]] = {
            hook_type: [] for hook_type in HookType
        }

    def add(self, hook_type: HookType | str, hook: Callable[..., Any]) -> None:
        self._hooks[HookType(hook_type)].append(hook)

    def has(self, hook_type: HookType | str) -> bool:
        return bool(self._hooks[HookType(hook_type)])

    async def run(self, hook_type: HookType | str, *args: Any) -> Any:
        """Run every hook of `hook_type`; return the last non-None result."""
        hook_type = HookType(hook_type)
        result = None
        for hook in self._hooks[hook_type]:
            logger.debug("Running %s hook %r", hook_type.value, hook)
            outcome = hook(*args)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            if outcome is not None:
                result = outcome
        return result
