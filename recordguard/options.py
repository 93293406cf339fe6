"""
Validation options.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict


class ValidationOptions(BaseModel):
    """
    Options for one validation run.

    `fields` is shorthand for skipping every declared field not listed.
    Unknown keys are kept so hooks can read them.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    skip: Optional[frozenset[str]] = None
    fields: Optional[frozenset[str]] = None
    hooks: Optional[bool] = None

    def resolve(
        self, declared_fields: Iterable[str], default_hooks: bool = True
    ) -> ValidationOptions:
        """Fill in `skip` and `hooks` defaults against a model's fields."""
        skip = self.skip
        if skip is None:
            if self.fields is not None:
                skip = frozenset(declared_fields) - self.fields
            else:
                skip = frozenset()
        hooks = default_hooks if self.hooks is None else self.hooks
        return self.model_copy(update={"skip": skip, "hooks": hooks})
