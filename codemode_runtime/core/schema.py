"""Pydantic base schema utilities for codemode runtime models.

Provides a common `BaseSchema` that enforces aliasing and extra-field policy
for catalog declarations, bridge outcomes and execution payloads.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


def _to_camel(s: str) -> str:
    """Convert snake_case to camelCase for JSON aliasing."""
    parts = s.split("_")
    return parts[0] + "".join(p.capitalize() or "_" for p in parts[1:])


class BaseSchema(BaseModel):
    """Shared base for all Pydantic models in codemode_runtime.

    - Sets strict handling for extra fields
    - Enables populate_by_name for using either snake_case or camelCase
    - Uses a snake->camel alias generator for JSON interop
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=_to_camel,  # snake_case -> camelCase aliases
    )


class FrozenSchema(BaseSchema):
    """`BaseSchema` variant for values shared read-only across executions."""

    model_config = ConfigDict(frozen=True)
