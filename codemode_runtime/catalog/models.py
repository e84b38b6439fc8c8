"""Capability domain models.

A capability is one named, typed backend operation exposed to sandboxed code.
Its input shape is an ordered list of fields, each tagged with a closed
``FieldKind`` variant; its output is always an opaque structured object since
the backend's result shape is not statically known.

All models are frozen: a catalog is built once at process start and shared
read-only by every concurrent execution.
"""

from __future__ import annotations

import keyword
import re
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import Field, field_validator, model_validator

from codemode_runtime.core.schema import FrozenSchema


def is_capability_identifier(name: str) -> bool:
    """Return True when ``name`` can be used as a proxy attribute and a TypedDict key."""
    return name.isidentifier() and not keyword.iskeyword(name) and not name.startswith("_")


def to_pascal_case(name: str) -> str:
    """Convert a snake_case capability name to PascalCase for type naming."""
    converted = re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name)
    return converted[:1].upper() + converted[1:]


class StringKind(FrozenSchema):
    kind: Literal["string"] = "string"


class NumberKind(FrozenSchema):
    kind: Literal["number"] = "number"


class BooleanKind(FrozenSchema):
    kind: Literal["boolean"] = "boolean"


class EnumKind(FrozenSchema):
    kind: Literal["enum"] = "enum"
    values: Tuple[str, ...] = Field(..., description="Allowed literal values, rendered inline as a union.", min_length=1)

    @field_validator("values")
    @classmethod
    def _unique_values(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError(f"enum values must be unique: {list(v)}")
        return v


class ArrayKind(FrozenSchema):
    kind: Literal["array"] = "array"
    items: FieldKind = Field(..., description="Kind of every array element.")

    @model_validator(mode="before")
    @classmethod
    def _coerce_items_shorthand(cls, v: Any) -> Any:
        if isinstance(v, dict) and isinstance(v.get("items"), str):
            return {**v, "items": {"kind": v["items"]}}
        return v


class ObjectKind(FrozenSchema):
    kind: Literal["object"] = "object"


class OpaqueKind(FrozenSchema):
    kind: Literal["opaque"] = "opaque"


FieldKind = Annotated[
    Union[StringKind, NumberKind, BooleanKind, EnumKind, ArrayKind, ObjectKind, OpaqueKind],
    Field(discriminator="kind"),
]

ArrayKind.model_rebuild()


class CapabilityField(FrozenSchema):
    """One named input field of a capability."""

    name: str = Field(..., description="Field name as passed in the arguments object.", min_length=1, max_length=128)
    kind: FieldKind = Field(..., description="Closed type tag of the field.")
    required: bool = Field(True, description="Whether the field must be present in the arguments object.")
    description: Optional[str] = Field(None, description="Human-friendly description of the field.")

    @model_validator(mode="before")
    @classmethod
    def _coerce_kind_shorthand(cls, v: Any) -> Any:
        """Accept ``{"kind": "enum", "values": [...]}`` at field level.

        A string ``kind`` is lifted into the variant together with the
        variant-specific ``values`` / ``items`` keys.
        """
        if isinstance(v, dict) and isinstance(v.get("kind"), str):
            nv = dict(v)
            variant: Dict[str, Any] = {"kind": nv.pop("kind")}
            for key in ("values", "items"):
                if key in nv:
                    variant[key] = nv.pop(key)
            nv["kind"] = variant
            return nv
        return v

    @field_validator("name")
    @classmethod
    def _identifier(cls, v: str) -> str:
        if not is_capability_identifier(v):
            raise ValueError(f"field name {v!r} is not a valid identifier")
        return v


class Capability(FrozenSchema):
    """A named, typed backend operation."""

    name: str = Field(..., description="Unique capability name.", min_length=1, max_length=128, examples=["create_event"])
    description: str = Field(..., description="One-line human description.", examples=["Create a new event"])
    input_fields: Tuple[CapabilityField, ...] = Field(
        default_factory=tuple,
        description="Ordered input fields; declaration order is preserved in generated surfaces.",
    )

    @field_validator("name")
    @classmethod
    def _identifier(cls, v: str) -> str:
        if not is_capability_identifier(v):
            raise ValueError(f"capability name {v!r} is not a valid identifier")
        return v

    @model_validator(mode="after")
    def _unique_fields(self) -> "Capability":
        seen = set()
        for f in self.input_fields:
            if f.name in seen:
                raise ValueError(f"duplicate field {f.name!r} in capability {self.name!r}")
            seen.add(f.name)
        return self

    @property
    def input_type_name(self) -> str:
        return f"{to_pascal_case(self.name)}Input"
