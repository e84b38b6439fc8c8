from .catalog import CapabilityCatalog, field_kind_from_json_schema, load_catalog
from .fluma import FLUMA_DECLARATIONS, fluma_catalog
from .models import (
    ArrayKind,
    BooleanKind,
    Capability,
    CapabilityField,
    EnumKind,
    FieldKind,
    NumberKind,
    ObjectKind,
    OpaqueKind,
    StringKind,
)

__all__ = [
    "ArrayKind",
    "BooleanKind",
    "Capability",
    "CapabilityCatalog",
    "CapabilityField",
    "EnumKind",
    "FLUMA_DECLARATIONS",
    "FieldKind",
    "NumberKind",
    "ObjectKind",
    "OpaqueKind",
    "StringKind",
    "field_kind_from_json_schema",
    "fluma_catalog",
    "load_catalog",
]
