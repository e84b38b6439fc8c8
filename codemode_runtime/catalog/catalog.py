"""Capability catalog.

The catalog maps a capability name to its typed signature. It is produced once
from a static declaration and is closed for the process lifetime: there is no
runtime mutation API, adding a capability means loading a new catalog.

Two declaration shapes are accepted:

- native declarations: ``{"name", "description", "inputFields": [...]}``
  validated directly into ``Capability`` models;
- tool descriptors as listed by an MCP server: ``{"name", "description",
  "inputSchema"}`` where the JSON Schema properties are converted to field
  kinds. Properties that cannot be represented degrade to ``opaque``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from codemode_runtime.core.errors import CatalogError

from .models import (
    ArrayKind,
    BooleanKind,
    Capability,
    EnumKind,
    FieldKind,
    NumberKind,
    ObjectKind,
    OpaqueKind,
    StringKind,
)

logger = logging.getLogger(__name__)

_SCALAR_KINDS: Dict[str, FieldKind] = {
    "string": StringKind(),
    "number": NumberKind(),
    "integer": NumberKind(),
    "boolean": BooleanKind(),
    "object": ObjectKind(),
}


def field_kind_from_json_schema(schema: Any) -> FieldKind:
    """Convert one JSON Schema property into a ``FieldKind``.

    Unknown or composite schemas (``$ref``, unions of several types, ...) are
    not an error: they degrade to ``OpaqueKind`` so one exotic property never
    prevents the rest of the catalog from loading.
    """
    if not isinstance(schema, dict):
        return OpaqueKind()

    enum_values = schema.get("enum")
    if isinstance(enum_values, list) and enum_values and all(isinstance(x, str) for x in enum_values):
        if len(set(enum_values)) == len(enum_values):
            return EnumKind(values=tuple(enum_values))

    # Optional wrappers such as {"anyOf": [{...}, {"type": "null"}]}
    for combinator in ("anyOf", "oneOf"):
        options = schema.get(combinator)
        if isinstance(options, list):
            non_null = [o for o in options if not (isinstance(o, dict) and o.get("type") == "null")]
            if len(non_null) == 1:
                return field_kind_from_json_schema(non_null[0])

    typ = schema.get("type")
    if isinstance(typ, list):
        non_null_types = [t for t in typ if t != "null"]
        typ = non_null_types[0] if len(non_null_types) == 1 else None

    if typ == "array":
        return ArrayKind(items=field_kind_from_json_schema(schema.get("items")))
    if isinstance(typ, str) and typ in _SCALAR_KINDS:
        return _SCALAR_KINDS[typ]

    logger.debug("Degrading unrepresentable schema to opaque: %s", schema)
    return OpaqueKind()


def _fields_from_input_schema(input_schema: Any) -> List[Dict[str, Any]]:
    if not isinstance(input_schema, dict):
        return []
    props = input_schema.get("properties")
    required = set(input_schema.get("required") or [])
    fields: List[Dict[str, Any]] = []
    if isinstance(props, dict):
        for name, prop in props.items():
            desc = prop.get("description") if isinstance(prop, dict) else None
            fields.append(
                {
                    "name": str(name),
                    "kind": field_kind_from_json_schema(prop).model_dump(),
                    "required": str(name) in required,
                    "description": desc if isinstance(desc, str) else None,
                }
            )
    return fields


def _tool_schema_to_declaration(tool: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "name": tool.get("name"),
        "description": tool.get("description") or tool.get("title") or "",
        "input_fields": _fields_from_input_schema(tool.get("inputSchema", tool.get("input_schema"))),
    }


class CapabilityCatalog:
    """Immutable, ordered set of capabilities keyed by name.

    Invariants enforced at construction (violations raise ``CatalogError``):

    - capability names are unique valid identifiers;
    - generated input type names do not collide (``get_event`` and
      ``getEvent`` would both render ``GetEventInput``).
    """

    def __init__(self, capabilities: Iterable[Capability]) -> None:
        caps: Tuple[Capability, ...] = tuple(capabilities)
        by_name: Dict[str, Capability] = {}
        type_names: Dict[str, str] = {}
        for cap in caps:
            if cap.name in by_name:
                raise CatalogError(f"Duplicate capability name: '{cap.name}'")
            other = type_names.get(cap.input_type_name)
            if other is not None:
                raise CatalogError(
                    f"Capabilities '{other}' and '{cap.name}' both generate type '{cap.input_type_name}'"
                )
            by_name[cap.name] = cap
            type_names[cap.input_type_name] = cap.name
        self._caps = caps
        self._by_name: Mapping[str, Capability] = MappingProxyType(by_name)
        self._fingerprint = self._compute_fingerprint(caps)

    @classmethod
    def from_declarations(cls, declarations: Iterable[Union[Mapping[str, Any], Capability]]) -> "CapabilityCatalog":
        """Build a catalog from native declarations or ready ``Capability`` models."""
        caps: List[Capability] = []
        for decl in declarations:
            if isinstance(decl, Capability):
                caps.append(decl)
                continue
            try:
                caps.append(Capability.model_validate(decl))
            except ValidationError as e:
                name = decl.get("name") if isinstance(decl, Mapping) else None
                raise CatalogError(f"Invalid capability declaration {name!r}: {e}") from e
        return cls(caps)

    @classmethod
    def from_tool_schemas(cls, tools: Iterable[Mapping[str, Any]]) -> "CapabilityCatalog":
        """Build a catalog from MCP-style tool descriptors carrying a JSON ``inputSchema``."""
        return cls.from_declarations(_tool_schema_to_declaration(t) for t in tools)

    def list_capabilities(self) -> Tuple[Capability, ...]:
        """Return all capabilities in declaration order."""
        return self._caps

    def get(self, name: str) -> Optional[Capability]:
        return self._by_name.get(name)

    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self._caps)

    @property
    def fingerprint(self) -> str:
        """Content hash of the catalog, stable across processes for identical declarations."""
        return self._fingerprint

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._caps)

    def __len__(self) -> int:
        return len(self._caps)

    def __repr__(self) -> str:
        return f"CapabilityCatalog(size={len(self._caps)}, fingerprint={self._fingerprint[:12]})"

    @staticmethod
    def _compute_fingerprint(caps: Sequence[Capability]) -> str:
        canonical = json.dumps(
            [c.model_dump(mode="json", by_alias=True) for c in caps],
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_catalog(path: Union[str, Path]) -> CapabilityCatalog:
    """Load a catalog from a JSON file.

    The file holds either a list of declarations or ``{"capabilities": [...]}``
    / ``{"tools": [...]}``. Entries carrying an ``inputSchema`` are treated as
    MCP tool descriptors; all others as native declarations.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read capability declarations from {p}: {e}") from e

    if isinstance(data, dict):
        data = data.get("capabilities", data.get("tools"))
    if not isinstance(data, list):
        raise CatalogError(f"Capability declarations in {p} must be a list")

    decls: List[Any] = []
    for entry in data:
        if isinstance(entry, dict) and ("inputSchema" in entry or "input_schema" in entry):
            decls.append(_tool_schema_to_declaration(entry))
        else:
            decls.append(entry)
    catalog = CapabilityCatalog.from_declarations(decls)
    logger.info("Loaded %d capabilities from %s", len(catalog), p)
    return catalog
