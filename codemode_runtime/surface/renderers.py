"""Per-language renderers for the generated capability surface.

Each renderer turns the closed ``FieldKind`` variant into a type expression of
its target language and lays out the declaration of the ``codemode`` proxy.
Enumerations are always rendered inline as a union of literals so the
declaration stays self-contained.
"""

from __future__ import annotations

import logging
from typing import List

from codemode_runtime.catalog.models import (
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

PYTHON_OPAQUE = "Any"
TYPESCRIPT_OPAQUE = "any"


def single_line(text: str) -> str:
    return " ".join(text.split())


def _python_doc(text: str) -> str:
    doc = single_line(text).replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if doc.endswith('"') and not doc.endswith('\\"'):
        doc = doc[:-1] + '\\"'
    return doc


def render_python_type(kind: FieldKind) -> str:
    """Render a field kind as a Python type expression."""
    if isinstance(kind, StringKind):
        return "str"
    if isinstance(kind, NumberKind):
        return "float"
    if isinstance(kind, BooleanKind):
        return "bool"
    if isinstance(kind, EnumKind):
        return "Literal[" + ", ".join(repr(v) for v in kind.values) + "]"
    if isinstance(kind, ArrayKind):
        return f"list[{render_python_type(kind.items)}]"
    if isinstance(kind, ObjectKind):
        return "dict[str, Any]"
    if not isinstance(kind, OpaqueKind):
        logger.debug("Rendering unsupported field kind %r as %s", kind, PYTHON_OPAQUE)
    return PYTHON_OPAQUE


def render_typescript_type(kind: FieldKind) -> str:
    """Render a field kind as a TypeScript type expression."""
    if isinstance(kind, StringKind):
        return "string"
    if isinstance(kind, NumberKind):
        return "number"
    if isinstance(kind, BooleanKind):
        return "boolean"
    if isinstance(kind, EnumKind):
        return " | ".join("'" + v.replace("\\", "\\\\").replace("'", "\\'") + "'" for v in kind.values)
    if isinstance(kind, ArrayKind):
        inner = render_typescript_type(kind.items)
        if isinstance(kind.items, EnumKind) and len(kind.items.values) > 1:
            inner = f"({inner})"
        return f"{inner}[]"
    if isinstance(kind, ObjectKind):
        return "object"
    if not isinstance(kind, OpaqueKind):
        logger.debug("Rendering unsupported field kind %r as %s", kind, TYPESCRIPT_OPAQUE)
    return TYPESCRIPT_OPAQUE


def render_python_declaration(capabilities: List[Capability]) -> str:
    """Render ``TypedDict`` inputs plus a ``Codemode`` protocol bound to ``codemode``."""
    out: List[str] = ["from typing import Any, Literal, NotRequired, Protocol, TypedDict", ""]
    for cap in capabilities:
        out.append(f"class {cap.input_type_name}(TypedDict):")
        if not cap.input_fields:
            out.append("    pass")
        for f in cap.input_fields:
            typ = render_python_type(f.kind)
            if not f.required:
                typ = f"NotRequired[{typ}]"
            out.append(f"    {f.name}: {typ}")
            if f.description:
                out.append(f'    """{_python_doc(f.description)}"""')
        out.append("")

    out.append("class Codemode(Protocol):")
    if not capabilities:
        out.append("    pass")
    for cap in capabilities:
        out.append(f"    async def {cap.name}(self, input: {cap.input_type_name}) -> dict[str, Any]:")
        out.append(f'        """{_python_doc(cap.description)}"""')
    out.append("")
    out.append("codemode: Codemode")
    return "\n".join(out)


def render_typescript_declaration(capabilities: List[Capability]) -> str:
    """Render interfaces plus a ``declare const codemode`` block with JSDoc comments."""
    types: List[str] = []
    members: List[str] = []
    for cap in capabilities:
        base = cap.input_type_name[: -len("Input")]
        lines = []
        for f in cap.input_fields:
            if f.description:
                lines.append(f"  /** {single_line(f.description)} */")
            lines.append(f"  {f.name}{'' if f.required else '?'}: {render_typescript_type(f.kind)};")
        body = "\n".join(lines) or "  [key: string]: unknown;"
        types.append(f"interface {cap.input_type_name} {{\n{body}\n}}")
        types.append(f"interface {base}Output {{ [key: string]: any; }}")

        members.append("  /**")
        members.append(f"   * {single_line(cap.description)}")
        members.append("   */")
        members.append(f"  {cap.name}: (input: {cap.input_type_name}) => Promise<{base}Output>;")

    declaration = "declare const codemode: {\n" + "\n".join(members) + "\n};"
    return "\n".join(types) + "\n\n" + declaration
