"""Surface generation.

Derives, from a capability catalog, the two prompt artifacts a code-generating
caller needs: the type declaration of the ``codemode`` proxy and a short prose
list of capability descriptions. Generation is pure: the same catalog always
yields byte-identical output, which is what makes ``SurfaceCache`` safe.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List

from pydantic import Field

from codemode_runtime.catalog import Capability, CapabilityCatalog
from codemode_runtime.core.schema import FrozenSchema

from .renderers import render_python_declaration, render_typescript_declaration, single_line


class SurfaceLanguage(str, Enum):
    PYTHON = "python"
    TYPESCRIPT = "typescript"


_RENDERERS: Dict[SurfaceLanguage, Callable[[List[Capability]], str]] = {
    SurfaceLanguage.PYTHON: render_python_declaration,
    SurfaceLanguage.TYPESCRIPT: render_typescript_declaration,
}


class GeneratedSurface(FrozenSchema):
    language: SurfaceLanguage = Field(..., description="Target language of the type declaration.")
    fingerprint: str = Field(..., description="Fingerprint of the catalog the surface was generated from.")
    type_declaration: str = Field(..., description="Declaration of the codemode proxy and its input types.")
    descriptions: str = Field(..., description="One '- name: description' line per capability.")


def generate_type_declaration(
    catalog: CapabilityCatalog,
    language: SurfaceLanguage = SurfaceLanguage.PYTHON,
) -> str:
    """Render the declaration of the ``codemode`` proxy for ``language``."""
    return _RENDERERS[SurfaceLanguage(language)](list(catalog.list_capabilities()))


def generate_description_list(catalog: CapabilityCatalog) -> str:
    """Return one ``- name: description`` line per capability, in catalog order."""
    return "\n".join(f"- {c.name}: {single_line(c.description)}" for c in catalog.list_capabilities())


def generate_surface(
    catalog: CapabilityCatalog,
    language: SurfaceLanguage = SurfaceLanguage.PYTHON,
) -> GeneratedSurface:
    return GeneratedSurface(
        language=SurfaceLanguage(language),
        fingerprint=catalog.fingerprint,
        type_declaration=generate_type_declaration(catalog, language),
        descriptions=generate_description_list(catalog),
    )
