"""
Surface Endpoints.

Serve the generated capability surface as plain text so prompt-construction
collaborators can fetch it once and embed it in a model prompt.
"""

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from codemode_runtime.surface import SurfaceLanguage

from ...deps import CodemodeStateDep

router = APIRouter()


@router.get(
    "/types",
    summary="Capability Type Declaration",
    description="Type declaration of the codemode proxy for the requested language.",
    response_class=PlainTextResponse,
)
async def get_types(
    state: CodemodeStateDep,
    language: SurfaceLanguage = Query(SurfaceLanguage.PYTHON, description="Target language of the declaration."),
):
    surface = state.surfaces.get_or_generate(state.catalog, language)
    return PlainTextResponse(surface.type_declaration, headers={"X-Catalog-Fingerprint": surface.fingerprint})


@router.get(
    "/descriptions",
    summary="Capability Descriptions",
    description="One '- name: description' line per capability, for system prompts.",
    response_class=PlainTextResponse,
)
async def get_descriptions(state: CodemodeStateDep):
    surface = state.surfaces.get_or_generate(state.catalog)
    return PlainTextResponse(surface.descriptions, headers={"X-Catalog-Fingerprint": surface.fingerprint})
