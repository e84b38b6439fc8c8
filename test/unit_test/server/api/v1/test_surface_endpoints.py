import pytest
from httpx import AsyncClient

from codemode_runtime.catalog import fluma_catalog
from codemode_runtime.surface import SurfaceLanguage, generate_description_list, generate_type_declaration

pytestmark = pytest.mark.asyncio


async def test_types_default_to_python(client: AsyncClient):
    response = await client.get("/types")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == generate_type_declaration(fluma_catalog(), SurfaceLanguage.PYTHON)
    assert response.headers["x-catalog-fingerprint"] == fluma_catalog().fingerprint


async def test_types_in_typescript(client: AsyncClient):
    response = await client.get("/types", params={"language": "typescript"})

    assert response.status_code == 200
    assert "declare const codemode: {" in response.text


async def test_types_rejects_unknown_language(client: AsyncClient):
    response = await client.get("/types", params={"language": "cobol"})

    assert response.status_code == 422


async def test_descriptions(client: AsyncClient):
    response = await client.get("/descriptions")

    assert response.status_code == 200
    assert response.text == generate_description_list(fluma_catalog())
    assert response.text.startswith("- get_profile: Get your user profile")


async def test_surface_is_served_from_the_cache(client: AsyncClient, app):
    await client.get("/types")
    await client.get("/types")
    await client.get("/descriptions")

    assert app.state.codemode.surfaces.size() == 1
