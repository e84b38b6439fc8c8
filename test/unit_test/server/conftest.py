from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from codemode_runtime.bridge import LocalBridge
from codemode_runtime.catalog import fluma_catalog
from codemode_runtime.server.main import create_app
from codemode_runtime.server.state import CodemodeState


@pytest.fixture
def app(local_bridge: LocalBridge) -> FastAPI:
    state = CodemodeState.from_components(fluma_catalog(), local_bridge, timeout=20.0)
    return create_app(state)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://localhost") as ac:
        yield ac
