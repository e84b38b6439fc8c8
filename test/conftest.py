from __future__ import annotations

from typing import Any, Dict, Iterable

import httpx
import pytest

from codemode_runtime.bridge import LocalBridge, ToolApplicationError
from codemode_runtime.catalog import CapabilityCatalog, fluma_catalog


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://test",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)


@pytest.fixture
def catalog() -> CapabilityCatalog:
    return fluma_catalog()


class FakeEventService:
    """In-memory stand-in for the event tool service, recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Dict[str, Any], str]] = []
        self.events: Dict[str, Dict[str, Any]] = {}

    def handlers(self) -> Dict[str, Any]:
        return {
            "get_profile": self.get_profile,
            "create_event": self.create_event,
            "get_event": self.get_event,
            "list_events": self.list_events,
        }

    async def get_profile(self, args: Dict[str, Any], session_id: str) -> Any:
        self.calls.append(("get_profile", args, session_id))
        return {"id": "user-1", "first_name": "Ada", "session": session_id}

    async def create_event(self, args: Dict[str, Any], session_id: str) -> Any:
        self.calls.append(("create_event", args, session_id))
        event_id = f"evt-{len(self.events) + 1}"
        event = {"id": event_id, **args}
        self.events[event_id] = event
        return event

    async def get_event(self, args: Dict[str, Any], session_id: str) -> Any:
        self.calls.append(("get_event", args, session_id))
        event = self.events.get(args.get("event_id"))
        if event is None:
            raise ToolApplicationError("Event not found")
        return event

    async def list_events(self, args: Dict[str, Any], session_id: str) -> Any:
        self.calls.append(("list_events", args, session_id))
        # textual payloads are passed through as text
        return "No events yet" if not self.events else list(self.events.values())


@pytest.fixture
def event_service() -> FakeEventService:
    return FakeEventService()


@pytest.fixture
def local_bridge(event_service: FakeEventService) -> LocalBridge:
    return LocalBridge(event_service.handlers())
