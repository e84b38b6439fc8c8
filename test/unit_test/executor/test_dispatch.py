from __future__ import annotations

from typing import Any, Dict, List, Tuple

import pytest

from codemode_runtime.bridge import CapabilityOutcome, OutcomeKind
from codemode_runtime.catalog import fluma_catalog
from codemode_runtime.executor import CapabilityDispatcher


class _RecordingBridge:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any], str]] = []

    async def invoke(self, capability_name: str, args: Dict[str, Any], session_id: str) -> CapabilityOutcome:
        self.calls.append((capability_name, args, session_id))
        if capability_name == "delete_event":
            raise RuntimeError("socket closed")
        return CapabilityOutcome.structured({"ok": True})


@pytest.mark.asyncio
async def test_dispatch_table_covers_the_catalog_and_binds_the_session() -> None:
    bridge = _RecordingBridge()
    dispatcher = CapabilityDispatcher(fluma_catalog(), bridge, "sess-42")

    assert dispatcher.names() == fluma_catalog().names()

    out = await dispatcher.dispatch("get_event", {"event_id": "evt-1"})
    assert out.value == {"ok": True}
    assert bridge.calls == [("get_event", {"event_id": "evt-1"}, "sess-42")]


@pytest.mark.asyncio
async def test_unknown_names_never_reach_the_bridge() -> None:
    bridge = _RecordingBridge()
    dispatcher = CapabilityDispatcher(fluma_catalog(), bridge, "sess-42")

    out = await dispatcher.dispatch("drop_database", {})

    assert out.kind == OutcomeKind.APPLICATION_ERROR
    assert out.message == "Unknown capability: 'drop_database'"
    assert bridge.calls == []


@pytest.mark.asyncio
async def test_bridge_exceptions_become_transport_errors() -> None:
    dispatcher = CapabilityDispatcher(fluma_catalog(), _RecordingBridge(), "sess-42")

    out = await dispatcher.dispatch("delete_event", {"event_id": "evt-1"})

    assert out.kind == OutcomeKind.TRANSPORT_ERROR
    assert "socket closed" in out.message
