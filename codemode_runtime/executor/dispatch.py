"""Host-side dispatch table behind the sandboxed ``codemode`` proxy.

The proxy inside the sandbox accepts any attribute name; every call arrives
here as ``(name, args)``. The table is built once per execution from the
catalog, so the set of reachable capabilities is enumerable on the host, and
each entry is bound to the session of that execution. The session identifier
is never sent into the sandbox.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

from codemode_runtime.bridge import CapabilityBridge, CapabilityOutcome
from codemode_runtime.bridge.base import unknown_capability
from codemode_runtime.catalog import CapabilityCatalog

logger = logging.getLogger(__name__)

Invoker = Callable[[Dict[str, Any]], Awaitable[CapabilityOutcome]]


class CapabilityDispatcher:
    def __init__(self, catalog: CapabilityCatalog, bridge: CapabilityBridge, session_id: str) -> None:
        self._bridge = bridge
        self._session_id = session_id
        self._table: Dict[str, Invoker] = {cap.name: self._bind(cap.name) for cap in catalog}

    def _bind(self, name: str) -> Invoker:
        async def invoke(args: Dict[str, Any]) -> CapabilityOutcome:
            return await self._bridge.invoke(name, args, self._session_id)

        return invoke

    def names(self) -> Tuple[str, ...]:
        return tuple(self._table)

    async def dispatch(self, name: str, args: Dict[str, Any]) -> CapabilityOutcome:
        """Run one capability call and return its outcome; never raises on bridge failure."""
        invoker = self._table.get(name)
        if invoker is None:
            logger.info("Rejected call to unknown capability %r", name)
            return unknown_capability(name)
        try:
            return await invoker(args)
        except Exception as e:
            logger.warning("Capability bridge raised during %s", name, exc_info=True)
            return CapabilityOutcome.transport_error(f"Capability bridge failure: {e}")
