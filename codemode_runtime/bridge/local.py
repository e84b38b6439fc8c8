"""In-process bridge backed by a dispatch table of async handlers.

Useful for demos and tests, and for hosts that implement the tool backend in
the same process. Handlers receive ``(args, session_id)`` and either return the
payload (a string is treated like the tool service's textual payload) or raise
``ToolApplicationError`` to report a backend rejection.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping

from .base import unknown_capability
from .models import CapabilityOutcome, outcome_from_text

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any], str], Awaitable[Any]]


class ToolApplicationError(Exception):
    """Raised by a local tool handler for an application-level rejection (not found, not a host, ...)."""


class LocalBridge:
    def __init__(self, handlers: Mapping[str, ToolHandler]) -> None:
        self._handlers: Dict[str, ToolHandler] = dict(handlers)

    async def invoke(self, capability_name: str, args: Dict[str, Any], session_id: str) -> CapabilityOutcome:
        handler = self._handlers.get(capability_name)
        if handler is None:
            return unknown_capability(capability_name)

        logger.debug("LocalBridge.invoke: %s args_keys=%s", capability_name, list((args or {}).keys()))
        try:
            payload = await handler(dict(args or {}), session_id)
        except ToolApplicationError as e:
            return CapabilityOutcome.application_error(str(e))
        except Exception as e:
            logger.warning("Local tool handler %s failed", capability_name, exc_info=True)
            return CapabilityOutcome.transport_error(f"Tool backend failed: {e}")

        if isinstance(payload, str):
            return outcome_from_text(payload)
        try:
            json.dumps(payload)
        except (TypeError, ValueError):
            return CapabilityOutcome.transport_error(
                f"Tool backend returned a non-JSON payload of type {type(payload).__name__}"
            )
        return CapabilityOutcome.structured(payload)
