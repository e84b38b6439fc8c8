"""Capability bridge protocol.

The bridge is the remote-call path behind every ``codemode.<name>(...)`` call:
it sends one capability invocation to the backend tool service of a session
and returns one unwrapped ``CapabilityOutcome``. Implementations never raise
from ``invoke``; every failure is classified into an outcome instead.

Retries are deliberately absent: a failed call is reported once, and the
sandboxed program (or the outer agent loop) decides whether to try again.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable

from .models import CapabilityOutcome


@runtime_checkable
class CapabilityBridge(Protocol):
    async def invoke(
        self,
        capability_name: str,
        args: Dict[str, Any],
        session_id: str,
    ) -> CapabilityOutcome: ...


def unknown_capability(capability_name: str) -> CapabilityOutcome:
    return CapabilityOutcome.application_error(f"Unknown capability: '{capability_name}'")
