from .base import CapabilityBridge
from .http import McpHttpBridge
from .local import LocalBridge, ToolApplicationError, ToolHandler
from .models import CapabilityOutcome, OutcomeKind, outcome_from_text

__all__ = [
    "CapabilityBridge",
    "CapabilityOutcome",
    "LocalBridge",
    "McpHttpBridge",
    "OutcomeKind",
    "ToolApplicationError",
    "ToolHandler",
    "outcome_from_text",
]
