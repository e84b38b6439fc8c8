"""Bridge outcome model and the wire DTOs of the tool service.

``CapabilityOutcome`` is the single, already-unwrapped value the bridge hands
back per call. The DTOs centralize serialization/deserialization of the
JSON-RPC ``tools/call`` exchange so that ``McpHttpBridge`` stays thin.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from codemode_runtime.core.schema import BaseSchema

JSONValue = Any


class OutcomeKind(str, Enum):
    JSON = "json"
    TEXT = "text"
    APPLICATION_ERROR = "application_error"
    TRANSPORT_ERROR = "transport_error"


class CapabilityOutcome(BaseSchema):
    kind: OutcomeKind = Field(..., description="Type tag distinguishing structured, textual and failed outcomes.")
    value: JSONValue = Field(default=None, description="Payload of a successful outcome.")
    message: Optional[str] = Field(default=None, description="Error message of a failed outcome, verbatim.")

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.JSON, OutcomeKind.TEXT)

    @classmethod
    def structured(cls, value: JSONValue) -> "CapabilityOutcome":
        return cls(kind=OutcomeKind.JSON, value=value)

    @classmethod
    def text(cls, value: str) -> "CapabilityOutcome":
        return cls(kind=OutcomeKind.TEXT, value=value)

    @classmethod
    def application_error(cls, message: str) -> "CapabilityOutcome":
        return cls(kind=OutcomeKind.APPLICATION_ERROR, message=message)

    @classmethod
    def transport_error(cls, message: str) -> "CapabilityOutcome":
        return cls(kind=OutcomeKind.TRANSPORT_ERROR, message=message)


def outcome_from_text(text: str) -> CapabilityOutcome:
    """Parse a textual payload as JSON, falling back to the raw text."""
    try:
        return CapabilityOutcome.structured(json.loads(text))
    except json.JSONDecodeError:
        return CapabilityOutcome.text(text)


class ToolCallParamsDTO(BaseSchema):
    """``params`` of a ``tools/call`` request."""

    name: str = Field(..., description="Tool name to invoke.", examples=["create_event"])
    arguments: Dict[str, JSONValue] = Field(
        default_factory=dict,
        description="Arguments object passed to the tool.",
        examples=[{"title": "Party", "location": "NYC"}],
    )


class JsonRpcRequestDTO(BaseSchema):
    """JSON-RPC 2.0 request envelope.

    Dump via ``model_dump(by_alias=True, mode="json", exclude_none=True)`` when sending.
    """

    jsonrpc: str = Field("2.0", description="JSON-RPC protocol version.")
    id: Optional[str] = Field(default=None, description="Request identifier; omitted for notifications.")
    method: str = Field(..., description="Remote method name.", examples=["tools/call", "initialize"])
    params: Dict[str, JSONValue] = Field(default_factory=dict, description="Method parameters.")


class JsonRpcErrorDTO(BaseSchema):
    model_config = ConfigDict(extra="allow")

    code: Optional[int] = Field(default=None, description="JSON-RPC error code.")
    message: Optional[str] = Field(default=None, description="Human-readable error message.")
    data: JSONValue = Field(default=None, description="Optional vendor-defined error payload.")


class ToolContentDTO(BaseSchema):
    model_config = ConfigDict(extra="allow")

    type: str = Field("text", description="Content block type.")
    text: Optional[str] = Field(default=None, description="Text of a text content block.")


class ToolCallResultDTO(BaseSchema):
    model_config = ConfigDict(extra="allow")

    content: List[ToolContentDTO] = Field(default_factory=list, description="Content blocks returned by the tool.")
    is_error: bool = Field(default=False, description="Tool-level failure flag (MCP ``isError``).")


class ToolCallResponseDTO(BaseSchema):
    """Normalized JSON-RPC response of a ``tools/call`` request."""

    model_config = ConfigDict(extra="allow")

    error: Optional[JsonRpcErrorDTO] = Field(default=None, description="JSON-RPC level error, if any.")
    result: Optional[Dict[str, JSONValue]] = Field(default=None, description="Raw MCP tool result.")

    def to_outcome(self) -> CapabilityOutcome:
        """Unwrap the envelope into one ``CapabilityOutcome``.

        - JSON-RPC ``error`` and MCP ``isError`` results are application errors
          carrying the backend message verbatim.
        - The first text content block is parsed as JSON, else returned as text.
        - A result without text content is returned as structured data.
        - An envelope with neither ``result`` nor ``error`` is a transport error.
        """
        if self.error is not None:
            return CapabilityOutcome.application_error(self.error.message or "Unknown tool service error")
        if self.result is None:
            return CapabilityOutcome.transport_error("Malformed tool service response: neither result nor error")

        raw = self.result
        parsed = ToolCallResultDTO.model_validate(raw)
        first_text = parsed.content[0].text if parsed.content else None
        if parsed.is_error:
            return CapabilityOutcome.application_error(first_text or "Tool reported an error")
        if first_text:
            return outcome_from_text(first_text)
        return CapabilityOutcome.structured(raw)
