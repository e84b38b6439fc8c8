"""Capability bridge speaking MCP JSON-RPC over streamable HTTP.

Each invocation is one ``tools/call`` POST to the tool service endpoint with
the caller's session id in the ``mcp-session-id`` header. The service may
answer with a plain JSON body or with a server-sent event stream. On a stream,
notifications may precede the response: the message whose ``id`` matches the
request is used, else the first one carrying a ``result`` or an ``error``.

Non-2xx answers that still carry a JSON-RPC ``error`` are reported with the
backend message; anything else non-2xx is a transport failure.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
from pydantic import ValidationError

from codemode_runtime.catalog import CapabilityCatalog
from codemode_runtime.core.errors import BridgeError

from .base import unknown_capability
from .models import (
    CapabilityOutcome,
    JsonRpcRequestDTO,
    ToolCallParamsDTO,
    ToolCallResponseDTO,
)

SESSION_HEADER = "mcp-session-id"
_SSE_FIELD_PREFIXES = ("data:", "event:", "id:", ":")


class _MalformedBody(Exception):
    pass


def _looks_like_sse(content_type: str, body: str) -> bool:
    if "text/event-stream" in content_type:
        return True
    return body.lstrip().startswith(_SSE_FIELD_PREFIXES)


def _sse_event_payloads(body: str) -> List[str]:
    """Return the joined ``data:`` lines of every event in ``body``, in order."""
    payloads: List[str] = []
    data: List[str] = []
    for line in body.splitlines():
        if not line.strip():
            if data:
                payloads.append("\n".join(data))
                data = []
            continue
        if line.startswith(":") or ":" not in line:
            continue
        key, val = line.split(":", 1)
        if key == "data":
            data.append(val[1:] if val.startswith(" ") else val)
    if data:
        payloads.append("\n".join(data))
    return payloads


def _select_response(messages: List[Any], request_id: str) -> Any:
    # notifications (progress, log messages) may precede the response on one stream
    for msg in messages:
        if isinstance(msg, dict) and msg.get("id") == request_id:
            return msg
    for msg in messages:
        if isinstance(msg, dict) and ("result" in msg or "error" in msg):
            return msg
    return messages[0]


def _decode_body(response: httpx.Response, request_id: str) -> Any:
    body = response.text
    if not _looks_like_sse(response.headers.get("content-type", ""), body):
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise _MalformedBody(f"Malformed tool service response: {e}") from e

    payloads = _sse_event_payloads(body)
    if not payloads:
        raise _MalformedBody("No data in SSE response")
    messages: List[Any] = []
    for payload in payloads:
        try:
            messages.append(json.loads(payload))
        except json.JSONDecodeError as e:
            raise _MalformedBody(f"Malformed tool service response: {e}") from e
    return _select_response(messages, request_id)


class McpHttpBridge:
    def __init__(
        self,
        endpoint_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        auth_token: Optional[str] = None,
        timeout: float = 10.0,
        catalog: Optional[CapabilityCatalog] = None,
        protocol_version: str = "2024-11-05",
    ) -> None:
        self._endpoint = endpoint_url
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._auth_token = auth_token
        self._catalog = catalog
        self._protocol_version = protocol_version
        self._logger = logging.getLogger(__name__)

    def _headers(self, session_id: Optional[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if session_id:
            headers[SESSION_HEADER] = session_id
        if self._auth_token:
            headers["Authorization"] = self._auth_token
        return headers

    async def invoke(self, capability_name: str, args: Dict[str, Any], session_id: str) -> CapabilityOutcome:
        if self._catalog is not None and capability_name not in self._catalog:
            return unknown_capability(capability_name)

        request = JsonRpcRequestDTO(
            id=uuid4().hex,
            method="tools/call",
            params=ToolCallParamsDTO(name=capability_name, arguments=args or {}).model_dump(by_alias=True, mode="json"),
        )
        self._logger.debug(
            "McpHttpBridge.invoke: POST %s tool=%s args_keys=%s",
            self._endpoint,
            capability_name,
            list((args or {}).keys()),
        )
        try:
            r = await self._http.post(
                self._endpoint,
                headers=self._headers(session_id),
                json=request.model_dump(by_alias=True, mode="json", exclude_none=True),
            )
        except httpx.HTTPError as e:
            self._logger.warning("Tool service call %s failed: %s", capability_name, e)
            return CapabilityOutcome.transport_error(f"Tool service unreachable: {e}")

        if not r.is_success:
            return self._http_error_outcome(r, request.id)

        try:
            data = _decode_body(r, request.id)
        except _MalformedBody as e:
            return CapabilityOutcome.transport_error(str(e))

        try:
            return ToolCallResponseDTO.model_validate(data).to_outcome()
        except ValidationError as e:
            return CapabilityOutcome.transport_error(f"Malformed tool service response: {e.error_count()} validation error(s)")

    def _http_error_outcome(self, response: httpx.Response, request_id: str) -> CapabilityOutcome:
        """Classify a non-2xx answer, keeping a JSON-RPC error message from the body when there is one."""
        status_line = f"HTTP error: {response.status_code} {response.reason_phrase}"
        try:
            envelope = ToolCallResponseDTO.model_validate(_decode_body(response, request_id))
        except (_MalformedBody, ValidationError):
            return CapabilityOutcome.transport_error(status_line)
        if envelope.error is not None and envelope.error.message:
            self._logger.debug("Tool service answered %s: %s", response.status_code, envelope.error.message)
            return CapabilityOutcome.application_error(envelope.error.message)
        return CapabilityOutcome.transport_error(status_line)

    async def open_session(self, client_name: str = "codemode-runtime", client_version: str = "0.1.0") -> str:
        """Run the MCP ``initialize`` handshake and return the new session id."""
        request = JsonRpcRequestDTO(
            id=uuid4().hex,
            method="initialize",
            params={
                "protocolVersion": self._protocol_version,
                "capabilities": {},
                "clientInfo": {"name": client_name, "version": client_version},
            },
        )
        try:
            r = await self._http.post(
                self._endpoint,
                headers=self._headers(None),
                json=request.model_dump(by_alias=True, mode="json", exclude_none=True),
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise BridgeError(f"Cannot open tool service session: {e}") from e

        session_id = r.headers.get(SESSION_HEADER)
        if not session_id:
            raise BridgeError(f"Tool service did not return a '{SESSION_HEADER}' header")
        self._logger.info("Opened tool service session %s", session_id)
        return session_id

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "McpHttpBridge":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
