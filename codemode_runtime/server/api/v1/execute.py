"""
Execution Endpoint.

Runs one program in the sandbox against the capabilities of a backend
session. Program failures are not HTTP errors: the response is always the
tagged ``{success, result}`` / ``{success: false, error}`` object.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import Field

from codemode_runtime.core.schema import BaseSchema
from codemode_runtime.executor import ExecutionRequest

from ...deps import CodemodeStateDep

router = APIRouter()


class ExecuteBody(BaseSchema):
    source: str = Field(..., description="Program source: exactly one zero-argument async function.")
    session_id: str = Field(..., description="Backend tool service session id.", min_length=1)
    timeout_seconds: Optional[float] = Field(
        default=None, description="Wall-clock budget; the server default applies when omitted.", gt=0, le=600.0
    )


@router.post(
    "/execute",
    summary="Execute Program",
    description="Execute a codemode program in an isolated sandbox.",
    response_description="Tagged execution result.",
)
async def execute_program(body: ExecuteBody, state: CodemodeStateDep) -> Dict[str, Any]:
    result = await state.executor.execute_request(
        ExecutionRequest(source=body.source, session_id=body.session_id, timeout_seconds=body.timeout_seconds)
    )
    return result.to_response()
