from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import Field

from codemode_runtime.core.schema import BaseSchema


def new_execution_id() -> str:
    return f"code-{uuid4()}"


class ExecutionState(str, Enum):
    CREATED = "created"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


class FailureKind(str, Enum):
    EXECUTION_ERROR = "execution_error"
    PROGRAM_ERROR = "program_error"
    APPLICATION_ERROR = "application_error"
    TRANSPORT_ERROR = "transport_error"
    TIMEOUT = "timeout"


class ExecutionRequest(BaseSchema):
    source: str = Field(..., description="Program source: exactly one zero-argument async function.")
    session_id: str = Field(..., description="Backend session the capability calls are scoped to.", min_length=1)
    execution_id: str = Field(default_factory=new_execution_id, description="Unique identifier of this run.")
    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Wall-clock budget of this run; the executor default applies when omitted.",
        gt=0,
        le=600.0,
    )


class ExecutionResult(BaseSchema):
    """Tagged outcome of one program execution.

    ``kind``, ``trace`` and ``execution_id`` are diagnostics for the host;
    ``to_response`` is what may be shown to a user or a model.
    """

    success: bool = Field(..., description="Whether the program returned a value.")
    result: Any = Field(default=None, description="JSON-serializable value returned by the program.")
    error: Optional[str] = Field(default=None, description="Failure message.")
    kind: Optional[FailureKind] = Field(default=None, description="Failure classification.")
    trace: Optional[str] = Field(default=None, description="Diagnostic trace of the failure, if any.")
    execution_id: str = Field(..., description="Identifier of the run that produced this result.")

    @classmethod
    def succeeded(cls, execution_id: str, result: Any) -> "ExecutionResult":
        return cls(success=True, result=result, execution_id=execution_id)

    @classmethod
    def failed(
        cls,
        execution_id: str,
        error: str,
        kind: FailureKind,
        trace: Optional[str] = None,
    ) -> "ExecutionResult":
        return cls(success=False, error=error or "Unknown error", kind=kind, trace=trace, execution_id=execution_id)

    def to_response(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "result": self.result}
        return {"success": False, "error": self.error}
