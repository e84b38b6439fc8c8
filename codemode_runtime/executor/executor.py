"""Program executor.

Drives one run through ``Created -> Provisioning -> Running ->
{Succeeded, Failed} -> TornDown`` and always returns a tagged
``ExecutionResult``. Nothing raised by the program, the sandbox or the bridge
escapes ``execute``; only caller cancellation propagates, after teardown.
"""

from __future__ import annotations

import logging
import traceback
from typing import Optional

from pydantic import ValidationError

from codemode_runtime.bridge import CapabilityBridge
from codemode_runtime.catalog import CapabilityCatalog
from codemode_runtime.core.config import SandboxConfig
from codemode_runtime.core.errors import ExecutionError, ExecutionTimeoutError, ProgramError
from codemode_runtime.core.monitoring import execution_span

from .dispatch import CapabilityDispatcher
from .models import ExecutionRequest, ExecutionResult, ExecutionState, FailureKind, new_execution_id
from .program import parse_program
from .runtime import IsolationRuntime, SubprocessRuntime

logger = logging.getLogger(__name__)


class ProgramExecutor:
    def __init__(
        self,
        catalog: CapabilityCatalog,
        bridge: CapabilityBridge,
        *,
        runtime: Optional[IsolationRuntime] = None,
        timeout: float = 30.0,
    ) -> None:
        self._catalog = catalog
        self._bridge = bridge
        self._runtime: IsolationRuntime = runtime or SubprocessRuntime()
        self._timeout = timeout

    @classmethod
    def from_config(
        cls,
        catalog: CapabilityCatalog,
        bridge: CapabilityBridge,
        config: SandboxConfig,
    ) -> "ProgramExecutor":
        runtime = SubprocessRuntime(
            memory_limit_mb=config.memory_limit_mb,
            max_result_bytes=config.max_result_bytes,
        )
        return cls(catalog, bridge, runtime=runtime, timeout=config.timeout_seconds)

    @property
    def catalog(self) -> CapabilityCatalog:
        return self._catalog

    @property
    def runtime(self) -> IsolationRuntime:
        return self._runtime

    async def execute(self, source: str, session_id: str, *, timeout: Optional[float] = None) -> ExecutionResult:
        """Run ``source`` once against the capabilities of ``session_id``."""
        try:
            request = ExecutionRequest(source=source, session_id=session_id, timeout_seconds=timeout)
        except ValidationError as e:
            execution_id = new_execution_id()
            message = "; ".join(err["msg"] for err in e.errors()) or str(e)
            return self._failed(execution_id, f"Invalid execution request: {message}", FailureKind.EXECUTION_ERROR)
        return await self.execute_request(request)

    async def execute_request(self, request: ExecutionRequest) -> ExecutionResult:
        execution_id = request.execution_id
        budget = request.timeout_seconds or self._timeout
        self._transition(execution_id, ExecutionState.CREATED)
        with execution_span(execution_id, timeout=budget):
            try:
                result = await self._run(request, budget)
            finally:
                self._transition(execution_id, ExecutionState.TORN_DOWN)
        return result

    async def _run(self, request: ExecutionRequest, budget: float) -> ExecutionResult:
        execution_id = request.execution_id
        try:
            self._transition(execution_id, ExecutionState.PROVISIONING)
            program = parse_program(request.source)
            dispatcher = CapabilityDispatcher(self._catalog, self._bridge, request.session_id)
            self._transition(execution_id, ExecutionState.RUNNING)
            value = await self._runtime.run(program, dispatcher, execution_id=execution_id, timeout=budget)
        except ExecutionTimeoutError as e:
            return self._failed(execution_id, str(e), FailureKind.TIMEOUT)
        except ProgramError as e:
            return self._failed(execution_id, str(e), FailureKind(e.kind), e.trace)
        except ExecutionError as e:
            return self._failed(execution_id, str(e), FailureKind.EXECUTION_ERROR, e.trace)
        except Exception as e:
            logger.error("Internal failure during execution %s: %s", execution_id, e, exc_info=True)
            return self._failed(
                execution_id,
                "Internal error while executing the program",
                FailureKind.EXECUTION_ERROR,
                traceback.format_exc(),
            )

        self._transition(execution_id, ExecutionState.SUCCEEDED)
        return ExecutionResult.succeeded(execution_id, value)

    def _failed(
        self,
        execution_id: str,
        error: str,
        kind: FailureKind,
        trace: Optional[str] = None,
    ) -> ExecutionResult:
        self._transition(execution_id, ExecutionState.FAILED, f"{kind.value}: {error}")
        return ExecutionResult.failed(execution_id, error, kind, trace)

    @staticmethod
    def _transition(execution_id: str, state: ExecutionState, detail: str = "") -> None:
        if detail:
            logger.info("Execution %s -> %s (%s)", execution_id, state.value, detail)
        else:
            logger.debug("Execution %s -> %s", execution_id, state.value)
