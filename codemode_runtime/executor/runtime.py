"""Isolation runtimes.

``IsolationRuntime`` is the narrow seam between the executor and whatever
mechanism actually isolates a program. ``SubprocessRuntime`` provides it with
one fresh interpreter process per execution:

- ``python -I -S`` (isolated mode, no site packages) running ``worker.py``;
- an empty environment and a private temporary working directory;
- address space and CPU rlimits where the platform supports them;
- a newline-delimited JSON channel over stdin/stdout as the only way out,
  every ``call`` message being served by the execution's dispatcher.

The process is killed and reaped on every exit path: success, failure,
timeout and caller cancellation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Set

from codemode_runtime.core.errors import ExecutionError, ExecutionTimeoutError, ProgramError

from .dispatch import CapabilityDispatcher
from .program import Program

logger = logging.getLogger(__name__)

WORKER_PATH = Path(__file__).with_name("worker.py")

# Room for the message envelope around a maximal result
_CHANNEL_HEADROOM = 64 * 1024

_PROGRAM_CATEGORIES = frozenset({"program_error", "application_error", "transport_error"})


class IsolationRuntime(Protocol):
    async def run(
        self,
        program: Program,
        dispatcher: CapabilityDispatcher,
        *,
        execution_id: str,
        timeout: float,
    ) -> Any:
        """Run ``program`` once and return its JSON value.

        Raises:
            ExecutionTimeoutError: the budget was exceeded.
            ProgramError: the program raised.
            ExecutionError: the sandbox could not run the program.
        """
        ...


class _WorkerSession:
    """Host-side state of one sandbox process."""

    def __init__(self, execution_id: str, process: asyncio.subprocess.Process, max_output_bytes: int) -> None:
        self.execution_id = execution_id
        self.process = process
        self.write_lock = asyncio.Lock()
        self.calls: Set[asyncio.Task] = set()
        self.output = bytearray()
        self._max_output_bytes = max_output_bytes
        self.stderr_task = asyncio.create_task(self._drain_stderr())

    async def _drain_stderr(self) -> None:
        stream = self.process.stderr
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                return
            room = self._max_output_bytes - len(self.output)
            if room > 0:
                self.output.extend(chunk[:room])

    async def send(self, message: Dict[str, Any]) -> None:
        stdin = self.process.stdin
        if stdin is None:
            raise ExecutionError("Sandbox input channel is closed")
        line = json.dumps(message).encode("utf-8") + b"\n"
        async with self.write_lock:
            stdin.write(line)
            await stdin.drain()

    def output_text(self) -> str:
        return self.output.decode("utf-8", errors="replace")


class SubprocessRuntime:
    def __init__(
        self,
        *,
        memory_limit_mb: Optional[int] = 512,
        max_result_bytes: int = 1_000_000,
        max_output_bytes: int = 64 * 1024,
        python_executable: Optional[str] = None,
    ) -> None:
        self._memory_limit_mb = memory_limit_mb
        self._max_result_bytes = max_result_bytes
        self._max_output_bytes = max_output_bytes
        self._python = python_executable or sys.executable
        self._active: Dict[str, _WorkerSession] = {}

    @property
    def active_sessions(self) -> int:
        """Number of sandbox processes currently alive."""
        return len(self._active)

    def _limits(self, timeout: float) -> Dict[str, int]:
        limits = {"cpu_seconds": int(math.ceil(timeout)) + 1}
        if self._memory_limit_mb:
            limits["memory_bytes"] = self._memory_limit_mb * 1024 * 1024
        return limits

    def _environment(self) -> Dict[str, str]:
        # Windows cannot start an interpreter without SYSTEMROOT
        return {k: os.environ[k] for k in ("SYSTEMROOT",) if k in os.environ}

    async def run(
        self,
        program: Program,
        dispatcher: CapabilityDispatcher,
        *,
        execution_id: str,
        timeout: float,
    ) -> Any:
        with tempfile.TemporaryDirectory(prefix="codemode-") as workdir:
            try:
                process = await asyncio.create_subprocess_exec(
                    self._python,
                    "-I",
                    "-S",
                    str(WORKER_PATH),
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                    env=self._environment(),
                    limit=self._max_result_bytes + _CHANNEL_HEADROOM,
                )
            except OSError as e:
                raise ExecutionError(f"Failed to start sandbox: {e}") from e

            session = _WorkerSession(execution_id, process, self._max_output_bytes)
            self._active[execution_id] = session
            logger.debug("Sandbox %s started (pid=%s)", execution_id, process.pid)
            try:
                return await asyncio.wait_for(self._drive(session, program, dispatcher, timeout), timeout)
            except asyncio.TimeoutError:
                raise ExecutionTimeoutError(timeout) from None
            finally:
                await self._teardown(session)
                self._active.pop(execution_id, None)

    async def _drive(
        self,
        session: _WorkerSession,
        program: Program,
        dispatcher: CapabilityDispatcher,
        timeout: float,
    ) -> Any:
        stdout = session.process.stdout
        assert stdout is not None
        try:
            await session.send(
                {
                    "type": "run",
                    "source": program.source,
                    "function": program.function_name,
                    "max_result_bytes": self._max_result_bytes,
                    "limits": self._limits(timeout),
                }
            )
            while True:
                try:
                    line = await stdout.readline()
                except (ValueError, asyncio.LimitOverrunError) as e:
                    raise ExecutionError(f"Sandbox message exceeds {self._max_result_bytes} bytes") from e
                if not line:
                    code = await session.process.wait()
                    await session.stderr_task
                    raise ExecutionError(
                        f"Sandbox process exited unexpectedly (exit code {code})",
                        trace=session.output_text() or None,
                    )
                try:
                    message = json.loads(line)
                except json.JSONDecodeError as e:
                    raise ExecutionError("Malformed message from sandbox") from e

                kind = message.get("type")
                if kind == "call":
                    task = asyncio.create_task(self._serve_call(session, dispatcher, message))
                    session.calls.add(task)
                    task.add_done_callback(session.calls.discard)
                elif kind == "result":
                    return self._unpack_result(message)
                else:
                    raise ExecutionError(f"Unexpected message from sandbox: {kind!r}")
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ExecutionError("Sandbox process closed its channel") from e
        finally:
            # responses still in flight belong to a finished run
            for task in list(session.calls):
                task.cancel()
            if session.calls:
                await asyncio.gather(*session.calls, return_exceptions=True)

    async def _serve_call(self, session: _WorkerSession, dispatcher: CapabilityDispatcher, message: Dict[str, Any]) -> None:
        name = str(message.get("name"))
        args = message.get("args")
        if not isinstance(args, dict):
            args = {}
        logger.debug("Sandbox %s calls %s", session.execution_id, name)
        outcome = await dispatcher.dispatch(name, args)
        reply = {"type": "reply", "id": message.get("id")}
        reply.update(outcome.model_dump(mode="json", exclude_none=True))
        try:
            await session.send(reply)
        except (BrokenPipeError, ConnectionResetError, ExecutionError):
            logger.debug("Sandbox %s exited before the reply to %s", session.execution_id, name)

    @staticmethod
    def _unpack_result(message: Dict[str, Any]) -> Any:
        if message.get("ok"):
            return message.get("value")
        error = str(message.get("error") or "Program failed")
        trace = message.get("trace")
        category = message.get("category")
        if category == "execution_error":
            raise ExecutionError(error, trace=trace)
        if category not in _PROGRAM_CATEGORIES:
            category = "program_error"
        raise ProgramError(error, kind=category, trace=trace)

    async def _teardown(self, session: _WorkerSession) -> None:
        process = session.process
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                # exited between the check and the kill
                pass
        await process.wait()
        await asyncio.wait({session.stderr_task}, timeout=1.0)
        if not session.stderr_task.done():
            session.stderr_task.cancel()
        await asyncio.gather(session.stderr_task, return_exceptions=True)
        if process.stdin is not None:
            process.stdin.close()
        if session.output:
            logger.debug("Sandbox %s output:\n%s", session.execution_id, session.output_text())
        logger.debug("Sandbox %s torn down (exit code %s)", session.execution_id, process.returncode)
