"""End-to-end executor tests: every run spawns a real sandbox process."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict

import pytest

from codemode_runtime.bridge import LocalBridge
from codemode_runtime.catalog import CapabilityCatalog, fluma_catalog
from codemode_runtime.executor import (
    ExecutionRequest,
    FailureKind,
    ProgramExecutor,
    SubprocessRuntime,
)

pytestmark = pytest.mark.asyncio


@pytest.fixture
def runtime() -> SubprocessRuntime:
    return SubprocessRuntime()


@pytest.fixture
def executor(local_bridge: LocalBridge, runtime: SubprocessRuntime) -> ProgramExecutor:
    return ProgramExecutor(fluma_catalog(), local_bridge, runtime=runtime, timeout=20.0)


def _program(*body: str) -> str:
    return "async def main():\n" + "\n".join(f"    {line}" for line in body) + "\n"


async def test_literal_result_is_delivered_exactly(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program('return {"answer": 42, "items": [1, "two", None, True, 1.5]}'), "sess-1")

    assert result.to_response() == {"success": True, "result": {"answer": 42, "items": [1, "two", None, True, 1.5]}}
    assert result.kind is None
    assert result.execution_id.startswith("code-")


async def test_program_exception_is_contained(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program('raise ValueError("boom")'), "sess-1")

    assert result.to_response() == {"success": False, "error": "boom"}
    assert result.kind == FailureKind.PROGRAM_ERROR
    assert "ValueError" in result.trace


async def test_exception_without_message_reports_its_type(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program("raise KeyError()"), "sess-1")

    assert result.error == "KeyError"


async def test_create_event_round_trip(event_service) -> None:
    service = event_service
    catalog = CapabilityCatalog.from_declarations(
        [
            {
                "name": "create_event",
                "description": "Create a new event",
                "inputFields": [
                    {"name": "title", "kind": "string"},
                    {"name": "location", "kind": "string"},
                    {"name": "date", "kind": "string"},
                ],
            }
        ]
    )
    executor = ProgramExecutor(catalog, LocalBridge(service.handlers()), timeout=20.0)

    result = await executor.execute(
        _program(
            'return await codemode.create_event({"title": "Party", "location": "NYC", "date": "2024-12-25T18:00:00Z"})'
        ),
        "sess-1",
    )

    assert result.to_response() == {
        "success": True,
        "result": {"id": "evt-1", "title": "Party", "location": "NYC", "date": "2024-12-25T18:00:00Z"},
    }
    assert service.calls == [
        ("create_event", {"title": "Party", "location": "NYC", "date": "2024-12-25T18:00:00Z"}, "sess-1")
    ]


async def test_uncaught_application_error_fails_with_backend_message(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program('return await codemode.get_event({"event_id": "missing"})'), "sess-1")

    assert result.to_response() == {"success": False, "error": "Event not found"}
    assert result.kind == FailureKind.APPLICATION_ERROR


async def test_empty_source_fails_before_provisioning(executor: ProgramExecutor, runtime: SubprocessRuntime) -> None:
    result = await executor.execute("", "sess-1")

    assert result.success is False
    assert result.error
    assert "empty" in result.error
    assert result.kind == FailureKind.EXECUTION_ERROR
    assert runtime.active_sessions == 0


async def test_missing_session_is_reported_as_a_failed_result(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program("return 1"), "")

    assert result.success is False
    assert result.error.startswith("Invalid execution request:")
    assert result.kind == FailureKind.EXECUTION_ERROR


async def test_syntax_error_fails_with_parse_error(executor: ProgramExecutor) -> None:
    result = await executor.execute("async def main(:\n    return 1\n", "sess-1")

    assert result.success is False
    assert result.error.startswith("Invalid program")


async def test_unknown_capability_is_catchable_inside_the_program(executor: ProgramExecutor) -> None:
    result = await executor.execute(
        _program(
            "try:",
            "    await codemode.launch_rocket({})",
            "except ApplicationError as e:",
            '    return {"caught": str(e)}',
        ),
        "sess-1",
    )

    assert result.to_response() == {"success": True, "result": {"caught": "Unknown capability: 'launch_rocket'"}}


async def test_unknown_capability_uncaught_is_an_application_failure(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program("return await codemode.launch_rocket()"), "sess-1")

    assert result.success is False
    assert result.kind == FailureKind.APPLICATION_ERROR


async def test_transport_errors_are_catchable_as_capability_errors(runtime: SubprocessRuntime) -> None:
    async def flaky(args: Dict[str, Any], session_id: str) -> Any:
        raise ConnectionError("backend unreachable")

    executor = ProgramExecutor(fluma_catalog(), LocalBridge({"get_profile": flaky}), runtime=runtime, timeout=20.0)

    caught = await executor.execute(
        _program(
            "try:",
            "    await codemode.get_profile({})",
            "except TransportError as e:",
            '    return {"transport": isinstance(e, CapabilityError)}',
        ),
        "sess-1",
    )
    uncaught = await executor.execute(_program("return await codemode.get_profile({})"), "sess-1")

    assert caught.result == {"transport": True}
    assert uncaught.kind == FailureKind.TRANSPORT_ERROR


async def test_concurrent_calls_and_argument_forms(executor: ProgramExecutor, event_service) -> None:
    result = await executor.execute(
        _program(
            'created = await codemode.create_event(title="Launch", location="SF", date="2025-01-04T18:00:00Z")',
            "profile, events = await gather(codemode.get_profile(), codemode.list_events({}))",
            'return {"created": created["id"], "profile": profile["first_name"], "events": events}',
        ),
        "sess-7",
    )

    assert result.success, result.error
    assert result.result["created"] == "evt-1"
    assert result.result["profile"] == "Ada"
    assert result.result["events"] == [{"id": "evt-1", "title": "Launch", "location": "SF", "date": "2025-01-04T18:00:00Z"}]
    assert {session for _, _, session in event_service.calls} == {"sess-7"}


async def test_textual_capability_results_are_plain_strings(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program("return await codemode.list_events()"), "sess-1")

    assert result.result == "No events yet"


async def test_non_mapping_arguments_raise_inside_the_program(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program('return await codemode.get_event("evt-1")'), "sess-1")

    assert result.success is False
    assert "expects a dict" in result.error


async def test_concurrent_executions_stay_scoped_to_their_session(executor: ProgramExecutor) -> None:
    source = _program("profile = await codemode.get_profile()", 'return profile["session"]')

    results = await asyncio.gather(*(executor.execute(source, f"sess-{i}") for i in range(4)))

    assert [r.result for r in results] == ["sess-0", "sess-1", "sess-2", "sess-3"]
    assert len({r.execution_id for r in results}) == 4


@pytest.mark.parametrize(
    "body, fragment",
    [
        ('return open("/etc/hostname").read()', "open"),
        ("import os\n    return os.environ", "not allowed"),
        ("return globals()", "globals"),
        ('return eval("1 + 1")', "eval"),
        ("return type(codemode)", "type"),
    ],
)
async def test_host_state_is_unreachable(executor: ProgramExecutor, body: str, fragment: str) -> None:
    result = await executor.execute(_program(body), "sess-1")

    assert result.success is False
    assert fragment in result.error


async def test_no_state_leaks_between_runs(executor: ProgramExecutor) -> None:
    first = await executor.execute(_program("gather.leaked = 42", "return gather.leaked"), "sess-1")
    second = await executor.execute(_program("return gather.leaked"), "sess-1")

    assert first.result == 42
    assert second.success is False
    assert "leaked" in second.error


async def test_printing_does_not_corrupt_the_result(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program('print("noise", {"type": "result"})', "return 1"), "sess-1")

    assert result.to_response() == {"success": True, "result": 1}


async def test_non_json_result_is_an_execution_error(executor: ProgramExecutor) -> None:
    result = await executor.execute(_program("return {1, 2}"), "sess-1")

    assert result.success is False
    assert result.kind == FailureKind.EXECUTION_ERROR
    assert "not JSON-serializable" in result.error


async def test_oversized_result_is_rejected(local_bridge: LocalBridge) -> None:
    executor = ProgramExecutor(
        fluma_catalog(), local_bridge, runtime=SubprocessRuntime(max_result_bytes=1024), timeout=20.0
    )

    result = await executor.execute(_program('return "x" * 5000'), "sess-1")

    assert result.success is False
    assert "exceeds 1024 bytes" in result.error


@pytest.mark.parametrize(
    "body",
    [
        "while True:\n        await sleep(1)",
        "while True:\n        pass",
        "await gather(codemode.get_profile(), sleep(3600))",
    ],
)
async def test_never_resolving_program_times_out(executor: ProgramExecutor, runtime: SubprocessRuntime, body: str) -> None:
    started = time.monotonic()
    result = await executor.execute(_program(body), "sess-1", timeout=1.0)
    elapsed = time.monotonic() - started

    assert result.success is False
    assert result.kind == FailureKind.TIMEOUT
    assert result.error == "Program execution timed out after 1s"
    assert elapsed < 10
    assert runtime.active_sessions == 0


async def test_repeated_timeouts_do_not_leak_sandboxes(executor: ProgramExecutor, runtime: SubprocessRuntime) -> None:
    source = _program("while True:", "    await sleep(0.1)")

    results = await asyncio.gather(*(executor.execute(source, "sess-1", timeout=0.5) for _ in range(3)))
    results.append(await executor.execute(source, "sess-1", timeout=0.5))

    assert all(r.kind == FailureKind.TIMEOUT for r in results)
    assert runtime.active_sessions == 0
    ok = await executor.execute(_program("return 'still works'"), "sess-1")
    assert ok.result == "still works"


async def test_cancelling_the_caller_tears_the_sandbox_down(executor: ProgramExecutor, runtime: SubprocessRuntime) -> None:
    task = asyncio.create_task(executor.execute(_program("while True:", "    await sleep(0.1)"), "sess-1"))
    for _ in range(100):
        if runtime.active_sessions:
            break
        await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert runtime.active_sessions == 0


async def test_execute_request_keeps_the_execution_id(executor: ProgramExecutor) -> None:
    request = ExecutionRequest(source=_program("return 'ok'"), session_id="sess-1", execution_id="code-fixed")

    result = await executor.execute_request(request)

    assert result.execution_id == "code-fixed"
    assert result.result == "ok"


async def test_internal_runtime_faults_are_reported_without_internals(local_bridge: LocalBridge) -> None:
    class _BrokenRuntime:
        async def run(self, program, dispatcher, *, execution_id, timeout):
            raise RuntimeError("secret host detail")

    executor = ProgramExecutor(fluma_catalog(), local_bridge, runtime=_BrokenRuntime())

    result = await executor.execute(_program("return 1"), "sess-1")

    assert result.to_response() == {"success": False, "error": "Internal error while executing the program"}
    assert result.kind == FailureKind.EXECUTION_ERROR
    assert "secret host detail" in result.trace
