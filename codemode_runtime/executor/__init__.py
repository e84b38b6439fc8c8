from .dispatch import CapabilityDispatcher
from .executor import ProgramExecutor
from .models import ExecutionRequest, ExecutionResult, ExecutionState, FailureKind
from .program import Program, parse_program
from .runtime import IsolationRuntime, SubprocessRuntime

__all__ = [
    "CapabilityDispatcher",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionState",
    "FailureKind",
    "IsolationRuntime",
    "Program",
    "ProgramExecutor",
    "SubprocessRuntime",
    "parse_program",
]
