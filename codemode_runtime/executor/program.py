"""Program contract validation.

A program is the source of exactly one top-level ``async def`` taking no
arguments. It is parsed on the host before any sandbox is provisioned so that
malformed programs fail fast and never cost a process spawn.

The parse also rejects attribute access that reaches interpreter internals
(``obj.__class__``, ``coro.cr_frame``, ``fut.get_loop()``, ...). This narrows
what a program can touch inside the sandbox; the sandbox process remains the
isolation boundary.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from codemode_runtime.core.errors import ExecutionError

_FORBIDDEN_ATTRIBUTES = frozenset(
    {
        "ag_await",
        "ag_code",
        "ag_frame",
        "cr_await",
        "cr_code",
        "cr_frame",
        "f_back",
        "f_builtins",
        "f_code",
        "f_globals",
        "f_locals",
        "gi_code",
        "gi_frame",
        "gi_yieldfrom",
        "get_loop",
        "mro",
        "tb_frame",
        "tb_next",
    }
)


@dataclass(frozen=True)
class Program:
    source: str
    function_name: str


def _check_restricted_access(tree: ast.AST) -> None:
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            if node.attr.startswith("_") or node.attr in _FORBIDDEN_ATTRIBUTES:
                raise ExecutionError(f"Invalid program: access to attribute '{node.attr}' is not allowed")
        elif isinstance(node, ast.Name) and node.id.startswith("__"):
            raise ExecutionError(f"Invalid program: access to name '{node.id}' is not allowed")


def parse_program(source: str) -> Program:
    """Validate ``source`` against the single async function contract.

    Raises:
        ExecutionError: empty source, syntax error, or a violated contract.
    """
    if not source or not source.strip():
        raise ExecutionError("Program source is empty")

    try:
        tree = ast.parse(source, filename="<codemode>", mode="exec")
    except SyntaxError as e:
        raise ExecutionError(f"Invalid program: {e.msg} (line {e.lineno})") from e

    if len(tree.body) != 1:
        raise ExecutionError("Program must define exactly one async function")
    fn = tree.body[0]
    if isinstance(fn, ast.FunctionDef):
        raise ExecutionError(f"Program function '{fn.name}' must be declared with 'async def'")
    if not isinstance(fn, ast.AsyncFunctionDef):
        raise ExecutionError("Program must define exactly one async function")
    if fn.decorator_list:
        raise ExecutionError(f"Program function '{fn.name}' must not be decorated")
    a = fn.args
    if a.posonlyargs or a.args or a.vararg or a.kwonlyargs or a.kwarg:
        raise ExecutionError(f"Program function '{fn.name}' must take no arguments")

    _check_restricted_access(tree)
    return Program(source=source, function_name=fn.name)
