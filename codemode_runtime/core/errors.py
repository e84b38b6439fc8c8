from __future__ import annotations

from typing import Optional


class CodemodeError(Exception):
    pass


class CatalogError(CodemodeError):
    """Raised when a static capability declaration is malformed."""


class BridgeError(CodemodeError):
    """Raised by bridge management calls (e.g. session handshake), never by ``invoke``."""


class ExecutionError(CodemodeError):
    def __init__(self, message: str, *, trace: Optional[str] = None) -> None:
        super().__init__(message)
        self.trace = trace


class ExecutionTimeoutError(ExecutionError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"Program execution timed out after {timeout:g}s")
        self.timeout = timeout


class ProgramError(ExecutionError):
    """Uncaught exception raised by the sandboxed program itself.

    ``kind`` tells an ordinary program failure apart from an uncaught
    capability ``ApplicationError`` / ``TransportError``.
    """

    def __init__(self, message: str, *, kind: str = "program_error", trace: Optional[str] = None) -> None:
        super().__init__(message, trace=trace)
        self.kind = kind


class CodegenError(CodemodeError):
    """Raised when the model does not produce a usable program."""
