"""Codemode runtime: typed capability surfaces and sandboxed program execution."""

__version__ = "0.1.0"

from .catalog import Capability, CapabilityCatalog, fluma_catalog
from .executor import ExecutionResult, ProgramExecutor
from .surface import SurfaceLanguage, generate_surface

__all__ = [
    "Capability",
    "CapabilityCatalog",
    "ExecutionResult",
    "ProgramExecutor",
    "SurfaceLanguage",
    "__version__",
    "fluma_catalog",
    "generate_surface",
]
