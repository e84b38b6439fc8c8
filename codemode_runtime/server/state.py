"""
Runtime State.

Holds the process-wide, read-only components the endpoints share: the
capability catalog, the surface cache, the bridge, the executor and the code
generation model used by ``codemode_tool``. The state is built once (by the
lifespan, or injected by ``create_app``) and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from codemode_runtime.agent import CodeGenerator, CodemodeTool
from codemode_runtime.bridge import CapabilityBridge, McpHttpBridge
from codemode_runtime.catalog import CapabilityCatalog, fluma_catalog, load_catalog
from codemode_runtime.core.config import Settings
from codemode_runtime.core.errors import CodegenError
from codemode_runtime.executor import ProgramExecutor
from codemode_runtime.surface import SurfaceCache, SurfaceLanguage


@dataclass
class CodemodeState:
    catalog: CapabilityCatalog
    bridge: CapabilityBridge
    executor: ProgramExecutor
    surfaces: SurfaceCache = field(default_factory=SurfaceCache)
    owned_bridge: Optional[McpHttpBridge] = None
    codegen_model: Any = None

    @classmethod
    def from_components(
        cls,
        catalog: CapabilityCatalog,
        bridge: CapabilityBridge,
        *,
        codegen_model: Any = None,
        **executor_kwargs,
    ) -> "CodemodeState":
        return cls(
            catalog=catalog,
            bridge=bridge,
            executor=ProgramExecutor(catalog, bridge, **executor_kwargs),
            codegen_model=codegen_model,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CodemodeState":
        catalog = load_catalog(settings.catalog_path) if settings.catalog_path else fluma_catalog()
        tool_service = settings.tool_service
        bridge = McpHttpBridge(
            tool_service.url,
            auth_token=tool_service.auth_token,
            timeout=tool_service.timeout_seconds,
            catalog=catalog,
        )
        executor = ProgramExecutor.from_config(catalog, bridge, settings.sandbox)
        return cls(
            catalog=catalog,
            bridge=bridge,
            executor=executor,
            owned_bridge=bridge,
            codegen_model=settings.codegen.model,
        )

    def codemode_tool(self, session_id: str, model: Any = None) -> CodemodeTool:
        """Build the ``codemode`` meta-tool for one backend session.

        Programs are generated with ``model``, or the configured code generation
        model, against the cached Python surface of the catalog.
        """
        model = model if model is not None else self.codegen_model
        if model is None:
            raise CodegenError("No code generation model is configured")
        surface = self.surfaces.get_or_generate(self.catalog, SurfaceLanguage.PYTHON)
        return CodemodeTool(CodeGenerator(model, surface), self.executor, session_id)

    async def aclose(self) -> None:
        if self.owned_bridge is not None:
            await self.owned_bridge.aclose()
