from .codegen import CodeGenerator, GeneratedProgram, build_codegen_prompt, strip_code_fences
from .tool import CodemodeTool, build_chat_agent, build_system_prompt

__all__ = [
    "CodeGenerator",
    "CodemodeTool",
    "GeneratedProgram",
    "build_chat_agent",
    "build_codegen_prompt",
    "build_system_prompt",
    "strip_code_fences",
]
