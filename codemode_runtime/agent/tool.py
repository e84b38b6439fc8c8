"""The ``codemode`` meta-tool.

A model-calling loop gets one tool instead of one tool per capability: it
describes what it wants done, the tool generates a program, runs it in the
sandbox and hands back a JSON string the model can read.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from pydantic_ai import Agent, Tool

from codemode_runtime.executor import ProgramExecutor

from .codegen import CodeGenerator

logger = logging.getLogger(__name__)

CODEMODE_TOOL_NAME = "codemode"
CODEMODE_TOOL_DESCRIPTION = (
    "Generate and execute Python code to accomplish a task using the available tools. "
    "Use this when you need to work with events, RSVPs, or user profiles."
)


def build_system_prompt(descriptions: str) -> str:
    """System prompt of a chat agent whose only tool is ``codemode``."""
    return (
        "You are a helpful assistant for Fluma, an event management application.\n\n"
        'You have access to a special "codemode" tool that generates and executes Python code to accomplish tasks.\n'
        "The codemode tool can work with:\n\n"
        f"{descriptions}\n\n"
        "When users ask about events, RSVPs, or their profile, use the codemode tool with a clear function description.\n\n"
        "IMPORTANT: After executing code, always provide a detailed, human-friendly summary of the results. "
        "For events, include:\n"
        "- Event title\n"
        "- Location\n"
        "- Date and time (formatted nicely)\n"
        "- Host information\n"
        "- RSVP status if applicable\n\n"
        'Never just say "Found X events" - always list the actual event details.'
    )


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, default=str)


class CodemodeTool:
    def __init__(self, generator: CodeGenerator, executor: ProgramExecutor, session_id: str) -> None:
        self._generator = generator
        self._executor = executor
        self._session_id = session_id

    async def run(self, function_description: str) -> str:
        """Generate and execute code for a task.

        Args:
            function_description: Description of what the code should accomplish.
        """
        try:
            code = await self._generator.generate(function_description)
        except Exception as e:
            logger.warning("Code generation failed: %s", e, exc_info=True)
            return _dumps({"success": False, "error": str(e) or type(e).__name__})

        result = await self._executor.execute(code, self._session_id)
        if not result.success:
            return _dumps({"success": False, "error": result.error})
        return _dumps({"success": True, "code": code, "result": result.result})

    def as_pydantic_ai_tool(self) -> Tool:
        return Tool(self.run, takes_ctx=False, name=CODEMODE_TOOL_NAME, description=CODEMODE_TOOL_DESCRIPTION)


def build_chat_agent(model: Any, tool: CodemodeTool, descriptions: str) -> Agent:
    """Chat agent wired with the ``codemode`` tool and the capability descriptions."""
    return Agent(model, system_prompt=build_system_prompt(descriptions), tools=[tool.as_pydantic_ai_tool()])
