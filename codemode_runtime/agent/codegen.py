"""Program generation.

Turns a natural-language function description into a program against the
generated ``codemode`` surface.

The generator is deliberately narrow:

- It only produces source code; it never executes anything.
- It embeds the Python type declaration of the catalog in the prompt, so the
  model sees exactly the capabilities the executor will dispatch.
- Markdown fences around the answer are stripped, anything else is returned
  verbatim and left to the executor's contract checks.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, Field
from pydantic_ai import Agent

from codemode_runtime.core.errors import CodegenError
from codemode_runtime.surface import GeneratedSurface, SurfaceLanguage

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_+-]*[ \t]*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)

EXAMPLE_PROGRAM = '''async def main():
    result = await codemode.create_event({
        "title": "My Event",
        "location": "San Francisco",
        "date": "2024-12-20T18:00:00Z",
    })
    return result'''


class GeneratedProgram(BaseModel):
    code: str = Field(..., description="Source of exactly one zero-argument async function.")


def strip_code_fences(code: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    m = _FENCE_RE.match(code)
    if m:
        return m.group("body").strip("\n")
    return code.strip("\n")


def build_codegen_prompt(type_declaration: str, function_description: str) -> str:
    return (
        'You are a code generating machine. Return your response as JSON with a "code" field.\n\n'
        "In addition to regular Python, you can also use the following functions:\n\n"
        f"{type_declaration}\n\n"
        "Generate an async function that achieves the goal. This async function doesn't accept any arguments.\n"
        'Return ONLY the Python code in the "code" field of your JSON response.\n\n'
        "Important notes:\n"
        "- Always pass arguments as a dict: await codemode.get_profile({}) not codemode.get_profile\n"
        "- For dates, use ISO 8601 format: \"2025-01-04T18:00:00Z\"\n"
        "- Imports are not available; run independent calls concurrently with await gather(...)\n"
        "- Failed calls raise ApplicationError or TransportError, both catchable as CapabilityError\n"
        "- The function should return the final result, and it must be JSON-serializable\n\n"
        "Example code:\n"
        f"{EXAMPLE_PROGRAM}\n\n"
        f"User request: {function_description}"
    )


class CodeGenerator:
    """Generate ``codemode`` programs with a Pydantic AI agent.

    Args:
        model: Pydantic AI model instance or identifier (e.g. ``"openai:gpt-4.1"``).
        surface: Generated Python surface of the catalog the programs run against.
    """

    def __init__(self, model: Any, surface: GeneratedSurface) -> None:
        if surface.language != SurfaceLanguage.PYTHON:
            raise ValueError(f"Programs are generated against the python surface, got {surface.language.value}")
        self._model = model
        self._surface = surface

    @property
    def surface(self) -> GeneratedSurface:
        return self._surface

    async def generate(self, function_description: str) -> str:
        if not function_description or not function_description.strip():
            raise CodegenError("Function description is empty")

        agent: Agent = Agent(
            self._model,
            output_type=GeneratedProgram,
            system_prompt="You write short asynchronous Python programs against a typed capability proxy.",
        )
        result = await agent.run(build_codegen_prompt(self._surface.type_declaration, function_description))
        code = strip_code_fences(result.output.code)
        if not code.strip():
            raise CodegenError("Model returned an empty program")
        logger.debug("Generated program (%d chars) for: %s", len(code), function_description)
        return code
