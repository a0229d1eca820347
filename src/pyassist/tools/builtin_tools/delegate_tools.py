from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext


def _delegate_spec(target: str, what: str) -> ToolSpec:
    return ToolSpec(
        name=f"delegate_to_{target}",
        description=f"Hand a task to the {target} agent ({what}).",
        parameters={
            "type": "object",
            "properties": {
                "task": {"type": "string", "minLength": 1, "description": "What the agent should do."},
            },
            "required": ["task"],
        },
        status="experimental",
    )


@dataclass
class DelegateTool:
    """Returns a handoff record. Switching agents is left to the user (/agent in the repl)."""

    target: str
    spec: ToolSpec

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        return ToolResult.success({"delegated_to": self.target, "task": args["task"]})


def delegate_tools() -> list[DelegateTool]:
    return [
        DelegateTool("coder", _delegate_spec("coder", "files, commands, git")),
        DelegateTool("organizer", _delegate_spec("organizer", "tasks, reminders, memory")),
        DelegateTool("assistant", _delegate_spec("assistant", "general help")),
    ]
