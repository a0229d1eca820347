from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..base import CONFIRM_PARAM, ToolSpec, ToolResult
from ..context import ExecutorContext


@dataclass
class RunCmdTool:
    spec: ToolSpec = ToolSpec(
        name="run_cmd",
        description=(
            "Run an allowlisted command in the base directory. The command line is split "
            "shell-style but never run through a shell (no pipes, globbing or redirects)."
        ),
        parameters={
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Command line, e.g. 'ls -la src'."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["command"],
        },
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        out = ctx.commands.run_text(args["command"], timeout=ctx.command_timeout)
        if out.error is not None:
            res = ToolResult.from_error(out.error)
            if out.exit_code is not None:
                res.debug = {"stdout": out.stdout, "stderr": out.stderr, "exit_code": out.exit_code}
            return res
        return ToolResult.success(out.result_dict())
