from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext


@dataclass
class GetTimeTool:
    spec: ToolSpec = ToolSpec(
        name="get_time",
        description="Get the current date and time.",
        parameters={
            "type": "object",
            "properties": {
                "format": {
                    "type": "string",
                    "enum": ["iso", "local", "readable"],
                    "description": "iso (UTC, ISO 8601), local (local time) or readable (default).",
                },
            },
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        fmt = args.get("format")
        now = datetime.now(timezone.utc)
        local = now.astimezone()
        if fmt == "iso":
            text = now.isoformat().replace("+00:00", "Z")
        elif fmt == "local":
            text = local.strftime("%Y-%m-%d %H:%M:%S")
        else:
            text = local.strftime("%A, %B %d, %Y %H:%M:%S %Z").strip()
        return ToolResult.success({"time": text, "timestamp": int(now.timestamp() * 1000)})
