from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..base import CONFIRM_PARAM, ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied


@dataclass
class WriteFileTool:
    spec: ToolSpec = ToolSpec(
        name="write_file",
        description="Create or overwrite a text file. Parent directories are created as needed.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "minLength": 1, "description": "File path relative to the base directory."},
                "content": {"type": "string", "description": "Full file content."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["path", "content"],
        },
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        path = args["path"]
        content = args["content"]
        try:
            p = ctx.paths.resolve_allowed(path, "write")
        except PathDenied:
            return ToolResult.from_error(make_permission_error(self.spec.name, path, ctx.permissions_path))

        data = content.encode("utf-8")
        if len(data) > ctx.limits.max_write_size:
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Content is {len(data)} bytes, over the {ctx.limits.max_write_size} byte write limit.",
            )

        try:
            ctx.stat_cache.mkdir(p.parent)
            p.write_bytes(data)
        except OSError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Failed to write file: {e}")
        finally:
            ctx.stat_cache.invalidate(p)
        return ToolResult.success({"bytes": len(data)})
