from __future__ import annotations
import stat
from dataclasses import dataclass
from typing import Any

from ..base import CONFIRM_PARAM, ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied


@dataclass
class CreateDirectoryTool:
    spec: ToolSpec = ToolSpec(
        name="create_directory",
        description="Create a directory and any missing parents. An existing directory is not an error.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "minLength": 1, "description": "Directory path relative to the base directory."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["path"],
        },
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        path = args["path"]
        try:
            p = ctx.paths.resolve_allowed(path, "write")
        except PathDenied:
            return ToolResult.from_error(make_permission_error(self.spec.name, path, ctx.permissions_path))

        st = ctx.stat_cache.get(p)
        if st is not None:
            if stat.S_ISDIR(st.st_mode):
                return ToolResult.success({"path": path, "created": False})
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Path '{path}' already exists and is not a directory.")

        try:
            ctx.stat_cache.mkdir(p)
        except OSError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Failed to create directory: {e}")
        return ToolResult.success({"path": path, "created": True})
