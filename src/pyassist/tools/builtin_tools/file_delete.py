from __future__ import annotations
import stat
from dataclasses import dataclass
from typing import Any

from ..base import CONFIRM_PARAM, ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied


@dataclass
class DeleteFileTool:
    spec: ToolSpec = ToolSpec(
        name="delete_file",
        description="Delete a single file. Directories are refused.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "minLength": 1, "description": "File path relative to the base directory."},
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
        if st is None:
            return ToolResult.failure(ErrorCode.NOT_FOUND, f"File not found: {path}")
        if stat.S_ISDIR(st.st_mode):
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Path '{path}' is a directory; only files can be deleted.")

        try:
            p.unlink()
        except FileNotFoundError:
            return ToolResult.failure(ErrorCode.NOT_FOUND, f"File not found: {path}")
        except OSError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Failed to delete file: {e}")
        finally:
            ctx.stat_cache.invalidate(p)
        return ToolResult.success({"deleted": path})
