from __future__ import annotations
import stat
from dataclasses import dataclass
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied


@dataclass
class ListFilesTool:
    spec: ToolSpec = ToolSpec(
        name="list_files",
        description="List the entries of a directory (relative to the base directory). Hidden entries are skipped.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory path relative to the base directory. Default '.'"},
            },
            "required": [],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        path = args.get("path") or "."
        try:
            p = ctx.paths.resolve_allowed(path, "list")
        except PathDenied:
            return ToolResult.from_error(make_permission_error(self.spec.name, path, ctx.permissions_path))

        st = ctx.stat_cache.get(p)
        if st is None:
            return ToolResult.failure(ErrorCode.NOT_FOUND, f"Directory not found: {path}")
        if not stat.S_ISDIR(st.st_mode):
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Not a directory: {path}")

        entries = []
        try:
            children = sorted(p.iterdir(), key=lambda x: x.name)
        except OSError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Failed to list directory: {e}")
        for child in children:
            if child.name.startswith("."):
                continue
            if not ctx.paths.is_allowed(child, "list"):
                continue
            entries.append({"name": child.name, "type": "directory" if child.is_dir() else "file"})
        return ToolResult.success({"entries": entries})
