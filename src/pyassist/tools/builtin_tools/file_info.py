from __future__ import annotations
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied


@dataclass
class FileInfoTool:
    spec: ToolSpec = ToolSpec(
        name="file_info",
        description="Show size, type, modification time and permissions of a file or directory.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "minLength": 1, "description": "Path relative to the base directory."},
            },
            "required": ["path"],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        path = args["path"]
        try:
            p = ctx.paths.resolve_allowed(path, "read")
        except PathDenied:
            return ToolResult.from_error(make_permission_error(self.spec.name, path, ctx.permissions_path))

        st = ctx.stat_cache.get(p)
        if st is None:
            return ToolResult.failure(ErrorCode.NOT_FOUND, f"Path not found: {path}")
        try:
            is_symlink = stat.S_ISLNK(os.lstat(p).st_mode)
        except OSError:
            is_symlink = False

        is_dir = stat.S_ISDIR(st.st_mode)
        return ToolResult.success(
            {
                "path": path,
                "type": "directory" if is_dir else "file",
                "size": st.st_size,
                "modified": datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat(),
                "permissions": oct(st.st_mode)[-3:],
                "is_file": stat.S_ISREG(st.st_mode),
                "is_directory": is_dir,
                "is_symlink": is_symlink,
            }
        )
