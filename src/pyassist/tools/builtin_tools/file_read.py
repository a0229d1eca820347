from __future__ import annotations
import stat
from dataclasses import dataclass
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied

DEFAULT_READ_LIMIT = 8192


@dataclass
class ReadFileTool:
    spec: ToolSpec = ToolSpec(
        name="read_file",
        description="Read a text file in byte pages. Use next_offset to continue until eof is true.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "minLength": 1, "description": "File path relative to the base directory."},
                "offset": {"type": "integer", "minimum": 0, "default": 0, "description": "Byte offset to start at."},
                "limit": {"type": "integer", "minimum": 1, "default": DEFAULT_READ_LIMIT, "description": "Max bytes to read."},
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
            return ToolResult.failure(ErrorCode.NOT_FOUND, f"File not found: {path}")
        if stat.S_ISDIR(st.st_mode):
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Path '{path}' is a directory, not a file.")

        offset = int(args.get("offset", 0))
        limit = min(int(args.get("limit", DEFAULT_READ_LIMIT)), ctx.limits.max_read_size)
        file_size = st.st_size

        if offset >= file_size:
            return ToolResult.success(
                {"content": "", "bytes_read": 0, "next_offset": offset, "eof": True, "file_size": file_size}
            )

        try:
            with p.open("rb") as f:
                f.seek(offset)
                raw = f.read(limit)
        except OSError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Failed to read file: {e}")

        next_offset = offset + len(raw)
        return ToolResult.success(
            {
                "content": raw.decode("utf-8", errors="replace"),
                "bytes_read": len(raw),
                "next_offset": next_offset,
                "eof": next_offset >= file_size,
                "file_size": file_size,
            }
        )
