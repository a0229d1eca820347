from __future__ import annotations
import shutil
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..base import CONFIRM_PARAM, ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied

_PARAMS = {
    "type": "object",
    "properties": {
        "source": {"type": "string", "minLength": 1, "description": "Source file path relative to the base directory."},
        "destination": {"type": "string", "minLength": 1, "description": "Destination file path relative to the base directory."},
        "confirm": CONFIRM_PARAM,
    },
    "required": ["source", "destination"],
}


def _transfer(tool_name: str, ctx: ExecutorContext, args: dict[str, Any], *, keep_source: bool) -> ToolResult:
    if (denied := ctx.confirmation.check(tool_name, args)) is not None:
        return denied

    source, destination = args["source"], args["destination"]
    try:
        src = ctx.paths.resolve_allowed(source, "read")
    except PathDenied:
        return ToolResult.from_error(make_permission_error(tool_name, source, ctx.permissions_path))
    try:
        dst = ctx.paths.resolve_allowed(destination, "write")
    except PathDenied:
        return ToolResult.from_error(make_permission_error(tool_name, destination, ctx.permissions_path))

    st = ctx.stat_cache.get(src)
    if st is None:
        return ToolResult.failure(ErrorCode.NOT_FOUND, f"Source not found: {source}")
    if not stat.S_ISREG(st.st_mode):
        return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Source '{source}' is not a regular file.")
    dst_st = ctx.stat_cache.get(dst)
    if dst_st is not None and stat.S_ISDIR(dst_st.st_mode):
        return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Destination '{destination}' is a directory.")

    try:
        ctx.stat_cache.mkdir(dst.parent)
        if keep_source:
            shutil.copy2(src, dst)
        else:
            Path(src).replace(dst)
    except OSError as e:
        verb = "copy" if keep_source else "move"
        return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Failed to {verb} file: {e}")
    finally:
        ctx.stat_cache.invalidate(src)
        ctx.stat_cache.invalidate(dst)
    return ToolResult.success({"source": source, "destination": destination})


@dataclass
class MoveFileTool:
    spec: ToolSpec = ToolSpec(
        name="move_file",
        description="Move or rename a file. An existing destination file is overwritten.",
        parameters=_PARAMS,
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        return _transfer(self.spec.name, ctx, args, keep_source=False)


@dataclass
class CopyFileTool:
    spec: ToolSpec = ToolSpec(
        name="copy_file",
        description="Copy a file. An existing destination file is overwritten.",
        parameters=_PARAMS,
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        return _transfer(self.spec.name, ctx, args, keep_source=True)
