from __future__ import annotations
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode, make_permission_error
from ...util.fs import PathDenied, PathGuard

# Build output and coverage trees; hidden names are skipped separately.
SKIP_DIRS = frozenset({"dist", "coverage"})


def _walk(root: Path, paths: PathGuard) -> Iterator[Path]:
    try:
        children = sorted(root.iterdir(), key=lambda x: x.name)
    except OSError:
        return
    for child in children:
        if child.name.startswith(".") or child.name in SKIP_DIRS:
            continue
        if not paths.is_allowed(child, "list"):
            continue
        if child.is_dir() and not child.is_symlink():
            yield from _walk(child, paths)
        elif child.is_file():
            yield child


def _search(file: Path, rx: re.Pattern[str]) -> list[tuple[int, str, str]]:
    try:
        text = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []
    hits = []
    for n, line in enumerate(text.splitlines(), start=1):
        m = rx.search(line)
        if m:
            hits.append((n, line.strip(), m.group(0)))
    return hits


@dataclass
class GrepTool:
    spec: ToolSpec = ToolSpec(
        name="grep",
        description=(
            "Search file contents with a regular expression. A directory is searched recursively; "
            "hidden entries and files over the read size limit are skipped."
        ),
        parameters={
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "minLength": 1, "description": "Regular expression to search for."},
                "path": {"type": "string", "minLength": 1, "description": "File or directory relative to the base directory."},
                "case_sensitive": {"type": "boolean", "default": False},
                "max_results": {"type": "integer", "minimum": 1, "description": "Stop after this many matches."},
            },
            "required": ["pattern", "path"],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        path = args["path"]
        try:
            target = ctx.paths.resolve_allowed(path, "read")
        except PathDenied:
            return ToolResult.from_error(make_permission_error(self.spec.name, path, ctx.permissions_path))

        st = ctx.stat_cache.get(target)
        if st is None:
            return ToolResult.failure(ErrorCode.NOT_FOUND, f"Path not found: {path}")

        flags = 0 if args.get("case_sensitive", False) else re.IGNORECASE
        try:
            rx = re.compile(args["pattern"], flags)
        except re.error as e:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Invalid regex pattern: {e}")

        if stat.S_ISDIR(st.st_mode):
            files: Iterator[Path] = _walk(target, ctx.paths)
        elif stat.S_ISREG(st.st_mode):
            files = iter([target])
        else:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Path '{path}' is not a file or directory.")

        max_results = args.get("max_results")
        matches: list[dict[str, Any]] = []
        skipped: list[str] = []
        truncated = False
        for file in files:
            rel = os.path.relpath(file, ctx.base_dir)
            try:
                size = file.stat().st_size
            except OSError:
                continue
            if size > ctx.limits.max_read_size:
                skipped.append(rel)
                continue
            for line, text, match in _search(file, rx):
                matches.append({"file": rel, "line": line, "text": text, "match": match})
            if max_results and len(matches) >= max_results:
                truncated = len(matches) > max_results or next(files, None) is not None
                del matches[max_results:]
                break

        return ToolResult.success(
            {
                "matches": matches,
                "count": len(matches),
                "truncated": truncated,
                "skipped_files": skipped,
            }
        )
