from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode
from ...util.subprocess import INSPECTION_TIMEOUT, CmdOutcome

DEFAULT_LOG_LIMIT = 10
MAX_LOG_LIMIT = 50


def _git(ctx: ExecutorContext, args: list[str]) -> CmdOutcome:
    return ctx.commands.run_allowed("git", args, timeout=INSPECTION_TIMEOUT)


def parse_status(stdout: str) -> dict[str, Any]:
    files = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        files.append({"status": line[:2].strip(), "path": line[3:].strip()})
    summary = "clean" if not files else f"{len(files)} changed file" + ("" if len(files) == 1 else "s")
    return {"clean": not files, "files": files, "summary": summary}


@dataclass
class GitStatusTool:
    spec: ToolSpec = ToolSpec(
        name="git_status",
        description="Show the working tree status of the repository in the base directory.",
        parameters={"type": "object", "properties": {}},
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        out = _git(ctx, ["status", "--short"])
        if out.error is not None:
            return ToolResult.from_error(out.error)
        return ToolResult.success(parse_status(out.stdout))


@dataclass
class GitDiffTool:
    spec: ToolSpec = ToolSpec(
        name="git_diff",
        description="Show a diffstat of unstaged (or staged) changes, optionally for one path.",
        parameters={
            "type": "object",
            "properties": {
                "staged": {"type": "boolean", "default": False, "description": "Diff the index instead of the work tree."},
                "path": {"type": "string", "description": "Limit the diff to this path."},
            },
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        path = args.get("path")
        if path is not None and path.strip().startswith("-"):
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Path cannot start with '-'.")

        cmd = ["diff"]
        if args.get("staged"):
            cmd.append("--staged")
        cmd.append("--stat")
        if path:
            cmd += ["--", path.strip()]
        out = _git(ctx, cmd)
        if out.error is not None:
            return ToolResult.from_error(out.error)
        return ToolResult.success({"diff": out.stdout, "staged": bool(args.get("staged")), "path": path})


@dataclass
class GitLogTool:
    spec: ToolSpec = ToolSpec(
        name="git_log",
        description="Show recent commits, one line each.",
        parameters={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_LOG_LIMIT,
                    "default": DEFAULT_LOG_LIMIT,
                    "description": "Number of commits to show.",
                },
            },
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        limit = int(args.get("limit", DEFAULT_LOG_LIMIT))
        out = _git(ctx, ["log", "--oneline", "-n", str(limit)])
        if out.error is not None:
            return ToolResult.from_error(out.error)
        commits = []
        for line in out.stdout.splitlines():
            sha, _, subject = line.partition(" ")
            if sha:
                commits.append({"sha": sha, "subject": subject})
        return ToolResult.success({"commits": commits})
