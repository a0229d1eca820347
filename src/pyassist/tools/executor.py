from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rich.console import Console

from ..events.store import EventStore
from .base import ToolCall, ToolResult
from .context import ExecutorContext
from .contract import ErrorCode, make_blocklist_error
from .registry import ToolRegistry

console = Console()

# Audit records keep only a prefix of bulky string arguments.
AUDIT_TRUNCATE = 100
_BULKY_ARGS = {"content", "text", "body"}


def sanitize_args(args: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in args.items():
        if k in _BULKY_ARGS and isinstance(v, str) and len(v) > AUDIT_TRUNCATE:
            out[k] = v[:AUDIT_TRUNCATE] + f"... ({len(v)} chars)"
        else:
            out[k] = v
    return out


@dataclass
class ToolExecutor:
    """Runs one tool call under the permission policy.

    Order: deny_tools, schema validation, confirmation (read-only tools; mutating
    handlers check it themselves before anything else), then the handler. Every
    outcome, including handler crashes, comes back as a ToolResult.
    """

    registry: ToolRegistry
    context: ExecutorContext
    events: EventStore | None = None
    trace: bool = False

    def execute(self, call: ToolCall | dict[str, Any], *, context: ExecutorContext | None = None) -> ToolResult:
        ctx = (context or self.context).fresh()
        tc = ToolCall.from_obj(call)
        if tc is None:
            res = ToolResult.failure(
                ErrorCode.VALIDATION_ERROR,
                "Malformed tool call: expected {'tool_name': str, 'args': object}.",
            )
            return self._finish(None, {}, res, ctx)

        name, args = tc.tool_name, tc.args
        self._record("tool.call", {"tool": name, "args": sanitize_args(args)})

        if ctx.permissions.is_tool_denied(name):
            res = ToolResult.from_error(make_blocklist_error(name, ctx.permissions_path))
            self._record("tool.denied", {"tool": name, "reason": "deny_tools"})
            return self._finish(name, args, res, ctx)

        err = self.registry.validate(name, args)
        if err is not None:
            return self._finish(name, args, ToolResult.from_error(err), ctx)

        tool = self.registry.get(name)
        if not tool.spec.mutating:
            denied = ctx.confirmation.check(name, args)
            if denied is not None:
                return self._finish(name, args, denied, ctx)

        try:
            res = tool.execute(ctx, args)
        except Exception as e:
            res = ToolResult.failure(ErrorCode.EXEC_ERROR, f"Tool '{name}' failed: {type(e).__name__}: {e}")
        if res is None:
            res = ToolResult.failure(ErrorCode.EXEC_ERROR, f"Tool '{name}' returned no result.")
        return self._finish(name, args, res, ctx)

    def _finish(self, name: str | None, args: dict[str, Any], res: ToolResult, ctx: ExecutorContext) -> ToolResult:
        elapsed_ms = ctx.elapsed_ms()
        debug = dict(res.debug or {})
        debug.setdefault("tool", name)
        debug["elapsed_ms"] = elapsed_ms
        res.debug = debug
        self._record(
            "tool.result",
            {
                "tool": name,
                "ok": res.ok,
                "error_code": res.error.code.value if res.error else None,
                "elapsed_ms": elapsed_ms,
            },
        )
        if self.trace:
            status = "[green]ok[/green]" if res.ok else f"[red]{res.error.code.value}[/red]"  # type: ignore[union-attr]
            console.print(f"[dim]tool[/dim] {name} -> {status} ({elapsed_ms} ms)")
        return res

    def _record(self, event_type: str, data: dict[str, Any]) -> None:
        if self.events is not None:
            self.events.append(event_type, data)
