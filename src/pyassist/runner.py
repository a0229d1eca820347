from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Literal, Optional

from rich.console import Console
from rich.panel import Panel

from .app_context import AppContext
from .dispatch.dispatcher import DispatchDecision
from .llm.base import CancelToken, CompletionOptions, CompletionResult
from .session.models import Message
from .tools.base import ToolCall, ToolResult
from .tools.contract import ErrorCode

console = Console()

RouteKind = Literal["tool", "reply", "error", "needs_model"]

# Tool output kept in the session; the event log has the full record.
MAX_TOOL_MESSAGE_CHARS = 4000

NEEDS_MODEL_MESSAGE = (
    "No deterministic route matched and no model provider is configured. "
    "Use --provider or set ASSISTANT_BASE_URL / ASSISTANT_MODEL."
)
NO_PROVIDER_ERROR = "No model provider is configured."


@dataclass
class RouteOutcome:
    kind: RouteKind
    tool_call: Optional[ToolCall] = None
    result: Optional[ToolResult] = None
    reply: Optional[str] = None
    decision: Optional[DispatchDecision] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "tool_call": self.tool_call.to_dict() if self.tool_call else None,
            "result": self.result.to_dict() if self.result else None,
            "reply": self.reply,
            "dispatch": self.decision.action if self.decision else None,
        }


def _args_preview(args: dict) -> str:
    try:
        s = json.dumps(args, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        s = str(args)
    if len(s) > 2000:
        s = s[:2000] + "\n... (truncated)"
    return s


def _record(ctx: AppContext, event_type: str, data: dict[str, Any]) -> None:
    if ctx.events:
        ctx.events.append(event_type, data)


def _tool_message(call: ToolCall, res: ToolResult) -> Message:
    text = res.to_text()
    if len(text) > MAX_TOOL_MESSAGE_CHARS:
        text = text[:MAX_TOOL_MESSAGE_CHARS] + "... (truncated)"
    return Message(role="tool", content=text, name=call.tool_name)


def _run_tool(ctx: AppContext, call: ToolCall, decision: DispatchDecision | None, reply: str | None = None) -> RouteOutcome:
    if ctx.agent.allows(call.tool_name):
        res = ctx.executor.execute(call)
    else:
        res = ToolResult.failure(
            ErrorCode.VALIDATION_ERROR,
            f"Tool '{call.tool_name}' is not available to agent '{ctx.agent.name}'.",
        )

    if ctx.trace:
        body = _args_preview(call.args) + "\n\n" + json.dumps(res.to_dict(), ensure_ascii=False, indent=2, default=str)
        console.print(
            Panel.fit(
                body[:1200] + ("..." if len(body) > 1200 else ""),
                title=f"tool:{call.tool_name} ({'ok' if res.ok else 'error'})",
                border_style="green" if res.ok else "red",
            )
        )

    ctx.session.append(_tool_message(call, res))
    return RouteOutcome(kind="tool", tool_call=call, result=res, reply=reply, decision=decision)


def _complete(ctx: AppContext, text: str, history: list[dict[str, Any]]) -> CompletionResult:
    if ctx.provider is None:
        return CompletionResult(ok=False, error=NO_PROVIDER_ERROR)
    tools = ctx.agent_tool_specs()
    _record(
        ctx,
        "llm.request",
        {
            "agent": ctx.agent.name,
            "messages_count": len(history) + 1,
            "tools_count": len(tools),
            "tool_format": ctx.config.tool_format,
        },
    )
    t0 = time.perf_counter()
    if ctx.stream:
        result = _stream_reply(ctx, text, history)
    else:
        result = ctx.provider.complete(
            text,
            tools,
            history=history,
            system_prompt=ctx.agent.system_prompt or None,
            options=CompletionOptions(tool_format=ctx.config.tool_format),  # type: ignore[arg-type]
        )
    elapsed_ms = int((time.perf_counter() - t0) * 1000)

    if not result.ok:
        _record(ctx, "llm.error", {"elapsed_ms": elapsed_ms, "error": (result.error or "")[:2000]})
        return result

    _record(
        ctx,
        "llm.response",
        {
            "elapsed_ms": elapsed_ms,
            "text": (result.reply or "")[:4000],
            "tool_call": result.tool_call.to_dict() if result.tool_call else None,
            "usage": result.usage.__dict__ if result.usage else None,
        },
    )
    if ctx.trace:
        console.print(
            Panel.fit(
                json.dumps(history + [{"role": "user", "content": text}], ensure_ascii=False, indent=2)[:4000],
                title="LLM INPUT (messages)",
                border_style="cyan",
            )
        )
        llm_output = {
            "text": result.reply,
            "tool_call": result.tool_call.to_dict() if result.tool_call else None,
        }
        console.print(
            Panel.fit(
                json.dumps(llm_output, ensure_ascii=False, indent=2)[:4000],
                title="LLM OUTPUT",
                border_style="magenta",
            )
        )
    return result


def _stream_reply(ctx: AppContext, text: str, history: list[dict[str, Any]]) -> CompletionResult:
    """Prose-only turn; tokens are printed as they arrive."""
    if ctx.provider is None:
        return CompletionResult(ok=False, error=NO_PROVIDER_ERROR)
    parts: list[str] = []
    cancel = CancelToken()
    try:
        for chunk in ctx.provider.stream(
            text, history=history, system_prompt=ctx.agent.system_prompt or None, cancel=cancel
        ):
            if chunk.error:
                return CompletionResult(ok=False, error=chunk.error)
            if chunk.content:
                parts.append(chunk.content)
                console.print(chunk.content, end="", markup=False, highlight=False)
                console.file.flush()
            if chunk.done:
                break
    except KeyboardInterrupt:
        cancel.cancel()
        return CompletionResult(ok=False, error="Cancelled.")
    finally:
        if parts:
            console.print()
    reply = "".join(parts)
    if not reply.strip():
        return CompletionResult(ok=False, error="Model returned an empty response.")
    return CompletionResult(ok=True, reply=reply)


def route_input(ctx: AppContext, text: str) -> RouteOutcome:
    """Route one user input: deterministic dispatch first, then the model."""
    history = ctx.session.to_openai_messages()
    ctx.session.append(Message(role="user", content=text))

    decision = ctx.dispatcher.analyze(text, ctx.agent, history)
    _record(
        ctx,
        "dispatch.decision",
        {
            "action": decision.action,
            "tool_call": decision.tool_call.to_dict() if decision.tool_call else None,
            "error": decision.error,
            "debug": decision.debug,
        },
    )

    if decision.error:
        ctx.session.append(Message(role="assistant", content=decision.error))
        return RouteOutcome(kind="error", reply=decision.error, decision=decision)

    if decision.action == "auto_dispatch" and decision.tool_call is not None:
        return _run_tool(ctx, decision.tool_call, decision)

    if ctx.provider is None:
        return RouteOutcome(kind="needs_model", reply=NEEDS_MODEL_MESSAGE, decision=decision)

    result = _complete(ctx, text, history)
    if not result.ok:
        err_text = f"LLM call failed: {result.error}"
        ctx.session.append(Message(role="assistant", content=err_text))
        return RouteOutcome(kind="error", reply=err_text, decision=decision)

    if result.tool_call is not None:
        return _run_tool(ctx, result.tool_call, decision)

    reply = result.reply or ""
    ctx.session.append(Message(role="assistant", content=reply))

    enforced = ctx.dispatcher.enforce_action(reply, text, ctx.agent)
    if enforced is not None and enforced.tool_call is not None:
        _record(
            ctx,
            "dispatch.decision",
            {"action": enforced.action, "tool_call": enforced.tool_call.to_dict(), "debug": enforced.debug},
        )
        return _run_tool(ctx, enforced.tool_call, enforced, reply=reply)

    return RouteOutcome(kind="reply", reply=reply, decision=decision)
