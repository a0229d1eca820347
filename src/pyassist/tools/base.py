from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TYPE_CHECKING

from .contract import ErrorCode, ToolError, make_error

if TYPE_CHECKING:
    from .context import ExecutorContext

ToolStatus = Literal["ready", "experimental", "stub"]

CONFIRM_PARAM: dict[str, Any] = {
    "type": "boolean",
    "description": "Set to true to confirm a tool listed in require_confirmation_for.",
}


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any]   # JSONSchema
    status: ToolStatus = "ready"
    # Mutating handlers run the confirmation check themselves, first thing.
    mutating: bool = False

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required") or [])


class Tool(Protocol):
    spec: ToolSpec
    def execute(self, ctx: "ExecutorContext", args: dict[str, Any]) -> "ToolResult": ...


@dataclass
class ToolCall:
    tool_name: str
    args: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_obj(obj: Any) -> "ToolCall | None":
        """Normalize a tool call coming from the model or the CLI.

        Accepts the canonical {"tool_name", "args"} shape and the compact wire
        form {"tool", "args"}. Anything else returns None.
        """
        if isinstance(obj, ToolCall):
            return obj
        if not isinstance(obj, dict):
            return None
        name = obj.get("tool_name")
        if name is None:
            name = obj.get("tool")
        args = obj.get("args", {})
        if args is None:
            args = {}
        if not isinstance(name, str) or not name.strip() or not isinstance(args, dict):
            return None
        return ToolCall(tool_name=name.strip(), args=dict(args))

    def to_dict(self) -> dict[str, Any]:
        return {"tool_name": self.tool_name, "args": self.args}


@dataclass
class ToolResult:
    ok: bool
    result: Any = None
    error: ToolError | None = None
    debug: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.ok and self.error is not None:
            raise ValueError("ok result cannot carry an error")
        if not self.ok and self.error is None:
            raise ValueError("failed result must carry an error")

    @staticmethod
    def success(result: Any = None) -> "ToolResult":
        return ToolResult(ok=True, result=result)

    @staticmethod
    def failure(code: ErrorCode, message: str) -> "ToolResult":
        return ToolResult(ok=False, error=make_error(code, message))

    @staticmethod
    def from_error(error: ToolError) -> "ToolResult":
        return ToolResult(ok=False, error=error)

    @property
    def error_code(self) -> ErrorCode | None:
        return self.error.code if self.error else None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "ok": self.ok,
            "result": self.result,
            "error": self.error.to_dict() if self.error else None,
        }
        if self.debug is not None:
            d["_debug"] = self.debug
        return d

    def to_text(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)
