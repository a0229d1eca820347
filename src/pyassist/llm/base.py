from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Optional, Protocol

from ..tools.base import ToolCall, ToolSpec

ToolFormat = Literal["standard", "compact"]


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @staticmethod
    def from_obj(obj: Any) -> "TokenUsage | None":
        if not isinstance(obj, dict):
            return None
        return TokenUsage(
            prompt_tokens=int(obj.get("prompt_tokens") or 0),
            completion_tokens=int(obj.get("completion_tokens") or 0),
            total_tokens=int(obj.get("total_tokens") or 0),
        )


@dataclass
class CompletionOptions:
    tool_format: ToolFormat = "standard"
    temperature: float = 0.2


@dataclass
class CompletionResult:
    """Either a tool call, a prose reply or an error; never more than one."""

    ok: bool
    tool_call: Optional[ToolCall] = None
    reply: Optional[str] = None
    usage: Optional[TokenUsage] = None
    error: Optional[str] = None


@dataclass
class StreamChunk:
    content: str = ""
    done: bool = False
    error: Optional[str] = None


@dataclass
class CancelToken:
    _event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class CompletionProvider(Protocol):
    def complete(
        self,
        prompt: str,
        tools: list[ToolSpec],
        history: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        options: CompletionOptions | None = None,
    ) -> CompletionResult: ...

    def stream(
        self,
        prompt: str,
        history: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        cancel: CancelToken | None = None,
    ) -> Iterator[StreamChunk]: ...
