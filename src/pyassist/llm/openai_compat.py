from __future__ import annotations

import json
import re
import socket
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from ..tools.base import ToolCall, ToolSpec
from .base import CancelToken, CompletionOptions, CompletionResult, StreamChunk, TokenUsage
from .retry import RetryOptions, with_retry

COMPLETION_TIMEOUT = 60
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant. Use the provided tools to satisfy user requests."

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class ProviderError(RuntimeError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


def _openai_tools(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description or f"Tool: {t.name}",
                "parameters": t.parameters,
            },
        }
        for t in tools
    ]


def _compact_signature(spec: ToolSpec) -> str:
    props = spec.parameters.get("properties") or {}
    required = set(spec.required)
    args = []
    for name, schema in props.items():
        typ = schema.get("type", "any") if isinstance(schema, dict) else "any"
        if isinstance(schema, dict) and schema.get("enum"):
            typ = "|".join(repr(v) for v in schema["enum"])
        args.append(f"{name}{'' if name in required else '?'}: {typ}")
    return f"{spec.name}({', '.join(args)}) - {spec.description}"


def compact_tools_prompt(tools: list[ToolSpec]) -> str:
    lines = "\n".join(_compact_signature(t) for t in tools)
    return (
        "\n\n# TOOLS\nYou have access to the following tools. To use a tool, YOU MUST respond with a JSON object "
        'in this format:\n{"tool": "tool_name", "args": {...}}\n\nDo not add explanation. JUST JSON.\n\n' + lines
    )


def _first_json_object(text: str) -> str | None:
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_compact_tool_call(content: str) -> ToolCall | None:
    """Extract a {"tool": ..., "args": {...}} object from a model reply.

    Accepts raw JSON or a fenced ```json block. Anything else is prose.
    """
    text = content.strip()
    if text.startswith("```"):
        m = _FENCE_RE.search(text)
        if m:
            text = m.group(1).strip()
    raw = _first_json_object(text)
    if raw is None:
        return None
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(obj, dict) or not isinstance(obj.get("tool"), str) or not isinstance(obj.get("args"), dict):
        return None
    return ToolCall.from_obj(obj)


@dataclass
class OpenAICompatProvider:
    """
    Minimal OpenAI-compatible Chat Completions client.
    Works with OpenAI and compatible gateways (Groq, OpenRouter, vLLM, LM Studio, etc.)
    """
    model: str
    base_url: str
    api_key: str
    provider_name: str = "openai"
    max_retries: int = 3
    timeout: float = COMPLETION_TIMEOUT
    on_retry: Callable[[int, int, BaseException], None] | None = None
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def _messages(self, prompt: str, history: list[dict[str, Any]] | None, system_prompt: str | None) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT}]
        messages += list(history or [])
        if prompt:
            messages.append({"role": "user", "content": prompt})
        return messages

    def _request(self, payload: dict[str, Any]) -> urllib.request.Request:
        if not self.api_key:
            raise ProviderError("Missing API key. Set ASSISTANT_API_KEY or configure the provider YAML.")
        url = self.base_url.rstrip("/") + "/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        return urllib.request.Request(url, data=json.dumps(payload).encode("utf-8"), headers=headers, method="POST")

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        req = self._request(payload)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if hasattr(e, "read") else ""
            raise ProviderError(f"Provider HTTPError {e.code}: {e.reason} {body}".strip(), status=e.code) from e
        except (socket.timeout, TimeoutError) as e:
            raise ProviderError(f"Request timeout after {self.timeout} seconds", status=408) from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, (socket.timeout, TimeoutError)):
                raise ProviderError(f"Request timeout after {self.timeout} seconds", status=408) from e
            raise ProviderError(f"Provider URLError: {e.reason}") from e
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ProviderError(f"Provider returned invalid JSON: {e.msg}") from e

    def _retry_options(self) -> RetryOptions:
        return RetryOptions(max_retries=self.max_retries, base_delay_ms=1000, on_retry=self.on_retry)

    def complete(
        self,
        prompt: str,
        tools: list[ToolSpec],
        history: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        options: CompletionOptions | None = None,
    ) -> CompletionResult:
        options = options or CompletionOptions()
        messages = self._messages(prompt, history, system_prompt)
        compact = options.tool_format == "compact"

        payload: dict[str, Any] = {"model": self.model, "messages": messages, "temperature": options.temperature}
        if tools:
            if compact:
                messages[0]["content"] += compact_tools_prompt(tools)
            else:
                payload["tools"] = _openai_tools(tools)
                payload["tool_choice"] = "auto"

        try:
            data = with_retry(lambda: self._post(payload), self._retry_options(), sleep=self.sleep)
        except ProviderError as e:
            return CompletionResult(ok=False, error=str(e))

        usage = TokenUsage.from_obj(data.get("usage"))
        choices = data.get("choices") or []
        if not choices:
            return CompletionResult(ok=False, error="No choices returned", usage=usage)
        msg = choices[0].get("message") or {}

        for tc in msg.get("tool_calls") or []:
            fn = tc.get("function") or {}
            arg_str = fn.get("arguments") or "{}"
            try:
                args = json.loads(arg_str) if isinstance(arg_str, str) else (arg_str or {})
            except json.JSONDecodeError:
                return CompletionResult(ok=False, error=f"Model sent malformed arguments for '{fn.get('name')}'.", usage=usage)
            call = ToolCall.from_obj({"tool_name": fn.get("name"), "args": args})
            if call is None:
                return CompletionResult(ok=False, error="Model sent a malformed tool call.", usage=usage)
            return CompletionResult(ok=True, tool_call=call, usage=usage)

        content = msg.get("content") or ""
        if not content.strip():
            return CompletionResult(ok=False, error="Model returned an empty response. Try rephrasing.", usage=usage)
        if compact:
            call = parse_compact_tool_call(content)
            if call is not None:
                return CompletionResult(ok=True, tool_call=call, usage=usage)
        return CompletionResult(ok=True, reply=content, usage=usage)

    def stream(
        self,
        prompt: str,
        history: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        cancel: CancelToken | None = None,
    ) -> Iterator[StreamChunk]:
        """Stream a prose reply. Tool calls are not supported here; use complete()."""
        payload = {
            "model": self.model,
            "messages": self._messages(prompt, history, system_prompt),
            "temperature": 0.2,
            "stream": True,
        }
        try:
            req = self._request(payload)
            resp = urllib.request.urlopen(req, timeout=self.timeout)
        except ProviderError as e:
            yield StreamChunk(done=True, error=str(e))
            return
        except urllib.error.HTTPError as e:
            yield StreamChunk(done=True, error=f"Provider HTTPError {e.code}: {e.reason}")
            return
        except (socket.timeout, TimeoutError):
            yield StreamChunk(done=True, error=f"Request timeout after {self.timeout} seconds")
            return
        except urllib.error.URLError as e:
            yield StreamChunk(done=True, error=f"Provider URLError: {e.reason}")
            return

        # OpenAI-compatible servers stream SSE lines of the form:
        #   data: {"choices":[{"delta":{...}}]}
        # ending with:
        #   data: [DONE]
        with resp:
            try:
                for raw_line in resp:
                    if cancel is not None and cancel.cancelled:
                        yield StreamChunk(done=True, error="cancelled")
                        return
                    line = raw_line.decode("utf-8", errors="replace").strip()
                    if not line.startswith("data:"):
                        continue
                    data_str = line[len("data:"):].strip()
                    if data_str == "[DONE]":
                        break
                    try:
                        ev = json.loads(data_str)
                    except json.JSONDecodeError:
                        continue
                    choices = ev.get("choices") or []
                    if not choices:
                        continue
                    delta = choices[0].get("delta") or {}
                    if delta.get("content"):
                        yield StreamChunk(content=str(delta["content"]))
            except (socket.timeout, TimeoutError):
                yield StreamChunk(done=True, error=f"Stream timed out after {self.timeout} seconds")
                return
            except OSError as e:
                yield StreamChunk(done=True, error=f"Stream failed: {e}")
                return
        yield StreamChunk(done=True)
