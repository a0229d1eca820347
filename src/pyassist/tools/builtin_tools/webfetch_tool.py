from __future__ import annotations

import re
import socket
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Any

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode

LOOKUP_TIMEOUT = 6
MAX_CONTENT_CHARS = 8000
TRUNCATED_MARKER = "...[truncated]"


class _HTMLTextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs):  # type: ignore[override]
        if tag.lower() in {"script", "style", "noscript"}:
            self._skip_depth += 1

    def handle_endtag(self, tag: str):  # type: ignore[override]
        if tag.lower() in {"script", "style", "noscript"} and self._skip_depth > 0:
            self._skip_depth -= 1

    def handle_data(self, data: str):  # type: ignore[override]
        if self._skip_depth > 0:
            return
        text = data.strip()
        if text:
            self._parts.append(text)

    def text(self) -> str:
        joined = "\n".join(self._parts)
        # collapse excessive blank lines
        joined = re.sub(r"\n{3,}", "\n\n", joined)
        return joined.strip()


def html_to_text(html: str) -> str:
    parser = _HTMLTextExtractor()
    parser.feed(html)
    parser.close()
    return parser.text()


def _decode(raw: bytes) -> str:
    for enc in ("utf-8", "utf-8-sig"):
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    return raw.decode("latin-1")


@dataclass
class ReadUrlTool:
    spec: ToolSpec = ToolSpec(
        name="read_url",
        description=f"Fetch an http(s) URL and return its readable text (HTML converted, max {MAX_CONTENT_CHARS} chars).",
        parameters={
            "type": "object",
            "properties": {
                "url": {"type": "string", "minLength": 1, "description": "The URL to fetch."},
            },
            "required": ["url"],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        url = args["url"].strip()
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Only http and https URLs are supported: {url}")

        req = urllib.request.Request(url, headers={"User-Agent": "pyassist/0.1"})
        try:
            with urllib.request.urlopen(req, timeout=LOOKUP_TIMEOUT) as resp:
                raw = resp.read()
                content_type = (resp.headers.get("Content-Type") or "").lower()
        except urllib.error.HTTPError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Fetch failed: HTTP {e.code} {e.reason}")
        except (socket.timeout, TimeoutError):
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Fetch timed out after {LOOKUP_TIMEOUT}s.")
        except urllib.error.URLError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Fetch failed: {e.reason}")

        text = _decode(raw)
        if "html" in content_type or "<html" in text[:1000].lower():
            text = html_to_text(text)

        if len(text) > MAX_CONTENT_CHARS:
            text = text[:MAX_CONTENT_CHARS] + TRUNCATED_MARKER
        return ToolResult.success({"url": url, "content": text, "length": len(text)})
