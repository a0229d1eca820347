from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .memory_parser import parse_memory_command
from .task_parser import ParsedCommand, parse_task_command

_TRAILING_PUNCT = re.compile(r"[?.!]+$")


def _clean(value: str) -> str:
    return _TRAILING_PUNCT.sub("", value.strip()).strip()


# ---------------------------------------------------------------------------
# weather

_WEATHER_IN = re.compile(r"\bweather\b.*\b(?:in|for|at)\s+(.+)", re.IGNORECASE)
_WEATHER_SUFFIX = re.compile(r"^(.+?)\s+weather\b", re.IGNORECASE)
_NOT_A_PLACE = re.compile(r"\b(you|me|us|them|here|there|today|now|tomorrow)\b")
_VERBS = re.compile(
    r"\b(check|get|look|tell|find|fetch|see|weather|will|going|moment|please|what|whats|how|where)\b"
)


def is_likely_location(value: str) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return not (_NOT_A_PLACE.search(lowered) or _VERBS.search(lowered))


def extract_location(text: str) -> dict[str, Any]:
    m = _WEATHER_IN.search(text) or _WEATHER_SUFFIX.search(text)
    if m:
        candidate = _clean(m.group(1))
        if is_likely_location(candidate):
            return {"location": candidate}
    return {}


# ---------------------------------------------------------------------------
# recall

_HOW_OLD = re.compile(r"\bhow\s+old\s+am\s+i\b", re.IGNORECASE)
_WHATS_MY = re.compile(r"\bwhat(?:'?s|\s+is)\s+my\s+((?:\w+\s*)+)", re.IGNORECASE)
_MY_X = re.compile(r"^my\s+((?:\w+\s*)+)", re.IGNORECASE)
_DO_YOU_REMEMBER = re.compile(r"\bdo\s+you\s+remember\s+(.+)", re.IGNORECASE)
_WHEN_DID_I = re.compile(r"\bwhen\s+did\s+i\s+(.+)", re.IGNORECASE)
_ABOUT = re.compile(r"(?:about|regarding)\s+(.+)", re.IGNORECASE)
_RECALL_WORD = re.compile(r"recall\s+(.+)", re.IGNORECASE)
_LEADING_ABOUT = re.compile(r"^(?:about|regarding)\s+", re.IGNORECASE)


def extract_recall_query(text: str) -> dict[str, Any]:
    if _HOW_OLD.search(text):
        return {"query": "age"}
    for rx, lower in ((_WHATS_MY, True), (_MY_X, True), (_DO_YOU_REMEMBER, False), (_WHEN_DID_I, False)):
        m = rx.search(text)
        if m:
            q = _LEADING_ABOUT.sub("", _clean(m.group(1)))
            return {"query": q.lower() if lower else q} if q else {}
    for rx in (_ABOUT, _RECALL_WORD):
        m = rx.search(text)
        if m and _clean(m.group(1)):
            return {"query": _clean(m.group(1))}
    return {}


# ---------------------------------------------------------------------------
# catalogue


@dataclass(frozen=True)
class IntentPattern:
    """One catalogue entry.

    Either `parser` (which may pick any tool) or `pattern` + `tool` is set.
    Extracted args override `default_args`.
    """

    name: str
    priority: int
    tool: Optional[str] = None
    pattern: Optional[re.Pattern[str]] = None
    extract: Optional[Callable[[str], dict[str, Any]]] = None
    default_args: dict[str, Any] = field(default_factory=dict)
    parser: Optional[Callable[[str], Optional[ParsedCommand]]] = None

    def match(self, text: str) -> ParsedCommand | None:
        if self.parser is not None:
            return self.parser(text)
        if self.pattern is None or self.tool is None or not self.pattern.search(text):
            return None
        args = dict(self.default_args)
        if self.extract is not None:
            args.update(self.extract(text))
        return ParsedCommand(self.tool, args)


def _rx(p: str) -> re.Pattern[str]:
    return re.compile(p, re.IGNORECASE)


_OPEN = {"status": "open"}
_RECENT = {"query": "recent items"}

DEFAULT_INTENTS: tuple[IntentPattern, ...] = (
    IntentPattern("task_command", 120, parser=parse_task_command),
    IntentPattern("memory_command", 115, parser=parse_memory_command),
    IntentPattern("weather", 110, tool="get_weather", pattern=_rx(r"\bweather\b"), extract=extract_location),
    IntentPattern(
        "task_query",
        100,
        tool="task_list",
        pattern=_rx(r"\b(what('s| is| are)?|show|list|get|check|see|view)\b.*(task|todo|to-?do|to do)"),
        default_args=_OPEN,
    ),
    IntentPattern("my_tasks", 90, tool="task_list", pattern=_rx(r"\b(my|the)\s*(task|todo)s?\b"), default_args=_OPEN),
    IntentPattern(
        "what_to_do",
        85,
        tool="task_list",
        pattern=_rx(r"\bwhat\s+(do\s+i\s+have\s+to|should\s+i|need\s+to)\b"),
        default_args=_OPEN,
    ),
    IntentPattern("time", 80, tool="get_time", pattern=_rx(r"\b(what|current|tell\s+me)\b.*\b(time|date)\b")),
    IntentPattern(
        "personal_fact",
        75,
        tool="recall",
        pattern=_rx(r"\b(how\s+old\s+am\s+i|what('?s|\s+is)\s+my\s+\w+)\b"),
        extract=extract_recall_query,
        default_args=_RECENT,
    ),
    IntentPattern(
        "remember_question",
        72,
        tool="recall",
        pattern=_rx(r"\b(do\s+you\s+remember(?!\s+to\b)|when\s+did\s+i)\b"),
        extract=extract_recall_query,
        default_args=_RECENT,
    ),
    IntentPattern(
        "know_about",
        70,
        tool="recall",
        pattern=_rx(r"\b(what|do\s+you)\s+(know|remember)\s+(about|regarding)\b"),
        extract=extract_recall_query,
        default_args=_RECENT,
    ),
    IntentPattern(
        "my_fact",
        68,
        tool="recall",
        pattern=_rx(r"^my\s+(age|birthday|name|address|phone|email)[?]?$"),
        extract=extract_recall_query,
        default_args=_RECENT,
    ),
)

# Prose that announces an action the model did not take.
ACTION_INTENT_PHRASES: tuple[re.Pattern[str], ...] = (
    _rx(r"I('ll| will)\s+(fetch|get|check|list|look up|find|retrieve|delegate|ask)"),
    _rx(r"Let me\s+(fetch|get|check|list|look up|find|retrieve|delegate|ask)"),
    _rx(r"I('m going to|'ll)\s+(fetch|get|check|list|delegate)"),
    _rx(r"Just a moment"),
    _rx(r"One moment"),
    _rx(r"Checking"),
)


def announces_action(reply: str) -> bool:
    return any(p.search(reply or "") for p in ACTION_INTENT_PHRASES)
