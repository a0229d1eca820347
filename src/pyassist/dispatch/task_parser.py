from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable

_EXPLICIT_ADD = re.compile(r"^(?:task|todo)\s+add\s+(.+)$", re.IGNORECASE)
_IMPLICIT_TODO = re.compile(r"^todo\s+", re.IGNORECASE)
_LIST = re.compile(r"^(?:task|todo)\s+list\b", re.IGNORECASE)
_LIST_STATUS_FLAG = re.compile(r"--status\s+(open|done|all)\b", re.IGNORECASE)
_LIST_STATUS_TRAILING = re.compile(r"^(?:task|todo)\s+list\s+(open|done|all)\b", re.IGNORECASE)
_DONE = re.compile(r"^(?:task|todo)\s+done\s+(\d+)$", re.IGNORECASE)
_REMIND_TO_IN = re.compile(r"^remind me to (.+) in (\d+) (second|minute|hour)s?$", re.IGNORECASE)
_REMIND_IN_TO = re.compile(r"^remind me in (\d+) (second|minute|hour)s? to (.+)$", re.IGNORECASE)

_DUE = re.compile(r"--due\s+(\d{4}-\d{2}-\d{2}|tomorrow|today)\b", re.IGNORECASE)
_PRIORITY = re.compile(r"--priority\s+(low|medium|high)\b", re.IGNORECASE)

_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600}


@dataclass
class ParsedCommand:
    """A command recognized by a parser: a tool call, or an error for the user."""

    tool_name: str | None = None
    args: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.tool_name is not None


def resolve_due(value: str, today: Callable[[], date] = date.today) -> str:
    v = value.lower()
    if v == "today":
        return today().isoformat()
    if v == "tomorrow":
        return (today() + timedelta(days=1)).isoformat()
    return value


def _parse_add(text: str, today: Callable[[], date]) -> ParsedCommand:
    args: dict[str, Any] = {}
    clean = text
    m = _DUE.search(clean)
    if m:
        args["due"] = resolve_due(m.group(1), today)
        clean = clean.replace(m.group(0), "", 1)
    m = _PRIORITY.search(clean)
    if m:
        args["priority"] = m.group(1).lower()
        clean = clean.replace(m.group(0), "", 1)
    clean = " ".join(clean.split())
    if not clean:
        return ParsedCommand(error="task add requires text.")
    return ParsedCommand("task_add", {"text": clean, **args})


def parse_task_command(text: str, *, today: Callable[[], date] = date.today) -> ParsedCommand | None:
    """Recognize task, todo and reminder commands; None when the input is something else."""
    s = (text or "").strip()
    if not s:
        return None

    m = _EXPLICIT_ADD.match(s)
    if m:
        return _parse_add(m.group(1), today)

    if _IMPLICIT_TODO.match(s):
        rest = _IMPLICIT_TODO.sub("", s, count=1).strip()
        first = rest.split(" ")[0].lower() if rest else ""
        if first not in ("list", "done", "add"):
            return _parse_add(rest, today)

    if _LIST.match(s):
        status = "all"
        m = _LIST_STATUS_FLAG.search(s) or _LIST_STATUS_TRAILING.match(s)
        if m:
            status = m.group(1).lower()
        return ParsedCommand("task_list", {"status": status})

    m = _DONE.match(s)
    if m:
        return ParsedCommand("task_done", {"id": int(m.group(1))})

    m = _REMIND_TO_IN.match(s)
    if m:
        what, amount, unit = m.group(1), int(m.group(2)), m.group(3).lower()
        return ParsedCommand("reminder_add", {"text": what.strip(), "in_seconds": amount * _UNIT_SECONDS[unit]})
    m = _REMIND_IN_TO.match(s)
    if m:
        amount, unit, what = int(m.group(1)), m.group(2).lower(), m.group(3)
        return ParsedCommand("reminder_add", {"text": what.strip(), "in_seconds": amount * _UNIT_SECONDS[unit]})

    return None
