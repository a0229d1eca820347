from __future__ import annotations

import re

from .task_parser import ParsedCommand

_REMEMBER = re.compile(r"^remember\b(.*)$", re.IGNORECASE | re.DOTALL)
_RECALL = re.compile(r"^recall\b(.*)$", re.IGNORECASE | re.DOTALL)
_MEM_ADD = re.compile(r"^(?:mem|memory)\s+add\s+(.+)$", re.IGNORECASE | re.DOTALL)
_MEM_SEARCH = re.compile(r"^(?:mem|memory)\s+search\s+(.+)$", re.IGNORECASE | re.DOTALL)
_LIMIT = re.compile(r"--limit\s+(\d+)")
_OFFSET = re.compile(r"--offset\s+(\d+)")

DEFAULT_SEARCH_LIMIT = 5


def parse_memory_command(text: str) -> ParsedCommand | None:
    s = (text or "").strip()
    if not s:
        return None

    m = _REMEMBER.match(s)
    if m:
        body = m.group(1).strip()
        if not body:
            return ParsedCommand(error="remember requires text.")
        return ParsedCommand("remember", {"text": body})

    m = _RECALL.match(s)
    if m:
        query = m.group(1).strip()
        if not query:
            return ParsedCommand(error="recall requires a query.")
        return ParsedCommand("recall", {"query": query})

    m = _MEM_ADD.match(s)
    if m:
        return ParsedCommand("memory_add", {"text": m.group(1).strip()})

    m = _MEM_SEARCH.match(s)
    if m:
        query = m.group(1)
        limit, offset = DEFAULT_SEARCH_LIMIT, 0
        lm = _LIMIT.search(query)
        if lm:
            limit = int(lm.group(1))
            query = query.replace(lm.group(0), "", 1)
        om = _OFFSET.search(query)
        if om:
            offset = int(om.group(1))
            query = query.replace(om.group(0), "", 1)
        query = " ".join(query.split())
        if not query:
            return ParsedCommand(error="memory search requires a query.")
        return ParsedCommand("memory_search", {"query": query, "limit": limit, "offset": offset})

    return None
