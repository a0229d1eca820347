from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..base import CONFIRM_PARAM, ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode
from ...storage.jsonl import StorageError, append_jsonl, read_jsonl
from ...storage.memory_store import (
    MemoryEntry,
    now_iso,
    read_memory,
    score_entry,
    sort_by_score_and_recency,
    write_memory,
)

MAX_RECALL = 5
DEFAULT_SEARCH_LIMIT = 5


def _storage_failure(e: StorageError) -> ToolResult:
    return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Memory storage failed: {e}")


@dataclass
class RememberTool:
    spec: ToolSpec = ToolSpec(
        name="remember",
        description="Store a fact or note in long-term memory.",
        parameters={
            "type": "object",
            "properties": {
                "text": {"type": "string", "minLength": 1, "description": "What to remember."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["text"],
        },
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        text = args["text"].strip()
        if not text:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Text cannot be empty.")
        try:
            memory = read_memory(ctx.storage.memory_path)
            limit = max(1, ctx.memory_limit)
            # Oldest entries are dropped so the new one fits under the limit.
            if len(memory.entries) >= limit:
                memory.entries = memory.entries[len(memory.entries) - (limit - 1):] if limit > 1 else []
            memory.entries.append(MemoryEntry(ts=now_iso(), text=text))
            write_memory(ctx.storage.memory_path, memory)
        except StorageError as e:
            return _storage_failure(e)
        return ToolResult.success({"count": len(memory.entries)})


@dataclass
class RecallTool:
    spec: ToolSpec = ToolSpec(
        name="recall",
        description="Look up remembered facts matching a query. Best matches first.",
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 1, "description": "What to look for."},
            },
            "required": ["query"],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        needle = args["query"].strip().lower()
        terms = needle.split()
        try:
            memory = read_memory(ctx.storage.memory_path)
        except StorageError as e:
            return _storage_failure(e)
        ranked = sort_by_score_and_recency(memory.entries, needle, terms)
        hits = [e for e in ranked if score_entry(e, needle, terms) > 0]
        cap = min(MAX_RECALL, max(1, ctx.memory_limit))
        return ToolResult.success({"entries": [e.to_dict() for e in hits[:cap]]})


@dataclass
class MemoryAddTool:
    spec: ToolSpec = ToolSpec(
        name="memory_add",
        description="Append a note to the memory log.",
        parameters={
            "type": "object",
            "properties": {
                "text": {"type": "string", "minLength": 1, "description": "Note text."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["text"],
        },
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        text = args["text"].strip()
        if not text:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Text cannot be empty.")
        entry = MemoryEntry(ts=now_iso(), text=text)
        try:
            append_jsonl(ctx.storage.memory_log_path, entry.to_dict())
        except StorageError as e:
            return _storage_failure(e)
        return ToolResult.success({"entry": entry.to_dict()})


@dataclass
class MemorySearchTool:
    spec: ToolSpec = ToolSpec(
        name="memory_search",
        description="Search remembered facts and logged notes for a phrase, with paging.",
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 1, "description": "Phrase to search for (case-insensitive)."},
                "limit": {"type": "integer", "minimum": 1, "default": DEFAULT_SEARCH_LIMIT},
                "offset": {"type": "integer", "minimum": 0, "default": 0},
            },
            "required": ["query"],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        needle = args["query"].strip().lower()
        limit = int(args.get("limit", DEFAULT_SEARCH_LIMIT))
        offset = int(args.get("offset", 0))
        try:
            entries = list(read_memory(ctx.storage.memory_path).entries)
            logged = read_jsonl(ctx.storage.memory_log_path, lambda o: MemoryEntry.from_obj(o) is not None)
        except StorageError as e:
            return _storage_failure(e)
        entries += [MemoryEntry.from_obj(o) for o in logged]  # type: ignore[misc]

        matches = [e for e in entries if needle in e.text.lower()]
        ranked = sort_by_score_and_recency(matches, needle)
        page = ranked[offset:offset + limit]
        return ToolResult.success(
            {
                "entries": [e.to_dict() for e in page],
                "total": len(ranked),
                "offset": offset,
                "limit": limit,
                "has_more": offset + limit < len(ranked),
            }
        )
