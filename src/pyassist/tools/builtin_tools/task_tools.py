from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional

from ..base import CONFIRM_PARAM, ToolResult, ToolSpec
from ..context import ExecutorContext
from ..contract import ErrorCode
from ...storage.jsonl import StorageError, append_jsonl, read_jsonl, write_jsonl_atomic
from ...storage.memory_store import now_iso


Priority = Literal["low", "medium", "high"]
StatusFilter = Literal["open", "done", "all"]

DUE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class TaskItem:
    id: int
    text: str
    done: bool = False
    created_at: str = ""
    done_at: Optional[str] = None
    due: Optional[str] = None
    priority: Optional[Priority] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "done": self.done,
            "created_at": self.created_at,
            "done_at": self.done_at,
            "due": self.due,
            "priority": self.priority,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "TaskItem":
        return TaskItem(
            id=int(d["id"]),
            text=str(d["text"]),
            done=bool(d.get("done", False)),
            created_at=str(d.get("created_at") or ""),
            done_at=d.get("done_at"),
            due=d.get("due"),
            priority=d.get("priority"),
        )


@dataclass
class ReminderItem:
    id: int
    text: str
    due_at: str
    done: bool = False
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "due_at": self.due_at,
            "done": self.done,
            "created_at": self.created_at,
        }


def _is_record(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and isinstance(obj.get("id"), int)
        and not isinstance(obj.get("id"), bool)
        and isinstance(obj.get("text"), str)
    )


def _load_tasks(ctx: ExecutorContext) -> list[TaskItem]:
    return [TaskItem.from_dict(o) for o in read_jsonl(ctx.storage.tasks_path, _is_record)]


def _next_id(ids: list[int]) -> int:
    return max(ids, default=0) + 1


def _storage_failure(e: StorageError) -> ToolResult:
    return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Task storage failed: {e}")


@dataclass
class TaskAddTool:
    spec: ToolSpec = ToolSpec(
        name="task_add",
        description="Add a task to the task list.",
        parameters={
            "type": "object",
            "properties": {
                "text": {"type": "string", "minLength": 1, "description": "Task description."},
                "due": {"type": "string", "description": "Due date, YYYY-MM-DD."},
                "priority": {"type": "string", "enum": ["low", "medium", "high"]},
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
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Task text cannot be empty.")
        due = args.get("due")
        if due is not None and not DUE_RE.match(due):
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Invalid due date '{due}': expected YYYY-MM-DD.")

        try:
            tasks = _load_tasks(ctx)
            item = TaskItem(
                id=_next_id([t.id for t in tasks]),
                text=text,
                created_at=now_iso(),
                due=due,
                priority=args.get("priority"),
            )
            tasks.append(item)
            write_jsonl_atomic(ctx.storage.tasks_path, [t.to_dict() for t in tasks])
        except StorageError as e:
            return _storage_failure(e)
        return ToolResult.success(item.to_dict())


@dataclass
class TaskListTool:
    spec: ToolSpec = ToolSpec(
        name="task_list",
        description="List tasks, optionally only open or done ones.",
        parameters={
            "type": "object",
            "properties": {
                "status": {"type": "string", "enum": ["open", "done", "all"], "default": "all"},
            },
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        status: StatusFilter = args.get("status", "all")
        try:
            tasks = _load_tasks(ctx)
        except StorageError as e:
            return _storage_failure(e)
        if status == "open":
            tasks = [t for t in tasks if not t.done]
        elif status == "done":
            tasks = [t for t in tasks if t.done]
        return ToolResult.success({"entries": [t.to_dict() for t in tasks]})


@dataclass
class TaskDoneTool:
    spec: ToolSpec = ToolSpec(
        name="task_done",
        description="Mark a task as done by id.",
        parameters={
            "type": "object",
            "properties": {
                "id": {"type": "integer", "minimum": 1, "description": "Task id."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["id"],
        },
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        task_id = int(args["id"])
        try:
            tasks = _load_tasks(ctx)
            item = next((t for t in tasks if t.id == task_id), None)
            if item is None:
                return ToolResult.failure(ErrorCode.NOT_FOUND, f"Task {task_id} not found.")
            if not item.done:
                item.done = True
                item.done_at = now_iso()
                write_jsonl_atomic(ctx.storage.tasks_path, [t.to_dict() for t in tasks])
        except StorageError as e:
            return _storage_failure(e)
        return ToolResult.success(item.to_dict())


@dataclass
class ReminderAddTool:
    spec: ToolSpec = ToolSpec(
        name="reminder_add",
        description="Store a reminder due after a number of seconds. Reminders are recorded, not delivered.",
        parameters={
            "type": "object",
            "properties": {
                "text": {"type": "string", "minLength": 1},
                "in_seconds": {"type": "integer", "exclusiveMinimum": 0, "description": "Delay from now, in seconds."},
                "confirm": CONFIRM_PARAM,
            },
            "required": ["text", "in_seconds"],
        },
        status="experimental",
        mutating=True,
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        if (denied := ctx.confirmation.check(self.spec.name, args)) is not None:
            return denied

        text = args["text"].strip()
        if not text:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Reminder text cannot be empty.")
        now = datetime.now(timezone.utc)
        try:
            existing = read_jsonl(ctx.storage.reminders_path, _is_record)
            item = ReminderItem(
                id=_next_id([o["id"] for o in existing]),
                text=text,
                due_at=(now + timedelta(seconds=int(args["in_seconds"]))).isoformat(),
                created_at=now.isoformat(),
            )
            append_jsonl(ctx.storage.reminders_path, item.to_dict())
        except StorageError as e:
            return _storage_failure(e)
        return ToolResult.success(item.to_dict())


def _parse_ts(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class ReminderListTool:
    spec: ToolSpec = ToolSpec(
        name="reminder_list",
        description="List stored reminders, optionally only those due at or after start_time (ISO 8601).",
        parameters={
            "type": "object",
            "properties": {
                "start_time": {"type": "string", "description": "ISO 8601 timestamp."},
            },
        },
        status="experimental",
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        start = None
        if args.get("start_time") is not None:
            start = _parse_ts(args["start_time"])
            if start is None:
                return ToolResult.failure(ErrorCode.VALIDATION_ERROR, f"Invalid start_time '{args['start_time']}'.")
        try:
            entries = read_jsonl(ctx.storage.reminders_path, _is_record)
        except StorageError as e:
            return _storage_failure(e)
        if start is not None:
            entries = [e for e in entries if (due := _parse_ts(e.get("due_at"))) is not None and due >= start]
        return ToolResult.success({"entries": entries})
