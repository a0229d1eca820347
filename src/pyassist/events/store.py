from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from platformdirs import user_data_dir

from ..storage.jsonl import StorageError, append_jsonl, err_console

APP_NAME = "pyassist"


def _events_dir(root: Path | None = None) -> Path:
    base = Path(root) if root is not None else Path(user_data_dir(APP_NAME))
    d = base / "events"
    d.mkdir(parents=True, exist_ok=True)
    return d


@dataclass
class Event:
    ts: float
    type: str
    data: dict[str, Any]


@dataclass
class EventStore:
    """Append-only jsonl event log per session.

    Used as the audit trail for tool execution and routing decisions.
    Reads skip lines that do not parse.
    """

    session_id: str
    path: Path

    @staticmethod
    def open(session_id: str, root: Path | None = None) -> "EventStore":
        path = _events_dir(root) / f"{session_id}.jsonl"
        return EventStore(session_id=session_id, path=path)

    def append(self, event_type: str, data: dict[str, Any]) -> None:
        ev = Event(ts=time.time(), type=event_type, data=data)
        try:
            append_jsonl(self.path, ev.__dict__)
        except (StorageError, TypeError, ValueError) as e:
            err_console.print(f"[yellow]Warning[/yellow]: event '{event_type}' not recorded: {e}")

    def iter_events(self) -> Iterable[Event]:
        if not self.path.exists():
            return []
        out: list[Event] = []
        for line in self.path.read_text(encoding="utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(obj, dict):
                continue
            out.append(Event(ts=float(obj.get("ts", 0.0)), type=str(obj.get("type")), data=obj.get("data") or {}))
        return out
