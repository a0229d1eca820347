from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from platformdirs import user_data_dir

from ..storage.jsonl import append_jsonl, read_jsonl
from .models import Message

APP_NAME = "pyassist"

# Messages replayed to the model per request.
HISTORY_WINDOW = 10


def _sessions_dir(root: Path | None = None) -> Path:
    base = Path(root) if root is not None else Path(user_data_dir(APP_NAME))
    d = base / "sessions"
    d.mkdir(parents=True, exist_ok=True)
    return d


@dataclass
class SessionStore:
    session_id: str
    path: Path
    messages: list[Message]

    @staticmethod
    def open(session_id: str | None = None, root: Path | None = None) -> "SessionStore":
        sid = session_id or uuid.uuid4().hex[:12]
        path = _sessions_dir(root) / f"{sid}.jsonl"
        # Lines that do not parse are quarantined by read_jsonl.
        objs = read_jsonl(path, lambda o: Message.from_obj(o) is not None)
        msgs = [m for m in (Message.from_obj(o) for o in objs) if m is not None]
        return SessionStore(session_id=sid, path=path, messages=msgs)

    def append(self, msg: Message) -> None:
        self.messages.append(msg)
        append_jsonl(self.path, msg.to_dict())

    def extend(self, msgs: Iterable[Message]) -> None:
        for m in msgs:
            self.append(m)

    def window(self, size: int = HISTORY_WINDOW) -> list[Message]:
        return self.messages[-size:] if size > 0 else []

    def to_openai_messages(self, size: int = HISTORY_WINDOW) -> list[dict[str, Any]]:
        return [m.to_openai() for m in self.window(size)]
