from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .jsonl import StorageError, err_console, write_atomic

MEMORY_VERSION = 1


@dataclass
class MemoryEntry:
    ts: str
    text: str

    @staticmethod
    def from_obj(obj: Any) -> "MemoryEntry | None":
        if not isinstance(obj, dict):
            return None
        text = obj.get("text")
        if not isinstance(text, str):
            return None
        ts = obj.get("ts")
        return MemoryEntry(ts=ts if isinstance(ts, str) else "", text=text)

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.ts, "text": self.text}


@dataclass
class Memory:
    version: int = MEMORY_VERSION
    entries: list[MemoryEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "entries": [e.to_dict() for e in self.entries]}


def _quarantine(path: Path, reason: str) -> None:
    target = path.with_name(f"{path.name}.corrupt.{int(time.time() * 1000)}")
    try:
        path.rename(target)
        err_console.print(f"[yellow]Warning[/yellow]: memory file {path} is corrupt ({reason}); moved to {target.name}.")
    except OSError as e:
        err_console.print(f"[yellow]Warning[/yellow]: memory file {path} is corrupt ({reason}) and could not be moved: {e}")


def read_memory(path: Path | str) -> Memory:
    """Load the memory file, starting fresh when it is missing or corrupt."""
    path = Path(path)
    if not path.exists():
        return Memory()
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _quarantine(path, f"invalid JSON: {e.msg}")
        return Memory()
    except UnicodeDecodeError:
        _quarantine(path, "not UTF-8 text")
        return Memory()
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e

    if not isinstance(obj, dict) or not isinstance(obj.get("entries"), list):
        _quarantine(path, "missing 'entries' list")
        return Memory()

    entries = [e for e in (MemoryEntry.from_obj(x) for x in obj["entries"]) if e is not None]
    ver = obj.get("version")
    return Memory(version=ver if isinstance(ver, int) else MEMORY_VERSION, entries=entries)


def write_memory(path: Path | str, memory: Memory) -> None:
    write_atomic(path, json.dumps(memory.to_dict(), ensure_ascii=False, indent=2))


def _count(text: str, needle: str) -> int:
    if not needle:
        return 0
    n = 0
    idx = text.find(needle)
    while idx != -1:
        n += 1
        idx = text.find(needle, idx + len(needle))
    return n


def score_entry(entry: MemoryEntry, needle: str, terms: list[str] | None = None) -> int:
    text = entry.text.lower()
    score = _count(text, needle)
    for term in terms or []:
        score += _count(text, term)
    return score


def _ts_key(entry: MemoryEntry) -> float:
    try:
        return datetime.fromisoformat(entry.ts.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def sort_by_score_and_recency(
    entries: list[MemoryEntry], needle: str, terms: list[str] | None = None
) -> list[MemoryEntry]:
    if terms is None:
        terms = needle.split()
    decorated = [(score_entry(e, needle, terms), _ts_key(e), e) for e in entries]
    decorated.sort(key=lambda t: (t[0], t[1]), reverse=True)
    return [e for _, _, e in decorated]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
