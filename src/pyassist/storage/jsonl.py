from __future__ import annotations

import json
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Iterable

from rich.console import Console

err_console = Console(stderr=True)

# Per read, print at most this many individual warnings.
MAX_WARNINGS = 3


class StorageError(RuntimeError):
    pass


def quarantine_path(path: Path) -> Path:
    return path.with_name(path.name + ".corrupt")


def read_jsonl(path: Path | str, is_valid: Callable[[Any], bool] | None = None) -> list[Any]:
    """Read one JSON value per line.

    Lines that do not parse, or that fail is_valid, are appended to
    <file>.corrupt and the file is rewritten without them. The rest are
    returned in file order.
    """
    path = Path(path)
    if not path.exists():
        return []
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e

    entries: list[Any] = []
    good: list[str] = []
    bad: list[str] = []
    for lineno, line in enumerate(raw.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            reason = f"invalid JSON ({e.msg})"
        else:
            if is_valid is None or is_valid(obj):
                entries.append(obj)
                good.append(line)
                continue
            reason = "unexpected shape"
        bad.append(line)
        if len(bad) <= MAX_WARNINGS:
            err_console.print(f"[yellow]Warning[/yellow]: {path.name}:{lineno}: {reason}, moved to quarantine.")

    if bad:
        if len(bad) > MAX_WARNINGS:
            err_console.print(f"[yellow]Warning[/yellow]: {len(bad) - MAX_WARNINGS} more corrupt line(s) in {path.name}.")
        try:
            with quarantine_path(path).open("a", encoding="utf-8") as f:
                for line in bad:
                    f.write(line + "\n")
        except OSError as e:
            err_console.print(f"[yellow]Warning[/yellow]: could not write quarantine file for {path}: {e}")
            return entries
        try:
            write_atomic(path, "".join(line + "\n" for line in good))
        except StorageError as e:
            err_console.print(f"[yellow]Warning[/yellow]: could not drop corrupt lines from {path}: {e}")
    return entries


def _fsync(f) -> None:
    f.flush()
    try:
        os.fsync(f.fileno())
    except OSError:
        # some filesystems do not support fsync
        pass


def write_atomic(path: Path | str, text: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex}")
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(text)
            _fsync(f)
        os.replace(tmp, path)
    except OSError as e:
        try:
            tmp.unlink()
        except FileNotFoundError:
            pass
        raise StorageError(f"Failed to write {path}: {e}") from e


def write_jsonl_atomic(path: Path | str, entries: Iterable[Any]) -> None:
    lines = [json.dumps(e, ensure_ascii=False) for e in entries]
    write_atomic(path, "".join(line + "\n" for line in lines))


def append_jsonl(path: Path | str, entry: Any) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
            _fsync(f)
    except OSError as e:
        raise StorageError(f"Failed to append to {path}: {e}") from e
