from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass, field
from pathlib import Path

from ..util.fs import PathGuard
from ..util.stat_cache import StatCache
from ..util.subprocess import CommandGuard
from .permissions import ConfirmationGate, Permissions

DEFAULT_MAX_READ_SIZE = 1024 * 1024
DEFAULT_MAX_WRITE_SIZE = 10 * 1024 * 1024


@dataclass(frozen=True)
class Limits:
    max_read_size: int = DEFAULT_MAX_READ_SIZE
    max_write_size: int = DEFAULT_MAX_WRITE_SIZE


@dataclass(frozen=True)
class StorageLayout:
    """Where the persistent tools keep their files."""

    data_dir: Path

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / "tasks.jsonl"

    @property
    def reminders_path(self) -> Path:
        return self.data_dir / "reminders.jsonl"

    @property
    def memory_path(self) -> Path:
        return self.data_dir / "memory.json"

    @property
    def memory_log_path(self) -> Path:
        return self.data_dir / "memory.jsonl"


@dataclass
class ExecutorContext:
    base_dir: Path
    permissions: Permissions
    paths: PathGuard
    commands: CommandGuard
    confirmation: ConfirmationGate
    storage: StorageLayout
    stat_cache: StatCache = field(default_factory=StatCache)
    limits: Limits = field(default_factory=Limits)
    memory_limit: int = 1000
    command_timeout: float | None = None
    start: float = field(default_factory=time.perf_counter)

    @staticmethod
    def build(
        base_dir: Path,
        permissions: Permissions,
        data_dir: Path,
        *,
        limits: Limits | None = None,
        memory_limit: int = 1000,
        command_timeout: float | None = None,
        stat_cache: StatCache | None = None,
    ) -> "ExecutorContext":
        base_dir = Path(base_dir)
        return ExecutorContext(
            base_dir=base_dir,
            permissions=permissions,
            paths=PathGuard(base_dir, permissions.allow_paths),
            commands=CommandGuard(base_dir, permissions.allow_commands, permissions.source),
            confirmation=ConfirmationGate(permissions),
            storage=StorageLayout(Path(data_dir)),
            stat_cache=stat_cache or StatCache(),
            limits=limits or Limits(),
            memory_limit=memory_limit,
            command_timeout=command_timeout,
        )

    @property
    def permissions_path(self) -> Path | None:
        return self.permissions.source

    def requires_confirmation(self, tool_name: str) -> bool:
        return self.confirmation.requires_confirmation(tool_name)

    def fresh(self) -> "ExecutorContext":
        """Same context with a new invocation start time."""
        return dataclasses.replace(self, start=time.perf_counter())

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.start) * 1000)
