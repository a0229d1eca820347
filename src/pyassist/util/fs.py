from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

PathOp = Literal["read", "write", "list"]

# Never reachable through any tool, whatever allow_paths says.
BLOCKED_SEGMENTS = frozenset({".git", ".env", "node_modules"})


class PathDenied(RuntimeError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Path '{path}' denied: {reason}")
        self.path = path
        self.reason = reason


def _is_within(root: Path, target: Path) -> bool:
    try:
        target.relative_to(root)
    except ValueError:
        return False
    return True


@dataclass
class PathGuard:
    """Syntactic sandbox for file tools.

    Paths are joined onto base_dir and normalized lexically; symlinks are not
    followed. A path is usable when it stays under base_dir, contains no
    blocked segment and is covered by an allow_paths entry.
    """

    base_dir: Path
    allow_paths: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        self.base_dir = Path(os.path.normpath(os.path.abspath(self.base_dir)))
        self._allowed: list[Path] = []
        for entry in self.allow_paths:
            p = self.resolve(entry)
            if entry.strip() and _is_within(self.base_dir, p):
                self._allowed.append(p)

    def resolve(self, path: str) -> Path:
        """Join onto base_dir and normalize. No policy is applied here."""
        raw = (path or "").strip()
        return Path(os.path.normpath(os.path.join(self.base_dir, raw)))

    def assert_allowed(self, abs_path: Path | str, op: PathOp) -> None:
        target = Path(os.path.normpath(str(abs_path)))
        if not _is_within(self.base_dir, target):
            raise PathDenied(str(abs_path), "outside the base directory")

        parts = target.relative_to(self.base_dir).parts
        if any(p.lower() in BLOCKED_SEGMENTS for p in parts):
            raise PathDenied(str(abs_path), "blocked path segment")
        if op == "list" and parts and parts[-1].startswith("."):
            raise PathDenied(str(abs_path), "hidden entry")

        if not self._allowed:
            raise PathDenied(str(abs_path), "allow_paths is empty")
        for entry in self._allowed:
            if target == entry or _is_within(entry, target):
                return
        raise PathDenied(str(abs_path), f"not covered by allow_paths for {op}")

    def resolve_allowed(self, path: str, op: PathOp) -> Path:
        if not (path or "").strip():
            raise PathDenied(path, "empty path")
        resolved = self.resolve(path)
        self.assert_allowed(resolved, op)
        return resolved

    def is_allowed(self, abs_path: Path | str, op: PathOp) -> bool:
        try:
            self.assert_allowed(abs_path, op)
        except PathDenied:
            return False
        return True

    def relative(self, abs_path: Path) -> str:
        rel = abs_path.relative_to(self.base_dir).as_posix()
        return rel or "."
