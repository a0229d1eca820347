from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir
from rich.console import Console

from .base import ToolResult
from .contract import make_confirmation_error

APP_NAME = "pyassist"
PERMISSIONS_ENV = "ASSISTANT_PERMISSIONS_PATH"

err_console = Console(stderr=True)


def _str_tuple(v: Any) -> tuple[str, ...]:
    if not isinstance(v, list):
        return ()
    return tuple(x.strip() for x in v if isinstance(x, str) and x.strip())


@dataclass(frozen=True)
class Permissions:
    """Declarative access policy. Absent entries mean deny."""

    allow_paths: tuple[str, ...] = ()
    allow_commands: tuple[str, ...] = ()
    require_confirmation_for: tuple[str, ...] = ()
    deny_tools: tuple[str, ...] = ()
    version: int | None = None
    source: Path | None = None

    @staticmethod
    def from_obj(obj: Any, source: Path | None = None) -> "Permissions":
        if not isinstance(obj, dict):
            return Permissions(source=source)
        ver = obj.get("version")
        return Permissions(
            allow_paths=_str_tuple(obj.get("allow_paths")),
            allow_commands=_str_tuple(obj.get("allow_commands")),
            require_confirmation_for=_str_tuple(obj.get("require_confirmation_for")),
            deny_tools=_str_tuple(obj.get("deny_tools")),
            version=ver if isinstance(ver, int) else None,
            source=source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "allow_paths": list(self.allow_paths),
            "allow_commands": list(self.allow_commands),
            "require_confirmation_for": list(self.require_confirmation_for),
            "deny_tools": list(self.deny_tools),
        }

    def is_tool_denied(self, tool_name: str) -> bool:
        return tool_name in self.deny_tools


def permission_candidates(base_dir: Path, explicit_path: Path | None = None) -> list[Path]:
    out: list[Path] = []
    env = os.environ.get(PERMISSIONS_ENV)
    if env:
        out.append(Path(env).expanduser())
    if explicit_path is not None:
        out.append(Path(explicit_path).expanduser())
    out.append(base_dir / "permissions.json")
    out.append(Path(user_config_dir(APP_NAME)) / "permissions.json")
    return out


def load_permissions(base_dir: Path, explicit_path: Path | None = None) -> Permissions:
    """Load the first permissions file found.

    Order: $ASSISTANT_PERMISSIONS_PATH, explicit path, <base_dir>/permissions.json,
    then the user config dir. Falls back to deny-all.
    """
    candidates = permission_candidates(base_dir, explicit_path)
    for p in candidates:
        if not p.is_file():
            continue
        try:
            obj = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            err_console.print(f"[yellow]Warning[/yellow]: could not read permissions file {p}: {e}. Using deny-all.")
            return Permissions(source=p.resolve())
        if not isinstance(obj, dict):
            err_console.print(f"[yellow]Warning[/yellow]: permissions file {p} is not a JSON object. Using deny-all.")
            return Permissions(source=p.resolve())
        return Permissions.from_obj(obj, source=p.resolve())

    err_console.print(
        "[yellow]Warning[/yellow]: no permissions file found "
        f"(looked in: {', '.join(str(c) for c in candidates)}). All paths and commands are denied."
    )
    return Permissions()


@dataclass(frozen=True)
class ConfirmationGate:
    permissions: Permissions

    def requires_confirmation(self, tool_name: str) -> bool:
        return tool_name in self.permissions.require_confirmation_for

    def check(self, tool_name: str, args: dict[str, Any]) -> ToolResult | None:
        """Return a CONFIRMATION_REQUIRED failure, or None when the call may proceed."""
        if self.requires_confirmation(tool_name) and args.get("confirm") is not True:
            return ToolResult.from_error(make_confirmation_error(tool_name, self.permissions.source))
        return None
