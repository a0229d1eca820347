from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    DENIED_PATH_ALLOWLIST = "DENIED_PATH_ALLOWLIST"
    DENIED_COMMAND_ALLOWLIST = "DENIED_COMMAND_ALLOWLIST"
    DENIED_TOOL_BLOCKLIST = "DENIED_TOOL_BLOCKLIST"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    NOT_FOUND = "NOT_FOUND"
    EXEC_ERROR = "EXEC_ERROR"


@dataclass(frozen=True)
class ToolError:
    code: ErrorCode
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message}


def make_error(code: ErrorCode, message: str) -> ToolError:
    return ToolError(code=code, message=message)


def _policy_file(permissions_path: Path | str | None) -> str:
    return str(permissions_path) if permissions_path else "(no permissions file loaded)"


def make_permission_error(
    tool_name: str,
    path: str,
    permissions_path: Path | str | None,
    code: ErrorCode = ErrorCode.DENIED_PATH_ALLOWLIST,
) -> ToolError:
    """Denial message for a path that PathGuard refused."""
    return make_error(
        code,
        f"Tool '{tool_name}' was blocked. Path '{path}' is not allowed. "
        f"To unblock, add this path to 'allow_paths' in the permissions file: {_policy_file(permissions_path)}",
    )


def make_command_error(command: str, allowed: tuple[str, ...] | list[str], permissions_path: Path | str | None) -> ToolError:
    listed = ", ".join(allowed) if allowed else "(none)"
    return make_error(
        ErrorCode.DENIED_COMMAND_ALLOWLIST,
        f"Command '{command}' is not allowed. Allowed commands: {listed}. "
        f"To unblock, add it to 'allow_commands' in the permissions file: {_policy_file(permissions_path)}",
    )


def make_confirmation_error(tool_name: str, permissions_path: Path | str | None) -> ToolError:
    return make_error(
        ErrorCode.CONFIRMATION_REQUIRED,
        f"Tool '{tool_name}' requires confirmation. Please retry with 'confirm: true' "
        f"or remove '{tool_name}' from 'require_confirmation_for' in: {_policy_file(permissions_path)}",
    )


def make_blocklist_error(tool_name: str, permissions_path: Path | str | None) -> ToolError:
    return make_error(
        ErrorCode.DENIED_TOOL_BLOCKLIST,
        f"Tool '{tool_name}' is listed in 'deny_tools' and cannot be used. "
        f"Edit the permissions file to change this: {_policy_file(permissions_path)}",
    )
