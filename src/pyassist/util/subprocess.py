from __future__ import annotations
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence, Optional

from ..tools.contract import ErrorCode, ToolError, make_command_error, make_error

# Short bound for read-only inspection commands (git status/diff/log).
INSPECTION_TIMEOUT = 10


@dataclass
class CmdResult:
    returncode: int
    stdout: str
    stderr: str


def run_cmd(cmd: Sequence[str], cwd: str, timeout: Optional[float] = 120) -> CmdResult:
    p = subprocess.run(
        list(cmd),
        cwd=cwd,
        text=True,
        capture_output=True,
        timeout=timeout,
        shell=False,
    )
    return CmdResult(p.returncode, p.stdout, p.stderr)


class CommandDenied(RuntimeError):
    def __init__(self, error: ToolError):
        super().__init__(error.message)
        self.error = error


@dataclass
class CmdOutcome:
    ok: bool
    command: str
    args: list[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    error: ToolError | None = None

    def result_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "args": self.args,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
        }


@dataclass
class CommandGuard:
    """Runs external commands that are named in allow_commands, nothing else."""

    cwd: Path
    allow_commands: tuple[str, ...] = ()
    permissions_path: Path | None = None

    def is_allowed(self, command: str) -> bool:
        return command in self.allow_commands

    def check(self, command: str) -> None:
        if not self.is_allowed(command):
            raise CommandDenied(make_command_error(command, self.allow_commands, self.permissions_path))

    def run_allowed(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        timeout: float | None = None,
    ) -> CmdOutcome:
        args = [str(a) for a in args]
        try:
            self.check(command)
        except CommandDenied as e:
            return CmdOutcome(ok=False, command=command, args=args, error=e.error)

        try:
            res = run_cmd([command, *args], cwd=str(self.cwd), timeout=timeout)
        except subprocess.TimeoutExpired:
            return CmdOutcome(
                ok=False,
                command=command,
                args=args,
                error=make_error(ErrorCode.EXEC_ERROR, f"Command '{command}' timed out after {timeout}s."),
            )
        except OSError as e:
            return CmdOutcome(
                ok=False,
                command=command,
                args=args,
                error=make_error(ErrorCode.EXEC_ERROR, f"Failed to start '{command}': {e}"),
            )

        out = CmdOutcome(
            ok=res.returncode == 0,
            command=command,
            args=args,
            stdout=res.stdout,
            stderr=res.stderr,
            exit_code=res.returncode,
        )
        if res.returncode != 0:
            if res.returncode < 0:
                detail = f"terminated by signal {-res.returncode}"
            else:
                detail = f"exited with status {res.returncode}"
            stderr = res.stderr.strip()
            msg = f"Command '{command}' {detail}" + (f": {stderr}" if stderr else ".")
            out.error = make_error(ErrorCode.EXEC_ERROR, msg)
        return out

    def run_text(
        self,
        command_text: str,
        *,
        timeout: float | None = None,
    ) -> CmdOutcome:
        text = (command_text or "").strip()
        if not text:
            return CmdOutcome(ok=False, command="", error=make_error(ErrorCode.VALIDATION_ERROR, "Command cannot be empty."))
        try:
            parts = shlex.split(text)
        except ValueError as e:
            return CmdOutcome(ok=False, command="", error=make_error(ErrorCode.VALIDATION_ERROR, f"Could not parse command: {e}"))
        if not parts:
            return CmdOutcome(ok=False, command="", error=make_error(ErrorCode.VALIDATION_ERROR, "Command cannot be empty."))
        return self.run_allowed(parts[0], parts[1:], timeout=timeout)
