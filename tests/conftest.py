from __future__ import annotations

from pathlib import Path

import pytest

from pyassist.tools.builtin import build_registry
from pyassist.tools.context import ExecutorContext, Limits
from pyassist.tools.executor import ToolExecutor
from pyassist.tools.permissions import PERMISSIONS_ENV, Permissions


@pytest.fixture(autouse=True)
def _no_permissions_env(monkeypatch):
    monkeypatch.delenv(PERMISSIONS_ENV, raising=False)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "ws"
    ws.mkdir()
    return ws


@pytest.fixture
def make_ctx(workspace: Path, tmp_path: Path):
    """Build an ExecutorContext over `workspace` with the given permission lists."""

    def _make(
        allow_paths=(".",),
        allow_commands=(),
        require_confirmation_for=(),
        deny_tools=(),
        limits: Limits | None = None,
        memory_limit: int = 1000,
        command_timeout: float | None = None,
    ) -> ExecutorContext:
        if isinstance(allow_paths, str):
            allow_paths = (allow_paths,)
        perms = Permissions(
            allow_paths=tuple(allow_paths),
            allow_commands=tuple(allow_commands),
            require_confirmation_for=tuple(require_confirmation_for),
            deny_tools=tuple(deny_tools),
            source=tmp_path / "permissions.json",
        )
        return ExecutorContext.build(
            workspace,
            perms,
            tmp_path / "data",
            limits=limits,
            memory_limit=memory_limit,
            command_timeout=command_timeout,
        )

    return _make


@pytest.fixture
def make_executor(make_ctx):
    def _make(**kwargs) -> ToolExecutor:
        return ToolExecutor(build_registry(), make_ctx(**kwargs))

    return _make
