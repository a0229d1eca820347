from __future__ import annotations

from dataclasses import dataclass

import pytest

from pyassist.events.store import EventStore
from pyassist.tools.base import ToolCall, ToolResult, ToolSpec
from pyassist.tools.builtin import build_registry
from pyassist.tools.contract import ErrorCode
from pyassist.tools.executor import AUDIT_TRUNCATE, ToolExecutor, sanitize_args
from pyassist.tools.registry import ToolRegistry
from pyassist.util import subprocess as sp


@dataclass
class _Boom:
    spec: ToolSpec = ToolSpec(name="boom", description="always fails", parameters={"type": "object", "properties": {}})

    def execute(self, ctx, args):
        raise RuntimeError("kaput")


@dataclass
class _Silent:
    spec: ToolSpec = ToolSpec(name="silent", description="returns nothing", parameters={"type": "object", "properties": {}})

    def execute(self, ctx, args):
        return None


class TestToolCall:
    """Normalization of incoming calls."""

    def test_canonical_shape(self):
        tc = ToolCall.from_obj({"tool_name": " read_file ", "args": {"path": "a"}})
        assert tc == ToolCall("read_file", {"path": "a"})

    def test_compact_shape(self):
        assert ToolCall.from_obj({"tool": "get_time", "args": None}) == ToolCall("get_time", {})

    def test_missing_args_default_empty(self):
        assert ToolCall.from_obj({"tool_name": "get_time"}).args == {}

    def test_rejects_bad_shapes(self):
        assert ToolCall.from_obj("read_file") is None
        assert ToolCall.from_obj({"tool_name": ""}) is None
        assert ToolCall.from_obj({"tool_name": "x", "args": [1, 2]}) is None


class TestPrecedence:
    """deny_tools, then schema, then confirmation, then allowlists."""

    def test_malformed_call(self, make_executor):
        res = make_executor().execute({"name": "read_file"})
        assert res.error_code == ErrorCode.VALIDATION_ERROR

    def test_unknown_tool(self, make_executor):
        assert make_executor().execute({"tool_name": "nope", "args": {}}).error_code == ErrorCode.UNKNOWN_TOOL

    def test_deny_tools_beats_schema(self, make_executor):
        ex = make_executor(deny_tools=("write_file",))
        res = ex.execute({"tool_name": "write_file", "args": {}})
        assert res.error_code == ErrorCode.DENIED_TOOL_BLOCKLIST
        assert "deny_tools" in res.error.message

    def test_schema_beats_confirmation(self, make_executor):
        ex = make_executor(require_confirmation_for=("write_file",))
        res = ex.execute({"tool_name": "write_file", "args": {"path": "a.txt"}})
        assert res.error_code == ErrorCode.VALIDATION_ERROR
        assert "content" in res.error.message

    def test_confirmation_beats_path_allowlist(self, make_executor, workspace):
        ex = make_executor(allow_paths=(), require_confirmation_for=("write_file",))
        res = ex.execute({"tool_name": "write_file", "args": {"path": "a.txt", "content": "x"}})
        assert res.error_code == ErrorCode.CONFIRMATION_REQUIRED
        assert "confirm: true" in res.error.message

        res = ex.execute({"tool_name": "write_file", "args": {"path": "a.txt", "content": "x", "confirm": True}})
        assert res.error_code == ErrorCode.DENIED_PATH_ALLOWLIST
        assert not (workspace / "a.txt").exists()

    def test_confirmed_write_succeeds(self, make_executor, workspace):
        ex = make_executor(require_confirmation_for=("write_file",))
        res = ex.execute({"tool_name": "write_file", "args": {"path": "a.txt", "content": "x", "confirm": True}})
        assert res.ok
        assert (workspace / "a.txt").read_text(encoding="utf-8") == "x"

    def test_confirm_must_be_boolean(self, make_executor):
        ex = make_executor(require_confirmation_for=("write_file",))
        res = ex.execute({"tool_name": "write_file", "args": {"path": "a.txt", "content": "x", "confirm": "yes"}})
        assert res.error_code == ErrorCode.VALIDATION_ERROR

    def test_confirmation_for_read_only_tool(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        ex = make_executor(require_confirmation_for=("read_file",))
        assert ex.execute({"tool_name": "read_file", "args": {"path": "a.txt"}}).error_code == ErrorCode.CONFIRMATION_REQUIRED
        assert ex.execute({"tool_name": "read_file", "args": {"path": "a.txt", "confirm": True}}).ok

    def test_unconfirmed_delete_keeps_file(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        ex = make_executor(require_confirmation_for=("delete_file",))
        res = ex.execute({"tool_name": "delete_file", "args": {"path": "a.txt"}})
        assert res.error_code == ErrorCode.CONFIRMATION_REQUIRED
        assert (workspace / "a.txt").exists()

    @pytest.mark.parametrize(
        "tool,args",
        [
            ("write_file", {"path": "../out.txt", "content": "x"}),
            ("delete_file", {"path": "a.txt"}),
            ("move_file", {"source": "a.txt", "destination": "../out.txt"}),
            ("copy_file", {"source": "a.txt", "destination": "../out.txt"}),
            ("create_directory", {"path": "../out.txt"}),
            ("run_cmd", {"command": "rm -rf ."}),
            ("remember", {"text": "x"}),
            ("memory_add", {"text": "x"}),
            ("task_add", {"text": "x"}),
            ("task_done", {"id": 1}),
            ("reminder_add", {"text": "x", "in_seconds": 5}),
        ],
    )
    def test_confirmation_checked_before_anything_else(self, make_executor, workspace, tmp_path, monkeypatch, tool, args):
        spawned = []
        monkeypatch.setattr(sp, "run_cmd", lambda *a, **kw: spawned.append(a))
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        ex = make_executor(allow_paths=(), allow_commands=(), require_confirmation_for=(tool,))

        res = ex.execute({"tool_name": tool, "args": args})
        assert res.error_code == ErrorCode.CONFIRMATION_REQUIRED
        assert (workspace / "a.txt").read_text(encoding="utf-8") == "x"
        assert not (workspace.parent / "out.txt").exists()
        assert spawned == []
        data = tmp_path / "data"
        assert not data.exists() or list(data.iterdir()) == []

    def test_memory_recovers_from_binary_file(self, make_executor, tmp_path):
        data = tmp_path / "data"
        data.mkdir()
        (data / "memory.json").write_bytes(b"\xff\xfe\x00garbage")
        res = make_executor().execute({"tool_name": "remember", "args": {"text": "likes tea"}})
        assert res.ok
        assert res.result["count"] == 1
        assert any(x.name.startswith("memory.json.corrupt.") for x in data.iterdir())


class TestHandlerFailures:
    def test_exception_becomes_exec_error(self, make_ctx):
        reg = ToolRegistry()
        reg.register(_Boom())
        res = ToolExecutor(reg, make_ctx()).execute({"tool_name": "boom", "args": {}})
        assert res.error_code == ErrorCode.EXEC_ERROR
        assert "kaput" in res.error.message

    def test_none_becomes_exec_error(self, make_ctx):
        reg = ToolRegistry()
        reg.register(_Silent())
        res = ToolExecutor(reg, make_ctx()).execute({"tool_name": "silent", "args": {}})
        assert res.error_code == ErrorCode.EXEC_ERROR

    def test_debug_carries_timing(self, make_executor):
        res = make_executor().execute({"tool_name": "get_time", "args": {}})
        assert res.ok
        assert res.debug["tool"] == "get_time"
        assert isinstance(res.debug["elapsed_ms"], int)


class TestToolResult:
    def test_invariants(self):
        with pytest.raises(ValueError):
            ToolResult(ok=True, error=ToolResult.failure(ErrorCode.EXEC_ERROR, "x").error)
        with pytest.raises(ValueError):
            ToolResult(ok=False)

    def test_to_dict(self):
        d = ToolResult.failure(ErrorCode.NOT_FOUND, "gone").to_dict()
        assert d == {"ok": False, "result": None, "error": {"code": "NOT_FOUND", "message": "gone"}}


class TestAudit:
    def test_bulky_args_truncated(self):
        out = sanitize_args({"content": "x" * 500, "path": "a.txt"})
        assert out["path"] == "a.txt"
        assert out["content"].startswith("x" * AUDIT_TRUNCATE)
        assert "(500 chars)" in out["content"]

    def test_events_recorded(self, make_ctx, tmp_path):
        events = EventStore.open("s1", root=tmp_path / "data")
        ex = ToolExecutor(build_registry(), make_ctx(deny_tools=("run_cmd",)), events=events)
        ex.execute({"tool_name": "write_file", "args": {"path": "a.txt", "content": "y" * 300}})
        ex.execute({"tool_name": "run_cmd", "args": {"command": "ls"}})

        evs = list(events.iter_events())
        types = [e.type for e in evs]
        assert types == ["tool.call", "tool.result", "tool.call", "tool.denied", "tool.result"]
        assert len(evs[0].data["args"]["content"]) < 300
        assert evs[1].data == {"tool": "write_file", "ok": True, "error_code": None, "elapsed_ms": evs[1].data["elapsed_ms"]}
        assert evs[4].data["error_code"] == "DENIED_TOOL_BLOCKLIST"
