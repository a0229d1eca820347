from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from pyassist.config import loader as config_loader
from pyassist.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.setattr(config_loader, "_global_candidate_paths", lambda: [])
    for key in ("ASSISTANT_BASE_URL", "ASSISTANT_MODEL", "ASSISTANT_API_KEY"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def dirs(workspace, tmp_path):
    perms = tmp_path / "permissions.json"
    perms.write_text(json.dumps({"allow_paths": ["."]}), encoding="utf-8")
    return ["--cwd", str(workspace), "--data-dir", str(tmp_path / "data"), "--permissions", str(perms)]


class TestExec:
    def test_tool_call(self, dirs):
        call = json.dumps({"tool_name": "calculate", "args": {"expression": "1 + 2"}})
        res = runner.invoke(app, ["exec", call, *dirs])
        assert res.exit_code == 0, res.output
        assert '"value": 3' in res.output

    def test_unknown_tool(self, dirs):
        res = runner.invoke(app, ["exec", '{"tool_name": "nope", "args": {}}', *dirs])
        assert res.exit_code == 1
        assert "UNKNOWN_TOOL" in res.output

    def test_invalid_json(self, dirs):
        res = runner.invoke(app, ["exec", "{nope", *dirs])
        assert res.exit_code != 0


class TestRun:
    def test_auto_dispatch_json(self, dirs):
        res = runner.invoke(app, ["run", "-p", "remember I like tea", "--json", "--session", "s1", *dirs])
        assert res.exit_code == 0, res.output
        assert '"auto_dispatch"' in res.output
        assert '"remember"' in res.output

    def test_without_model(self, dirs):
        res = runner.invoke(app, ["run", "-p", "hello there", *dirs])
        assert res.exit_code == 0
        assert "no model provider is configured" in res.output

    def test_stats_after_run(self, dirs, tmp_path):
        runner.invoke(app, ["run", "-p", "remember I like tea", "--session", "s2", *dirs])
        res = runner.invoke(app, ["stats", "--session", "s2", "--data-dir", str(tmp_path / "data")])
        assert res.exit_code == 0
        assert "auto_dispatch=1" in res.output
        assert "remember: 1" in res.output


class TestTools:
    def test_agent_filter(self, workspace):
        res = runner.invoke(app, ["tools", "--agent", "organizer", "--cwd", str(workspace)])
        assert res.exit_code == 0
        assert "task_add" in res.output
        assert "run_cmd" not in res.output
