from __future__ import annotations

import pytest

from pyassist.tools.context import Limits
from pyassist.tools.contract import ErrorCode


def _call(ex, name, **args):
    return ex.execute({"tool_name": name, "args": args})


class TestReadFile:
    """Byte-range paging."""

    def test_read_whole_file(self, make_executor, workspace):
        (workspace / "a.txt").write_text("hello world", encoding="utf-8")
        res = _call(make_executor(), "read_file", path="a.txt")
        assert res.ok
        assert res.result == {"content": "hello world", "bytes_read": 11, "next_offset": 11, "eof": True, "file_size": 11}

    def test_paging(self, make_executor, workspace):
        (workspace / "a.txt").write_text("0123456789", encoding="utf-8")
        ex = make_executor()
        first = _call(ex, "read_file", path="a.txt", limit=4)
        assert first.result["content"] == "0123"
        assert first.result["eof"] is False
        second = _call(ex, "read_file", path="a.txt", offset=first.result["next_offset"], limit=100)
        assert second.result["content"] == "456789"
        assert second.result["eof"] is True

    def test_offset_past_end(self, make_executor, workspace):
        (workspace / "a.txt").write_text("abc", encoding="utf-8")
        res = _call(make_executor(), "read_file", path="a.txt", offset=10)
        assert res.ok
        assert res.result["content"] == ""
        assert res.result["eof"] is True

    def test_limit_capped_by_max_read_size(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x" * 100, encoding="utf-8")
        res = _call(make_executor(limits=Limits(max_read_size=10)), "read_file", path="a.txt", limit=50)
        assert res.result["bytes_read"] == 10

    def test_missing_file(self, make_executor):
        assert _call(make_executor(), "read_file", path="nope.txt").error_code == ErrorCode.NOT_FOUND

    def test_directory_rejected(self, make_executor, workspace):
        (workspace / "sub").mkdir()
        assert _call(make_executor(), "read_file", path="sub").error_code == ErrorCode.VALIDATION_ERROR

    def test_outside_allowlist(self, make_executor, workspace):
        (workspace / "secret").mkdir()
        (workspace / "secret" / "k.txt").write_text("k", encoding="utf-8")
        res = _call(make_executor(allow_paths=("docs",)), "read_file", path="secret/k.txt")
        assert res.error_code == ErrorCode.DENIED_PATH_ALLOWLIST
        assert "allow_paths" in res.error.message
        assert "permissions.json" in res.error.message

    def test_negative_offset_is_schema_error(self, make_executor, workspace):
        (workspace / "a.txt").write_text("abc", encoding="utf-8")
        assert _call(make_executor(), "read_file", path="a.txt", offset=-1).error_code == ErrorCode.VALIDATION_ERROR


class TestWriteFile:
    def test_creates_parents(self, make_executor, workspace):
        res = _call(make_executor(), "write_file", path="a/b/c.txt", content="hi")
        assert res.ok
        assert res.result == {"bytes": 2}
        assert (workspace / "a" / "b" / "c.txt").read_text(encoding="utf-8") == "hi"

    def test_size_limit(self, make_executor, workspace):
        res = _call(make_executor(limits=Limits(max_write_size=3)), "write_file", path="a.txt", content="toolong")
        assert res.error_code == ErrorCode.VALIDATION_ERROR
        assert not (workspace / "a.txt").exists()

    def test_blocked_segment(self, make_executor, workspace):
        res = _call(make_executor(), "write_file", path=".git/config", content="x")
        assert res.error_code == ErrorCode.DENIED_PATH_ALLOWLIST

    def test_read_sees_write_through_stat_cache(self, make_executor, workspace):
        ex = make_executor()
        assert _call(ex, "read_file", path="new.txt").error_code == ErrorCode.NOT_FOUND
        _call(ex, "write_file", path="new.txt", content="fresh")
        res = _call(ex, "read_file", path="new.txt")
        assert res.ok
        assert res.result["content"] == "fresh"

    def test_new_parent_directory_visible_after_write(self, make_executor, workspace):
        ex = make_executor()
        assert _call(ex, "file_info", path="newdir").error_code == ErrorCode.NOT_FOUND
        assert _call(ex, "list_files", path="newdir/sub").error_code == ErrorCode.NOT_FOUND
        assert _call(ex, "write_file", path="newdir/sub/a.txt", content="x").ok
        assert _call(ex, "file_info", path="newdir").result["type"] == "directory"
        assert _call(ex, "list_files", path="newdir/sub").result["entries"] == [{"name": "a.txt", "type": "file"}]


class TestListFiles:
    def test_sorted_and_hidden_skipped(self, make_executor, workspace):
        (workspace / "b.txt").write_text("", encoding="utf-8")
        (workspace / "a").mkdir()
        (workspace / ".secret").write_text("", encoding="utf-8")
        (workspace / "node_modules").mkdir()
        res = _call(make_executor(), "list_files")
        assert res.ok
        assert res.result["entries"] == [{"name": "a", "type": "directory"}, {"name": "b.txt", "type": "file"}]

    def test_entries_outside_allowlist_skipped(self, make_executor, workspace):
        (workspace / "docs").mkdir()
        (workspace / "docs" / "x.md").write_text("", encoding="utf-8")
        res = _call(make_executor(allow_paths=("docs",)), "list_files", path="docs")
        assert res.result["entries"] == [{"name": "x.md", "type": "file"}]

    def test_not_a_directory(self, make_executor, workspace):
        (workspace / "a.txt").write_text("", encoding="utf-8")
        assert _call(make_executor(), "list_files", path="a.txt").error_code == ErrorCode.VALIDATION_ERROR

    def test_missing_directory(self, make_executor):
        assert _call(make_executor(), "list_files", path="nope").error_code == ErrorCode.NOT_FOUND


class TestDeleteMoveCopy:
    def test_delete(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        ex = make_executor()
        res = _call(ex, "delete_file", path="a.txt")
        assert res.ok
        assert not (workspace / "a.txt").exists()
        assert _call(ex, "delete_file", path="a.txt").error_code == ErrorCode.NOT_FOUND

    def test_delete_refuses_directory(self, make_executor, workspace):
        (workspace / "d").mkdir()
        assert _call(make_executor(), "delete_file", path="d").error_code == ErrorCode.VALIDATION_ERROR
        assert (workspace / "d").is_dir()

    def test_move(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        res = _call(make_executor(), "move_file", source="a.txt", destination="sub/b.txt")
        assert res.ok
        assert not (workspace / "a.txt").exists()
        assert (workspace / "sub" / "b.txt").read_text(encoding="utf-8") == "x"

    def test_copy_keeps_source(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        res = _call(make_executor(), "copy_file", source="a.txt", destination="b.txt")
        assert res.ok
        assert (workspace / "a.txt").exists()
        assert (workspace / "b.txt").read_text(encoding="utf-8") == "x"

    def test_destination_outside_allowlist(self, make_executor, workspace):
        (workspace / "src").mkdir()
        (workspace / "src" / "a.txt").write_text("x", encoding="utf-8")
        res = _call(make_executor(allow_paths=("src",)), "move_file", source="src/a.txt", destination="out/a.txt")
        assert res.error_code == ErrorCode.DENIED_PATH_ALLOWLIST
        assert (workspace / "src" / "a.txt").exists()

    def test_missing_source(self, make_executor):
        res = _call(make_executor(), "copy_file", source="nope.txt", destination="b.txt")
        assert res.error_code == ErrorCode.NOT_FOUND

    def test_destination_is_directory(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        (workspace / "d").mkdir()
        res = _call(make_executor(), "move_file", source="a.txt", destination="d")
        assert res.error_code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.parametrize("tool", ["move_file", "copy_file"])
    def test_new_destination_directory_visible(self, make_executor, workspace, tool):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        ex = make_executor()
        assert _call(ex, "list_files", path="out").error_code == ErrorCode.NOT_FOUND
        assert _call(ex, tool, source="a.txt", destination="out/b.txt").ok
        assert _call(ex, "list_files", path="out").result["entries"] == [{"name": "b.txt", "type": "file"}]


class TestFileInfo:
    def test_file(self, make_executor, workspace):
        (workspace / "a.txt").write_text("abcd", encoding="utf-8")
        res = _call(make_executor(), "file_info", path="a.txt")
        assert res.ok
        assert res.result["type"] == "file"
        assert res.result["size"] == 4
        assert res.result["is_file"] is True
        assert res.result["is_directory"] is False
        assert len(res.result["permissions"]) == 3

    def test_directory(self, make_executor, workspace):
        (workspace / "d").mkdir()
        res = _call(make_executor(), "file_info", path="d")
        assert res.result["type"] == "directory"


class TestCreateDirectory:
    def test_creates_with_parents(self, make_executor, workspace):
        ex = make_executor()
        assert _call(ex, "file_info", path="a").error_code == ErrorCode.NOT_FOUND
        res = _call(ex, "create_directory", path="a/b")
        assert res.result == {"path": "a/b", "created": True}
        assert (workspace / "a" / "b").is_dir()
        assert _call(ex, "file_info", path="a").result["type"] == "directory"
        assert _call(ex, "list_files", path="a/b").result["entries"] == []

    def test_existing_directory(self, make_executor, workspace):
        (workspace / "d").mkdir()
        assert _call(make_executor(), "create_directory", path="d").result["created"] is False

    def test_existing_file(self, make_executor, workspace):
        (workspace / "a.txt").write_text("x", encoding="utf-8")
        assert _call(make_executor(), "create_directory", path="a.txt").error_code == ErrorCode.VALIDATION_ERROR

    def test_outside_allowlist(self, make_executor, workspace):
        res = _call(make_executor(allow_paths=("docs",)), "create_directory", path="out")
        assert res.error_code == ErrorCode.DENIED_PATH_ALLOWLIST
        assert not (workspace / "out").exists()


class TestGrep:
    @pytest.fixture
    def tree(self, workspace):
        (workspace / "src").mkdir()
        (workspace / "src" / "a.py").write_text("import os\nTODO: fix\nprint('todo')\n", encoding="utf-8")
        (workspace / "src" / "b.py").write_text("nothing here\n", encoding="utf-8")
        (workspace / ".hidden").mkdir()
        (workspace / ".hidden" / "c.py").write_text("TODO hidden\n", encoding="utf-8")
        (workspace / "dist").mkdir()
        (workspace / "dist" / "d.py").write_text("TODO built\n", encoding="utf-8")
        (workspace / "secret").mkdir()
        (workspace / "secret" / "e.py").write_text("TODO secret\n", encoding="utf-8")
        return workspace

    def test_recursive_case_insensitive(self, make_executor, tree):
        res = _call(make_executor(), "grep", pattern="todo", path=".")
        assert res.ok
        assert [(m["file"], m["line"]) for m in res.result["matches"]] == [
            ("secret/e.py", 1),
            ("src/a.py", 2),
            ("src/a.py", 3),
        ]
        assert res.result["matches"][0]["match"] == "TODO"
        assert res.result["truncated"] is False

    def test_case_sensitive(self, make_executor, tree):
        res = _call(make_executor(), "grep", pattern="todo", path="src", case_sensitive=True)
        assert res.result["matches"] == [{"file": "src/a.py", "line": 3, "text": "print('todo')", "match": "todo"}]

    def test_skips_denied_entries(self, make_executor, tree):
        (tree / "src" / "node_modules").mkdir()
        (tree / "src" / "node_modules" / "f.py").write_text("TODO vendored\n", encoding="utf-8")
        res = _call(make_executor(), "grep", pattern="TODO", path="src")
        assert {m["file"] for m in res.result["matches"]} == {"src/a.py"}
        denied = _call(make_executor(allow_paths=("src",)), "grep", pattern="TODO", path="secret")
        assert denied.error_code == ErrorCode.DENIED_PATH_ALLOWLIST

    def test_max_results(self, make_executor, tree):
        res = _call(make_executor(), "grep", pattern="todo", path=".", max_results=1)
        assert res.result["count"] == 1
        assert res.result["truncated"] is True

    def test_single_file(self, make_executor, tree):
        res = _call(make_executor(), "grep", pattern="^import", path="src/a.py")
        assert res.result["count"] == 1

    def test_large_files_skipped(self, make_executor, tree):
        (tree / "src" / "big.py").write_text("TODO " * 10, encoding="utf-8")
        res = _call(make_executor(limits=Limits(max_read_size=40)), "grep", pattern="TODO", path="src")
        assert res.result["skipped_files"] == ["src/big.py"]
        assert res.result["count"] == 2

    def test_invalid_regex(self, make_executor, tree):
        res = _call(make_executor(), "grep", pattern="(unclosed", path="src")
        assert res.error_code == ErrorCode.VALIDATION_ERROR

    def test_missing_path(self, make_executor):
        assert _call(make_executor(), "grep", pattern="x", path="nope").error_code == ErrorCode.NOT_FOUND


class TestOutsideBaseDir:
    @pytest.mark.parametrize(
        "tool,args",
        [
            ("read_file", {}),
            ("write_file", {"content": "x"}),
            ("list_files", {}),
            ("create_directory", {}),
            ("file_info", {}),
        ],
    )
    @pytest.mark.parametrize("escape", ["../x", "ABSOLUTE"])
    def test_denied(self, make_executor, workspace, tool, args, escape):
        path = str(workspace.parent / "x") if escape == "ABSOLUTE" else escape
        res = _call(make_executor(), tool, path=path, **args)
        assert res.error_code == ErrorCode.DENIED_PATH_ALLOWLIST
        assert not (workspace.parent / "x").exists()
