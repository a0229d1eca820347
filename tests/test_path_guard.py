from __future__ import annotations

import pytest

from pyassist.util.fs import PathDenied, PathGuard


class TestResolve:
    """Lexical resolution against the base directory."""

    def test_relative_path_joins_base(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.resolve("a/b.txt") == tmp_path / "a" / "b.txt"

    def test_dot_is_base(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.resolve(".") == tmp_path

    @pytest.mark.parametrize("path", ["../escape.txt", "a/../../escape.txt"])
    def test_traversal_is_plain_join(self, tmp_path, path):
        g = PathGuard(tmp_path / "ws", (".",))
        assert g.resolve(path) == tmp_path / "escape.txt"
        with pytest.raises(PathDenied):
            g.resolve_allowed(path, "read")

    def test_absolute_input_replaces_base(self, tmp_path):
        g = PathGuard(tmp_path / "ws", (".",))
        assert g.resolve(str(tmp_path / "a.txt")) == tmp_path / "a.txt"
        with pytest.raises(PathDenied):
            g.resolve_allowed(str(tmp_path / "a.txt"), "read")

    def test_absolute_input_inside_base(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.resolve_allowed(str(tmp_path / "a.txt"), "read") == tmp_path / "a.txt"

    def test_empty_rejected(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        with pytest.raises(PathDenied):
            g.resolve_allowed("  ", "read")

    def test_inner_dotdot_stays_inside(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.resolve("a/../b.txt") == tmp_path / "b.txt"


class TestAllowlist:
    """allow_paths coverage and blocked segments."""

    def test_empty_allowlist_denies_everything(self, tmp_path):
        g = PathGuard(tmp_path, ())
        with pytest.raises(PathDenied):
            g.resolve_allowed("a.txt", "read")

    def test_dot_covers_whole_tree(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.resolve_allowed("deep/nested/file.txt", "write") == tmp_path / "deep" / "nested" / "file.txt"

    def test_subdir_entry_limits_scope(self, tmp_path):
        g = PathGuard(tmp_path, ("src",))
        assert g.is_allowed(tmp_path / "src" / "main.py", "read")
        assert g.is_allowed(tmp_path / "src", "list")
        assert not g.is_allowed(tmp_path / "docs" / "readme.md", "read")
        assert not g.is_allowed(tmp_path / "srcfoo" / "x.py", "read")

    @pytest.mark.parametrize("path", [".git/config", "a/.env", "node_modules/pkg/index.js", ".GIT/HEAD"])
    def test_blocked_segments(self, tmp_path, path):
        g = PathGuard(tmp_path, (".",))
        with pytest.raises(PathDenied):
            g.resolve_allowed(path, "read")

    def test_hidden_final_segment_only_blocks_list(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.is_allowed(tmp_path / ".hidden", "read")
        assert not g.is_allowed(tmp_path / ".hidden", "list")

    def test_entries_outside_base_are_ignored(self, tmp_path):
        g = PathGuard(tmp_path, ("../other",))
        assert not g.is_allowed(tmp_path / "a.txt", "read")

    @pytest.mark.parametrize("op", ["read", "write", "list"])
    @pytest.mark.parametrize("escape", ["../x", "a/../../x", "ABSOLUTE"])
    def test_outside_base_denied_for_every_op(self, tmp_path, op, escape):
        g = PathGuard(tmp_path / "ws", (".",))
        path = str(tmp_path / "x") if escape == "ABSOLUTE" else escape
        with pytest.raises(PathDenied):
            g.resolve_allowed(path, op)
        assert not g.is_allowed(tmp_path / "x", op)

    def test_relative_display(self, tmp_path):
        g = PathGuard(tmp_path, (".",))
        assert g.relative(tmp_path) == "."
        assert g.relative(tmp_path / "a" / "b.txt") == "a/b.txt"
