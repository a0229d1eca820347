from __future__ import annotations

import json

from pyassist.tools.contract import ErrorCode


def _call(ex, name, **args):
    return ex.execute({"tool_name": name, "args": args})


class TestRememberRecall:
    def test_remember_then_recall(self, make_executor):
        ex = make_executor()
        assert _call(ex, "remember", text="My age is 34").result == {"count": 1}
        _call(ex, "remember", text="Favourite colour is green")
        res = _call(ex, "recall", query="age")
        assert res.ok
        assert [e["text"] for e in res.result["entries"]] == ["My age is 34"]

    def test_recall_no_match(self, make_executor):
        ex = make_executor()
        _call(ex, "remember", text="likes tea")
        assert _call(ex, "recall", query="coffee").result == {"entries": []}

    def test_recall_caps_at_five(self, make_executor):
        ex = make_executor()
        for i in range(8):
            _call(ex, "remember", text=f"note {i}")
        assert len(_call(ex, "recall", query="note").result["entries"]) == 5

    def test_memory_limit_trims_oldest(self, make_executor, tmp_path):
        ex = make_executor(memory_limit=3)
        for i in range(5):
            res = _call(ex, "remember", text=f"fact {i}")
        assert res.result == {"count": 3}
        stored = json.loads((tmp_path / "data" / "memory.json").read_text(encoding="utf-8"))
        assert [e["text"] for e in stored["entries"]] == ["fact 2", "fact 3", "fact 4"]

    def test_blank_text(self, make_executor):
        assert _call(make_executor(), "remember", text="   ").error_code == ErrorCode.VALIDATION_ERROR

    def test_corrupt_memory_starts_fresh(self, make_executor, tmp_path):
        data = tmp_path / "data"
        data.mkdir()
        (data / "memory.json").write_text("{broken", encoding="utf-8")
        ex = make_executor()
        assert _call(ex, "recall", query="x").result == {"entries": []}
        assert _call(ex, "remember", text="after").result == {"count": 1}


class TestMemoryLog:
    def test_add_and_search_both_stores(self, make_executor):
        ex = make_executor()
        _call(ex, "remember", text="Paris trip in June")
        res = _call(ex, "memory_add", text="Booked hotel in paris")
        assert res.ok
        assert res.result["entry"]["text"] == "Booked hotel in paris"

        found = _call(ex, "memory_search", query="PARIS")
        assert found.result["total"] == 2
        assert found.result["has_more"] is False

    def test_search_paging(self, make_executor):
        ex = make_executor()
        for i in range(7):
            _call(ex, "memory_add", text=f"log item {i}")
        first = _call(ex, "memory_search", query="item", limit=3)
        assert len(first.result["entries"]) == 3
        assert first.result["has_more"] is True
        last = _call(ex, "memory_search", query="item", limit=3, offset=6)
        assert len(last.result["entries"]) == 1
        assert last.result["has_more"] is False
        assert last.result["total"] == 7

    def test_search_limit_must_be_positive(self, make_executor):
        assert _call(make_executor(), "memory_search", query="x", limit=0).error_code == ErrorCode.VALIDATION_ERROR


class TestTasks:
    def test_add_list_done(self, make_executor):
        ex = make_executor()
        a = _call(ex, "task_add", text="buy milk", due="2030-01-02", priority="high")
        b = _call(ex, "task_add", text="call mom")
        assert (a.result["id"], b.result["id"]) == (1, 2)
        assert a.result["due"] == "2030-01-02"

        done = _call(ex, "task_done", id=1)
        assert done.result["done"] is True
        assert done.result["done_at"]

        assert [t["text"] for t in _call(ex, "task_list", status="open").result["entries"]] == ["call mom"]
        assert [t["text"] for t in _call(ex, "task_list", status="done").result["entries"]] == ["buy milk"]
        assert len(_call(ex, "task_list").result["entries"]) == 2

    def test_done_is_idempotent(self, make_executor):
        ex = make_executor()
        _call(ex, "task_add", text="x")
        first = _call(ex, "task_done", id=1).result["done_at"]
        assert _call(ex, "task_done", id=1).result["done_at"] == first

    def test_done_missing_id(self, make_executor):
        assert _call(make_executor(), "task_done", id=42).error_code == ErrorCode.NOT_FOUND

    def test_bad_due_date(self, make_executor):
        res = _call(make_executor(), "task_add", text="x", due="next week")
        assert res.error_code == ErrorCode.VALIDATION_ERROR

    def test_bad_priority(self, make_executor):
        assert _call(make_executor(), "task_add", text="x", priority="urgent").error_code == ErrorCode.VALIDATION_ERROR

    def test_ids_continue_after_corrupt_line(self, make_executor, tmp_path):
        data = tmp_path / "data"
        data.mkdir()
        (data / "tasks.jsonl").write_text('{"id": 3, "text": "old"}\nnot json\n', encoding="utf-8")
        res = _call(make_executor(), "task_add", text="new")
        assert res.result["id"] == 4
        assert (data / "tasks.jsonl.corrupt").exists()

    def test_confirmation_required(self, make_executor, tmp_path):
        ex = make_executor(require_confirmation_for=("task_add",))
        assert _call(ex, "task_add", text="x").error_code == ErrorCode.CONFIRMATION_REQUIRED
        assert not (tmp_path / "data" / "tasks.jsonl").exists()
        assert _call(ex, "task_add", text="x", confirm=True).ok


class TestReminders:
    def test_add_and_list(self, make_executor):
        ex = make_executor()
        res = _call(ex, "reminder_add", text="stretch", in_seconds=600)
        assert res.ok
        assert res.result["id"] == 1
        listed = _call(ex, "reminder_list").result["entries"]
        assert [r["text"] for r in listed] == ["stretch"]

    def test_start_time_filter(self, make_executor):
        ex = make_executor()
        _call(ex, "reminder_add", text="soon", in_seconds=60)
        assert _call(ex, "reminder_list", start_time="2999-01-01T00:00:00Z").result["entries"] == []
        assert len(_call(ex, "reminder_list", start_time="2000-01-01").result["entries"]) == 1

    def test_invalid_start_time(self, make_executor):
        assert _call(make_executor(), "reminder_list", start_time="soonish").error_code == ErrorCode.VALIDATION_ERROR

    def test_non_positive_delay(self, make_executor):
        assert _call(make_executor(), "reminder_add", text="x", in_seconds=0).error_code == ErrorCode.VALIDATION_ERROR
