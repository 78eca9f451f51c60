"""Unit tests for the engine context (records and dirty bands)."""

import pytest

from jobengine.context import EngineContext, WorkerRecord
from jobengine.model import Auto, Manual, SinglePreset


@pytest.fixture
def ctx():
    c = EngineContext()
    yield c
    if not c.closed:
        c.close()


class TestWorkerRecord:
    def test_defaults(self):
        rec = WorkerRecord()
        assert rec.role == Auto()
        assert rec.auto_assign
        assert rec.last_recompute_tick == -1
        assert rec.managed

    def test_manual_role_unmanaged(self):
        assert not WorkerRecord(role=Manual()).managed

    def test_auto_assign_off_unmanaged(self):
        assert not WorkerRecord(role=SinglePreset("Mining"), auto_assign=False).managed


class TestRecords:
    def test_record_is_created_once(self, ctx):
        rec = ctx.record("ana")
        assert ctx.record("ana") is rec

    def test_forget(self, ctx):
        ctx.record("ana")
        ctx.primaries["ana"] = "Cooking"
        ctx.mark_critical("ana")
        ctx.forget("ana")
        assert "ana" not in ctx.records
        assert "ana" not in ctx.primaries
        assert not ctx.is_dirty("ana")

    def test_holders(self, ctx):
        ctx.primaries.update({"a": "Cooking", "b": "Cooking", "c": "Mining"})
        assert ctx.holders() == {"Cooking": 2, "Mining": 1}
        assert ctx.holders(exclude="a") == {"Cooking": 1, "Mining": 1}


class TestDirtyBands:
    def test_critical_drains_first(self, ctx):
        ctx.mark_normal("a")
        ctx.mark_normal("b")
        ctx.mark_critical("c")
        assert list(ctx.drain(10)) == ["c", "a", "b"]
        assert ctx.pending() == 0

    def test_budget_leaves_rest_queued(self, ctx):
        for w in "abcde":
            ctx.mark_normal(w)
        assert list(ctx.drain(2)) == ["a", "b"]
        assert ctx.normal == ["c", "d", "e"]

    def test_promotion_to_critical(self, ctx):
        ctx.mark_normal("a")
        ctx.mark_critical("a")
        assert ctx.critical == ["a"]
        assert ctx.normal == []

    def test_normal_does_not_demote(self, ctx):
        ctx.mark_critical("a")
        ctx.mark_normal("a")
        assert ctx.critical == ["a"]
        assert ctx.pending() == 1

    def test_duplicates_collapse(self, ctx):
        ctx.mark_all_normal(["a", "a", "b"])
        assert ctx.pending() == 2

    def test_partial_drain_is_lazy(self, ctx):
        ctx.mark_normal("a")
        ctx.mark_normal("b")
        it = ctx.drain(2)
        assert next(it) == "a"
        assert ctx.is_dirty("b")


class TestLifecycle:
    def test_close_releases_state(self, ctx):
        ctx.record("a")
        ctx.mark_normal("a")
        ctx.close()
        assert ctx.records == {}
        assert ctx.pending() == 0
        assert ctx.closed

    def test_marking_after_close(self, ctx):
        ctx.close()
        with pytest.raises(RuntimeError, match="closed"):
            ctx.mark_critical("a")
        with pytest.raises(RuntimeError, match="closed"):
            ctx.record("a")

    def test_repr(self, ctx):
        ctx.mark_critical("a")
        assert repr(ctx) == "EngineContext(workers=0, critical=1, normal=0)"
