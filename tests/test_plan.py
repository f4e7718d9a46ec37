"""Tests for the pagination model and run plan."""

import itertools

import pytest

from searchreplace.plan import BatchWindow, Range, RunPlan, iter_batch_windows
from searchreplace.selection import TableSelection
from searchreplace.substitution import ReplaceSpec, SearchSpec


class TestRange:
    """Tests for Range.apply."""

    def test_defaults_take_everything(self):
        assert Range().apply(["a", "b", "c"]) == ["a", "b", "c"]

    def test_offset_and_limit(self):
        assert Range(1, 2).apply(["a", "b", "c", "d"]) == ["b", "c"]

    def test_offset_past_end(self):
        assert Range(10, None).apply(["a", "b"]) == []

    def test_zero_limit(self):
        assert Range(0, 0).apply(["a", "b"]) == []


class TestBatchWindows:
    """Tests for iter_batch_windows."""

    def test_bounded_row_range(self):
        """offset 5, limit 10, batch 3 -> 5/3, 8/3, 11/3, 14/1."""
        windows = list(iter_batch_windows(Range(5, 10), 3))
        assert windows == [
            BatchWindow(5, 3),
            BatchWindow(8, 3),
            BatchWindow(11, 3),
            BatchWindow(14, 1),
        ]
        assert sum(w.size for w in windows) == 10

    def test_limit_smaller_than_batch(self):
        assert list(iter_batch_windows(Range(0, 2), 100)) == [BatchWindow(0, 2)]

    def test_zero_limit_yields_nothing(self):
        assert list(iter_batch_windows(Range(0, 0), 100)) == []

    def test_unbounded_is_infinite(self):
        windows = list(itertools.islice(iter_batch_windows(Range(7, None), 50), 3))
        assert windows == [BatchWindow(7, 50), BatchWindow(57, 50), BatchWindow(107, 50)]

    def test_batch_never_exceeds_remaining(self):
        for window in iter_batch_windows(Range(0, 7), 4):
            assert window.size <= 4
        assert [w.size for w in iter_batch_windows(Range(0, 7), 4)] == [4, 3]

    def test_rejects_non_positive_batch(self):
        with pytest.raises(ValueError):
            list(iter_batch_windows(Range(), 0))


class TestRunPlan:
    """Tests for RunPlan."""

    def test_worklist_applies_table_range_after_resolution(self):
        plan = RunPlan(
            search=SearchSpec("a"),
            replace=ReplaceSpec("b"),
            selection=TableSelection(include_all=True).with_excluded(["b"]),
            table_range=Range(1, 2),
        )
        assert plan.worklist(["a", "b", "c", "d", "e"]) == ["c", "d"]

    def test_is_frozen(self):
        plan = RunPlan(SearchSpec("a"), ReplaceSpec("b"), TableSelection())
        with pytest.raises(AttributeError):
            plan.batch_size = 5
