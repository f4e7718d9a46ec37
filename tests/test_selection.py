"""Tests for the table selection algebra."""

import itertools

import pytest

from searchreplace.selection import TableSelection

ALL_TABLES = ["comments", "options", "posts", "users"]


class TestResolve:
    """Tests for TableSelection.resolve."""

    def test_empty_selection_resolves_to_nothing(self):
        assert TableSelection().resolve(ALL_TABLES) == []

    def test_include_all(self):
        assert TableSelection(include_all=True).resolve(ALL_TABLES) == ALL_TABLES

    def test_all_tables_first_then_includes(self):
        """Explicit includes not in the listing are appended after it."""
        selection = TableSelection(include_all=True).with_included(["archive", "posts"])
        assert selection.resolve(ALL_TABLES) == ALL_TABLES + ["archive"]

    def test_includes_keep_first_seen_order(self):
        selection = TableSelection().with_included(["users", "posts", "users", "options"])
        assert selection.resolve(ALL_TABLES) == ["users", "posts", "options"]

    def test_includes_without_include_all_ignore_listing(self):
        selection = TableSelection().with_included(["unlisted"])
        assert selection.resolve(ALL_TABLES) == ["unlisted"]

    def test_excluded_always_wins(self):
        selection = (
            TableSelection(include_all=True)
            .with_included(["posts", "archive"])
            .with_excluded(["posts", "archive"])
        )
        assert selection.resolve(ALL_TABLES) == ["comments", "options", "users"]

    def test_listing_duplicates_collapse(self):
        assert TableSelection(include_all=True).resolve(["a", "b", "a"]) == ["a", "b"]


class TestCallOrderIndependence:
    """resolved = (include_all ? all : []) + included - excluded, whatever the call order."""

    @pytest.mark.parametrize("include_all", [True, False])
    def test_all_orders_agree(self, include_all):
        steps = [
            lambda s: s.with_include_all(include_all),
            lambda s: s.with_included(["posts", "archive"]),
            lambda s: s.with_excluded(["users", "archive"]),
        ]
        results = set()
        for order in itertools.permutations(steps):
            selection = TableSelection()
            for step in order:
                selection = step(selection)
            results.add(tuple(selection.resolve(ALL_TABLES)))

        expected = (
            ("comments", "options", "posts") if include_all else ("posts",)
        )
        assert results == {expected}


class TestIncludeExclude:
    """Tests for include/exclude set maintenance."""

    def test_override_then_union(self):
        """include(x, override) then include(y) yields x + y without duplicates."""
        selection = (
            TableSelection()
            .with_included(["a", "b"])
            .with_included(["b", "c"], override=True)
            .with_included(["c", "d"])
        )
        assert selection.included == ("b", "c", "d")

    def test_exclude_unions_into_exclude_set_only(self):
        selection = TableSelection(include_all=True).with_excluded(["a"]).with_excluded(["b", "a"])
        assert selection.excluded == frozenset({"a", "b"})
        assert selection.included == ()

    def test_exclude_override_replaces(self):
        selection = TableSelection().with_excluded(["a", "b"]).with_excluded(["c"], override=True)
        assert selection.excluded == frozenset({"c"})

    def test_cleared_keeps_include_all(self):
        selection = TableSelection(True, ("a",), frozenset({"b"})).cleared()
        assert selection == TableSelection(include_all=True)

    def test_is_empty(self):
        assert TableSelection().is_empty
        assert not TableSelection(include_all=True).is_empty
        assert not TableSelection().with_included(["a"]).is_empty

    def test_is_immutable(self):
        selection = TableSelection()
        selection.with_included(["a"])
        assert selection.included == ()
