"""Unit tests for id ordering helpers."""

from datetime import datetime
from types import SimpleNamespace

from discuss.domain.value import CommentId
from discuss.domain.value.ordering import (
    append_unique,
    newest_first,
    prepend_unique,
    same_id,
    unique_ids,
)


class TestSameId:
    """Tests for same_id."""

    def test_plain_and_wrapped_ids_match(self):
        assert same_id("c1", CommentId("c1"))

    def test_different_ids_do_not_match(self):
        assert not same_id("c1", "c2")

    def test_none_only_matches_none(self):
        assert same_id(None, None)
        assert not same_id(None, "c1")


class TestUniqueIds:
    """Tests for unique_ids."""

    def test_first_occurrence_wins(self):
        assert unique_ids(["a", "b", "a", "c", "b"]) == ("a", "b", "c")


class TestPrependUnique:
    """Tests for prepend_unique."""

    def test_new_id_goes_first(self):
        assert prepend_unique(("b", "c"), "a") == ("a", "b", "c")

    def test_existing_copy_is_moved_to_head(self):
        assert prepend_unique(("b", "a", "c"), "a") == ("a", "b", "c")


class TestAppendUnique:
    """Tests for append_unique."""

    def test_appends_only_unseen_ids(self):
        assert append_unique(("a", "b"), ["b", "c", "c", "d"]) == ("a", "b", "c", "d")

    def test_excluded_ids_are_skipped(self):
        assert append_unique(("a",), ["b", "x"], exclude={"x"}) == ("a", "b")


class TestNewestFirst:
    """Tests for newest_first."""

    def test_sorts_descending_by_creation(self):
        old = SimpleNamespace(created_at=datetime(2024, 1, 1))
        new = SimpleNamespace(created_at=datetime(2024, 1, 2))
        assert newest_first([old, new]) == [new, old]

    def test_ties_keep_input_order(self):
        when = datetime(2024, 1, 1)
        first = SimpleNamespace(created_at=when, name="first")
        second = SimpleNamespace(created_at=when, name="second")
        assert [i.name for i in newest_first([first, second])] == ["first", "second"]
