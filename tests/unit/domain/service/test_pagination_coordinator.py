"""Unit tests for PaginationCoordinator."""

import pytest

from discuss.domain.model import Pagination
from discuss.domain.value import CommentId, RefusalReason
from tests.conftest import load_roots, make_payload


class TestRequestPage:
    """Tests for request_page."""

    def test_first_request_starts_loading_page_one(self, coordinator, empty_tree):
        request = coordinator.request_page(empty_tree, None)

        assert request.should_fetch
        assert request.page == 1
        assert request.tree.root_pagination.loading
        assert not empty_tree.root_pagination.loading

    def test_second_request_while_loading_is_refused(self, coordinator, empty_tree):
        loading = coordinator.request_page(empty_tree, None).tree
        again = coordinator.request_page(loading, None)

        assert not again.should_fetch
        assert again.reason is RefusalReason.ALREADY_LOADING
        assert again.tree is loading

    def test_exhausted_level_is_refused(self, engine, coordinator, empty_tree):
        tree = load_roots(engine, empty_tree, make_payload("c1"))
        request = coordinator.request_page(tree, None)

        assert not request.should_fetch
        assert request.reason is RefusalReason.EXHAUSTED

    def test_missing_parent_is_refused(self, coordinator, empty_tree):
        request = coordinator.request_page(empty_tree, CommentId("gone"))
        assert request.reason is RefusalReason.NOT_FOUND

    def test_reply_level_requests_its_own_cursor(self, engine, coordinator, empty_tree):
        tree = load_roots(engine, empty_tree, make_payload("c1", replies_count=4))
        request = coordinator.request_page(tree, CommentId("c1"))

        assert request.should_fetch
        assert request.page == 1
        assert request.tree.nodes_by_id["c1"].pagination.loading
        assert not request.tree.root_pagination.loading

    def test_merge_completes_the_cycle(self, engine, coordinator, empty_tree):
        request = coordinator.request_page(empty_tree, None)
        tree = engine.merge_page(
            request.tree, None, request.page, [make_payload("c1")], has_more=True
        ).tree

        follow_up = coordinator.request_page(tree, None)
        assert follow_up.should_fetch
        assert follow_up.page == 2


class TestResetOnFailure:
    """Tests for reset_on_failure."""

    def test_clears_loading_without_advancing(self, coordinator, empty_tree):
        loading = coordinator.request_page(empty_tree, None).tree
        reset = coordinator.reset_on_failure(loading, None)

        assert reset.root_pagination == Pagination()
        assert coordinator.request_page(reset, None).page == 1

    def test_idle_level_is_left_alone(self, coordinator, empty_tree):
        assert coordinator.reset_on_failure(empty_tree, None) is empty_tree


class TestJumpToPage:
    """Tests for jump_to_page."""

    def test_unloads_visible_comments_and_keeps_count(self, engine, coordinator, empty_tree):
        tree = engine.merge_page(
            empty_tree,
            None,
            1,
            [make_payload("c1", minutes=2), make_payload("c2", minutes=1)],
            has_more=True,
            total_count=10,
        ).tree

        request = coordinator.jump_to_page(tree, 3)

        assert request.should_fetch
        assert request.page == 3
        assert request.tree.root_ids == ()
        assert request.tree.nodes_by_id == {}
        assert request.tree.comments_count == 10
        assert request.tree.removed_ids == frozenset()

    def test_jump_then_merge_shows_only_that_page(self, engine, coordinator, empty_tree):
        tree = load_roots(engine, empty_tree, make_payload("c1"))
        request = coordinator.jump_to_page(tree, 2)
        merged = engine.merge_page(
            request.tree, None, 2, [make_payload("c9")], has_more=False
        ).tree

        assert merged.root_ids == ("c9",)
        assert merged.root_pagination.next_page == 3

    def test_refused_while_loading(self, coordinator, empty_tree):
        loading = coordinator.request_page(empty_tree, None).tree
        request = coordinator.jump_to_page(loading, 2)
        assert request.reason is RefusalReason.ALREADY_LOADING

    def test_page_below_one_is_rejected(self, coordinator, empty_tree):
        with pytest.raises(ValueError):
            coordinator.jump_to_page(empty_tree, 0)
