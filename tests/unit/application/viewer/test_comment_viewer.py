"""Unit tests for the shared comment viewer behaviour."""

import asyncio

import httpx
import pytest

from discuss.adapter.graphql import GraphQLCommentRepository
from discuss.adapter.session import StaticSessionProvider
from discuss.application.viewer import ViewerFactory
from discuss.config import PaginationSettings
from discuss.domain.error import (
    ConflictError,
    MutationInFlightError,
    NotAuthorizedError,
    NotFoundError,
    TransportFailureError,
    ViewerClosedError,
)
from discuss.domain.repository import CommentRepository
from discuss.domain.service import MergeEngine, PaginationCoordinator
from discuss.domain.value import CommentId, MutationKind, MutationState, PostId, UserId
from tests.di import TEST_USER_ID
from tests.harness import create_env_fixture

# Unit test fixture - everything mocked
unit_env = create_env_fixture()

POST = PostId("p1")
BOB = UserId("bob")


async def _arrange(unit_env, comments: int = 2):
    """Fake server with one post and ``comments`` top-level comments by bob."""
    factory = await unit_env.get(ViewerFactory)
    repo = await unit_env.get(CommentRepository)
    repo.seed_post(POST, BOB)
    ids = [repo.seed_comment(POST, BOB, f"comment {i}") for i in range(comments)]
    return factory, repo, ids


class TestLoading:
    """Tests for load_comments and load_replies."""

    @pytest.mark.asyncio
    async def test_pages_are_appended(self, unit_env):
        factory, _, ids = await _arrange(unit_env, comments=7)
        viewer = factory.single_post(POST)

        await viewer.load_comments(POST)
        assert viewer.tree(POST).root_ids == tuple(reversed(ids))[:5]

        await viewer.load_comments(POST)
        tree = viewer.tree(POST)
        assert tree.root_ids == tuple(reversed(ids))
        assert tree.comments_count == 7
        assert not tree.root_pagination.has_more

    @pytest.mark.asyncio
    async def test_exhausted_post_is_not_fetched_again(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)

        await viewer.load_comments(POST)
        assert await viewer.load_comments(POST) is None
        assert repo.calls == ["fetch_comments"]

    @pytest.mark.asyncio
    async def test_failed_load_leaves_tree_untouched_and_can_retry(self, unit_env):
        factory, repo, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        before = viewer.tree(POST)
        repo.fail_next(TransportFailureError("offline"))

        with pytest.raises(TransportFailureError):
            await viewer.load_comments(POST)
        assert viewer.tree(POST) == before

        await viewer.load_comments(POST)
        assert len(viewer.tree(POST).root_ids) == len(ids)

    @pytest.mark.asyncio
    async def test_load_replies(self, unit_env):
        factory, repo, ids = await _arrange(unit_env, comments=1)
        replies = [repo.seed_comment(POST, BOB, "re", parent_id=ids[0]) for _ in range(2)]
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)

        change = await viewer.load_replies(ids[0])

        node = viewer.tree(POST).nodes_by_id[ids[0]]
        assert node.children == tuple(reversed(replies))
        assert node.replies_count == 2
        assert change.added_ids == tuple(reversed(replies))

    @pytest.mark.asyncio
    async def test_load_replies_of_unknown_comment(self, unit_env):
        factory, _, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        with pytest.raises(NotFoundError):
            await viewer.load_replies(CommentId("nope"))


class TestAdd:
    """Tests for optimistic adds."""

    @pytest.mark.asyncio
    async def test_add_comment_is_confirmed_under_server_id(self, unit_env):
        factory, _, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        count_before = viewer.tree(POST).comments_count

        mutation = await viewer.add_comment(POST, "hello")

        tree = viewer.tree(POST)
        assert mutation.state is MutationState.CONFIRMED
        assert tree.root_ids[0] == mutation.target_id
        assert not tree.nodes_by_id[mutation.target_id].provisional
        assert tree.nodes_by_id[mutation.target_id].author_id == TEST_USER_ID
        assert not any(cid.startswith("temp-") for cid in tree.nodes_by_id)
        assert tree.comments_count == count_before + 1
        assert viewer.pending == []

    @pytest.mark.asyncio
    async def test_failed_add_rolls_back_exactly(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        before = viewer.tree(POST)
        changes = []
        viewer.subscribe(lambda post_id, tree, change: changes.append(change.kind))
        repo.fail_next(TransportFailureError("offline"))

        with pytest.raises(TransportFailureError):
            await viewer.add_comment(POST, "lost")

        assert viewer.tree(POST) == before
        assert changes == [MutationKind.ADD, MutationKind.RESTORE]
        assert viewer.pending == []

    @pytest.mark.asyncio
    async def test_reply_is_attached_at_any_depth(self, unit_env):
        factory, repo, ids = await _arrange(unit_env, comments=1)
        reply = repo.seed_comment(POST, BOB, "re", parent_id=ids[0])
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        await viewer.load_replies(ids[0])

        mutation = await viewer.add_reply(reply, "deeper")

        tree = viewer.tree(POST)
        assert tree.nodes_by_id[reply].children == (mutation.target_id,)
        assert tree.nodes_by_id[reply].replies_count == 1
        assert tree.nodes_by_id[mutation.target_id].parent_id == reply

    @pytest.mark.asyncio
    async def test_reply_to_unloaded_comment(self, unit_env):
        factory, _, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        with pytest.raises(NotFoundError):
            await viewer.add_reply(CommentId("nope"), "hi")

    @pytest.mark.asyncio
    async def test_anonymous_cannot_add(self, unit_env):
        _, repo, _ = await _arrange(unit_env)
        factory = ViewerFactory(
            MergeEngine(),
            PaginationCoordinator(),
            repo,
            StaticSessionProvider(),
            PaginationSettings(),
        )
        viewer = factory.single_post(POST)

        with pytest.raises(NotAuthorizedError):
            await viewer.add_comment(POST, "hi")
        assert viewer.tree(POST).root_ids == ()


class TestEditAndDelete:
    """Tests for edits and deletes."""

    @pytest.mark.asyncio
    async def test_cannot_edit_someone_elses_comment(self, unit_env):
        factory, repo, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        before = viewer.tree(POST)

        with pytest.raises(NotAuthorizedError):
            await viewer.edit_comment(ids[0], "mine now")
        with pytest.raises(NotAuthorizedError):
            await viewer.delete_comment(ids[0])

        assert viewer.tree(POST) is before
        assert "update_comment" not in repo.calls
        assert "delete_comment" not in repo.calls
        assert not viewer.can_modify(ids[0])

    @pytest.mark.asyncio
    async def test_edit_own_comment(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        mine = repo.seed_comment(POST, TEST_USER_ID, "typo")
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        assert viewer.can_modify(mine)

        mutation = await viewer.edit_comment(mine, "fixed")

        node = viewer.tree(POST).nodes_by_id[mine]
        assert mutation.state is MutationState.CONFIRMED
        assert node.content == "fixed"
        assert node.edited_at is not None

    @pytest.mark.asyncio
    async def test_failed_edit_restores_content(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        mine = repo.seed_comment(POST, TEST_USER_ID, "original")
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        before = viewer.tree(POST)
        repo.fail_next(ConflictError("Comment is locked"))

        with pytest.raises(ConflictError):
            await viewer.edit_comment(mine, "changed")
        assert viewer.tree(POST) == before

    @pytest.mark.asyncio
    async def test_delete_own_comment_with_replies(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        mine = repo.seed_comment(POST, TEST_USER_ID, "mine")
        reply = repo.seed_comment(POST, BOB, "re", parent_id=mine)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        await viewer.load_replies(mine)
        count_before = viewer.tree(POST).comments_count

        await viewer.delete_comment(mine)

        tree = viewer.tree(POST)
        assert mine not in tree
        assert reply not in tree
        assert tree.comments_count == count_before - 1

    @pytest.mark.asyncio
    async def test_failed_delete_restores_subtree(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        mine = repo.seed_comment(POST, TEST_USER_ID, "mine")
        repo.seed_comment(POST, BOB, "re", parent_id=mine)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        await viewer.load_replies(mine)
        before = viewer.tree(POST)
        repo.fail_next(TransportFailureError("offline"))

        with pytest.raises(TransportFailureError):
            await viewer.delete_comment(mine)
        assert viewer.tree(POST) == before


class TestLikes:
    """Tests for like toggles."""

    @pytest.mark.asyncio
    async def test_like_then_unlike(self, unit_env):
        factory, _, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)

        await viewer.toggle_like(ids[0])
        node = viewer.tree(POST).nodes_by_id[ids[0]]
        assert node.likes_count == 1
        assert node.liked_by(TEST_USER_ID)

        await viewer.toggle_like(ids[0])
        node = viewer.tree(POST).nodes_by_id[ids[0]]
        assert node.likes_count == 0
        assert not node.liked_by(TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_server_counter_replaces_optimistic_count(self, unit_env):
        factory, repo, _ = await _arrange(unit_env, comments=0)
        popular = repo.seed_comment(POST, BOB, "x", likers={UserId("u1"), UserId("u2")})
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        # Another user likes it after we loaded
        repo._comments[popular].likers.add(UserId("u3"))

        await viewer.toggle_like(popular)
        assert viewer.tree(POST).nodes_by_id[popular].likes_count == 4

    @pytest.mark.asyncio
    async def test_failed_like_is_reverted(self, unit_env):
        factory, repo, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        before = viewer.tree(POST)
        repo.fail_next(TransportFailureError("offline"))

        with pytest.raises(TransportFailureError):
            await viewer.toggle_like(ids[0])
        assert viewer.tree(POST) == before


class TestConcurrency:
    """Tests for overlapping requests."""

    @pytest.mark.asyncio
    async def test_second_toggle_while_first_in_flight(self, unit_env):
        factory, repo, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)

        gate = asyncio.Event()
        like = repo.like_comment

        async def slow_like(comment_id):
            await gate.wait()
            return await like(comment_id)

        repo.like_comment = slow_like
        first = asyncio.create_task(viewer.toggle_like(ids[0]))
        await asyncio.sleep(0)

        assert [m.kind for m in viewer.pending] == [MutationKind.LIKE]
        with pytest.raises(MutationInFlightError):
            await viewer.toggle_like(ids[0])

        gate.set()
        mutation = await first
        assert mutation.state is MutationState.CONFIRMED
        assert viewer.tree(POST).nodes_by_id[ids[0]].likes_count == 1

    @pytest.mark.asyncio
    async def test_provisional_comment_cannot_be_edited(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)

        gate = asyncio.Event()
        create = repo.create_comment

        async def slow_create(post_id, content, parent_id=None):
            await gate.wait()
            return await create(post_id, content, parent_id)

        repo.create_comment = slow_create
        adding = asyncio.create_task(viewer.add_comment(POST, "draft"))
        await asyncio.sleep(0)
        provisional_id = viewer.tree(POST).root_ids[0]

        with pytest.raises(MutationInFlightError):
            await viewer.edit_comment(provisional_id, "edited early")

        gate.set()
        await adding

    @pytest.mark.asyncio
    async def test_reply_to_provisional_comment_is_refused(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)

        gate = asyncio.Event()
        create = repo.create_comment

        async def slow_create(post_id, content, parent_id=None):
            await gate.wait()
            return await create(post_id, content, parent_id)

        repo.create_comment = slow_create
        adding = asyncio.create_task(viewer.add_comment(POST, "draft"))
        await asyncio.sleep(0)
        provisional_id = viewer.tree(POST).root_ids[0]
        during = viewer.tree(POST)

        with pytest.raises(MutationInFlightError):
            await viewer.add_reply(provisional_id, "too early")
        assert viewer.tree(POST) == during
        assert [m.kind for m in viewer.pending] == [MutationKind.ADD]

        gate.set()
        mutation = await adding
        reply = await viewer.add_reply(mutation.target_id, "now it works")
        assert reply.state is MutationState.CONFIRMED
        assert repo.calls.count("create_comment") == 2

    @pytest.mark.asyncio
    async def test_delete_during_reply_load(self, unit_env):
        factory, repo, ids = await _arrange(unit_env, comments=0)
        mine = repo.seed_comment(POST, TEST_USER_ID, "mine")
        repo.seed_comment(POST, BOB, "re", parent_id=mine)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)

        gate = asyncio.Event()
        fetch_replies = repo.fetch_replies

        async def slow_fetch(comment_id, page, limit):
            page_result = await fetch_replies(comment_id, page, limit)
            await gate.wait()
            return page_result

        repo.fetch_replies = slow_fetch
        loading = asyncio.create_task(viewer.load_replies(mine))
        await asyncio.sleep(0)

        await viewer.delete_comment(mine)
        gate.set()
        change = await loading

        assert not change.applied
        assert mine not in viewer.tree(POST)

    @pytest.mark.asyncio
    async def test_closed_viewer_ignores_late_results(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)

        gate = asyncio.Event()
        fetch = repo.fetch_comments

        async def slow_fetch(post_id, page, limit):
            await gate.wait()
            return await fetch(post_id, page, limit)

        repo.fetch_comments = slow_fetch
        loading = asyncio.create_task(viewer.load_comments(POST))
        await asyncio.sleep(0)

        viewer.close()
        gate.set()

        assert await loading is None
        assert viewer.closed
        assert viewer.post_ids == ()
        with pytest.raises(ViewerClosedError):
            viewer.tree(POST)


class TestUnexpectedFailures:
    """Any failure or cancellation leaves the tree as it was before the call."""

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back_add(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        before = viewer.tree(POST)
        repo.fail_next(KeyError("addComment"))

        with pytest.raises(KeyError):
            await viewer.add_comment(POST, "lost")

        assert viewer.tree(POST) == before
        assert viewer.pending == []

    @pytest.mark.asyncio
    async def test_cancelled_add_rolls_back(self, unit_env):
        factory, repo, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        await viewer.load_comments(POST)
        before = viewer.tree(POST)

        gate = asyncio.Event()

        async def stuck_create(post_id, content, parent_id=None):
            await gate.wait()

        repo.create_comment = stuck_create
        adding = asyncio.create_task(viewer.add_comment(POST, "never sent"))
        await asyncio.sleep(0)
        assert viewer.tree(POST).comments_count == before.comments_count + 1

        adding.cancel()
        with pytest.raises(asyncio.CancelledError):
            await adding

        assert viewer.tree(POST) == before
        assert viewer.pending == []

    @pytest.mark.asyncio
    async def test_unexpected_error_during_load_can_retry(self, unit_env):
        factory, repo, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        before = viewer.tree(POST)
        repo.fail_next(RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await viewer.load_comments(POST)
        assert viewer.tree(POST) == before

        await viewer.load_comments(POST)
        assert len(viewer.tree(POST).root_ids) == len(ids)

    @pytest.mark.asyncio
    async def test_cancelled_load_can_retry(self, unit_env):
        factory, repo, ids = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        before = viewer.tree(POST)

        gate = asyncio.Event()
        fetch = repo.fetch_comments

        async def stuck_fetch(post_id, page, limit):
            await gate.wait()
            return await fetch(post_id, page, limit)

        repo.fetch_comments = stuck_fetch
        loading = asyncio.create_task(viewer.load_comments(POST))
        await asyncio.sleep(0)
        assert viewer.tree(POST).root_pagination.loading

        loading.cancel()
        with pytest.raises(asyncio.CancelledError):
            await loading
        assert viewer.tree(POST) == before
        assert not viewer.tree(POST).root_pagination.loading

        repo.fetch_comments = fetch
        change = await viewer.load_comments(POST)
        assert change is not None
        assert len(viewer.tree(POST).root_ids) == len(ids)

    @pytest.mark.asyncio
    async def test_null_mutation_result_from_server_rolls_back(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"addComment": None}})

        session = StaticSessionProvider(user_id=TEST_USER_ID, token="secret")
        repository = GraphQLCommentRepository(
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            graphql_url="https://api.example.com/graphql",
            session=session,
        )
        factory = ViewerFactory(
            MergeEngine(),
            PaginationCoordinator(),
            repository,
            session,
            PaginationSettings(),
        )
        viewer = factory.single_post(POST)
        before = viewer.tree(POST)

        with pytest.raises(TransportFailureError):
            await viewer.add_comment(POST, "hi")

        assert viewer.tree(POST) == before
        assert viewer.pending == []


class TestIsolationAndListeners:
    """Tests for per-viewer caches and change notifications."""

    @pytest.mark.asyncio
    async def test_viewers_never_see_each_others_mutations(self, unit_env):
        factory, _, ids = await _arrange(unit_env)
        feed = factory.feed()
        single = factory.single_post(POST)
        await feed.load_comments(POST)
        await single.load_comments(POST)
        single_before = single.tree(POST)

        await feed.add_comment(POST, "only in the feed")
        await feed.toggle_like(ids[0])

        assert single.tree(POST) is single_before
        assert feed.tree(POST) is not single.tree(POST)

    @pytest.mark.asyncio
    async def test_listener_receives_changes_until_unsubscribed(self, unit_env):
        factory, _, _ = await _arrange(unit_env)
        viewer = factory.single_post(POST)
        received = []
        unsubscribe = viewer.subscribe(
            lambda post_id, tree, change: received.append((post_id, change.kind))
        )

        await viewer.load_comments(POST)
        unsubscribe()
        await viewer.add_comment(POST, "quiet")

        assert received == [(POST, MutationKind.PAGE)]
