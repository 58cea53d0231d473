"""Comment viewer base.

A viewer owns the comment trees of one presentation context (the feed, a
single post, a profile grid). It drives the merge engine and the pagination
coordinator, talks to the network, and publishes every applied change to its
listeners. Viewers never share trees: the same post opened in two viewers is
cached twice and each copy only sees its own mutations.

Each mutation is applied optimistically, then confirmed with the server's
answer or rolled back when the request fails. Awaiting the network is the
only suspension point, so after every await the viewer reads the tree that
is current *now* and merges into that, never into the snapshot it held
before the await.
"""

from collections.abc import Awaitable, Callable
from typing import ClassVar
from uuid import uuid4

import logfire

from discuss.config import PaginationSettings
from discuss.domain.error import (
    ConflictError,
    MutationInFlightError,
    NotAuthorizedError,
    NotFoundError,
    ViewerClosedError,
)
from discuss.domain.model import (
    CommentNode,
    MergeResult,
    PageRequest,
    PostCommentTree,
    TreeChange,
)
from discuss.domain.repository import CommentRepository, SessionProvider
from discuss.domain.service import MergeEngine, PaginationCoordinator
from discuss.domain.service.node_store import locate
from discuss.domain.value import (
    CommentId,
    FetchPolicy,
    MutationKind,
    PostId,
    UserId,
    ViewerKind,
)
from discuss.domain.value.payload import CommentPage

from .pending import PendingMutation

Listener = Callable[[PostId, PostCommentTree, TreeChange], None]


class CommentViewer:
    """Per-context comment cache shared logic."""

    kind: ClassVar[ViewerKind]
    default_policy: ClassVar[FetchPolicy] = FetchPolicy.APPEND

    def __init__(
        self,
        engine: MergeEngine,
        coordinator: PaginationCoordinator,
        repository: CommentRepository,
        session: SessionProvider,
        pagination: PaginationSettings,
        policy: FetchPolicy | None = None,
    ) -> None:
        """Initialize viewer.

        Args:
            engine: Merge engine applying mutations to tree snapshots
            coordinator: Decides when a level may be fetched
            repository: Network client
            session: Who is signed in
            pagination: Page sizes to request
            policy: Top-level paging policy, defaults to the viewer's own
        """
        self.engine = engine
        self.coordinator = coordinator
        self.repository = repository
        self.session = session
        self.pagination = pagination
        self.policy = policy or self.default_policy
        self._trees: dict[PostId, PostCommentTree] = {}
        self._pending: dict[tuple[CommentId, MutationKind], PendingMutation] = {}
        self._listeners: list[Listener] = []
        self._closed = False

    # State

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> list[PendingMutation]:
        """Mutations still waiting for the server."""
        return list(self._pending.values())

    @property
    def post_ids(self) -> tuple[PostId, ...]:
        """Posts this viewer holds a tree for."""
        return tuple(self._trees)

    def tree(self, post_id: PostId, comments_count: int | None = None) -> PostCommentTree:
        """Return the current tree for a post, creating it on first use.

        Args:
            post_id: Post to look up
            comments_count: Known top-level total (e.g. from a post summary)

        Raises:
            ViewerClosedError: If the viewer was closed
        """
        self._ensure_open()
        tree = self._trees.get(post_id)
        if tree is None:
            tree = PostCommentTree.empty(post_id, comments_count or 0)
            self._trees[post_id] = tree
        elif comments_count is not None and comments_count != tree.comments_count:
            tree = tree.model_copy(
                update={"comments_count": max(comments_count, len(tree.root_ids))}
            )
            self._trees[post_id] = tree
        return tree

    def comment(self, comment_id: CommentId) -> CommentNode | None:
        """Find a loaded comment in any of this viewer's trees."""
        for tree in self._trees.values():
            node = locate(tree, comment_id)
            if node is not None:
                return node
        return None

    def can_modify(self, comment_id: CommentId) -> bool:
        """Whether the signed-in user wrote this comment."""
        user_id = self.session.current_user_id()
        node = self.comment(comment_id)
        return node is not None and user_id is not None and node.author_id == user_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for every applied change.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Drop all trees; results of in-flight requests are ignored from now on."""
        if self._closed:
            return
        logfire.info(
            "Viewer closed",
            viewer=self.kind.value,
            posts=len(self._trees),
            pending=len(self._pending),
        )
        self._closed = True
        self._trees.clear()
        self._listeners.clear()

    # Loading

    async def load_comments(self, post_id: PostId) -> TreeChange | None:
        """Load the next page of a post's top-level comments.

        Under the replace policy the next page replaces what is shown.

        Returns:
            The merge that was applied, or None when nothing was fetched
            (already loading, exhausted, or the viewer closed meanwhile)

        Raises:
            TransportFailureError: If the request failed (the cursor is not advanced)
            ConflictError: If the server refused the request
        """
        tree = self.tree(post_id)
        if self.policy is FetchPolicy.REPLACE:
            if not tree.root_pagination.has_more:
                logfire.info("No more pages", viewer=self.kind.value, post_id=post_id)
                return None
            return await self.load_page(post_id, tree.root_pagination.next_page)

        with logfire.span(
            "comment_viewer.load_comments", viewer=self.kind.value, post_id=post_id
        ):
            request = self.coordinator.request_page(tree, None)
            return await self._fetch_level(
                post_id,
                None,
                tree,
                request,
                lambda page: self.repository.fetch_comments(
                    post_id, page, self.pagination.comments_per_page
                ),
            )

    async def load_page(self, post_id: PostId, page: int) -> TreeChange | None:
        """Show exactly top-level page ``page`` of a post.

        Raises:
            ValueError: If ``page`` is below 1
            TransportFailureError: If the request failed (the previous page is restored)
            ConflictError: If the server refused the request
        """
        tree = self.tree(post_id)
        with logfire.span(
            "comment_viewer.load_page", viewer=self.kind.value, post_id=post_id, page=page
        ):
            request = self.coordinator.jump_to_page(tree, page)
            return await self._fetch_level(
                post_id,
                None,
                tree,
                request,
                lambda p: self.repository.fetch_comments(
                    post_id, p, self.pagination.comments_per_page
                ),
            )

    async def load_replies(self, comment_id: CommentId) -> TreeChange | None:
        """Load the next page of replies to a loaded comment.

        Raises:
            NotFoundError: If the comment is not loaded in this viewer
            TransportFailureError: If the request failed
            ConflictError: If the server refused the request
        """
        post_id = self._resolve_post(comment_id)
        tree = self.tree(post_id)
        with logfire.span(
            "comment_viewer.load_replies",
            viewer=self.kind.value,
            post_id=post_id,
            comment_id=comment_id,
        ):
            request = self.coordinator.request_page(tree, comment_id)
            return await self._fetch_level(
                post_id,
                comment_id,
                tree,
                request,
                lambda page: self.repository.fetch_replies(
                    comment_id, page, self.pagination.replies_per_page
                ),
            )

    async def _fetch_level(
        self,
        post_id: PostId,
        parent_id: CommentId | None,
        before: PostCommentTree,
        request: PageRequest,
        fetch: Callable[[int], Awaitable[CommentPage]],
    ) -> TreeChange | None:
        if not request.should_fetch:
            return None
        self._store(post_id, request.tree)

        try:
            page = await fetch(request.page)
        except BaseException as e:
            # Includes cancellation
            logfire.error(
                "Page load failed",
                viewer=self.kind.value,
                post_id=post_id,
                parent_id=parent_id,
                page=request.page,
                error=str(e),
            )
            current = self._current(post_id)
            if current is request.tree:
                self._store(post_id, before)
            elif current is not None:
                self._store(post_id, self.coordinator.reset_on_failure(current, parent_id))
            raise

        current = self._current(post_id)
        if current is None:
            return None
        result = self.engine.merge_page(
            current,
            parent_id,
            request.page,
            page.items,
            page.has_more,
            page.total_count,
        )
        self._apply(post_id, result)
        return result.change

    # Mutations

    async def add_comment(self, post_id: PostId, content: str) -> PendingMutation:
        """Add a top-level comment, shown immediately under a provisional id.

        Returns:
            The settled mutation; its ``target_id`` is the server's id

        Raises:
            NotAuthorizedError: If nobody is signed in
            TransportFailureError: If the request failed (the comment is removed again)
            ConflictError: If the server refused the comment
        """
        return await self._add(post_id, None, content)

    async def add_reply(self, comment_id: CommentId, content: str) -> PendingMutation:
        """Reply to a loaded comment at any depth.

        Raises:
            NotFoundError: If the parent is not loaded in this viewer
            MutationInFlightError: If the parent itself is not confirmed yet
            NotAuthorizedError: If nobody is signed in
            TransportFailureError: If the request failed (the reply is removed again)
            ConflictError: If the server refused the reply
        """
        post_id = self._resolve_post(comment_id)
        if locate(self.tree(post_id), comment_id).provisional:
            raise MutationInFlightError(MutationKind.ADD.value, comment_id)
        return await self._add(post_id, comment_id, content)

    async def _add(
        self, post_id: PostId, parent_id: CommentId | None, content: str
    ) -> PendingMutation:
        user_id = self._require_user("post", post_id)
        provisional_id = CommentId(f"temp-{uuid4()}")
        tree = self.tree(post_id)

        if parent_id is None:
            result = self.engine.add_comment(tree, content, provisional_id, user_id)
        else:
            result = self.engine.add_reply(tree, parent_id, content, provisional_id, user_id)
        if not result.change.applied:
            raise NotFoundError("comment", str(parent_id))

        mutation = self._begin(MutationKind.ADD, post_id, provisional_id)
        self._apply(post_id, result)

        span_name = (
            "comment_viewer.add_reply" if parent_id else "comment_viewer.add_comment"
        )
        with logfire.span(
            span_name, viewer=self.kind.value, post_id=post_id, parent_id=parent_id
        ):
            try:
                payload = await self.repository.create_comment(post_id, content, parent_id)
            except BaseException as e:
                self._roll_back(
                    mutation,
                    e,
                    lambda t: self.engine.discard_provisional(t, provisional_id),
                )
                raise

            self._confirm(
                mutation,
                lambda t: self.engine.confirm_comment(t, provisional_id, payload),
                payload.id,
            )
            logfire.info(
                "Comment added",
                viewer=self.kind.value,
                post_id=post_id,
                comment_id=payload.id,
            )
        return mutation

    async def edit_comment(self, comment_id: CommentId, content: str) -> PendingMutation:
        """Change the content of one of the user's own comments.

        Raises:
            MutationInFlightError: If an edit of this comment is still pending
                or the comment itself is not confirmed yet
            NotFoundError: If the comment is not loaded in this viewer
            NotAuthorizedError: If the comment belongs to someone else
            TransportFailureError: If the request failed (the old content is restored)
            ConflictError: If the server refused the edit
        """
        self._check_in_flight(MutationKind.EDIT, comment_id)
        post_id, node = self._modifiable(comment_id)

        result = self.engine.edit_comment(self.tree(post_id), comment_id, content)
        previous = result.change.previous or node
        mutation = self._begin(MutationKind.EDIT, post_id, comment_id)
        self._apply(post_id, result)

        with logfire.span(
            "comment_viewer.edit_comment",
            viewer=self.kind.value,
            post_id=post_id,
            comment_id=comment_id,
        ):
            try:
                payload = await self.repository.update_comment(comment_id, content)
            except BaseException as e:
                self._roll_back(
                    mutation, e, lambda t: self.engine.revert_edit(t, previous)
                )
                raise

            self._confirm(mutation, lambda t: self.engine.confirm_edit(t, payload))
        return mutation

    async def delete_comment(self, comment_id: CommentId) -> PendingMutation:
        """Delete one of the user's own comments together with its replies.

        Raises:
            MutationInFlightError: If a delete of this comment is still pending
                or the comment itself is not confirmed yet
            NotFoundError: If the comment is not loaded in this viewer
            NotAuthorizedError: If the comment belongs to someone else
            TransportFailureError: If the request failed (the subtree is restored)
            ConflictError: If the server refused the delete
        """
        self._check_in_flight(MutationKind.DELETE, comment_id)
        post_id, _ = self._modifiable(comment_id)

        result = self.engine.delete_comment(self.tree(post_id), comment_id)
        snapshot = result.change.removed
        mutation = self._begin(MutationKind.DELETE, post_id, comment_id)
        self._apply(post_id, result)

        def restore(tree: PostCommentTree) -> MergeResult:
            return self.engine.restore_deleted(tree, snapshot)

        with logfire.span(
            "comment_viewer.delete_comment",
            viewer=self.kind.value,
            post_id=post_id,
            comment_id=comment_id,
        ):
            try:
                deleted = await self.repository.delete_comment(comment_id)
                if not deleted:
                    raise ConflictError(f"Comment {comment_id} was not deleted")
            except BaseException as e:
                self._roll_back(mutation, e, restore)
                raise

            self._confirm(mutation)
        return mutation

    async def toggle_like(self, comment_id: CommentId) -> PendingMutation:
        """Like a comment, or unlike it if the user already does.

        Raises:
            MutationInFlightError: If a like toggle on this comment is still
                pending or the comment itself is not confirmed yet
            NotFoundError: If the comment is not loaded in this viewer
            NotAuthorizedError: If nobody is signed in
            TransportFailureError: If the request failed (the like state is restored)
            ConflictError: If the server refused the toggle
        """
        self._check_in_flight(MutationKind.LIKE, comment_id)
        post_id = self._resolve_post(comment_id)
        user_id = self._require_user("comment", comment_id)
        node = locate(self.tree(post_id), comment_id)
        if node.provisional:
            raise MutationInFlightError(MutationKind.ADD.value, comment_id)

        result = self.engine.toggle_like(self.tree(post_id), comment_id, user_id)
        previous = result.change.previous or node
        mutation = self._begin(MutationKind.LIKE, post_id, comment_id)
        self._apply(post_id, result)

        with logfire.span(
            "comment_viewer.toggle_like",
            viewer=self.kind.value,
            post_id=post_id,
            comment_id=comment_id,
            unlike=previous.liked_by(user_id),
        ):
            try:
                if previous.liked_by(user_id):
                    snapshot = await self.repository.unlike_comment(comment_id)
                else:
                    snapshot = await self.repository.like_comment(comment_id)
            except BaseException as e:
                self._roll_back(
                    mutation, e, lambda t: self.engine.revert_like(t, previous)
                )
                raise

            self._confirm(
                mutation,
                lambda t: self.engine.reconcile_likes(
                    t, comment_id, snapshot.likes_count, snapshot.like_user_ids
                ),
            )
        return mutation

    # Helpers

    def _ensure_open(self) -> None:
        if self._closed:
            raise ViewerClosedError(f"{self.kind.value} viewer is closed")

    def _current(self, post_id: PostId) -> PostCommentTree | None:
        """Tree as it is now, or None once the viewer was closed."""
        if self._closed:
            return None
        return self._trees.get(post_id)

    def _store(self, post_id: PostId, tree: PostCommentTree) -> None:
        if not self._closed:
            self._trees[post_id] = tree

    def _apply(self, post_id: PostId, result: MergeResult) -> None:
        if self._closed:
            return
        self._trees[post_id] = result.tree
        if not result.change.applied:
            return
        for listener in list(self._listeners):
            listener(post_id, result.tree, result.change)

    def _resolve_post(self, comment_id: CommentId) -> PostId:
        """Find which of this viewer's trees holds ``comment_id``.

        Raises:
            NotFoundError: If no tree has it loaded
        """
        self._ensure_open()
        for post_id, tree in self._trees.items():
            if comment_id in tree:
                return post_id
        raise NotFoundError("comment", comment_id)

    def _require_user(self, resource: str, resource_id: str) -> UserId:
        user_id = self.session.current_user_id()
        if user_id is None:
            raise NotAuthorizedError(resource, resource_id, None)
        return user_id

    def _modifiable(self, comment_id: CommentId) -> tuple[PostId, CommentNode]:
        """Resolve a comment the signed-in user may edit or delete."""
        post_id = self._resolve_post(comment_id)
        node = locate(self.tree(post_id), comment_id)
        user_id = self.session.current_user_id()
        if user_id is None or node.author_id != user_id:
            logfire.warn(
                "Unauthorized comment modification attempt",
                viewer=self.kind.value,
                comment_id=comment_id,
                user_id=user_id,
            )
            raise NotAuthorizedError("comment", comment_id, user_id)
        if node.provisional:
            raise MutationInFlightError(MutationKind.ADD.value, comment_id)
        return post_id, node

    def _check_in_flight(self, kind: MutationKind, target_id: CommentId) -> None:
        self._ensure_open()
        if (target_id, kind) in self._pending:
            raise MutationInFlightError(kind.value, target_id)

    def _begin(
        self, kind: MutationKind, post_id: PostId, target_id: CommentId
    ) -> PendingMutation:
        self._check_in_flight(kind, target_id)
        mutation = PendingMutation(kind=kind, post_id=post_id, target_id=target_id)
        self._pending[mutation.key] = mutation
        return mutation

    def _confirm(
        self,
        mutation: PendingMutation,
        merge: Callable[[PostCommentTree], MergeResult] | None = None,
        target_id: CommentId | None = None,
    ) -> None:
        self._pending.pop(mutation.key, None)
        current = self._current(mutation.post_id)
        if merge is not None and current is not None:
            self._apply(mutation.post_id, merge(current))
        mutation.confirm(target_id)

    def _roll_back(
        self,
        mutation: PendingMutation,
        error: BaseException,
        undo: Callable[[PostCommentTree], MergeResult],
    ) -> None:
        self._pending.pop(mutation.key, None)
        current = self._current(mutation.post_id)
        if current is not None:
            self._apply(mutation.post_id, undo(current))
        mutation.roll_back(error)
        logfire.error(
            "Mutation rolled back",
            viewer=self.kind.value,
            kind=mutation.kind.value,
            post_id=mutation.post_id,
            target_id=mutation.target_id,
            error=str(error),
            error_type=type(error).__name__,
        )
