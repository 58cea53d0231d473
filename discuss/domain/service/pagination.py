"""Pagination coordinator.

Decides whether a level of a comment tree (a comment's replies or the
top-level list) should be fetched, and keeps at most one fetch in flight
per level. Each level moves through ``idle -> loading -> idle`` and stops
being fetchable once the server reports there is nothing more.

Two top-level paging policies sit on top of the same ``merge_page``:
- append (infinite scroll): request ``next_page`` and append it
- replace (one page on screen): ``jump_to_page`` clears the visible list
  first, so the fetched page is all that is shown
"""

import logfire

from discuss.domain.model import PageRequest, Pagination, PostCommentTree
from discuss.domain.value import CommentId, RefusalReason

from .base import Service
from .node_store import remove_subtree, replace_pagination


class PaginationCoordinator(Service):
    """Domain service deciding when to fetch and tracking in-flight loads."""

    def request_page(
        self, tree: PostCommentTree, parent_id: CommentId | None
    ) -> PageRequest:
        """Ask to load the next page of a level.

        Args:
            tree: Current snapshot
            parent_id: Comment whose replies to load (``None`` for top level)

        Returns:
            ``should_fetch=True`` with the level marked loading and the page
            to request, or a refusal with the tree unchanged when the level
            is already loading, exhausted or no longer present. The caller
            must finish with ``merge_page`` or ``reset_on_failure``.
        """
        pagination = tree.pagination_for(parent_id)
        if pagination is None:
            reason = RefusalReason.NOT_FOUND
        elif pagination.loading:
            reason = RefusalReason.ALREADY_LOADING
        elif not pagination.has_more:
            reason = RefusalReason.EXHAUSTED
        else:
            return PageRequest(
                tree=replace_pagination(tree, parent_id, pagination.started()),
                should_fetch=True,
                page=pagination.next_page,
            )

        logfire.info(
            "Page request refused",
            post_id=tree.post_id,
            parent_id=parent_id,
            reason=reason.value,
        )
        return PageRequest(tree=tree, should_fetch=False, reason=reason)

    def reset_on_failure(
        self, tree: PostCommentTree, parent_id: CommentId | None
    ) -> PostCommentTree:
        """Clear the loading flag without advancing the cursor.

        A retry then asks for the same page again.
        """
        pagination = tree.pagination_for(parent_id)
        if pagination is None or not pagination.loading:
            return tree
        return replace_pagination(tree, parent_id, pagination.failed())

    def jump_to_page(self, tree: PostCommentTree, page: int) -> PageRequest:
        """Start loading top-level page ``page`` under the replace policy.

        Every currently visible top-level comment (with its subtree) is
        unloaded first. Counters are kept: the comments still exist on the
        server, they are just not on screen.

        Raises:
            ValueError: If ``page`` is below 1
        """
        if page < 1:
            raise ValueError(f"Page must be >= 1, got {page}")
        if tree.root_pagination.loading:
            logfire.info(
                "Page jump refused",
                post_id=tree.post_id,
                page=page,
                reason=RefusalReason.ALREADY_LOADING.value,
            )
            return PageRequest(
                tree=tree, should_fetch=False, reason=RefusalReason.ALREADY_LOADING
            )

        cleared = tree
        for root_id in tree.root_ids:
            cleared = remove_subtree(cleared, root_id, tombstone=False, adjust_count=False)
        cleared = cleared.model_copy(
            update={
                "root_pagination": Pagination(next_page=page, has_more=True, loading=True)
            }
        )
        return PageRequest(tree=cleared, should_fetch=True, page=page)
