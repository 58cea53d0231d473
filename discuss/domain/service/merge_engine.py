"""Mutation merge engine.

Applies add, edit, delete, like and page merges to a comment tree. Every
method is a pure function of its arguments: it returns a ``MergeResult``
holding the new snapshot and a ``TreeChange`` that says what happened and
carries enough of the old state to undo it.

Because each viewer owns its own tree and rebuilds it from the network on
mount, all merges are idempotent: replaying a page or a confirmation leaves
the tree as it was after the first application.
"""

from datetime import datetime

import logfire

from discuss.domain.model import (
    EXHAUSTED,
    CommentNode,
    MergeResult,
    PostCommentTree,
    RemovedSubtree,
    TreeChange,
)
from discuss.domain.value import CommentId, MutationKind, UserId
from discuss.domain.value.ordering import append_unique
from discuss.domain.value.payload import CommentPayload

from .base import Service
from .node_store import (
    TreeDraft,
    capture_subtree,
    insert_child,
    locate,
    path_to_root,
    remove_subtree,
    rename_node,
    replace_node,
    restore_subtree,
)


def _affected(tree: PostCommentTree, parent_id: CommentId | None) -> tuple:
    """Ids whose rendering changes when ``parent_id``'s level changes."""
    if parent_id is None:
        return (None,)
    return tuple(path_to_root(tree, parent_id))


class MergeEngine(Service):
    """Domain service applying mutations to comment tree snapshots."""

    # Adds

    def add_comment(
        self,
        tree: PostCommentTree,
        content: str,
        provisional_id: CommentId,
        author_id: UserId,
        author_name: str | None = None,
        author_avatar: str | None = None,
        created_at: datetime | None = None,
    ) -> MergeResult:
        """Optimistically add a top-level comment under a provisional id.

        The node starts with no likes, no replies and an exhausted reply
        cursor, and is prepended to the top-level list.
        """
        return self._add(
            tree,
            parent_id=None,
            content=content,
            provisional_id=provisional_id,
            author_id=author_id,
            author_name=author_name,
            author_avatar=author_avatar,
            created_at=created_at,
        )

    def add_reply(
        self,
        tree: PostCommentTree,
        parent_id: CommentId,
        content: str,
        provisional_id: CommentId,
        author_id: UserId,
        author_name: str | None = None,
        author_avatar: str | None = None,
        created_at: datetime | None = None,
    ) -> MergeResult:
        """Optimistically add a reply to a loaded comment.

        A no-op when ``parent_id`` is not materialized in this tree: a reply
        can only be attached to a parent the viewer has loaded.
        """
        return self._add(
            tree,
            parent_id=parent_id,
            content=content,
            provisional_id=provisional_id,
            author_id=author_id,
            author_name=author_name,
            author_avatar=author_avatar,
            created_at=created_at,
        )

    def _add(
        self,
        tree: PostCommentTree,
        parent_id: CommentId | None,
        content: str,
        provisional_id: CommentId,
        author_id: UserId,
        author_name: str | None,
        author_avatar: str | None,
        created_at: datetime | None,
    ) -> MergeResult:
        node = CommentNode(
            id=provisional_id,
            post_id=tree.post_id,
            parent_id=parent_id,
            author_id=author_id,
            author_name=author_name,
            author_avatar=author_avatar,
            content=content,
            created_at=created_at or datetime.now(),
            pagination=EXHAUSTED,
            provisional=True,
        )
        updated = insert_child(tree, parent_id, node)
        if updated is tree:
            logfire.warn(
                "Add skipped",
                post_id=tree.post_id,
                parent_id=parent_id,
                provisional_id=provisional_id,
            )
            return MergeResult(tree=tree, change=TreeChange.noop(MutationKind.ADD, provisional_id))

        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.ADD,
                target_id=provisional_id,
                changed_ids=_affected(updated, parent_id),
                added_ids=(provisional_id,),
            ),
        )

    def confirm_comment(
        self,
        tree: PostCommentTree,
        provisional_id: CommentId,
        payload: CommentPayload,
    ) -> MergeResult:
        """Reconcile an optimistic add with the server's record.

        The provisional node is renamed in place to the server id: identity,
        author and timestamp fields come from the server, the locally typed
        content is kept. Any nested state keyed by the node (its children)
        moves with it.
        """
        node = locate(tree, provisional_id)
        if node is None:
            return MergeResult(
                tree=tree, change=TreeChange.noop(MutationKind.CONFIRM, payload.id)
            )

        confirmed = node.model_copy(
            update={
                "id": payload.id,
                "author_id": payload.author_id,
                "author_name": payload.author_name or node.author_name,
                "author_avatar": payload.author_avatar or node.author_avatar,
                "created_at": payload.created_at,
                "edited_at": payload.edited_at,
                "provisional": False,
            }
        )
        updated = rename_node(tree, provisional_id, confirmed)
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.CONFIRM,
                target_id=payload.id,
                changed_ids=_affected(updated, node.parent_id),
                previous=node,
            ),
        )

    def discard_provisional(
        self, tree: PostCommentTree, provisional_id: CommentId
    ) -> MergeResult:
        """Undo an optimistic add (the server refused or never answered)."""
        node = locate(tree, provisional_id)
        if node is None:
            return MergeResult(
                tree=tree, change=TreeChange.noop(MutationKind.RESTORE, provisional_id)
            )
        updated = remove_subtree(tree, provisional_id, tombstone=False)
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.RESTORE,
                target_id=provisional_id,
                changed_ids=_affected(updated, node.parent_id),
            ),
        )

    # Edits

    def edit_comment(
        self,
        tree: PostCommentTree,
        comment_id: CommentId,
        content: str,
        edited_at: datetime | None = None,
    ) -> MergeResult:
        """Replace a comment's content; children, counters and cursor stay."""
        node = locate(tree, comment_id)
        if node is None:
            return MergeResult(tree=tree, change=TreeChange.noop(MutationKind.EDIT, comment_id))

        updated = replace_node(
            tree,
            comment_id,
            lambda n: n.model_copy(
                update={"content": content, "edited_at": edited_at or datetime.now()}
            ),
        )
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.EDIT,
                target_id=comment_id,
                changed_ids=(comment_id,),
                previous=node,
            ),
        )

    def confirm_edit(
        self, tree: PostCommentTree, payload: CommentPayload
    ) -> MergeResult:
        """Take the server's content and edit time as canonical (last write wins)."""
        return self.edit_comment(
            tree, payload.id, payload.content, payload.edited_at or datetime.now()
        )

    def revert_edit(self, tree: PostCommentTree, previous: CommentNode) -> MergeResult:
        """Put back the content a failed edit replaced."""
        node = locate(tree, previous.id)
        if node is None:
            return MergeResult(
                tree=tree, change=TreeChange.noop(MutationKind.RESTORE, previous.id)
            )
        updated = replace_node(
            tree,
            previous.id,
            lambda n: n.model_copy(
                update={"content": previous.content, "edited_at": previous.edited_at}
            ),
        )
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.RESTORE,
                target_id=previous.id,
                changed_ids=(previous.id,),
                previous=node,
            ),
        )

    # Deletes

    def delete_comment(self, tree: PostCommentTree, comment_id: CommentId) -> MergeResult:
        """Remove a comment and its subtree.

        A top-level delete lowers ``comments_count`` by one; a nested delete
        lowers the direct parent's ``replies_count`` by one.
        """
        snapshot = capture_subtree(tree, comment_id)
        if snapshot is None:
            return MergeResult(tree=tree, change=TreeChange.noop(MutationKind.DELETE, comment_id))

        updated = remove_subtree(tree, comment_id)
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.DELETE,
                target_id=comment_id,
                changed_ids=_affected(updated, snapshot.parent_id),
                removed=snapshot,
            ),
        )

    def restore_deleted(
        self, tree: PostCommentTree, snapshot: RemovedSubtree
    ) -> MergeResult:
        """Undo an optimistic delete."""
        updated = restore_subtree(tree, snapshot)
        if updated is tree:
            return MergeResult(
                tree=tree, change=TreeChange.noop(MutationKind.RESTORE, snapshot.root_id)
            )
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.RESTORE,
                target_id=snapshot.root_id,
                changed_ids=_affected(updated, snapshot.parent_id),
                added_ids=(snapshot.root_id,),
            ),
        )

    # Likes

    def toggle_like(
        self, tree: PostCommentTree, comment_id: CommentId, user_id: UserId
    ) -> MergeResult:
        """Like or unlike on behalf of ``user_id``, optimistically.

        The branch is decided by whether the user is in the known liker set.
        The counter moves by one now and is overwritten by
        ``reconcile_likes`` once the server answers.
        """
        node = locate(tree, comment_id)
        if node is None:
            return MergeResult(tree=tree, change=TreeChange.noop(MutationKind.LIKE, comment_id))

        if node.liked_by(user_id):
            update = {
                "like_user_ids": node.like_user_ids - {user_id},
                "likes_count": max(node.likes_count - 1, 0),
            }
        else:
            update = {
                "like_user_ids": node.like_user_ids | {user_id},
                "likes_count": node.likes_count + 1,
            }
        updated = replace_node(tree, comment_id, lambda n: n.model_copy(update=update))
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.LIKE,
                target_id=comment_id,
                changed_ids=(comment_id,),
                previous=node,
            ),
        )

    def reconcile_likes(
        self,
        tree: PostCommentTree,
        comment_id: CommentId,
        likes_count: int,
        like_user_ids: frozenset[UserId] | None = None,
    ) -> MergeResult:
        """Overwrite the optimistic like state with the server's snapshot.

        The server counter replaces the local one outright, so two toggles
        racing ahead of their responses can never be applied twice. When the
        server sent no liker list the local set is kept.
        """
        node = locate(tree, comment_id)
        if node is None:
            return MergeResult(tree=tree, change=TreeChange.noop(MutationKind.LIKE, comment_id))

        update: dict = {"likes_count": likes_count}
        if like_user_ids is not None:
            update["like_user_ids"] = frozenset(like_user_ids)
        updated = replace_node(tree, comment_id, lambda n: n.model_copy(update=update))
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.LIKE,
                target_id=comment_id,
                changed_ids=(comment_id,),
                previous=node,
            ),
        )

    def revert_like(self, tree: PostCommentTree, previous: CommentNode) -> MergeResult:
        """Put back the like state a failed toggle replaced."""
        return self.reconcile_likes(
            tree, previous.id, previous.likes_count, previous.like_user_ids
        )

    # Pages

    def merge_page(
        self,
        tree: PostCommentTree,
        parent_id: CommentId | None,
        page: int,
        fetched: list[CommentPayload],
        has_more: bool,
        total_count: int | None = None,
    ) -> MergeResult:
        """Append a fetched page to a level of the tree.

        Ids already present anywhere in the tree, or deleted earlier in this
        session, are filtered out. That covers a comment the user added that
        also shows up in the page, and the same page arriving twice.

        Args:
            tree: Current snapshot
            parent_id: Comment whose replies were fetched (``None`` for the
                top level)
            page: Page number that was fetched
            fetched: Records in server order
            has_more: Whether the server has more pages for this level
            total_count: Server total for the level, when it sent one

        Returns:
            Result with the cursor advanced to ``page + 1`` and loading
            cleared; a no-op when ``parent_id`` is no longer loaded
        """
        pagination = tree.pagination_for(parent_id)
        if pagination is None:
            logfire.warn(
                "Page for missing parent dropped",
                post_id=tree.post_id,
                parent_id=parent_id,
                page=page,
            )
            return MergeResult(tree=tree, change=TreeChange.noop(MutationKind.PAGE, parent_id))

        draft = TreeDraft(tree)
        if total_count is not None:
            # In-flight adds are not in the server's total yet
            total_count += sum(
                1 for cid in draft.level(parent_id) if draft.nodes[cid].provisional
            )
        accepted: list[CommentId] = []
        for payload in fetched:
            if self._register(draft, payload, parent_id):
                accepted.append(payload.id)

        draft.set_level(
            parent_id,
            append_unique(draft.level(parent_id), accepted),
            total=total_count,
            pagination=pagination.advanced(page, has_more),
        )
        updated = draft.commit()

        logfire.info(
            "Page merged",
            post_id=tree.post_id,
            parent_id=parent_id,
            page=page,
            fetched=len(fetched),
            added=len(accepted),
            has_more=has_more,
        )
        return MergeResult(
            tree=updated,
            change=TreeChange(
                kind=MutationKind.PAGE,
                target_id=parent_id,
                changed_ids=_affected(updated, parent_id),
                added_ids=tuple(accepted),
            ),
        )

    def _register(
        self, draft: TreeDraft, payload: CommentPayload, parent_id: CommentId | None
    ) -> bool:
        """Add a fetched record and its embedded replies to the arena.

        Returns:
            False when the record was a duplicate or tombstoned
        """
        if payload.id in draft.nodes or payload.id in draft.removed_ids:
            return False

        node = CommentNode.from_payload(payload, post_id=draft.base.post_id)
        node = node.model_copy(update={"parent_id": parent_id})
        # Reserve the id before descending so a reply cannot re-add its parent
        draft.nodes[node.id] = node

        children: list[CommentId] = []
        for reply in payload.replies or []:
            if self._register(draft, reply, node.id):
                children.append(reply.id)

        draft.nodes[node.id] = node.model_copy(
            update={
                "children": tuple(children),
                "replies_count": max(node.replies_count, len(children)),
            }
        )
        return True
