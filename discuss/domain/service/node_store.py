"""Structural primitives over a ``PostCommentTree``.

Every function here is pure: it takes a tree snapshot and returns a new one,
or the very same object when there was nothing to do. An id that is no
longer present is not an error; deletes and edits race with each other and
with page loads, so "node no longer present" is an expected outcome.
"""

from collections.abc import Callable
from typing import Literal

from discuss.domain.model import (
    CommentNode,
    Pagination,
    PostCommentTree,
    RemovedSubtree,
)
from discuss.domain.value import CommentId
from discuss.domain.value.ordering import prepend_unique, unique_ids


class TreeDraft:
    """Mutable working copy of a tree, committed into a new snapshot.

    Keeps the counter floor in one place: a level's counter never drops
    below the number of ids loaded at that level.
    """

    def __init__(self, tree: PostCommentTree) -> None:
        self.base = tree
        self.nodes: dict[CommentId, CommentNode] = dict(tree.nodes_by_id)
        self.root_ids = tree.root_ids
        self.root_pagination = tree.root_pagination
        self.comments_count = tree.comments_count
        self.removed_ids = tree.removed_ids

    def level(self, parent_id: CommentId | None) -> tuple[CommentId, ...]:
        if parent_id is None:
            return self.root_ids
        return self.nodes[parent_id].children

    def set_level(
        self,
        parent_id: CommentId | None,
        ids: tuple[CommentId, ...],
        count_delta: int = 0,
        total: int | None = None,
        pagination: Pagination | None = None,
    ) -> None:
        """Replace the id list of one level and adjust its counter.

        Args:
            parent_id: Level to change (``None`` for the top level)
            ids: New ordered ids
            count_delta: Amount to add to the current counter
            total: Server total overriding the counter (delta is ignored)
            pagination: New cursor for the level, if it changed
        """
        if parent_id is None:
            current = self.comments_count
        else:
            current = self.nodes[parent_id].replies_count
        count = total if total is not None else current + count_delta
        count = max(count, len(ids), 0)

        if parent_id is None:
            self.root_ids = ids
            self.comments_count = count
            if pagination is not None:
                self.root_pagination = pagination
            return

        update: dict = {"children": ids, "replies_count": count}
        if pagination is not None:
            update["pagination"] = pagination
        self.nodes[parent_id] = self.nodes[parent_id].model_copy(update=update)

    def commit(self) -> PostCommentTree:
        return self.base.model_copy(
            update={
                "nodes_by_id": self.nodes,
                "root_ids": self.root_ids,
                "root_pagination": self.root_pagination,
                "comments_count": self.comments_count,
                "removed_ids": self.removed_ids,
            }
        )


def locate(tree: PostCommentTree, comment_id: CommentId) -> CommentNode | None:
    """Find a node at any depth in O(1).

    Returns:
        The node, or None when it is not loaded (or no longer exists)
    """
    return tree.nodes_by_id.get(comment_id)


def path_to_root(tree: PostCommentTree, comment_id: CommentId) -> list[CommentId]:
    """List ``comment_id`` followed by its ancestors up to the root comment.

    Returns:
        ``[comment_id, parent, grandparent, ..., root comment]``, or an
        empty list when ``comment_id`` is not loaded
    """
    path: list[CommentId] = []
    current = tree.nodes_by_id.get(comment_id)
    while current is not None and current.id not in path:
        path.append(current.id)
        if current.parent_id is None:
            break
        current = tree.nodes_by_id.get(current.parent_id)
    return path


def subtree_ids(tree: PostCommentTree, comment_id: CommentId) -> list[CommentId]:
    """Depth-first ids of ``comment_id`` and all its loaded descendants."""
    if comment_id not in tree.nodes_by_id:
        return []
    result: list[CommentId] = []
    seen: set[CommentId] = set()
    stack = [comment_id]
    while stack:
        current = stack.pop()
        if current in seen or current not in tree.nodes_by_id:
            continue
        seen.add(current)
        result.append(current)
        stack.extend(reversed(tree.nodes_by_id[current].children))
    return result


def replace_node(
    tree: PostCommentTree,
    comment_id: CommentId,
    patch_fn: Callable[[CommentNode], CommentNode],
) -> PostCommentTree:
    """Copy-on-write update of exactly one node.

    Siblings, lists and counters are untouched. When the node is absent the
    input tree is returned unchanged.

    Raises:
        ValueError: If ``patch_fn`` changes the node's id (use rename_node)
    """
    node = tree.nodes_by_id.get(comment_id)
    if node is None:
        return tree
    patched = patch_fn(node)
    if patched is node:
        return tree
    if patched.id != comment_id:
        raise ValueError("replace_node cannot change a node's id")
    return tree.model_copy(
        update={"nodes_by_id": {**tree.nodes_by_id, comment_id: patched}}
    )


def replace_pagination(
    tree: PostCommentTree, parent_id: CommentId | None, pagination: Pagination
) -> PostCommentTree:
    """Set the cursor of one level (``None`` for the top level)."""
    if parent_id is None:
        return tree.model_copy(update={"root_pagination": pagination})
    return replace_node(
        tree, parent_id, lambda node: node.model_copy(update={"pagination": pagination})
    )


def insert_child(
    tree: PostCommentTree,
    parent_id: CommentId | None,
    node: CommentNode,
    position: Literal["head"] = "head",
) -> PostCommentTree:
    """Register ``node`` and put it at the head of its parent's list.

    The direct parent's ``replies_count`` (or the tree's ``comments_count``
    for a top-level node) grows by one. Ancestors further up are not
    touched: reply counters only count direct children.

    Returns:
        New tree, or the input tree when the parent is not loaded or the
        node's id is already present
    """
    if position != "head":
        raise ValueError(f"Unsupported insert position: {position}")
    if node.id in tree.nodes_by_id:
        return tree
    if parent_id is not None and not path_to_root(tree, parent_id):
        return tree

    draft = TreeDraft(tree)
    draft.nodes[node.id] = node.model_copy(
        update={"parent_id": parent_id, "post_id": tree.post_id}
    )
    draft.set_level(
        parent_id, prepend_unique(draft.level(parent_id), node.id), count_delta=1
    )
    return draft.commit()


def capture_subtree(
    tree: PostCommentTree, comment_id: CommentId
) -> RemovedSubtree | None:
    """Snapshot a subtree and its position so it can be restored later."""
    node = tree.nodes_by_id.get(comment_id)
    if node is None:
        return None
    siblings = tree.child_ids(node.parent_id)
    index = siblings.index(comment_id) if comment_id in siblings else 0
    return RemovedSubtree(
        root_id=comment_id,
        parent_id=node.parent_id,
        index=index,
        nodes={cid: tree.nodes_by_id[cid] for cid in subtree_ids(tree, comment_id)},
    )


def remove_subtree(
    tree: PostCommentTree,
    comment_id: CommentId,
    tombstone: bool = True,
    adjust_count: bool = True,
) -> PostCommentTree:
    """Delete a node and all of its loaded descendants.

    The id leaves its parent's list and the direct counter drops by exactly
    one; grandparents keep their counters.

    Args:
        tree: Current snapshot
        comment_id: Root of the subtree to delete
        tombstone: Remember the deleted ids so later pages cannot re-add them
        adjust_count: Decrement the parent's counter (False when only
            unloading nodes from view)

    Returns:
        New tree, or the input tree when ``comment_id`` is absent
    """
    node = tree.nodes_by_id.get(comment_id)
    if node is None:
        return tree

    doomed = subtree_ids(tree, comment_id)
    draft = TreeDraft(tree)
    for cid in doomed:
        draft.nodes.pop(cid, None)

    parent_id = node.parent_id
    if parent_id is None or parent_id in draft.nodes:
        remaining = tuple(cid for cid in draft.level(parent_id) if cid != comment_id)
        draft.set_level(parent_id, remaining, count_delta=-1 if adjust_count else 0)

    if tombstone:
        draft.removed_ids = draft.removed_ids | frozenset(doomed)
    return draft.commit()


def restore_subtree(
    tree: PostCommentTree, snapshot: RemovedSubtree
) -> PostCommentTree:
    """Put back a subtree captured by ``capture_subtree``.

    Inverse of ``remove_subtree``: the nodes return at their former index
    (clamped to the current list), the counter goes back up by one and the
    tombstones are cleared.

    Returns:
        New tree, or the input tree when the subtree is already present or
        its parent has since disappeared
    """
    if snapshot.root_id in tree.nodes_by_id:
        return tree
    parent_id = snapshot.parent_id
    if parent_id is not None and parent_id not in tree.nodes_by_id:
        return tree

    draft = TreeDraft(tree)
    for cid, node in snapshot.nodes.items():
        draft.nodes.setdefault(cid, node)

    siblings = list(draft.level(parent_id))
    siblings.insert(min(snapshot.index, len(siblings)), snapshot.root_id)
    draft.set_level(parent_id, unique_ids(siblings), count_delta=1)
    draft.removed_ids = draft.removed_ids - frozenset(snapshot.nodes)
    return draft.commit()


def rename_node(
    tree: PostCommentTree, old_id: CommentId, new_node: CommentNode
) -> PostCommentTree:
    """Replace a node with ``new_node`` under a new id, keeping its position.

    Children keep their place and have their ``parent_id`` rewritten. If the
    new id is already loaded (a page fetch delivered it first), that copy is
    folded into the renamed node so exactly one node remains; counters are
    left alone.

    Returns:
        New tree, or the input tree when ``old_id`` is absent
    """
    old = tree.nodes_by_id.get(old_id)
    if old is None:
        return tree
    new_id = new_node.id
    if new_id == old_id:
        return replace_node(tree, old_id, lambda _: new_node)

    draft = TreeDraft(tree)
    children = new_node.children or old.children
    pagination = new_node.pagination

    duplicate = draft.nodes.pop(new_id, None)
    if duplicate is not None:
        children = unique_ids((*children, *duplicate.children))
        if duplicate.children:
            pagination = duplicate.pagination
        dup_parent = duplicate.parent_id
        if dup_parent is None or dup_parent in draft.nodes:
            draft.set_level(
                dup_parent,
                tuple(cid for cid in draft.level(dup_parent) if cid != new_id),
            )

    del draft.nodes[old_id]
    draft.nodes[new_id] = new_node.model_copy(
        update={
            "parent_id": old.parent_id,
            "children": children,
            "replies_count": max(new_node.replies_count, len(children)),
            "pagination": pagination,
        }
    )
    for cid in children:
        child = draft.nodes.get(cid)
        if child is not None and child.parent_id != new_id:
            draft.nodes[cid] = child.model_copy(update={"parent_id": new_id})

    parent_id = old.parent_id
    if parent_id is None or parent_id in draft.nodes:
        renamed = tuple(new_id if cid == old_id else cid for cid in draft.level(parent_id))
        draft.set_level(parent_id, unique_ids(renamed))
    return draft.commit()
