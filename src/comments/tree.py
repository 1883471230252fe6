"""Threaded comment views.

Comments are stored flat with a parent pointer. ``group_by_parent`` buckets
them in one pass; ``build_thread`` walks the buckets from the root bucket to
produce depth-labelled nodes, paginating top-level comments and truncating
below ``max_depth``.

The walk tracks visited ids, so corrupt data (cycles, duplicate ids, replies
to comments that no longer exist) cannot loop forever. Items the walk never
reaches from the root bucket are returned as ``Thread.detached``.

Both functions are generic over the item type: the server passes ``Comment``
objects, the client cache passes its own records.
"""

from collections.abc import Callable, Hashable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar


T = TypeVar("T")

IdGetter = Callable[[Any], Hashable]
ParentGetter = Callable[[Any], Hashable | None]


def _default_id(item: Any) -> Hashable:
    return item.id


def _default_parent(item: Any) -> Hashable | None:
    return item.parent_comment_id


@dataclass
class ThreadNode(Generic[T]):
    """One rendered comment.

    ``hidden_replies`` counts descendants cut off by ``max_depth``.
    """

    item: T
    depth: int
    replies: list["ThreadNode[T]"] = field(default_factory=list)
    hidden_replies: int = 0


@dataclass
class Thread(Generic[T]):
    roots: list[ThreadNode[T]]
    detached: list[T]
    has_more: bool
    total_roots: int

    def walk(self) -> Iterator[ThreadNode[T]]:
        """Yield rendered nodes in display (pre-)order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.replies))


def group_by_parent(
    items: Iterable[T],
    parent_of: ParentGetter = _default_parent,
) -> dict[Hashable | None, list[T]]:
    """Bucket items by parent id in a single pass.

    Top-level items (no parent, or an empty parent id) land under ``None``.
    Order within a bucket follows input order.
    """
    buckets: dict[Hashable | None, list[T]] = {}
    for item in items:
        parent = parent_of(item) or None
        buckets.setdefault(parent, []).append(item)
    return buckets


def _reachable(
    buckets: dict[Hashable | None, list[T]], id_of: IdGetter
) -> set[Hashable]:
    seen: set[Hashable] = set()
    stack = list(buckets.get(None, []))
    while stack:
        item = stack.pop()
        item_id = id_of(item)
        if item_id in seen:
            continue
        seen.add(item_id)
        stack.extend(buckets.get(item_id, []))
    return seen


def _count_hidden(
    item_id: Hashable,
    buckets: dict[Hashable | None, list[T]],
    id_of: IdGetter,
    visited: set[Hashable],
) -> int:
    count = 0
    stack = list(buckets.get(item_id, []))
    while stack:
        item = stack.pop()
        child_id = id_of(item)
        if child_id in visited:
            continue
        visited.add(child_id)
        count += 1
        stack.extend(buckets.get(child_id, []))
    return count


def build_thread(
    items: Iterable[T],
    max_depth: int | None = None,
    limit: int | None = None,
    id_of: IdGetter = _default_id,
    parent_of: ParentGetter = _default_parent,
) -> Thread[T]:
    """Build a bounded, paginated thread view.

    Args:
        items: Flat comments, in display order (oldest first).
        max_depth: Deepest depth rendered; top-level comments are depth 0.
            None renders every level.
        limit: Number of top-level comments to render. None renders all.
        id_of: Returns an item's id.
        parent_of: Returns an item's parent id or None.

    Returns:
        Thread with rendered roots, unreachable items sorted by id, and
        whether more top-level comments exist beyond ``limit``.
    """
    items = list(items)
    buckets = group_by_parent(items, parent_of)

    reachable = _reachable(buckets, id_of)
    detached_by_id: dict[Hashable, T] = {}
    for item in items:
        item_id = id_of(item)
        if item_id not in reachable:
            detached_by_id.setdefault(item_id, item)
    detached = [detached_by_id[k] for k in sorted(detached_by_id, key=str)]

    top_level = buckets.get(None, [])
    visible = top_level if limit is None else top_level[: max(limit, 0)]

    visited: set[Hashable] = set()
    roots: list[ThreadNode[T]] = []
    for item in visible:
        item_id = id_of(item)
        if item_id in visited:
            continue
        visited.add(item_id)
        root = ThreadNode(item=item, depth=0)
        roots.append(root)

        stack = [root]
        while stack:
            node = stack.pop()
            node_id = id_of(node.item)
            if max_depth is not None and node.depth >= max_depth:
                node.hidden_replies = _count_hidden(node_id, buckets, id_of, visited)
                continue
            for child in buckets.get(node_id, []):
                child_id = id_of(child)
                if child_id in visited:
                    continue
                visited.add(child_id)
                child_node = ThreadNode(item=child, depth=node.depth + 1)
                node.replies.append(child_node)
                stack.append(child_node)

    return Thread(
        roots=roots,
        detached=detached,
        has_more=limit is not None and len(top_level) > len(visible),
        total_roots=len(top_level),
    )
