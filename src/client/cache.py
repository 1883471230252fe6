"""Client-side cache of posts and comments with optimistic mutations.

``PostsCache`` mirrors what the client has fetched, keyed by id. Mutations
change the local copy first, then send the request:

- on success the server's record replaces the optimistic one
- on failure the touched record is restored and the error re-raised

Each mutation is tracked as a ``Mutation`` with an explicit state. There is
no live sync: changes made by other sessions show up on the next fetch.
"""

import copy
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from src.comments.models import DELETED_PLACEHOLDER
from src.comments.tree import Thread, build_thread

from .api import WaveRiderClient


logger = structlog.get_logger(__name__)

CACHE_DURATION = 300.0  # seconds a fetched post list stays fresh
PENDING_ID_PREFIX = "pending-"


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class MutationKind(str, Enum):
    LIKE_POST = "like_post"
    LIKE_COMMENT = "like_comment"
    REPLY = "reply"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"


@dataclass
class Mutation:
    """One optimistic change and what became of it."""

    kind: MutationKind
    post_id: str
    target_id: str
    state: MutationState = MutationState.PENDING
    error: Exception | None = None
    created_at: float = field(default_factory=time.monotonic)


@dataclass
class _PostList:
    post_ids: list[str]
    next_cursor: str | None
    fetched_at: float


class PostsCache:
    """In-memory mirror of posts and their comments for one signed-in user."""

    def __init__(
        self,
        client: WaveRiderClient,
        user_id: str | None,
        cache_duration: float = CACHE_DURATION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.cache_duration = cache_duration
        self._clock = clock
        self.posts: dict[str, dict] = {}
        # post id -> comment id -> comment, in server order
        self.comments: dict[str, dict[str, dict]] = {}
        self.mutations: list[Mutation] = []
        self._lists: dict[tuple[str, int], _PostList] = {}

    # ==========================================================================
    # Reads
    # ==========================================================================

    def _is_fresh(self, entry: _PostList | None) -> bool:
        if entry is None:
            return False
        return self._clock() - entry.fetched_at < self.cache_duration

    async def fetch_posts(
        self, category: str = "All", limit: int = 10, force: bool = False
    ) -> list[dict]:
        """First page of posts for a category, served from cache while fresh."""
        key = (category, limit)
        entry = self._lists.get(key)
        if not force and self._is_fresh(entry):
            return [self.posts[pid] for pid in entry.post_ids if pid in self.posts]

        page = await self.client.get_posts(category=category, limit=limit)
        posts = page.get("posts", [])
        for post in posts:
            self.posts[post["id"]] = post
        self._lists[key] = _PostList(
            post_ids=[p["id"] for p in posts],
            next_cursor=page.get("nextCursor"),
            fetched_at=self._clock(),
        )
        return posts

    async def get_post(self, post_id: str, force: bool = False) -> dict:
        if not force and post_id in self.posts:
            return self.posts[post_id]
        post = await self.client.get_post(post_id)
        self.posts[post_id] = post
        return post

    async def fetch_comments(self, post_id: str, force: bool = False) -> list[dict]:
        if force or post_id not in self.comments:
            comments = await self.client.list_comments(post_id)
            self.comments[post_id] = {c["id"]: c for c in comments}
        return self.comments_for(post_id)

    def comments_for(self, post_id: str) -> list[dict]:
        return list(self.comments.get(post_id, {}).values())

    def thread(
        self,
        post_id: str,
        max_depth: int | None = None,
        limit: int | None = None,
    ) -> Thread[dict]:
        """Render cached comments, pending replies included."""
        return build_thread(
            self.comments_for(post_id),
            max_depth=max_depth,
            limit=limit,
            id_of=lambda c: c["id"],
            parent_of=lambda c: c.get("parentCommentId"),
        )

    def invalidate(self) -> None:
        """Drop cached post lists; the next fetch goes to the server."""
        self._lists.clear()

    # ==========================================================================
    # Optimistic mutations
    # ==========================================================================

    def _require_user(self) -> str:
        if not self.user_id:
            raise PermissionError("Sign in to change posts or comments")
        return self.user_id

    def _comment(self, post_id: str, comment_id: str) -> dict:
        try:
            return self.comments[post_id][comment_id]
        except KeyError:
            raise KeyError(f"Comment {comment_id} is not cached") from None

    def _put_comment(self, post_id: str, comment: dict) -> None:
        self.comments.setdefault(post_id, {})[comment["id"]] = comment

    def _restore_comment(
        self, post_id: str, comment_id: str, saved: dict | None
    ) -> None:
        bucket = self.comments.setdefault(post_id, {})
        if saved is None:
            bucket.pop(comment_id, None)
        else:
            bucket[comment_id] = saved

    async def _run(
        self,
        mutation: Mutation,
        send: Callable[[], Awaitable[Any]],
        commit: Callable[[Any], None],
        rollback: Callable[[], None],
    ) -> Any:
        """Send a mutation whose local change is already applied."""
        self.mutations.append(mutation)
        try:
            result = await send()
        except Exception as e:
            rollback()
            mutation.state = MutationState.ROLLED_BACK
            mutation.error = e
            logger.warning(
                "optimistic_update_rolled_back",
                kind=mutation.kind.value,
                post_id=mutation.post_id,
                target_id=mutation.target_id,
                error=str(e),
            )
            raise

        commit(result)
        mutation.state = MutationState.COMMITTED
        return result

    async def toggle_post_like(self, post_id: str) -> dict:
        user_id = self._require_user()
        saved = copy.deepcopy(self.posts.get(post_id))
        if saved is not None:
            post = self.posts[post_id]
            likes = list(post.get("likes", []))
            if user_id in likes:
                likes.remove(user_id)
            else:
                likes.append(user_id)
            post["likes"] = likes
            post["likeCount"] = len(likes)

        def commit(result: dict) -> None:
            self.posts[post_id] = result

        def rollback() -> None:
            if saved is None:
                self.posts.pop(post_id, None)
            else:
                self.posts[post_id] = saved

        return await self._run(
            Mutation(MutationKind.LIKE_POST, post_id, post_id),
            lambda: self.client.like_post(post_id),
            commit,
            rollback,
        )

    async def toggle_like(self, post_id: str, comment_id: str) -> dict:
        """Like or unlike a cached comment depending on its current state."""
        user_id = self._require_user()
        comment = self._comment(post_id, comment_id)
        saved = copy.deepcopy(comment)

        likes = list(comment.get("likes", []))
        liked = user_id not in likes
        if liked:
            likes.append(user_id)
        else:
            likes.remove(user_id)
        comment["likes"] = likes
        comment["likeCount"] = len(likes)

        request = self.client.like_comment if liked else self.client.unlike_comment
        return await self._run(
            Mutation(MutationKind.LIKE_COMMENT, post_id, comment_id),
            lambda: request(post_id, comment_id),
            lambda result: self._put_comment(post_id, result),
            lambda: self._restore_comment(post_id, comment_id, saved),
        )

    async def reply(
        self, post_id: str, text: str, parent_comment_id: str | None = None
    ) -> dict:
        """Add a comment; it shows up under a ``pending-`` id until saved."""
        user_id = self._require_user()
        temp_id = f"{PENDING_ID_PREFIX}{uuid.uuid4().hex}"
        self._put_comment(
            post_id,
            {
                "id": temp_id,
                "postId": post_id,
                "parentCommentId": parent_comment_id,
                "text": text,
                "userId": user_id,
                "username": "",
                "likes": [],
                "likeCount": 0,
                "isEdited": False,
                "isDeleted": False,
                "createdAt": None,
                "pending": True,
            },
        )

        def commit(result: dict) -> None:
            self.comments[post_id].pop(temp_id, None)
            self._put_comment(post_id, result)

        return await self._run(
            Mutation(MutationKind.REPLY, post_id, temp_id),
            lambda: self.client.add_comment(post_id, text, parent_comment_id),
            commit,
            lambda: self._restore_comment(post_id, temp_id, None),
        )

    async def edit_comment(self, post_id: str, comment_id: str, text: str) -> dict:
        self._require_user()
        comment = self._comment(post_id, comment_id)
        saved = copy.deepcopy(comment)
        comment["text"] = text
        comment["isEdited"] = True

        return await self._run(
            Mutation(MutationKind.EDIT_COMMENT, post_id, comment_id),
            lambda: self.client.update_comment(post_id, comment_id, text),
            lambda result: self._put_comment(post_id, result),
            lambda: self._restore_comment(post_id, comment_id, saved),
        )

    async def delete_comment(self, post_id: str, comment_id: str) -> None:
        """Soft delete; the placeholder stays so replies keep their parent."""
        self._require_user()
        comment = self._comment(post_id, comment_id)
        saved = copy.deepcopy(comment)
        comment.update(
            {
                "text": DELETED_PLACEHOLDER,
                "isDeleted": True,
                "likes": [],
                "likeCount": 0,
            }
        )

        await self._run(
            Mutation(MutationKind.DELETE_COMMENT, post_id, comment_id),
            lambda: self.client.delete_comment(post_id, comment_id),
            lambda _result: None,
            lambda: self._restore_comment(post_id, comment_id, saved),
        )
