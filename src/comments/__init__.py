"""Comment system module.

Provides threaded comments on posts with:
- Replies (parent/child, same post only)
- Likes
- Soft delete with placeholder text

Note: Router is not exported here to avoid circular imports.
Import directly from src.comments.router when needed.
"""

from .models import DELETED_PLACEHOLDER, Comment
from .service import CommentService
from .tree import Thread, ThreadNode, build_thread, group_by_parent


__all__ = [
    "DELETED_PLACEHOLDER",
    "Comment",
    "CommentService",
    "Thread",
    "ThreadNode",
    "build_thread",
    "group_by_parent",
]
