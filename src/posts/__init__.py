"""Blog posts module.

Note: Service and router are not exported here to avoid circular imports
with the comment system. Import them from their modules when needed.
"""

from .models import ALL_CATEGORIES, POSTS_COLLECTION, Post


__all__ = [
    "ALL_CATEGORIES",
    "POSTS_COLLECTION",
    "Post",
]
