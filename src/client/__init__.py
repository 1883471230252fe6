"""Python client for the Wave Rider API with an optimistic local cache."""

from .api import MAX_RETRIES, RETRY_DELAY, ApiError, WaveRiderClient
from .cache import CACHE_DURATION, Mutation, MutationState, PostsCache


__all__ = [
    "CACHE_DURATION",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "ApiError",
    "Mutation",
    "MutationState",
    "PostsCache",
    "WaveRiderClient",
]
