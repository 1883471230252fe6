"""Async HTTP client for the Wave Rider API.

Wraps ``httpx.AsyncClient`` with:
- Bearer authentication
- Fixed-delay retries for transient failures (network errors and 5xx) on
  idempotent requests
- ``ApiError`` for every failure, carrying the server's error payload

4xx responses are never retried. A POST may have been applied before a 5xx
or a dropped connection, so POSTs are sent once unless the call is known to
be safe to repeat.
"""

import asyncio
from typing import Any

import httpx
import structlog


logger = structlog.get_logger(__name__)

MAX_RETRIES = 3  # attempts per request, including the first
RETRY_DELAY = 1.0  # seconds between attempts
DEFAULT_TIMEOUT = 30.0

NETWORK_ERROR_CODE = "network_error"

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE"})


class ApiError(Exception):
    """A request failed.

    ``status_code`` is 0 when no response was received.
    """

    def __init__(self, status_code: int, message: str, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code

    @property
    def is_transient(self) -> bool:
        return self.status_code == 0 or self.status_code >= 500

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        message = response.reason_phrase or f"HTTP {response.status_code}"
        code = None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("detail") or message
            code = payload.get("code")
        return cls(response.status_code, str(message), code)

    def __repr__(self) -> str:
        return f"ApiError({self.status_code}, {self.message!r}, code={self.code!r})"


FileField = tuple[str, bytes, str]


class WaveRiderClient:
    """Typed calls for the posts, comments, auth and profile endpoints.

    Responses are returned as decoded JSON (camelCase keys).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "WaveRiderClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: str | None) -> None:
        self.token = token

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, FileField] | None = None,
        retry: bool | None = None,
    ) -> Any:
        if retry is None:
            retry = method.upper() in IDEMPOTENT_METHODS
        attempts = self.max_retries if retry else 1
        last_error: ApiError | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    data=data,
                    files=files,
                    headers=self._headers(),
                )
            except httpx.TransportError as e:
                last_error = ApiError(0, f"Request failed: {e}", NETWORK_ERROR_CODE)
            else:
                if not response.is_error:
                    if response.status_code == httpx.codes.NO_CONTENT:
                        return None
                    return response.json()

                last_error = ApiError.from_response(response)
                if not last_error.is_transient:
                    raise last_error

            if attempt < attempts:
                logger.warning(
                    "api_request_retry",
                    method=method,
                    path=path,
                    attempt=attempt,
                    status_code=last_error.status_code,
                    error=last_error.message,
                )
                await asyncio.sleep(self.retry_delay)

        logger.error(
            "api_request_failed",
            method=method,
            path=path,
            attempts=attempts,
            status_code=last_error.status_code,
        )
        raise last_error

    # ==========================================================================
    # Auth
    # ==========================================================================

    async def create_session(self, id_token: str) -> dict:
        """Exchange a Firebase ID token; stores the returned session token."""
        result = await self._request(
            "POST", "/api/auth/session", json={"idToken": id_token}
        )
        self.set_token(result["token"])
        return result

    async def sign_up(self, id_token: str, username: str, **profile: str) -> dict:
        result = await self._request(
            "POST",
            "/api/auth/signup",
            json={"idToken": id_token, "username": username, **profile},
        )
        self.set_token(result["token"])
        return result

    async def sign_out(self) -> dict:
        result = await self._request("POST", "/api/auth/signout")
        self.set_token(None)
        return result

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def get_posts(
        self,
        category: str = "All",
        limit: int = 10,
        start_after: str | None = None,
    ) -> dict:
        """One page of posts: ``{"posts": [...], "nextCursor": ...}``."""
        params: dict[str, Any] = {"category": category, "limit": limit}
        if start_after:
            params["startAfter"] = start_after
        return await self._request("GET", "/api/posts", params=params)

    async def get_multi_category_posts(
        self, categories: list[str], limit: int = 5
    ) -> dict[str, list[dict]]:
        result = await self._request(
            "GET",
            "/api/posts/multi-category",
            params={"categories": ",".join(categories), "limit": limit},
        )
        return result["data"]

    async def get_post(self, post_id: str) -> dict:
        return await self._request("GET", f"/api/posts/{post_id}")

    async def create_post(
        self, fields: dict[str, str], image: FileField | None = None
    ) -> dict:
        """Create a post; ``image`` is ``(filename, content, content_type)``."""
        files = {"image": image} if image else None
        result = await self._request("POST", "/api/posts", data=fields, files=files)
        return result["post"]

    async def update_post(
        self,
        post_id: str,
        fields: dict[str, str],
        image: FileField | None = None,
    ) -> dict:
        files = {"image": image} if image else None
        return await self._request(
            "PUT", f"/api/posts/{post_id}", data=fields, files=files
        )

    async def delete_post(self, post_id: str) -> dict:
        return await self._request("DELETE", f"/api/posts/{post_id}")

    async def like_post(self, post_id: str) -> dict:
        return await self._request("POST", f"/api/posts/{post_id}/like")

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def list_comments(self, post_id: str) -> list[dict]:
        return await self._request("GET", f"/api/posts/{post_id}/comments")

    async def get_thread(
        self,
        post_id: str,
        limit: int | None = None,
        max_depth: int | None = None,
    ) -> dict:
        params: dict[str, Any] = {}
        if limit is not None:
            params["limit"] = limit
        if max_depth is not None:
            params["maxDepth"] = max_depth
        return await self._request(
            "GET", f"/api/posts/{post_id}/comments/thread", params=params
        )

    async def get_batch_comments(self, post_ids: list[str]) -> dict[str, list[dict]]:
        result = await self._request(
            "POST",
            "/api/posts/batch-comments",
            json={"postIds": post_ids},
            retry=True,
        )
        return result["comments"]

    async def add_comment(
        self, post_id: str, text: str, parent_comment_id: str | None = None
    ) -> dict:
        return await self._request(
            "POST",
            f"/api/posts/{post_id}/comments",
            json={"text": text, "parentCommentId": parent_comment_id},
        )

    async def update_comment(self, post_id: str, comment_id: str, text: str) -> dict:
        return await self._request(
            "PUT",
            f"/api/posts/{post_id}/comments/{comment_id}",
            json={"text": text},
        )

    async def delete_comment(self, post_id: str, comment_id: str) -> None:
        await self._request("DELETE", f"/api/posts/{post_id}/comments/{comment_id}")

    async def like_comment(self, post_id: str, comment_id: str) -> dict:
        return await self._request(
            "POST", f"/api/posts/{post_id}/comments/{comment_id}/like", retry=True
        )

    async def unlike_comment(self, post_id: str, comment_id: str) -> dict:
        return await self._request(
            "POST",
            f"/api/posts/{post_id}/comments/{comment_id}/unlike",
            retry=True,
        )

    # ==========================================================================
    # Profile
    # ==========================================================================

    async def get_profile(self) -> dict:
        return await self._request("GET", "/api/profile")

    async def update_profile(self, **fields: str) -> dict:
        return await self._request("PUT", "/api/profile", json=fields)

    async def upload_avatar(self, avatar: FileField) -> str:
        result = await self._request(
            "PUT", "/api/profile/upload-avatar", files={"avatar": avatar}
        )
        return result["photoURL"]

    async def set_interests(self, interests: list[str]) -> list[str]:
        result = await self._request(
            "PUT", "/api/profile/interests", json={"interests": interests}
        )
        return result["interests"]

    async def get_notifications(self) -> dict[str, bool]:
        return await self._request("GET", "/api/profile/notifications")

    async def set_notifications(self, **flags: bool) -> dict[str, bool]:
        return await self._request(
            "PUT", "/api/profile/notifications", json={"notifications": flags}
        )

    async def get_favorites(self) -> list[str]:
        return await self._request("GET", "/api/profile/favorites")

    async def add_favorite(self, post_id: str) -> list[str]:
        return await self._request(
            "POST", "/api/profile/favorites", json={"postId": post_id}
        )

    async def remove_favorite(self, post_id: str) -> list[str]:
        return await self._request("DELETE", f"/api/profile/favorites/{post_id}")

    async def get_community(self) -> dict:
        return await self._request("GET", "/api/profile/community")
