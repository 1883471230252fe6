"""Tests for WaveRiderClient request handling."""

import json

import httpx
import pytest

from src.client.api import MAX_RETRIES, NETWORK_ERROR_CODE, ApiError, WaveRiderClient


def _client(handler, **kwargs) -> WaveRiderClient:
    return WaveRiderClient(
        "https://api.test/",
        transport=httpx.MockTransport(handler),
        retry_delay=0,
        **kwargs,
    )


class TestRetries:
    """Transient failures are retried; client errors are not."""

    @pytest.mark.asyncio
    async def test_success_after_server_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < MAX_RETRIES:
                return httpx.Response(503, json={"message": "busy"})
            return httpx.Response(200, json={"id": "p1"})

        async with _client(handler) as client:
            assert await client.get_post("p1") == {"id": "p1"}
        assert len(calls) == MAX_RETRIES

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(
                500, json={"message": "Internal server error", "code": "internal_error"}
            )

        async with _client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get_post("p1")

        assert len(calls) == MAX_RETRIES
        assert exc_info.value.status_code == 500
        assert exc_info.value.code == "internal_error"

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(
                404, json={"message": "Post not found", "code": "not_found"}
            )

        async with _client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get_post("missing")

        assert len(calls) == 1
        assert exc_info.value.message == "Post not found"
        assert exc_info.value.is_transient is False

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler, max_retries=2) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get_posts()

        assert len(calls) == 2
        assert exc_info.value.status_code == 0
        assert exc_info.value.code == NETWORK_ERROR_CODE

    @pytest.mark.asyncio
    async def test_comment_post_is_sent_once_on_server_error(self) -> None:
        stored: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            # write lands, then the read-back fails
            stored.append(json.loads(request.content)["text"])
            return httpx.Response(500, json={"code": "store_unavailable"})

        async with _client(handler, token="t") as client:
            with pytest.raises(ApiError) as exc_info:
                await client.add_comment("p1", "hello")

        assert stored == ["hello"]
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_create_post_is_sent_once_on_network_error(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler, token="t") as client:
            with pytest.raises(ApiError) as exc_info:
                await client.create_post({"title": "t"})

        assert len(calls) == 1
        assert exc_info.value.code == NETWORK_ERROR_CODE

    @pytest.mark.asyncio
    async def test_post_like_toggle_is_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        async with _client(handler, token="t") as client:
            with pytest.raises(ApiError):
                await client.like_post("p1")

        assert len(calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["like_comment", "unlike_comment"])
    async def test_comment_like_posts_are_retried(self, action: str) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(502)
            return httpx.Response(200, json={"id": "c1", "likes": []})

        async with _client(handler, token="t") as client:
            assert (await getattr(client, action)("p1", "c1"))["id"] == "c1"

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_put_is_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={"id": "c1", "text": "edited"})

        async with _client(handler, token="t") as client:
            await client.update_comment("p1", "c1", "edited")

        assert len(calls) == 2

    def test_error_from_non_json_response(self) -> None:
        error = ApiError.from_response(httpx.Response(502, text="<html>bad</html>"))
        assert error.status_code == 502
        assert error.message == "Bad Gateway"
        assert error.code is None


class TestRequests:
    """Request shapes and auth handling."""

    @pytest.mark.asyncio
    async def test_session_token_is_stored_and_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/api/auth/session":
                return httpx.Response(200, json={"token": "sess", "user": {}})
            return httpx.Response(200, json={"id": "alice"})

        async with _client(handler) as client:
            await client.create_session("id-token")
            await client.get_profile()

        assert json.loads(seen[0].content) == {"idToken": "id-token"}
        assert "Authorization" not in seen[0].headers
        assert seen[1].headers["Authorization"] == "Bearer sess"

    @pytest.mark.asyncio
    async def test_no_content_returns_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(204)

        async with _client(handler, token="t") as client:
            assert await client.delete_comment("p1", "c1") is None

    @pytest.mark.asyncio
    async def test_query_parameters(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"posts": [], "nextCursor": None})

        async with _client(handler) as client:
            await client.get_posts(category="AI", limit=5, start_after="abc")

        params = seen[0].url.params
        assert params["category"] == "AI"
        assert params["limit"] == "5"
        assert params["startAfter"] == "abc"

    @pytest.mark.asyncio
    async def test_batch_comments_unwraps(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content) == {"postIds": ["a", "b"]}
            return httpx.Response(200, json={"comments": {"a": [], "b": []}})

        async with _client(handler) as client:
            assert await client.get_batch_comments(["a", "b"]) == {"a": [], "b": []}
