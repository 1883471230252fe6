"""Tests for PostService."""

import pytest

from src.auth.schemas import Principal
from src.comments.models import COMMENTS_COLLECTION
from src.comments.service import CommentService
from src.core.database import InMemoryDocumentStore
from src.core.errors import (
    Forbidden,
    NotFound,
    StoreUnavailable,
    UpstreamFailure,
    ValidationError,
)
from src.posts.models import POSTS_COLLECTION
from src.posts.service import ImageUpload, PostService
from src.storage.service import StorageNotConfiguredError
from tests.fakes import JPEG_BYTES, PNG_BYTES, FakeImageHost


def _fields(**overrides) -> dict[str, str | None]:
    fields = {
        "title": "Transformers explained",
        "description": "Attention is all you need",
        "category": "AI",
    }
    fields.update(overrides)
    return fields


def _png(name: str = "chart.png") -> ImageUpload:
    return ImageUpload(filename=name, content=PNG_BYTES, content_type="image/png")


class TestCreatePost:
    """Tests for create_post."""

    @pytest.mark.asyncio
    async def test_create_without_image(
        self, post_service: PostService, alice: Principal
    ) -> None:
        post = await post_service.create_post(_fields(), alice)

        assert post.title == "Transformers explained"
        assert post.created_by == "alice"
        assert post.image_url is None
        assert post.image_hash is None
        assert post.likes == []
        assert post.created_at is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["title", "description", "category"])
    async def test_missing_required_field_writes_nothing(
        self,
        missing: str,
        post_service: PostService,
        store: InMemoryDocumentStore,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        with pytest.raises(ValidationError, match=missing):
            await post_service.create_post(
                _fields(**{missing: "   "}), alice, image=_png()
            )

        assert image_host.uploads == []
        assert (await store.query(POSTS_COLLECTION)).documents == []

    @pytest.mark.asyncio
    async def test_image_is_hosted_before_write(
        self,
        post_service: PostService,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        post = await post_service.create_post(
            _fields(), alice, image=_png("my chart.png")
        )

        assert len(image_host.uploads) == 1
        filename, _, content_type = image_host.uploads[0]
        assert filename.endswith("_my_chart.png")
        assert content_type == "image/png"
        assert post.image_url == f"{image_host.base_url}/{filename}"
        assert post.image_hash

    @pytest.mark.asyncio
    async def test_detected_type_wins_over_declared(
        self,
        post_service: PostService,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        image = ImageUpload(
            filename="photo.png", content=JPEG_BYTES, content_type="image/png"
        )
        await post_service.create_post(_fields(), alice, image=image)
        assert image_host.uploads[0][2] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_non_image_is_rejected(
        self,
        post_service: PostService,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        image = ImageUpload(
            filename="evil.png", content=b"<html></html>", content_type="image/png"
        )
        with pytest.raises(ValidationError):
            await post_service.create_post(_fields(), alice, image=image)
        assert image_host.uploads == []

    @pytest.mark.asyncio
    async def test_incomplete_host_result(
        self,
        post_service: PostService,
        store: InMemoryDocumentStore,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        image_host.incomplete = True
        with pytest.raises(UpstreamFailure):
            await post_service.create_post(_fields(), alice, image=_png())
        assert (await store.query(POSTS_COLLECTION)).documents == []

    @pytest.mark.asyncio
    async def test_host_failure_writes_nothing(
        self,
        post_service: PostService,
        store: InMemoryDocumentStore,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        image_host.fail_upload = True
        with pytest.raises(UpstreamFailure):
            await post_service.create_post(_fields(), alice, image=_png())
        assert (await store.query(POSTS_COLLECTION)).documents == []

    @pytest.mark.asyncio
    async def test_no_host_configured(
        self, post_service: PostService, alice: Principal
    ) -> None:
        post_service.image_host = None
        with pytest.raises(StorageNotConfiguredError):
            await post_service.create_post(_fields(), alice, image=_png())

    @pytest.mark.asyncio
    async def test_rich_content_is_sanitized(
        self, post_service: PostService, alice: Principal
    ) -> None:
        post = await post_service.create_post(
            _fields(
                additionalContent=(
                    '<p style="color: red; margin: 0">Hi</p><script>alert(1)</script>'
                ),
                graphContent='<iframe src="https://example.com/chart"></iframe>',
            ),
            alice,
        )
        assert "<script" not in post.additional_content
        assert "<p" in post.additional_content
        assert "color" not in post.additional_content
        assert 'src="https://example.com/chart"' in post.graph_content


class TestReadPosts:
    """Tests for listing posts."""

    @pytest.mark.asyncio
    async def test_newest_first_with_cursor(
        self, post_service: PostService, alice: Principal
    ) -> None:
        for i in range(5):
            await post_service.create_post(_fields(title=f"Post {i}"), alice)

        first, cursor = await post_service.get_posts(limit=3)
        assert [p.title for p in first] == ["Post 4", "Post 3", "Post 2"]
        assert cursor is not None

        second, cursor = await post_service.get_posts(limit=3, cursor=cursor)
        assert [p.title for p in second] == ["Post 1", "Post 0"]
        assert cursor is None

    @pytest.mark.asyncio
    async def test_category_filter(
        self, post_service: PostService, alice: Principal
    ) -> None:
        await post_service.create_post(_fields(category="AI"), alice)
        await post_service.create_post(_fields(category="Robotics"), alice)

        robotics, _ = await post_service.get_posts(category="Robotics")
        everything, _ = await post_service.get_posts(category="All")

        assert [p.category for p in robotics] == ["Robotics"]
        assert len(everything) == 2

    @pytest.mark.asyncio
    async def test_invalid_limit(self, post_service: PostService) -> None:
        with pytest.raises(ValidationError):
            await post_service.get_posts(limit=0)

    @pytest.mark.asyncio
    async def test_multi_category(
        self, post_service: PostService, alice: Principal
    ) -> None:
        for _ in range(3):
            await post_service.create_post(_fields(category="AI"), alice)
        await post_service.create_post(_fields(category="Robotics"), alice)

        result = await post_service.get_multi_category_posts(
            ["AI", " Robotics ", "Empty", "AI"], limit=2
        )

        assert list(result) == ["AI", "Robotics", "Empty"]
        assert len(result["AI"]) == 2
        assert len(result["Robotics"]) == 1
        assert result["Empty"] == []

    @pytest.mark.asyncio
    async def test_get_missing_post(self, post_service: PostService) -> None:
        with pytest.raises(NotFound):
            await post_service.get_post("missing")


class TestUpdateAndDelete:
    """Ownership, image release and cascade."""

    @pytest.mark.asyncio
    async def test_owner_updates_supplied_fields_only(
        self, post_service: PostService, alice: Principal
    ) -> None:
        post = await post_service.create_post(_fields(), alice)
        updated = await post_service.update_post(
            post.id, {"title": "New title", "description": None}, alice
        )
        assert updated.title == "New title"
        assert updated.description == post.description

    @pytest.mark.asyncio
    async def test_blank_required_field_on_update(
        self, post_service: PostService, alice: Principal
    ) -> None:
        post = await post_service.create_post(_fields(), alice)
        with pytest.raises(ValidationError):
            await post_service.update_post(post.id, {"title": " "}, alice)

    @pytest.mark.asyncio
    async def test_admin_may_update(
        self, post_service: PostService, alice: Principal, admin: Principal
    ) -> None:
        post = await post_service.create_post(_fields(), alice)
        updated = await post_service.update_post(post.id, {"category": "ML"}, admin)
        assert updated.category == "ML"

    @pytest.mark.asyncio
    async def test_other_user_forbidden(
        self, post_service: PostService, alice: Principal, bob: Principal
    ) -> None:
        post = await post_service.create_post(_fields(), alice)
        with pytest.raises(Forbidden):
            await post_service.update_post(post.id, {"title": "mine"}, bob)
        with pytest.raises(Forbidden):
            await post_service.delete_post(post.id, bob)

    @pytest.mark.asyncio
    async def test_replacing_image_releases_old_one(
        self,
        post_service: PostService,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        post = await post_service.create_post(_fields(), alice, image=_png("a.png"))
        updated = await post_service.update_post(
            post.id, {}, alice, image=_png("b.png")
        )

        assert updated.image_url != post.image_url
        assert image_host.deleted == [post.image]

    @pytest.mark.asyncio
    async def test_remove_image_clears_both_fields(
        self,
        post_service: PostService,
        image_host: FakeImageHost,
        alice: Principal,
    ) -> None:
        post = await post_service.create_post(_fields(), alice, image=_png())
        updated = await post_service.update_post(post.id, {}, alice, remove_image=True)

        assert updated.image_url is None
        assert updated.image_hash is None
        assert image_host.deleted == [post.image]

    @pytest.mark.asyncio
    async def test_delete_cascades_to_comments(
        self,
        post_service: PostService,
        comment_service: CommentService,
        image_host: FakeImageHost,
        alice: Principal,
        bob: Principal,
    ) -> None:
        post = await post_service.create_post(_fields(), alice, image=_png())
        await comment_service.add_comment(post.id, "first", bob)

        await post_service.delete_post(post.id, alice)

        with pytest.raises(NotFound):
            await post_service.get_post(post.id)
        assert await comment_service.list_comments(post.id) == []
        assert image_host.deleted == [post.image]

    @pytest.mark.asyncio
    async def test_image_release_failure_is_not_raised(
        self,
        post_service: PostService,
        image_host: FakeImageHost,
        admin: Principal,
        alice: Principal,
    ) -> None:
        post = await post_service.create_post(_fields(), alice, image=_png())
        image_host.fail_delete = True

        await post_service.delete_post(post.id, admin)

        with pytest.raises(NotFound):
            await post_service.get_post(post.id)

    @pytest.mark.asyncio
    async def test_comment_cleanup_failure_is_not_raised(
        self,
        post_service: PostService,
        comment_service: CommentService,
        store: InMemoryDocumentStore,
        image_host: FakeImageHost,
        alice: Principal,
        bob: Principal,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        post = await post_service.create_post(_fields(), alice, image=_png())
        await comment_service.add_comment(post.id, "first", bob)

        real_delete = store.delete

        async def delete(collection: str, document_id: str) -> None:
            if collection == COMMENTS_COLLECTION:
                raise StoreUnavailable()
            await real_delete(collection, document_id)

        monkeypatch.setattr(store, "delete", delete)

        await post_service.delete_post(post.id, alice)

        with pytest.raises(NotFound):
            await post_service.get_post(post.id)
        assert image_host.deleted == [post.image]


class TestPostLikes:
    """Tests for toggle_like."""

    @pytest.mark.asyncio
    async def test_toggle_twice_restores(
        self, post_service: PostService, alice: Principal
    ) -> None:
        post = await post_service.create_post(_fields(), alice)

        liked = await post_service.toggle_like(post.id, "bob")
        assert liked.likes == ["bob"]
        assert liked.like_count == 1

        unliked = await post_service.toggle_like(post.id, "bob")
        assert unliked.likes == []
