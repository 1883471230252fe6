"""Tests for image upload validation."""

import pytest

from src.core.errors import ValidationError
from src.utils.uploads import detect_image_type, validate_image


ALLOWED = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})


class TestDetectImageType:
    """Magic byte detection."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            (b"\xff\xd8\xff\xe0rest", "image/jpeg"),
            (b"\x89PNG\r\n\x1a\nrest", "image/png"),
            (b"GIF89a....", "image/gif"),
            (b"GIF87a....", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"\x00\x00\x00\x1cftypavif", "image/avif"),
        ],
    )
    def test_known_types(self, data: bytes, expected: str) -> None:
        assert detect_image_type(data) == expected

    def test_riff_that_is_not_webp(self) -> None:
        assert detect_image_type(b"RIFF\x00\x00\x00\x00WAVEfmt ") is None

    def test_unknown(self) -> None:
        assert detect_image_type(b"%PDF-1.7") is None


class TestValidateImage:
    """Size, declared type and content checks."""

    def test_returns_detected_type(self) -> None:
        data = b"\x89PNG\r\n\x1a\n" + b"\x00" * 10
        assert validate_image(data, "image/png", max_bytes=100, allowed_types=ALLOWED)

    def test_empty(self) -> None:
        with pytest.raises(ValidationError, match="empty"):
            validate_image(b"", "image/png", max_bytes=100, allowed_types=ALLOWED)

    def test_too_large(self) -> None:
        data = b"\x89PNG\r\n\x1a\n" + b"\x00" * 200
        with pytest.raises(ValidationError, match="exceeds"):
            validate_image(data, "image/png", max_bytes=100, allowed_types=ALLOWED)

    def test_declared_non_image(self) -> None:
        data = b"\x89PNG\r\n\x1a\n"
        with pytest.raises(ValidationError, match="not an image"):
            validate_image(
                data, "application/pdf", max_bytes=100, allowed_types=ALLOWED
            )

    def test_missing_declared_type_uses_content(self) -> None:
        data = b"GIF89a" + b"\x00" * 10
        assert (
            validate_image(data, None, max_bytes=100, allowed_types=ALLOWED)
            == "image/gif"
        )

    def test_disallowed_detected_type(self) -> None:
        data = b"\x00\x00\x00\x1cftypavif"
        with pytest.raises(ValidationError, match="not allowed"):
            validate_image(data, "image/avif", max_bytes=100, allowed_types=ALLOWED)
