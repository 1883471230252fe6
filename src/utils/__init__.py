"""Utility modules for the Wave Rider API."""

from src.utils.sanitize import sanitize_html, sanitize_text
from src.utils.uploads import detect_image_type, validate_image


__all__ = ["detect_image_type", "sanitize_html", "sanitize_text", "validate_image"]
