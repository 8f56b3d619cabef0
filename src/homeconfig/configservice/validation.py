"""Validation of home screen configuration payloads."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

ASPECT_RATIOS = ("portrait", "landscape", "square")

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")
_URL_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*")


def is_valid_url(value: str) -> bool:
    """True for absolute URLs with a scheme and something after it."""
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    if not parts.scheme or not _URL_SCHEME.fullmatch(parts.scheme):
        return False
    if parts.scheme in ("http", "https"):
        return bool(parts.netloc)
    return bool(parts.netloc or parts.path)


def is_hex_color(value: str) -> bool:
    return bool(_HEX_COLOR.fullmatch(value))


def _validate_carousel(carousel: Any) -> str | None:
    if not isinstance(carousel, dict):
        return "Carousel section is required"

    images = carousel.get("images")
    if not isinstance(images, list) or not images:
        return "At least one carousel image is required"

    for index, image in enumerate(images):
        if not isinstance(image, dict):
            return f"Image at index {index} must be an object"
        if not isinstance(image.get("url"), str) or not isinstance(image.get("alt"), str):
            return f"Image at index {index} must have url and alt strings"
        if not is_valid_url(image["url"]):
            return f"Image at index {index} has invalid URL format"

    if carousel.get("aspectRatio") not in ASPECT_RATIOS:
        return "Aspect ratio must be portrait, landscape, or square"
    return None


def _validate_text_section(section: Any) -> str | None:
    if not isinstance(section, dict):
        return "Text section is required"

    if not isinstance(section.get("title"), str) or not isinstance(section.get("description"), str):
        return "Text section must have title and description strings"
    if not isinstance(section.get("titleColor"), str) or not isinstance(
        section.get("descriptionColor"), str
    ):
        return "Text section must have titleColor and descriptionColor strings"

    if not is_hex_color(section["titleColor"]):
        return "Title color must be a valid hex color (e.g., #000000)"
    if not is_hex_color(section["descriptionColor"]):
        return "Description color must be a valid hex color (e.g., #666666)"
    return None


def _validate_cta(cta: Any) -> str | None:
    if not isinstance(cta, dict):
        return "CTA section is required"

    if not isinstance(cta.get("label"), str) or not isinstance(cta.get("url"), str):
        return "CTA must have label and url strings"
    if not isinstance(cta.get("backgroundColor"), str) or not isinstance(
        cta.get("textColor"), str
    ):
        return "CTA must have backgroundColor and textColor strings"

    if not is_valid_url(cta["url"]):
        return "CTA URL has invalid format"
    if not is_hex_color(cta["backgroundColor"]):
        return "CTA background color must be a valid hex color"
    if not is_hex_color(cta["textColor"]):
        return "CTA text color must be a valid hex color"
    return None


def validate_config(data: Any) -> str | None:
    """
    Validate a HomeScreenConfig payload.

    Args:
        data: Decoded JSON value of the ``data`` field

    Returns:
        The first validation error message, or None when valid
    """
    if not isinstance(data, dict):
        return "Configuration must be an object"

    return (
        _validate_carousel(data.get("carousel"))
        or _validate_text_section(data.get("textSection"))
        or _validate_cta(data.get("cta"))
    )
