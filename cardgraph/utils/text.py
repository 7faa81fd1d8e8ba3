"""Text helpers shared by context assembly and fingerprinting."""

import hashlib
import re

ELLIPSIS = "..."

_DESCRIPTION_MARKERS = (
    re.compile(r"(^|\n)Описание:\s*", re.IGNORECASE),
    re.compile(r"(^|\n)DESCRIPTION:\s*", re.IGNORECASE),
)
_OCR_MARKER = re.compile(r"(^|\n)\s*OCR(_TEXT)?:\s*", re.IGNORECASE)


def truncate(text: str, max_chars: int) -> tuple[str, bool]:
    """
    Cut text to max_chars and append an ellipsis marker.

    Args:
        text: Text to cut
        max_chars: Character cap

    Returns:
        (text, truncated) where truncated tells whether anything was cut
    """
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + ELLIPSIS, True


def clamp(text: str | None, max_chars: int) -> str:
    """Strip text and cut it to max_chars with an ellipsis marker."""
    stripped = (text or "").strip()
    if not stripped:
        return ""
    clamped, _ = truncate(stripped, max_chars)
    return clamped


def normalize_for_hash(text: str | None) -> str:
    """
    Normalize text before fingerprinting.

    Leading/trailing whitespace and letter case do not count as context changes.
    """
    if not text:
        return ""
    return text.strip().lower()


def sha256_digest(payload: str) -> str:
    """
    Hash a payload string.

    Returns:
        Hash string in format "sha256:hexdigest"
    """
    return f"sha256:{hashlib.sha256(payload.encode('utf-8')).hexdigest()}"


def normalize_image_description(stored: str | None) -> str:
    """
    Reduce a stored image surrogate to its caption-only description.

    Older records stored a combined "OCR: ... DESCRIPTION: ..." string. The
    description part is cut out of those; a record that carries OCR markers
    but no description marker yields nothing, so recognized text never
    reaches the assembled context.
    """
    raw = (stored or "").strip()
    if not raw:
        return ""

    for marker in _DESCRIPTION_MARKERS:
        match = marker.search(raw)
        if match:
            return raw[match.end() :].strip()

    if _OCR_MARKER.search(raw):
        return ""

    return raw
