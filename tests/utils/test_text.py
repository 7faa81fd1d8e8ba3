"""
Tests for text helpers.

Tests cover:
1. Truncation with ellipsis marker
2. Normalization before hashing
3. sha256 digests
4. Image description cleanup (OCR text never leaks)
"""

import pytest

from cardgraph.utils.text import (
    ELLIPSIS,
    clamp,
    normalize_for_hash,
    normalize_image_description,
    sha256_digest,
    truncate,
)


@pytest.mark.unit
class TestTruncate:
    """Tests for truncate and clamp."""

    def test_short_text_untouched(self):
        assert truncate("abc", 3) == ("abc", False)

    def test_long_text_cut_with_marker(self):
        text, truncated = truncate("abcdef", 3)

        assert text == "abc" + ELLIPSIS
        assert truncated is True

    def test_clamp_strips_and_cuts(self):
        assert clamp("  hello  ", 10) == "hello"
        assert clamp("abcdef", 3) == "abc..."

    def test_clamp_empty(self):
        assert clamp(None, 5) == ""
        assert clamp("   ", 5) == ""


@pytest.mark.unit
class TestHashing:
    """Tests for normalization and digests."""

    def test_normalize_trims_and_lowercases(self):
        assert normalize_for_hash("  Hello World \n") == "hello world"

    def test_normalize_none(self):
        assert normalize_for_hash(None) == ""

    def test_digest_format(self):
        digest = sha256_digest("payload")

        assert digest.startswith("sha256:")
        assert len(digest) == len("sha256:") + 64

    def test_digest_deterministic(self):
        assert sha256_digest("payload") == sha256_digest("payload")
        assert sha256_digest("payload") != sha256_digest("other")


@pytest.mark.unit
class TestNormalizeImageDescription:
    """Tests for caption-only image surrogates."""

    def test_plain_description_kept(self):
        assert normalize_image_description("A red bicycle") == "A red bicycle"

    def test_legacy_combined_record_cut_to_description(self):
        stored = "OCR: SALE 50%\nDESCRIPTION: A shop window with a poster"

        assert normalize_image_description(stored) == "A shop window with a poster"

    def test_legacy_localized_marker(self):
        assert normalize_image_description("Описание: Кошка на диване") == "Кошка на диване"

    def test_ocr_only_yields_nothing(self):
        assert normalize_image_description("OCR: recognized text only") == ""

    def test_empty(self):
        assert normalize_image_description(None) == ""
        assert normalize_image_description("  ") == ""
