"""
Tests for the perceptual hash signal.
"""

import pytest
from pricematch.signals import (
    ImageSimilarity,
    PrecomputedImageHashes,
    hamming_distance,
    image_distance,
)


class TestHammingDistance:
    def test_identical(self):
        assert hamming_distance("a1b2c3d4e5f60718", "a1b2c3d4e5f60718") == 0

    def test_counts_differing_bits(self):
        assert hamming_distance("ff", "00") == 8
        assert hamming_distance("ffffffffffffffff", "fffffffffffffff0") == 4

    def test_missing_hash(self):
        with pytest.raises(ValueError, match="Both hashes required"):
            hamming_distance("", "ff")

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            hamming_distance("ff", "fff")

    def test_not_hex(self):
        with pytest.raises(ValueError):
            hamming_distance("zz", "ff")


class TestImageDistance:
    """Lookup plus comparison, with graceful absence."""

    @pytest.fixture
    def hashes(self):
        return PrecomputedImageHashes({
            "https://img/a.jpg": "ff00ff00ff00ff00",
            "https://img/b.jpg": "ff00ff00ff00ff0f",
        })

    def test_known_images(self, hashes):
        assert image_distance(hashes, "https://img/a.jpg", "https://img/b.jpg") == 4

    def test_no_provider(self):
        assert image_distance(None, "https://img/a.jpg", "https://img/b.jpg") is None

    def test_missing_image(self, hashes):
        assert image_distance(hashes, None, "https://img/b.jpg") is None

    def test_unknown_image(self, hashes):
        assert image_distance(hashes, "https://img/a.jpg", "https://img/zzz.jpg") is None

    def test_custom_provider(self):
        class Constant(ImageSimilarity):
            def hash_for(self, image):
                return "0f"

        assert image_distance(Constant(), "x", "y") == 0
