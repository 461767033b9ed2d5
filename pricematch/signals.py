"""
Secondary image signal.

Perceptual hashes are computed elsewhere; this module only looks them up and
compares them. The signal can add a bonus to a title-based score but never
replaces the text stages.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

HASH_BITS = 64


class ImageSimilarity(ABC):
    """Provider of perceptual hashes and their distance."""

    @abstractmethod
    def hash_for(self, image: str) -> Optional[str]:
        """Return the hex hash for an image reference, or None if unknown."""
        pass

    def distance(self, hash_a: str, hash_b: str) -> int:
        return hamming_distance(hash_a, hash_b)


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """
    Number of differing bits between two hex-encoded hashes.

    Raises:
        ValueError: If a hash is missing, lengths differ, or a hash is not hex
    """
    if not hash_a or not hash_b:
        raise ValueError("Both hashes required")
    if len(hash_a) != len(hash_b):
        raise ValueError("Hashes must be same length")
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")


class PrecomputedImageHashes(ImageSimilarity):
    """Hashes computed ahead of time, keyed by image URL."""

    def __init__(self, hashes: Mapping[str, str]):
        self.hashes = dict(hashes)

    def hash_for(self, image: str) -> Optional[str]:
        return self.hashes.get(image)


def image_distance(
    similarity: Optional[ImageSimilarity],
    image_a: Optional[str],
    image_b: Optional[str],
) -> Optional[int]:
    """Distance between two images, or None when the signal is unavailable."""
    if similarity is None or not image_a or not image_b:
        return None
    hash_a = similarity.hash_for(image_a)
    hash_b = similarity.hash_for(image_b)
    if not hash_a or not hash_b:
        return None
    return similarity.distance(hash_a, hash_b)
