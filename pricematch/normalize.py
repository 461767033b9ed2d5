import re
from typing import FrozenSet, Iterable, Optional

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "has", "have", "had", "do", "does",
})

_NON_ALNUM = re.compile(r"[^\w\s]|_")


def normalize_text(s: Optional[str]) -> str:
    if not s:
        return ""
    s = _NON_ALNUM.sub(" ", s.lower())
    return " ".join(s.split())


def tokenize(s: Optional[str], stop_words: Iterable[str] = STOP_WORDS) -> FrozenSet[str]:
    """Normalized title tokens, without stop-words and single characters."""
    stop = stop_words if isinstance(stop_words, (set, frozenset)) else frozenset(stop_words)
    return frozenset(t for t in normalize_text(s).split() if len(t) > 1 and t not in stop)


def normalize_brand(brand: Optional[str]) -> str:
    return normalize_text(brand)


def jaccard_similarity(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def build_search_query(title: str, max_terms: int = 8) -> str:
    # Long marketplace titles hurt search recall; keep the leading words
    words = normalize_text(title).split()
    return " ".join(words[:max_terms])
