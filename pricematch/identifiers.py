"""
Model / SKU token extraction.

Patterns run over the raw text because case carries the signal: "MLPF3HN/A"
is a part number, "iphone" is not.
"""

import re
from typing import FrozenSet, Optional

MODEL_PATTERNS = [
    re.compile(r"\b[A-Z]{2,}\d{2,}[A-Z]{0,2}(?:/[A-Z]+)?\b"),  # ABC123XY, ABC12/DS
    re.compile(r"\b[A-Z]{2,}-\d{2,}-[A-Z]{0,2}\b"),             # ABC-123-XY
    re.compile(r"\b\d{2,}[A-Z]{2,}\b"),                         # 123ABC
    re.compile(r"\b[A-Z]\d{3,}[A-Z]?(?:/[A-Z]+)?\b"),           # A1234B, S911B
    re.compile(r"\b[A-Z]{2,}\d[A-Z\d]{2,}(?:/[A-Z]+)?\b"),      # MLPF3HN/A
]

MIN_EXPLICIT_MODEL_LENGTH = 4


def extract_model_tokens(text: Optional[str]) -> FrozenSet[str]:
    if not text:
        return frozenset()
    models = set()
    for pattern in MODEL_PATTERNS:
        for match in pattern.findall(text):
            models.add(match.replace("-", ""))
    return frozenset(models)


def compact_model(model: str) -> str:
    return re.sub(r"[\s-]+", "", model).upper()


def identifier_tokens(model: Optional[str], title: Optional[str]) -> FrozenSet[str]:
    """
    Identifier tokens for one side of a comparison.

    An explicit model wins over the title. The explicit model string itself is
    kept as a token too, since sellers often write part numbers that no
    lexical pattern recognizes.
    """
    if not model:
        return extract_model_tokens(title)
    tokens = set(extract_model_tokens(model))
    compact = compact_model(model)
    if len(compact) >= MIN_EXPLICIT_MODEL_LENGTH:
        tokens.add(compact)
    return frozenset(tokens)


def find_identifier_match(left: FrozenSet[str], right: FrozenSet[str]) -> Optional[str]:
    """Return the first token that equals, contains or is contained in one on the other side."""
    for a in sorted(left):
        for b in sorted(right):
            if a == b or a in b or b in a:
                return a
    return None
