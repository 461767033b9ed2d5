"""
Descriptor types and boundary validation.

Descriptors arriving from callers or connectors are validated here once, so
scoring never has to guess at field presence or type.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .errors import InvalidInput

SOURCE_REQUIRED_FIELDS = ["source", "source_local_id", "title"]
SOURCE_OPTIONAL_FIELDS = ["model", "brand", "image"]
CANDIDATE_REQUIRED_STR_FIELDS = ["source", "source_local_id"]
CANDIDATE_OPTIONAL_STR_FIELDS = ["image", "model", "brand"]

# Wire names accepted from older callers
FIELD_ALIASES = {
    "site": "source",
    "site_id": "source_local_id",
    "id": "source_local_id",
    "price_cents": "price_minor_units",
}


def canonical_key(source: str, source_local_id: str) -> str:
    return f"{source}:{source_local_id}"


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    try:
        p = urlparse(v)
        return bool(p.scheme and p.netloc)
    except ValueError:
        return False


def apply_aliases(data: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    for alias, name in FIELD_ALIASES.items():
        if alias in out and name not in out:
            out[name] = out[alias]
    return out


def _optional_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


@dataclass(frozen=True)
class SourceProductDescriptor:
    """The product being resolved."""

    source: str
    source_local_id: str
    title: str
    model: Optional[str] = None
    brand: Optional[str] = None
    image: Optional[str] = None

    @property
    def canonical_key(self) -> str:
        return canonical_key(self.source, self.source_local_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceProductDescriptor":
        data = apply_aliases(data)
        errors = validate_source(data)
        if errors:
            raise InvalidInput(errors)
        return cls(
            source=data["source"].strip(),
            source_local_id=str(data["source_local_id"]).strip(),
            title=data["title"].strip(),
            model=_optional_str(data.get("model")),
            brand=_optional_str(data.get("brand")),
            image=_optional_str(data.get("image")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_key": self.canonical_key,
            "source": self.source,
            "source_local_id": self.source_local_id,
            "title": self.title,
        }


@dataclass(frozen=True)
class CandidateDescriptor:
    """A listing produced by a connector. Read-only to the engine."""

    source: str
    source_local_id: str
    title: str
    price_minor_units: int
    url: str
    image: Optional[str] = None
    model: Optional[str] = None
    rating: Optional[float] = None
    brand: Optional[str] = None

    @property
    def canonical_key(self) -> str:
        return canonical_key(self.source, self.source_local_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateDescriptor":
        data = apply_aliases(data)
        errors = validate_candidate(data)
        if errors:
            raise InvalidInput(errors)
        rating = data.get("rating")
        return cls(
            source=data["source"].strip(),
            source_local_id=str(data["source_local_id"]).strip(),
            title=(data.get("title") or "").strip(),
            price_minor_units=data["price_minor_units"],
            url=data["url"],
            image=_optional_str(data.get("image")),
            model=_optional_str(data.get("model")),
            rating=float(rating) if rating is not None else None,
            brand=_optional_str(data.get("brand")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "source_local_id": self.source_local_id,
            "title": self.title,
            "price_minor_units": self.price_minor_units,
            "url": self.url,
            "image": self.image,
            "model": self.model,
            "rating": self.rating,
        }


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate with its confidence score and an auditable breakdown."""

    candidate: CandidateDescriptor
    score: float
    breakdown: Tuple[str, ...] = field(default_factory=tuple)
    model_match: bool = False

    @property
    def reason(self) -> str:
        return ", ".join(self.breakdown)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.candidate.to_dict(),
            "score": self.score,
            "model_match": self.model_match,
            "reason": self.reason,
            "breakdown": list(self.breakdown),
        }


def validate_source(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages for a source descriptor.
    Empty list means valid.
    """
    errors: List[str] = []
    data = apply_aliases(data)

    for f in SOURCE_REQUIRED_FIELDS:
        if f not in data or data[f] is None:
            errors.append(f"Missing required field: {f}")
        elif f == "source_local_id" and isinstance(data[f], int) and not isinstance(data[f], bool):
            continue
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    for f in SOURCE_OPTIONAL_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    return errors


def validate_candidate(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages for a candidate descriptor.
    An empty title is allowed; such a candidate simply scores zero.
    """
    errors: List[str] = []
    data = apply_aliases(data)

    for f in CANDIDATE_REQUIRED_STR_FIELDS:
        if f not in data or data[f] is None:
            errors.append(f"Missing required field: {f}")
        elif f == "source_local_id" and isinstance(data[f], int) and not isinstance(data[f], bool):
            continue
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    title = data.get("title")
    if title is not None and not isinstance(title, str):
        errors.append("Field 'title' must be a string if provided")

    price = data.get("price_minor_units")
    if price is None:
        errors.append("Missing required field: price_minor_units")
    elif isinstance(price, bool) or not isinstance(price, int):
        errors.append("Field 'price_minor_units' must be an integer")
    elif price < 0:
        errors.append("Field 'price_minor_units' must be non-negative")

    url = data.get("url")
    if url is None:
        errors.append("Missing required field: url")
    elif not isinstance(url, str):
        errors.append("Field 'url' must be a string")
    elif url.strip() and not _valid_url(url):
        errors.append("Field 'url' must be a valid absolute URL (scheme + host)")

    for f in CANDIDATE_OPTIONAL_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    rating = data.get("rating")
    if rating is not None and (isinstance(rating, bool) or not isinstance(rating, (int, float))):
        errors.append("Field 'rating' must be a number if provided")

    return errors
