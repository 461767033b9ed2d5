"""
Similarity scoring between a source product and one candidate.

Responsibilities:
- Compute a deterministic 0.0-1.0 confidence score for a single pair.
- Emit an ordered breakdown explaining every stage and bonus that fired.

Non-Responsibilities:
- No I/O.
- No grouping, ranking or threshold decisions.

Invariant:
A score of exactly 1.0 is produced if and only if identifier tokens match.
"""

from typing import Iterable, List, Optional

from .config import DEFAULT_SIGNIFICANT_KEYWORDS, MatchConfig, ScoringWeights
from .errors import InvalidInput
from .identifiers import find_identifier_match, identifier_tokens
from .logger import StructuredLogger, get_logger
from .normalize import STOP_WORDS, jaccard_similarity, normalize_brand, tokenize
from .schema import CandidateDescriptor, ScoredCandidate, SourceProductDescriptor
from .signals import ImageSimilarity, image_distance


def require_title(source: SourceProductDescriptor) -> None:
    if source is None or not isinstance(source.title, str) or not source.title.strip():
        raise InvalidInput(["Source must have a non-empty title"])


class SimilarityScorer:
    """Three-stage scorer: identifier match, title token overlap, bonuses."""

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        significant_keywords: Iterable[str] = DEFAULT_SIGNIFICANT_KEYWORDS,
        stop_words: Iterable[str] = STOP_WORDS,
        image_similarity: Optional[ImageSimilarity] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.weights = weights or ScoringWeights()
        self.significant_keywords = frozenset(kw.lower() for kw in significant_keywords)
        self.stop_words = frozenset(stop_words)
        self.image_similarity = image_similarity
        self.logger = logger or get_logger()

    @classmethod
    def from_config(
        cls,
        config: MatchConfig,
        image_similarity: Optional[ImageSimilarity] = None,
    ) -> "SimilarityScorer":
        return cls(
            weights=config.weights,
            significant_keywords=config.significant_keywords,
            stop_words=config.stop_words,
            image_similarity=image_similarity,
        )

    def score(self, source: SourceProductDescriptor, candidate: CandidateDescriptor) -> ScoredCandidate:
        require_title(source)
        w = self.weights
        breakdown: List[str] = []

        # Stage 1: exact identifier match
        if source.model or candidate.model:
            matched = find_identifier_match(
                identifier_tokens(source.model, source.title),
                identifier_tokens(candidate.model, candidate.title),
            )
            if matched is not None:
                return ScoredCandidate(
                    candidate=candidate,
                    score=1.0,
                    breakdown=(f"Exact model number match: {matched}",),
                    model_match=True,
                )

        # Stage 2: title token overlap
        source_tokens = tokenize(source.title, self.stop_words)
        candidate_tokens = tokenize(candidate.title, self.stop_words)
        if not source_tokens or not candidate_tokens:
            side = "Candidate" if source_tokens else "Source"
            return ScoredCandidate(
                candidate=candidate,
                score=0.0,
                breakdown=(f"{side} title has no comparable tokens",),
            )

        similarity = jaccard_similarity(source_tokens, candidate_tokens)
        score = w.token_floor + similarity * w.token_span
        breakdown.append(f"Token overlap: {similarity * 100:.1f}%")

        # Stage 3: bonuses
        if source.brand and candidate.brand:
            if normalize_brand(source.brand) == normalize_brand(candidate.brand):
                score += w.brand_bonus
                breakdown.append("Brand match")

        shared = sorted(source_tokens & candidate_tokens & self.significant_keywords)
        if shared:
            score += len(shared) * w.keyword_bonus
            breakdown.append(f"Keyword match: {', '.join(shared)}")

        distance = self._image_distance(source, candidate)
        if distance is not None and distance <= w.image_cutoff:
            score += w.image_bonus
            breakdown.append(f"Image hash distance: {distance}/64")

        score = round(min(score, w.max_inferred_score), 3)
        return ScoredCandidate(
            candidate=candidate,
            score=score,
            breakdown=tuple(breakdown),
        )

    def _image_distance(self, source: SourceProductDescriptor, candidate: CandidateDescriptor) -> Optional[int]:
        try:
            return image_distance(self.image_similarity, source.image, candidate.image)
        except ValueError as e:
            self.logger.warning(
                "Image hashes not comparable",
                source=source.canonical_key,
                candidate=candidate.canonical_key,
                error=str(e),
            )
            return None


def score_candidate(
    source: SourceProductDescriptor,
    candidate: CandidateDescriptor,
    config: Optional[MatchConfig] = None,
) -> ScoredCandidate:
    """Score a single pair with default or configured weights."""
    return SimilarityScorer.from_config(config or MatchConfig()).score(source, candidate)
