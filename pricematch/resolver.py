"""
Match resolution over an in-memory candidate list.

Responsibilities:
- Score every candidate and keep the best one per source.
- Pick the single best candidate overall.
- Classify each known source as available or not against a threshold.
- Return an explainable, deterministic result.

Non-Responsibilities:
- No I/O and no connector calls.
- No persistence.

Invariant:
This module must be deterministic given the same inputs. Ties keep the
candidate seen first, so input order decides them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import MatchConfig
from .errors import ConnectorFailure, InvalidInput
from .logger import StructuredLogger, get_logger
from .schema import CandidateDescriptor, ScoredCandidate, SourceProductDescriptor
from .scoring import SimilarityScorer, require_title

# Result-level outcome markers
RESOLVED = "resolved"
NO_CANDIDATES = "no_candidates"
EMPTY_RESULT_SET = "empty_result_set"

RESULT_REASONS = {
    RESOLVED: "resolved",
    NO_CANDIDATES: "no candidates provided",
    EMPTY_RESULT_SET: "no candidates returned by any source",
}

# Per-source reasons
REASON_NO_SOURCE_CANDIDATES = "no candidates returned by this source"
REASON_BELOW_THRESHOLD = "best candidate score below threshold"

EXCELLENT = "excellent"
GOOD = "good"
FAIR = "fair"


def match_quality(score: float, threshold: float) -> Optional[str]:
    """Display tier for an available match, None below threshold."""
    if score < threshold:
        return None
    if score >= 0.8:
        return EXCELLENT
    if score >= 0.6:
        return GOOD
    return FAIR


@dataclass(frozen=True)
class SourceAvailability:
    """One row of the caller-facing availability view."""

    source: str
    available: bool
    score: float
    reason: str
    best: Optional[ScoredCandidate] = None
    match_quality: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "source": self.source,
            "available": self.available,
            "score": self.score,
            "reason": self.reason,
        }
        if self.available and self.best is not None:
            c = self.best.candidate
            row.update({
                "source_local_id": c.source_local_id,
                "title": c.title,
                "price_minor_units": c.price_minor_units,
                "url": c.url,
                "image": c.image,
                "rating": c.rating,
                "match_quality": self.match_quality,
            })
        return row


@dataclass(frozen=True)
class ResolutionResult:
    source: SourceProductDescriptor
    per_source_best: Mapping[str, ScoredCandidate]
    overall_best: Optional[ScoredCandidate]
    threshold: float
    reason: str = RESOLVED
    known_sources: Tuple[str, ...] = ()
    source_failures: Mapping[str, ConnectorFailure] = field(default_factory=dict)
    scored: Tuple[ScoredCandidate, ...] = ()

    @property
    def score(self) -> float:
        return self.overall_best.score if self.overall_best is not None else 0.0

    @property
    def reason_text(self) -> str:
        return RESULT_REASONS.get(self.reason, self.reason)

    def availability(self) -> List[SourceAvailability]:
        """Every known source except the input's own, in known-source order."""
        rows = []
        for name in self.known_sources:
            if name == self.source.source:
                continue
            best = self.per_source_best.get(name)
            if best is None:
                failure = self.source_failures.get(name)
                rows.append(SourceAvailability(
                    source=name,
                    available=False,
                    score=0.0,
                    reason=failure.reason if failure is not None else REASON_NO_SOURCE_CANDIDATES,
                ))
            elif best.score >= self.threshold:
                rows.append(SourceAvailability(
                    source=name,
                    available=True,
                    score=best.score,
                    reason=best.reason,
                    best=best,
                    match_quality=match_quality(best.score, self.threshold),
                ))
            else:
                rows.append(SourceAvailability(
                    source=name,
                    available=False,
                    score=best.score,
                    reason=REASON_BELOW_THRESHOLD,
                    best=best,
                ))
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.to_dict(),
            "results": [row.to_dict() for row in self.availability()],
            "best_overall": self.overall_best.to_dict() if self.overall_best is not None else None,
            "score": self.score,
            "reason": self.reason_text,
            "threshold": self.threshold,
        }


def _known_sources(candidates: Iterable[CandidateDescriptor], known: Optional[Sequence[str]]) -> Tuple[str, ...]:
    names: List[str] = []
    for name in list(known or ()) + [c.source for c in candidates]:
        if name not in names:
            names.append(name)
    return tuple(names)


class MatchResolver:
    """Groups scored candidates by source and applies the decision threshold."""

    def __init__(self, scorer: Optional[SimilarityScorer] = None, logger: Optional[StructuredLogger] = None):
        self.scorer = scorer or SimilarityScorer()
        self.logger = logger or get_logger()

    @classmethod
    def from_config(cls, config: MatchConfig, **kwargs) -> "MatchResolver":
        return cls(scorer=SimilarityScorer.from_config(config, **kwargs))

    def resolve(
        self,
        source: SourceProductDescriptor,
        candidates: Sequence[CandidateDescriptor],
        threshold: float = 0.4,
        known_sources: Optional[Sequence[str]] = None,
        source_failures: Optional[Mapping[str, ConnectorFailure]] = None,
        reason: Optional[str] = None,
    ) -> ResolutionResult:
        require_title(source)
        if not 0.0 <= threshold <= 1.0:
            raise InvalidInput(["threshold must be between 0 and 1"])

        failures = dict(source_failures or {})
        known = _known_sources(candidates, list(known_sources or ()) + list(failures))

        if not candidates:
            return ResolutionResult(
                source=source,
                per_source_best={},
                overall_best=None,
                threshold=threshold,
                reason=reason or NO_CANDIDATES,
                known_sources=known,
                source_failures=failures,
            )

        self.logger.debug(
            "Resolving candidates",
            source=source.canonical_key,
            title=source.title,
            candidates=len(candidates),
        )

        scored: List[ScoredCandidate] = []
        per_source: Dict[str, ScoredCandidate] = {}
        overall: Optional[ScoredCandidate] = None
        for candidate in candidates:
            s = self.scorer.score(source, candidate)
            scored.append(s)
            self.logger.debug(
                f"  {candidate.source}: {s.score:.3f} - {candidate.title[:60]!r}",
                reason=s.reason,
            )
            current = per_source.get(candidate.source)
            if current is None or s.score > current.score:
                per_source[candidate.source] = s
            if overall is None or s.score > overall.score:
                overall = s

        # sorted() is stable, so equal scores keep input order
        ranked = tuple(sorted(scored, key=lambda x: x.score, reverse=True))
        result = ResolutionResult(
            source=source,
            per_source_best=per_source,
            overall_best=overall,
            threshold=threshold,
            reason=reason or RESOLVED,
            known_sources=known,
            source_failures=failures,
            scored=ranked,
        )
        self.logger.info(
            f"Best match: {overall.score:.3f} - {overall.candidate.source}",
            source=source.canonical_key,
            reason=overall.reason,
        )
        return result


def resolve(
    source: SourceProductDescriptor,
    candidates: Sequence[CandidateDescriptor],
    threshold: float = 0.4,
    known_sources: Optional[Sequence[str]] = None,
) -> ResolutionResult:
    return MatchResolver().resolve(source, candidates, threshold, known_sources)
