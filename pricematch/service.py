"""
Query surface: resolve a descriptor across sources, or score two descriptors.

This is the only layer that combines I/O (connectors, optional store) with
the pure scoring and resolution components.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from .aggregator import CandidateAggregator
from .config import MatchConfig
from .connectors.base import Connector
from .logger import StructuredLogger, get_logger
from .normalize import build_search_query
from .resolver import EMPTY_RESULT_SET, MatchResolver, ResolutionResult
from .schema import CandidateDescriptor, SourceProductDescriptor, apply_aliases
from .scoring import SimilarityScorer
from .signals import ImageSimilarity
from .storage import ResolutionStore


class ProductMatcher:
    """Aggregates candidates from connectors and resolves them against a source."""

    def __init__(
        self,
        connectors: Sequence[Connector],
        config: Optional[MatchConfig] = None,
        image_similarity: Optional[ImageSimilarity] = None,
        store: Optional[ResolutionStore] = None,
        aggregator: Optional[CandidateAggregator] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.connectors = list(connectors)
        self.config = config or MatchConfig()
        self.logger = logger or get_logger()
        self.scorer = SimilarityScorer.from_config(self.config, image_similarity=image_similarity)
        self.resolver = MatchResolver(self.scorer, logger=self.logger)
        self.aggregator = aggregator or CandidateAggregator(logger=self.logger)
        self.store = store

    @property
    def known_sources(self):
        names = list(self.config.known_sources or ())
        for c in self.connectors:
            if c.name not in names:
                names.append(c.name)
        return names

    def resolve(self, source: SourceProductDescriptor, threshold: Optional[float] = None) -> ResolutionResult:
        threshold = self.config.threshold if threshold is None else threshold
        query = build_search_query(source.title, self.config.query_max_terms)
        report = self.aggregator.collect(
            query,
            source.source,
            self.connectors,
            self.config.per_source_limit,
            self.config.aggregation_deadline,
        )
        result = self.resolver.resolve(
            source,
            report.candidates,
            threshold=threshold,
            known_sources=self.known_sources,
            source_failures=report.failures,
            reason=None if report.candidates else EMPTY_RESULT_SET,
        )
        self.logger.record_resolution(result.reason)

        for row in result.availability():
            status = "available" if row.available else "not available"
            self.logger.info(f"  {row.source}: {status} ({row.score:.3f}) - {row.reason}")

        if self.store is not None:
            stored = self.store.record(result)
            self.logger.debug("Recorded price observations", source=source.canonical_key, count=stored)
        return result

    def score(self, source: SourceProductDescriptor, candidate: CandidateDescriptor):
        return self.scorer.score(source, candidate)


def resolve_by_descriptor(
    payload: Dict[str, Any],
    connectors: Sequence[Connector],
    config: Optional[MatchConfig] = None,
    store: Optional[ResolutionStore] = None,
    image_similarity: Optional[ImageSimilarity] = None,
) -> Dict[str, Any]:
    """
    Resolve a `{source, source_local_id, title}` payload across every connector.

    Raises:
        InvalidInput: If the payload is missing required fields
    """
    source = SourceProductDescriptor.from_dict(payload)
    matcher = ProductMatcher(connectors, config=config, store=store, image_similarity=image_similarity)
    result = matcher.resolve(source)
    body = result.to_dict()
    body["_meta"] = {
        "resolved_at": datetime.now().isoformat(),
        "sources_searched": [s for s in matcher.known_sources if s != source.source],
        "failed_sources": sorted(result.source_failures),
        "total_candidates": len(result.scored),
        "match_threshold": result.threshold,
    }
    return body


def candidate_for_comparison(payload: Dict[str, Any]) -> CandidateDescriptor:
    """Candidate built from a bare descriptor; listing fields default when absent."""
    data = apply_aliases(payload)
    data.setdefault("price_minor_units", 0)
    data.setdefault("url", "")
    return CandidateDescriptor.from_dict(data)


def score_descriptors(
    source_payload: Dict[str, Any],
    other_payload: Dict[str, Any],
    config: Optional[MatchConfig] = None,
) -> Dict[str, Any]:
    """Score two descriptors directly, without aggregation."""
    source = SourceProductDescriptor.from_dict(source_payload)
    candidate = candidate_for_comparison(other_payload)
    scored = SimilarityScorer.from_config(config or MatchConfig()).score(source, candidate)
    return scored.to_dict()
