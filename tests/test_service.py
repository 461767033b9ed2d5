"""
Tests for the resolve / score query surface.
"""

import pytest
from pricematch.config import MatchConfig
from pricematch.connectors import static_connectors
from pricematch.connectors.base import Connector
from pricematch.errors import ConnectorFailure, InvalidInput
from pricematch.resolver import EMPTY_RESULT_SET, RESOLVED
from pricematch.service import (
    ProductMatcher,
    candidate_for_comparison,
    resolve_by_descriptor,
    score_descriptors,
)
from pricematch.storage import InMemoryResolutionStore


class DownConnector(Connector):
    def fetch_candidates(self, query, limit, timeout):
        raise ConnectorFailure(self.name, f"{self.name} request timed out", "Timeout")


class TestProductMatcher:
    """End-to-end resolution with in-memory connectors."""

    def test_resolve(self, earbuds_source, earbuds_candidates, quiet_logger):
        matcher = ProductMatcher(static_connectors(earbuds_candidates))
        result = matcher.resolve(earbuds_source)

        assert result.reason == RESOLVED
        assert result.overall_best.candidate.source == "myntra"
        rows = {r.source: r for r in result.availability()}
        assert rows["flipkart"].available is True
        # No shared query token, so the catalog never offered it
        assert rows["meesho"].reason == "no candidates returned by this source"
        assert quiet_logger.get_metrics()["resolutions_by_reason"] == {RESOLVED: 1}

    def test_threshold_override(self, earbuds_source, earbuds_candidates):
        matcher = ProductMatcher(static_connectors(earbuds_candidates))
        result = matcher.resolve(earbuds_source, threshold=0.9)

        rows = {r.source: r for r in result.availability()}
        assert rows["flipkart"].available is False
        assert rows["myntra"].available is True

    def test_all_sources_empty(self, earbuds_source):
        matcher = ProductMatcher([DownConnector("flipkart"), DownConnector("myntra")])
        result = matcher.resolve(earbuds_source)

        assert result.reason == EMPTY_RESULT_SET
        assert result.overall_best is None
        assert [r.reason for r in result.availability()] == [
            "fetch error: flipkart request timed out",
            "fetch error: myntra request timed out",
        ]

    def test_one_of_three_connectors_raises(self, earbuds_source, earbuds_candidates):
        class BrokenConnector(Connector):
            def fetch_candidates(self, query, limit, timeout):
                raise RuntimeError("upstream returned HTML")

        healthy = [c for c in earbuds_candidates if c.source in ("flipkart", "myntra")]
        matcher = ProductMatcher(static_connectors(healthy) + [BrokenConnector("ajio")])
        result = matcher.resolve(earbuds_source)

        assert result.reason == RESOLVED
        assert result.overall_best.candidate.source == "myntra"
        rows = {r.source: r for r in result.availability()}
        assert set(rows) == {"flipkart", "myntra", "ajio"}
        assert rows["flipkart"].available is True
        assert rows["myntra"].available is True
        assert rows["ajio"].available is False
        assert rows["ajio"].reason == "fetch error: ajio failed: upstream returned HTML"

    def test_store_receives_available_matches(self, earbuds_source, earbuds_candidates):
        store = InMemoryResolutionStore()
        ProductMatcher(static_connectors(earbuds_candidates), store=store).resolve(earbuds_source)
        assert {r.target_source for r in store.history("amazon:B09MT84WV5")} == {"flipkart", "myntra"}

    def test_known_sources_from_config(self, earbuds_candidates):
        config = MatchConfig(known_sources=("ajio", "flipkart"))
        matcher = ProductMatcher(static_connectors(earbuds_candidates), config=config)
        assert matcher.known_sources == ["ajio", "flipkart", "myntra", "meesho"]


class TestResolveByDescriptor:
    def test_body(self, valid_source_payload, earbuds_candidates):
        connectors = static_connectors(earbuds_candidates) + [DownConnector("ajio")]
        body = resolve_by_descriptor(valid_source_payload, connectors)

        assert body["reason"] == "resolved"
        assert body["best_overall"]["source"] == "myntra"
        assert body["_meta"]["sources_searched"] == ["flipkart", "myntra", "meesho", "ajio"]
        assert body["_meta"]["failed_sources"] == ["ajio"]
        assert body["_meta"]["total_candidates"] == 2
        assert body["_meta"]["match_threshold"] == 0.4

    def test_invalid_payload(self, earbuds_candidates):
        with pytest.raises(InvalidInput):
            resolve_by_descriptor({"source": "amazon", "title": ""}, static_connectors(earbuds_candidates))


class TestScoreDescriptors:
    def test_score_two_descriptors(self, valid_source_payload):
        other = {"site": "flipkart", "id": "X1", "title": "boAt Airdopes 131 Truly Wireless Earbuds - Black"}
        body = score_descriptors(valid_source_payload, other)

        assert body["score"] == pytest.approx(0.821)
        assert body["price_minor_units"] == 0
        assert body["reason"] == "Token overlap: 71.4%"

    def test_candidate_for_comparison_keeps_given_price(self):
        candidate = candidate_for_comparison({
            "source": "flipkart", "source_local_id": "1", "title": "Boat", "price_cents": 500,
        })
        assert candidate.price_minor_units == 500
        assert candidate.url == ""
