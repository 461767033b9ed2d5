"""
Tests for pair scoring.
"""

import pytest
from pricematch.config import MatchConfig, ScoringWeights
from pricematch.errors import InvalidInput
from pricematch.schema import SourceProductDescriptor
from pricematch.scoring import SimilarityScorer, score_candidate
from pricematch.signals import PrecomputedImageHashes


class TestIdentifierStage:
    """Stage 1: exact model number match."""

    def test_same_part_number_scores_one(self, iphone_source, make_candidate):
        candidate = make_candidate(
            "flipkart", "MOBGHWFHUYWGB5F2",
            "Apple iPhone 14 Pro (256 GB) - Deep Purple MLPF3HN/A",
            12999900, model="MLPF3HN/A",
        )
        scored = score_candidate(iphone_source, candidate)

        assert scored.score == 1.0
        assert scored.model_match is True
        assert scored.breakdown == ("Exact model number match: MLPF3HN/A",)

    def test_model_found_in_candidate_title(self, iphone_source, make_candidate):
        candidate = make_candidate("myntra", "1", "iPhone 14 Pro Deep Purple MLPF3HN/A")
        scored = score_candidate(iphone_source, candidate)
        assert scored.model_match is True

    def test_different_models_fall_through_to_tokens(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "Samsung Galaxy S23", model="SM-S911B")
        candidate = make_candidate("flipkart", "2", "Samsung Galaxy S23 Ultra", model="SM-S918B")
        scored = score_candidate(source, candidate)

        assert scored.model_match is False
        assert scored.score < 1.0
        assert scored.breakdown[0].startswith("Token overlap")

    def test_shared_capacity_token_is_not_an_identifier(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "Pendrive 128GB Silver")
        candidate = make_candidate("flipkart", "2", "Memory Card 128GB")
        scored = score_candidate(source, candidate)
        assert scored.model_match is False


class TestTokenStage:
    """Stage 2: title token overlap."""

    def test_similar_titles_score_high_without_model(self, earbuds_source, make_candidate):
        candidate = make_candidate("flipkart", "ACCG5HWZ", "boAt Airdopes 131 Truly Wireless Earbuds - Black")
        scored = score_candidate(earbuds_source, candidate)

        assert 0.7 < scored.score < 1.0
        assert scored.score == pytest.approx(0.821)
        assert scored.model_match is False
        assert scored.breakdown == ("Token overlap: 71.4%",)

    def test_unrelated_titles_get_the_floor(self, earbuds_source, make_candidate):
        candidate = make_candidate("meesho", "9", "Stainless Steel Water Bottle")
        assert score_candidate(earbuds_source, candidate).score == pytest.approx(0.5)

    def test_more_overlap_never_scores_lower(self, earbuds_source, make_candidate):
        titles = [
            "Boat Speaker",
            "Boat Airdopes Speaker",
            "Boat Airdopes 131 Speaker",
            "Boat Airdopes 131 Wireless Earbuds",
        ]
        scores = [score_candidate(earbuds_source, make_candidate("x", str(i), t)).score
                  for i, t in enumerate(titles)]
        assert scores == sorted(scores)

    def test_empty_candidate_title_scores_zero(self, earbuds_source, make_candidate):
        scored = score_candidate(earbuds_source, make_candidate("flipkart", "1", ""))
        assert scored.score == 0.0
        assert scored.breakdown == ("Candidate title has no comparable tokens",)

    def test_source_without_comparable_tokens(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "the a an")
        scored = score_candidate(source, make_candidate("flipkart", "1", "Boat Airdopes"))
        assert scored.score == 0.0
        assert scored.breakdown == ("Source title has no comparable tokens",)

    def test_empty_source_title_is_rejected(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "  ")
        with pytest.raises(InvalidInput):
            score_candidate(source, make_candidate("flipkart", "1", "Boat"))


class TestBonuses:
    """Stage 3: brand, keyword and image bonuses."""

    def test_brand_bonus(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "Boat Airdopes 131", brand="boAt")
        plain = score_candidate(source, make_candidate("flipkart", "1", "Boat Airdopes 141"))
        branded = score_candidate(source, make_candidate("flipkart", "1", "Boat Airdopes 141", brand="BOAT"))

        assert branded.score == pytest.approx(plain.score + 0.1)
        assert "Brand match" in branded.breakdown

    def test_keyword_bonus_per_shared_keyword(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "Apple iPhone 14 Pro Max")
        candidate = make_candidate("flipkart", "1", "Apple iPhone 14 Pro Max Case")
        scored = score_candidate(source, candidate)

        # 0.5 + 5/6 * 0.45 + 2 * 0.05
        assert scored.score == pytest.approx(0.975)
        assert "Keyword match: max, pro" in scored.breakdown

    def test_keyword_must_be_a_whole_token(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "Gopro Hero Camera")
        scored = score_candidate(source, make_candidate("flipkart", "1", "Gopro Hero Camera Mount"))
        assert not any(b.startswith("Keyword match") for b in scored.breakdown)

    def test_inferred_score_never_reaches_one(self, make_candidate):
        source = SourceProductDescriptor("amazon", "1", "Apple iPhone 14 Pro Max", brand="Apple")
        candidate = make_candidate("flipkart", "1", "Apple iPhone 14 Pro Max", brand="Apple")
        scored = score_candidate(source, candidate)

        assert scored.score == 0.99
        assert scored.model_match is False

    def test_image_bonus_within_cutoff(self, make_candidate):
        hashes = PrecomputedImageHashes({
            "https://img/a.jpg": "ffffffffffffffff",
            "https://img/b.jpg": "fffffffffffffff0",
        })
        scorer = SimilarityScorer(image_similarity=hashes)
        source = SourceProductDescriptor("amazon", "1", "Nike Running Shoes", image="https://img/a.jpg")
        candidate = make_candidate("flipkart", "1", "Nike Running Socks", image="https://img/b.jpg")
        scored = scorer.score(source, candidate)

        assert "Image hash distance: 4/64" in scored.breakdown
        assert scored.score == pytest.approx(0.5 + 0.5 * 0.45 + 0.05)

    def test_incomparable_hashes_are_ignored(self, make_candidate):
        hashes = PrecomputedImageHashes({"https://img/a.jpg": "ff", "https://img/b.jpg": "ffff"})
        scorer = SimilarityScorer(image_similarity=hashes)
        source = SourceProductDescriptor("amazon", "1", "Nike Running Shoes", image="https://img/a.jpg")
        candidate = make_candidate("flipkart", "1", "Nike Running Socks", image="https://img/b.jpg")
        scored = scorer.score(source, candidate)

        assert scored.score == pytest.approx(0.725)
        assert len(scored.breakdown) == 1


class TestScoreBounds:
    """Scores stay in range and only identifiers produce 1.0."""

    def test_scores_in_unit_interval(self, earbuds_source, earbuds_candidates):
        for c in earbuds_candidates:
            s = score_candidate(earbuds_source, c).score
            assert 0.0 <= s <= 1.0

    def test_one_only_with_model_match(self, iphone_source, earbuds_source, earbuds_candidates, make_candidate):
        pairs = [(earbuds_source, c) for c in earbuds_candidates]
        pairs.append((iphone_source, make_candidate("x", "1", "iPhone MLPF3HN/A")))
        pairs.append((iphone_source, make_candidate("x", "2", iphone_source.title, brand="Apple")))
        for source, candidate in pairs:
            scored = score_candidate(source, candidate)
            assert (scored.score == 1.0) == scored.model_match

    def test_custom_weights(self, make_candidate):
        config = MatchConfig(weights=ScoringWeights(token_floor=0.1, token_span=0.5))
        source = SourceProductDescriptor("amazon", "1", "Nike Running Shoes")
        scored = score_candidate(source, make_candidate("flipkart", "1", "Nike Running Socks"), config)
        assert scored.score == pytest.approx(0.35)

    def test_deterministic(self, earbuds_source, earbuds_candidates):
        first = [score_candidate(earbuds_source, c) for c in earbuds_candidates]
        second = [score_candidate(earbuds_source, c) for c in earbuds_candidates]
        assert first == second
