"""
Pytest configuration and shared fixtures.
"""

import pytest
from typing import Any, Dict

from pricematch.logger import get_logger, reset_logger
from pricematch.schema import CandidateDescriptor, SourceProductDescriptor


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Global logger writing only to a per-test directory."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


def _candidate(source: str, local_id: str, title: str, price: int = 99900, **kwargs) -> CandidateDescriptor:
    return CandidateDescriptor(
        source=source,
        source_local_id=local_id,
        title=title,
        price_minor_units=price,
        url=kwargs.pop("url", f"https://{source}.example.com/p/{local_id}"),
        **kwargs,
    )


@pytest.fixture
def iphone_source() -> SourceProductDescriptor:
    """Source product with an explicit part number."""
    return SourceProductDescriptor(
        source="amazon",
        source_local_id="B0BDJH6GL8",
        title="Apple iPhone 14 Pro 256GB Deep Purple MLPF3HN/A",
        model="MLPF3HN/A",
        brand="Apple",
    )


@pytest.fixture
def earbuds_source() -> SourceProductDescriptor:
    """Source product with no model number."""
    return SourceProductDescriptor(
        source="amazon",
        source_local_id="B09MT84WV5",
        title="Boat Airdopes 131 Wireless Earbuds",
    )


@pytest.fixture
def earbuds_candidates():
    """Listings for the earbuds on three other sources."""
    return [
        _candidate("flipkart", "ACCG5HWZ", "boAt Airdopes 131 Truly Wireless Earbuds - Black", 89900),
        _candidate("myntra", "17234561", "boAt Airdopes 131 Wireless Earbuds", 109900),
        _candidate("meesho", "m-551", "Wired Earphones with Mic", 19900),
    ]


@pytest.fixture
def valid_source_payload() -> Dict[str, Any]:
    return {
        "source": "amazon",
        "source_local_id": "B09MT84WV5",
        "title": "Boat Airdopes 131 Wireless Earbuds",
    }


@pytest.fixture
def valid_candidate_payload() -> Dict[str, Any]:
    return {
        "source": "flipkart",
        "source_local_id": "ACCG5HWZ",
        "title": "boAt Airdopes 131 Truly Wireless Earbuds - Black",
        "price_minor_units": 89900,
        "url": "https://www.flipkart.com/boat-airdopes-131/p/ACCG5HWZ",
        "rating": 4.1,
    }


@pytest.fixture
def make_candidate():
    """Factory for CandidateDescriptor with a default price and URL."""
    return _candidate
