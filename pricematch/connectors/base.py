"""
Connector interface consumed by the candidate aggregator.

Each source's extraction quirks stay behind this boundary; the engine only
sees CandidateDescriptor lists.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List

from ..normalize import tokenize
from ..schema import CandidateDescriptor


class Connector(ABC):
    """A single source that can be searched for candidate listings."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def fetch_candidates(self, query: str, limit: int, timeout: float) -> List[CandidateDescriptor]:
        """Search the source.

        Args:
            query: Search text built from the source product
            limit: Maximum number of candidates wanted
            timeout: Seconds the call may take

        Returns:
            Candidates in the source's own ranking order; [] when nothing matches

        Raises:
            ConnectorFailure: On transport failure only
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class StaticConnector(Connector):
    """Serves candidates from an in-memory catalog.

    A listing is returned when its title shares at least one token with the
    query. Useful for offline runs and for tests.
    """

    def __init__(self, name: str, candidates: Iterable[CandidateDescriptor]):
        super().__init__(name)
        self.candidates = [c for c in candidates if c.source == name]

    def fetch_candidates(self, query: str, limit: int, timeout: float) -> List[CandidateDescriptor]:
        query_tokens = tokenize(query)
        results = []
        for c in self.candidates:
            if len(results) >= limit:
                break
            if query_tokens & tokenize(c.title):
                results.append(c)
        return results


def static_connectors(candidates: Iterable[CandidateDescriptor]) -> List[StaticConnector]:
    """One StaticConnector per source, in order of first appearance."""
    candidates = list(candidates)
    names: List[str] = []
    for c in candidates:
        if c.source not in names:
            names.append(c.source)
    return [StaticConnector(name, candidates) for name in names]
