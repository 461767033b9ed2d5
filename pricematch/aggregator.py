"""
Candidate aggregation across source connectors.

Responsibilities:
- Fan out one search per connector and wait on all of them under a shared deadline.
- Cap each source's contribution and flatten in connector registration order.
- Record per-source failures without failing the aggregation.

Non-Responsibilities:
- No scoring.
- No retries (a connector concern).
- No caching between calls.

Invariant:
A connector that errors, times out or is cancelled contributes nothing,
never a partial list.
"""

import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .errors import ConnectorFailure, EmptyResultSet, InvalidInput
from .connectors.base import Connector
from .logger import StructuredLogger, get_logger
from .schema import CandidateDescriptor


@dataclass
class AggregationReport:
    """What a fan-out produced: merged candidates plus per-source outcomes."""

    candidates: List[CandidateDescriptor] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    failures: Dict[str, ConnectorFailure] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    elapsed: float = 0.0


def _fetch(connector: Connector, query: str, limit: int, timeout: float) -> List[CandidateDescriptor]:
    results = connector.fetch_candidates(query, limit, timeout)
    if results is None:
        return []
    results = list(results)
    for r in results:
        if not isinstance(r, CandidateDescriptor):
            raise ConnectorFailure(
                connector.name,
                f"{connector.name} returned a {type(r).__name__}, not a CandidateDescriptor",
                "MalformedCandidate",
            )
    return results


class CandidateAggregator:
    """Concurrent fan-out/fan-in over source connectors."""

    def __init__(self, max_workers: Optional[int] = None, logger: Optional[StructuredLogger] = None):
        self.max_workers = max_workers
        self.logger = logger or get_logger()

    def collect(
        self,
        query: str,
        exclude_source: Optional[str],
        connectors: Sequence[Connector],
        per_source_limit: int,
        deadline: float,
    ) -> AggregationReport:
        """Run every connector except exclude_source and report what came back."""
        if per_source_limit < 1:
            raise InvalidInput(["per_source_limit must be at least 1"])
        if deadline <= 0:
            raise InvalidInput(["deadline must be positive"])

        active = [c for c in connectors if c.name != exclude_source]
        report = AggregationReport(sources=[c.name for c in active])
        if not active:
            return report

        started = time.monotonic()
        self.logger.info(
            "Fetching candidates",
            query=query,
            sources=report.sources,
            deadline=deadline,
        )

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers or len(active),
            thread_name_prefix="pricematch-connector",
        )
        futures: List[Future] = []
        try:
            for connector in active:
                self.logger.record_fetch_attempt(connector.name)
                futures.append(executor.submit(_fetch, connector, query, per_source_limit, deadline))
            done, not_done = wait(futures, timeout=deadline)
        finally:
            # Stragglers are abandoned; their late results are never read
            executor.shutdown(wait=False, cancel_futures=True)

        for connector, future in zip(active, futures):
            if future in not_done:
                future.cancel()
                failure = ConnectorFailure(
                    connector.name,
                    f"{connector.name} did not answer within {deadline}s",
                    "Timeout",
                )
            else:
                failure = None
                try:
                    results = future.result()
                except CancelledError:
                    failure = ConnectorFailure(connector.name, f"{connector.name} was cancelled", "Cancelled")
                except ConnectorFailure as e:
                    failure = e
                except Exception as e:
                    failure = ConnectorFailure(connector.name, f"{connector.name} failed: {e}", type(e).__name__)

            if failure is not None:
                report.failures[connector.name] = failure
                report.counts[connector.name] = 0
                self.logger.record_fetch_failure(connector.name, failure.error_type)
                self.logger.warning(
                    "Connector failed",
                    source=connector.name,
                    error_type=failure.error_type,
                    error=str(failure),
                )
                continue

            kept = results[:per_source_limit]
            report.candidates.extend(kept)
            report.counts[connector.name] = len(kept)
            self.logger.record_fetch_success(connector.name, len(kept))
            self.logger.debug("Connector returned candidates", source=connector.name, count=len(kept))

        report.elapsed = round(time.monotonic() - started, 3)
        self.logger.info(
            f"Collected {len(report.candidates)} candidates from {len(active)} sources",
            failed=sorted(report.failures),
            elapsed=report.elapsed,
        )
        return report

    def aggregate(
        self,
        query: str,
        exclude_source: Optional[str],
        connectors: Sequence[Connector],
        per_source_limit: int,
        deadline: float,
    ) -> List[CandidateDescriptor]:
        """Flattened candidates; raises EmptyResultSet when no source returned any."""
        report = self.collect(query, exclude_source, connectors, per_source_limit, deadline)
        if not report.candidates:
            raise EmptyResultSet(report.failures)
        return report.candidates


def aggregate(
    query: str,
    exclude_source: Optional[str],
    connectors: Sequence[Connector],
    per_source_limit: int = 5,
    deadline: float = 15.0,
) -> List[CandidateDescriptor]:
    return CandidateAggregator().aggregate(query, exclude_source, connectors, per_source_limit, deadline)
