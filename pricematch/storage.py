"""
Result stores for callers that want price history.

The engine is stateless; a store is injected into the service layer when a
caller asks for persistence. Only available matches are recorded, so the
history never contains placeholder rows.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .database import PriceObservation, get_session, init_database
from .resolver import ResolutionResult


@dataclass(frozen=True)
class PriceRecord:
    source_key: str
    target_source: str
    target_local_id: str
    title: str
    price_minor_units: int
    url: str
    score: float
    match_quality: Optional[str]
    observed_at: datetime

    def to_dict(self) -> Dict[str, object]:
        return {
            "source_key": self.source_key,
            "target_source": self.target_source,
            "target_local_id": self.target_local_id,
            "title": self.title,
            "price_minor_units": self.price_minor_units,
            "url": self.url,
            "score": self.score,
            "match_quality": self.match_quality,
            "observed_at": self.observed_at.isoformat(),
        }


def records_from_result(result: ResolutionResult, observed_at: Optional[datetime] = None) -> List[PriceRecord]:
    observed_at = observed_at or datetime.now()
    records = []
    for row in result.availability():
        if not row.available or row.best is None:
            continue
        c = row.best.candidate
        records.append(PriceRecord(
            source_key=result.source.canonical_key,
            target_source=c.source,
            target_local_id=c.source_local_id,
            title=c.title,
            price_minor_units=c.price_minor_units,
            url=c.url,
            score=row.score,
            match_quality=row.match_quality,
            observed_at=observed_at,
        ))
    return records


class ResolutionStore(ABC):
    @abstractmethod
    def record(self, result: ResolutionResult, observed_at: Optional[datetime] = None) -> int:
        """Persist the available matches of a result; returns how many were stored."""
        pass

    @abstractmethod
    def history(self, source_key: str, target_source: Optional[str] = None) -> List[PriceRecord]:
        """Observations for a source product, oldest first."""
        pass

    def cheapest(self, source_key: str) -> Optional[PriceRecord]:
        records = self.history(source_key)
        if not records:
            return None
        return min(records, key=lambda r: (r.price_minor_units, r.observed_at))


class InMemoryResolutionStore(ResolutionStore):
    def __init__(self):
        self._records: Dict[str, List[PriceRecord]] = {}

    def record(self, result: ResolutionResult, observed_at: Optional[datetime] = None) -> int:
        records = records_from_result(result, observed_at)
        self._records.setdefault(result.source.canonical_key, []).extend(records)
        return len(records)

    def history(self, source_key: str, target_source: Optional[str] = None) -> List[PriceRecord]:
        records = self._records.get(source_key, [])
        if target_source:
            records = [r for r in records if r.target_source == target_source]
        return sorted(records, key=lambda r: r.observed_at)


class SqlResolutionStore(ResolutionStore):
    """SQLite-backed store built on the PriceObservation table."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        init_database(db_path)

    def record(self, result: ResolutionResult, observed_at: Optional[datetime] = None) -> int:
        records = records_from_result(result, observed_at)
        if not records:
            return 0
        session = get_session(self.db_path)
        try:
            for r in records:
                session.add(PriceObservation(
                    source_key=r.source_key,
                    source_title=result.source.title,
                    target_source=r.target_source,
                    target_local_id=r.target_local_id,
                    target_title=r.title,
                    price_minor_units=r.price_minor_units,
                    url=r.url,
                    score=r.score,
                    match_quality=r.match_quality,
                    observed_at=r.observed_at,
                ))
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
        return len(records)

    def history(self, source_key: str, target_source: Optional[str] = None) -> List[PriceRecord]:
        session = get_session(self.db_path)
        try:
            query = session.query(PriceObservation).filter_by(source_key=source_key)
            if target_source:
                query = query.filter_by(target_source=target_source)
            rows = query.order_by(PriceObservation.observed_at, PriceObservation.id).all()
            return [
                PriceRecord(
                    source_key=row.source_key,
                    target_source=row.target_source,
                    target_local_id=row.target_local_id,
                    title=row.target_title,
                    price_minor_units=row.price_minor_units,
                    url=row.url,
                    score=row.score,
                    match_quality=row.match_quality,
                    observed_at=row.observed_at,
                )
                for row in rows
            ]
        finally:
            session.close()
