"""
Cleanup module for pruning old price observations.

Observations older than a given number of days (default: 30) no longer say
anything about current prices and only slow down history queries.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Tuple

from sqlalchemy.exc import SQLAlchemyError

from .database import PriceObservation, get_session, init_database
from .logger import get_logger


def cleanup_stale_observations(db_path: Path, days: int = 30) -> Tuple[int, int]:
    """
    Remove observations older than the specified number of days.

    Args:
        db_path: Path to the SQLite database
        days: Number of days to keep (default: 30)

    Returns:
        Tuple of (total_before, total_after)
    """
    logger = get_logger()
    if days < 0:
        raise ValueError("days must be non-negative")

    init_database(db_path)
    cutoff = datetime.now() - timedelta(days=days)
    session = get_session(db_path)
    try:
        before = session.query(PriceObservation).count()
        removed = (
            session.query(PriceObservation)
            .filter(PriceObservation.observed_at < cutoff)
            .delete(synchronize_session=False)
        )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Cleanup failed: {e}", db_path=str(db_path), days=days)
        raise
    finally:
        session.close()

    after = before - removed
    logger.info(
        f"Cleanup complete: {removed} removed, {after} remaining",
        observations_before=before,
        observations_removed=removed,
        days_threshold=days,
    )
    return (before, after)
