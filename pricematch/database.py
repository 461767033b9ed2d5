"""
Database schema and connection management.

Uses SQLite with SQLAlchemy to keep a price history of resolved matches.
The resolution engine never touches this; only callers that opt into a store do.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class PriceObservation(Base):
    """One available match seen for a source product at a point in time."""

    __tablename__ = "price_observations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_key = Column(String, nullable=False, index=True)  # source:source_local_id
    source_title = Column(String, nullable=False)
    target_source = Column(String, nullable=False)  # amazon, flipkart, myntra, meesho
    target_local_id = Column(String, nullable=False)
    target_title = Column(String, nullable=False)
    price_minor_units = Column(Integer, nullable=False)
    url = Column(String, nullable=False)
    score = Column(Float, nullable=False)
    match_quality = Column(String, nullable=True)
    observed_at = Column(DateTime, nullable=False, default=datetime.now, index=True)


def _engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(_engine(db_path))


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=_engine(db_path))
    return Session()
