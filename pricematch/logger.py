"""
Structured logging and session metrics for pricematch.

One process-wide logger writes human-readable lines to stderr and a daily file
under logs/. Keyword arguments passed to a log call are appended as a JSON
context blob. The same object counts connector fetches and resolution outcomes
so a run can end with a metrics summary.
"""

import json
import logging
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_handler(level: int) -> logging.Handler:
    # stdout carries command output (JSON bodies), so logs go to stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"pricematch_{datetime.now():%Y%m%d}.log"
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


class StructuredLogger:
    """
    Logger with JSON context and connector / resolution counters.

    Counters are plain ints and dicts; they are updated only from the thread
    that runs aggregation and resolution, never from connector workers.
    """

    def __init__(
        self,
        name: str = "pricematch",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for daily log files (default: logs/)
            enable_file: Write records to the daily file
            enable_console: Write records to stderr
        """
        numeric_level = getattr(logging, level.upper())
        self.logger = logging.getLogger(name)
        self.logger.setLevel(numeric_level)
        self.logger.handlers.clear()

        if enable_console:
            self.logger.addHandler(_console_handler(numeric_level))
        if enable_file:
            self.logger.addHandler(_file_handler(log_dir or Path("logs")))

        self.metrics: Dict[str, Any] = {
            "fetches_attempted": 0,
            "fetches_successful": 0,
            "fetches_failed": 0,
            "candidates_received": 0,
            "errors_by_type": Counter(),
            "source_success_rate": {},
            "resolutions": 0,
            "resolutions_by_reason": Counter(),
        }

    def _log(self, level: int, message: str, context: Dict[str, Any]):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def critical(self, message: str, **context):
        self._log(logging.CRITICAL, message, context)

    def _source_stats(self, source: str) -> Dict[str, int]:
        return self.metrics["source_success_rate"].setdefault(source, {"attempts": 0, "successes": 0})

    def record_fetch_attempt(self, source: str):
        self.metrics["fetches_attempted"] += 1
        self._source_stats(source)["attempts"] += 1

    def record_fetch_success(self, source: str, candidates: int = 0):
        """A connector call that settled in time, with or without results."""
        self.metrics["fetches_successful"] += 1
        self.metrics["candidates_received"] += candidates
        self._source_stats(source)["successes"] += 1

    def record_fetch_failure(self, source: str, error_type: str):
        """A connector call that errored, timed out or was cancelled."""
        self.metrics["fetches_failed"] += 1
        self.metrics["errors_by_type"][error_type] += 1

    def record_resolution(self, reason: str):
        self.metrics["resolutions"] += 1
        self.metrics["resolutions_by_reason"][reason] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of the counters with per-source success rates filled in."""
        snapshot = dict(self.metrics)
        snapshot["errors_by_type"] = dict(self.metrics["errors_by_type"])
        snapshot["resolutions_by_reason"] = dict(self.metrics["resolutions_by_reason"])
        rates = {}
        for source, stats in self.metrics["source_success_rate"].items():
            row = dict(stats)
            if row["attempts"]:
                row["success_rate"] = round(row["successes"] / row["attempts"], 3)
            rates[source] = row
        snapshot["source_success_rate"] = rates
        return snapshot

    def log_metrics_summary(self):
        m = self.get_metrics()
        attempts = m["fetches_attempted"]
        overall = round(m["fetches_successful"] / attempts * 100, 1) if attempts else 0.0

        self.info("=== Resolution Session Metrics ===")
        self.info(f"Resolutions: {m['resolutions']}")
        for reason, count in sorted(m["resolutions_by_reason"].items()):
            self.info(f"  {reason}: {count}")
        self.info(f"Fetches: {m['fetches_successful']}/{attempts} ({overall}% success)")
        self.info(f"Candidates received: {m['candidates_received']}")

        if m["source_success_rate"]:
            self.info("Source Success Rates:")
            for source, stats in m["source_success_rate"].items():
                rate = stats.get("success_rate", 0) * 100
                self.info(f"  {source}: {stats['successes']}/{stats['attempts']} ({rate:.1f}%)")

        if m["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in m["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "pricematch", level: str = "INFO", **kwargs) -> StructuredLogger:
    """Return the process-wide logger, creating it on first use.

    Arguments only take effect on the first call; later calls return the
    existing instance unchanged.
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)
    return _global_logger


def reset_logger():
    """Drop the process-wide logger so the next get_logger() builds a fresh one."""
    global _global_logger
    _global_logger = None
