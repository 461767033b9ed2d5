"""
Error taxonomy for cross-source resolution.

Only InvalidInput aborts a call. Connector failures and empty result sets
degrade into a ResolutionResult whose per-source entries explain what happened.
"""

from typing import Dict, List, Optional


class PriceMatchError(Exception):
    """Base class for all pricematch errors."""
    pass


class InvalidInput(PriceMatchError, ValueError):
    """Raised when a descriptor or option is missing or malformed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ConnectorFailure(PriceMatchError):
    """A single source connector errored, timed out or was cancelled."""

    def __init__(self, source: str, message: str, error_type: str = "ConnectorError"):
        self.source = source
        self.error_type = error_type
        super().__init__(message)

    @property
    def reason(self) -> str:
        return f"fetch error: {self}"


class EmptyResultSet(PriceMatchError):
    """Every connector returned zero candidates."""

    def __init__(self, failures: Optional[Dict[str, ConnectorFailure]] = None):
        self.failures = dict(failures or {})
        super().__init__("No candidates returned by any source")
