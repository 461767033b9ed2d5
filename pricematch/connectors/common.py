"""Shared HTTP helpers for connectors."""

from typing import Any, Dict, Optional

import requests

from .. import __version__
from ..errors import ConnectorFailure
from ..logger import get_logger
from ..retry import RetryError, exponential_backoff, is_transient_error

USER_AGENT = f"pricematch/{__version__}"


@exponential_backoff(
    max_retries=2,
    base_delay=0.5,
    exceptions=(requests.exceptions.RequestException,),
    retry_if=is_transient_error,
    budget_arg="timeout",
)
def _get_with_retry(url: str, *, params: Dict[str, Any], headers: Dict[str, str], timeout: float):
    """GET with automatic retry on transient errors and retryable statuses."""
    resp = requests.get(url, params=params, headers=headers, timeout=timeout)
    resp.raise_for_status()
    return resp


def fetch_json_with_error_handling(
    url: str,
    source: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 15.0,
) -> Any:
    """Fetch a JSON document with standardized error handling and logging.

    Args:
        url: The endpoint to call
        source: Source name for logging (e.g., 'flipkart', 'amazon')
        params: Query string parameters
        headers: Extra request headers
        timeout: Seconds allowed for the whole call, retries included

    Returns:
        The decoded JSON body

    Raises:
        ConnectorFailure: On any HTTP error, timeout, request failure or bad JSON
    """
    logger = get_logger()
    all_headers = {"User-Agent": USER_AGENT, "Accept": "application/json", **(headers or {})}
    try:
        resp = _get_with_retry(url, params=params or {}, headers=all_headers, timeout=timeout)
    except RetryError as e:
        cause = e.__cause__ if e.__cause__ is not None else e
        raise _translate(cause, url, source) from e
    except requests.exceptions.RequestException as e:
        raise _translate(e, url, source) from e

    try:
        return resp.json()
    except ValueError as e:
        logger.error(f"{source.capitalize()} returned invalid JSON", url=url)
        raise ConnectorFailure(source, f"{source} returned invalid JSON", "InvalidJSON") from e


def _translate(e: BaseException, url: str, source: str) -> ConnectorFailure:
    logger = get_logger()
    name = source.capitalize()
    if isinstance(e, requests.exceptions.HTTPError):
        status = e.response.status_code if e.response is not None else "HTTPError"
        if status == 404:
            logger.warning(f"{name} endpoint not found", url=url, status=404)
            return ConnectorFailure(source, f"{name} endpoint not found (404)", "HTTPError_404")
        logger.error(f"{name} request failed", url=url, status=status)
        return ConnectorFailure(source, f"{name} request failed ({status})", f"HTTPError_{status}")
    if isinstance(e, requests.exceptions.Timeout):
        logger.warning(f"{name} request timed out", url=url)
        return ConnectorFailure(source, f"{name} request timed out", "Timeout")
    logger.error(f"{name} request error", url=url, error=str(e))
    return ConnectorFailure(source, f"{name} request error: {e}", "RequestException")
