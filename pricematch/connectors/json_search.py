"""
Connector for marketplace search APIs that answer with JSON.

Covers the RapidAPI-style product search services used for sources that are
too expensive to render: one GET per query, an API key in a header, and a
list of product objects in the body.
"""

import os
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ConnectorFailure, InvalidInput
from ..logger import get_logger
from ..prices import major_to_minor_units, to_minor_units
from ..retry import CircuitBreaker, CircuitOpenError
from ..schema import CandidateDescriptor
from .base import Connector
from .common import fetch_json_with_error_handling

TITLE_KEYS = ("title", "name", "productName")
ITEM_LIST_KEYS = ("products", "results", "items", "data")


def _first(item: Dict[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        v = item.get(k)
        if v not in (None, ""):
            return v
    return None


def _price(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return major_to_minor_units(value)
    if isinstance(value, str):
        return to_minor_units(value)
    return None


def _rating(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class JsonSearchConnector(Connector):
    """Searches one source through a JSON HTTP API."""

    def __init__(
        self,
        name: str,
        endpoint: str,
        query_param: str = "q",
        limit_param: Optional[str] = None,
        items_key: Optional[str] = None,
        api_key_env: Optional[str] = None,
        api_host: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(name)
        self.endpoint = endpoint
        self.query_param = query_param
        self.limit_param = limit_param
        self.items_key = items_key
        self.api_key_env = api_key_env
        self.api_host = api_host
        self.params = dict(params or {})
        self.headers = dict(headers or {})
        self.breaker = breaker or CircuitBreaker(failure_threshold=3, recovery_timeout=120)

    def _request_headers(self) -> Dict[str, str]:
        headers = dict(self.headers)
        if self.api_key_env:
            key = os.getenv(self.api_key_env)
            if not key:
                raise ConnectorFailure(
                    self.name,
                    f"Missing {self.api_key_env}. Set it in the environment or .env",
                    "MissingCredentials",
                )
            headers["x-rapidapi-key"] = key
        if self.api_host:
            headers["x-rapidapi-host"] = self.api_host
        return headers

    def fetch_candidates(self, query: str, limit: int, timeout: float) -> List[CandidateDescriptor]:
        params = {**self.params, self.query_param: query}
        if self.limit_param:
            params[self.limit_param] = limit
        headers = self._request_headers()

        try:
            data = self.breaker.call(
                fetch_json_with_error_handling,
                self.endpoint,
                self.name,
                params=params,
                headers=headers,
                timeout=timeout,
            )
        except CircuitOpenError as e:
            raise ConnectorFailure(self.name, str(e), "CircuitOpen") from e

        candidates = []
        for item in self._items(data):
            candidate = self.to_candidate(item)
            if candidate is not None:
                candidates.append(candidate)
            if len(candidates) >= limit:
                break
        return candidates

    def _items(self, data: Any) -> List[Dict[str, Any]]:
        if isinstance(data, dict):
            keys = (self.items_key,) if self.items_key else ITEM_LIST_KEYS
            data = _first(data, keys)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    def to_candidate(self, item: Dict[str, Any]) -> Optional[CandidateDescriptor]:
        """Map one API product object; None if it lacks a title, URL or usable price."""
        title = _first(item, TITLE_KEYS)
        url = item.get("url")
        price = _price(item.get("price"))
        if not isinstance(title, str) or not isinstance(url, str) or price is None:
            get_logger().debug(f"Skipping unusable {self.name} item", url=url, title=title)
            return None

        images = item.get("images")
        image = item.get("image") or (images[0] if isinstance(images, list) and images else None)
        local_id = item.get("id") or item.get("product_id") or url
        try:
            return CandidateDescriptor.from_dict({
                "source": self.name,
                "source_local_id": str(local_id),
                "title": title,
                "price_minor_units": price,
                "url": url,
                "image": image if isinstance(image, str) else None,
                "model": item.get("model") if isinstance(item.get("model"), str) else None,
                "brand": item.get("brand") if isinstance(item.get("brand"), str) else None,
                "rating": _rating(item.get("rating")),
            })
        except InvalidInput as e:
            get_logger().debug(f"Skipping invalid {self.name} item", url=url, errors=e.errors)
            return None


def connectors_from_config(specs: List[Dict[str, Any]]) -> List[Connector]:
    """Build JSON search connectors from a list of option dicts, in order."""
    connectors: List[Connector] = []
    errors = []
    for i, spec in enumerate(specs):
        if not isinstance(spec, dict):
            errors.append(f"Connector #{i} must be an object")
            continue
        if not spec.get("name") or not spec.get("endpoint"):
            errors.append(f"Connector #{i} needs 'name' and 'endpoint'")
            continue
        try:
            connectors.append(JsonSearchConnector(**spec))
        except TypeError as e:
            errors.append(f"Connector #{i} ({spec.get('name')}): {e}")
    if errors:
        raise InvalidInput(errors)
    return connectors
