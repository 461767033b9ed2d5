from .base import Connector, StaticConnector, static_connectors
from .json_search import JsonSearchConnector, connectors_from_config

__all__ = [
    "Connector",
    "StaticConnector",
    "static_connectors",
    "JsonSearchConnector",
    "connectors_from_config",
]
