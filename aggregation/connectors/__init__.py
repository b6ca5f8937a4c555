"""Upstream news provider connectors."""

from .base import BaseConnector, ProviderError  # noqa: F401
from .gnews import GNewsConnector  # noqa: F401
from .news_api import NewsAPIConnector  # noqa: F401
from .newscatcher import NewsCatcherConnector  # noqa: F401

__all__ = [
    "BaseConnector",
    "GNewsConnector",
    "NewsAPIConnector",
    "NewsCatcherConnector",
    "ProviderError",
]
