"""Multi-provider news aggregation core."""

from .models.domain import AggregatedResult, NewsQuery, NormalizedArticle, ProviderResult, UserPreferences  # noqa: F401
from .query import ValidationError, normalize  # noqa: F401
from .services.aggregator import AggregationError, NewsAggregator  # noqa: F401
from .services.personalizer import get_personalized_news, personalize  # noqa: F401
from .settings import Settings, get_settings, reset_settings_cache  # noqa: F401

__all__ = [
    "AggregatedResult",
    "AggregationError",
    "NewsAggregator",
    "NewsQuery",
    "NormalizedArticle",
    "ProviderResult",
    "Settings",
    "UserPreferences",
    "ValidationError",
    "get_personalized_news",
    "get_settings",
    "normalize",
    "personalize",
    "reset_settings_cache",
]
