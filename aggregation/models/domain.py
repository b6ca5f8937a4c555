"""Domain models shared by the normalizer, connectors and aggregator."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

Category = Literal["business", "entertainment", "general", "health", "science", "sports", "technology"]
CATEGORIES: tuple[str, ...] = get_args(Category)

DEFAULT_COUNTRY = "us"
DEFAULT_LANGUAGE = "en"
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20


class NewsQuery(BaseModel):
    """Normalized query sent to every provider.

    ``model_fields_set`` records which fields the caller supplied explicitly;
    personalization relies on it to tell a caller's ``country="us"`` apart
    from the default.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    q: Optional[str] = None
    category: Optional[Category] = None
    country: str = DEFAULT_COUNTRY
    language: str = DEFAULT_LANGUAGE
    page: int = Field(DEFAULT_PAGE, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=100, alias="pageSize")

    def cache_params(self) -> Dict[str, Any]:
        return {
            "q": self.q or "",
            "category": self.category or "",
            "country": self.country,
            "language": self.language,
            "page": self.page,
            "pageSize": self.page_size,
        }


class NormalizedArticle(BaseModel):
    """Provider-independent article shape; ``url`` is the dedup identity."""

    title: str = ""
    description: str = ""
    content: str = ""
    url: str
    image_url: str = ""
    published_at: Optional[datetime] = None
    source_name: str = ""
    source_id: str = ""
    author: str = ""


class ProviderResult(BaseModel):
    articles: List[NormalizedArticle] = Field(default_factory=list)
    total_results: int = 0
    provider_name: str


class AggregatedResult(BaseModel):
    articles: List[NormalizedArticle] = Field(default_factory=list)
    total_results: int = Field(0, description="Sum of upstream totals, not the deduplicated count.")
    contributing_providers: List[str] = Field(default_factory=list)
    partial_errors: Optional[List[str]] = None


class UserPreferences(BaseModel):
    """Stored reading preferences of a user."""

    categories: List[Category] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    language: Optional[str] = None
    country: Optional[str] = None

    @field_validator("keywords")
    @classmethod
    def _strip_keywords(cls, value: List[str]) -> List[str]:
        return [kw.strip() for kw in value if kw and kw.strip()]

    @field_validator("language", "country")
    @classmethod
    def _two_letter_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        code = value.strip().lower()
        if len(code) != 2:
            raise ValueError("must be a 2-character code")
        return code
