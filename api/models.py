from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from aggregation.models.domain import AggregatedResult, Category, UserPreferences


class Pagination(BaseModel):
    page: int
    page_size: int
    total_results: int
    total_pages: int


class NewsResponse(BaseModel):
    success: Literal[True] = True
    data: AggregatedResult
    pagination: Pagination
    search_query: str | None = None
    category: Category | None = None


class TrendingItem(BaseModel):
    title: str
    description: str
    url: str
    published_at: datetime | None = None
    source: str


class TrendingData(BaseModel):
    trending: list[TrendingItem] = Field(default_factory=list)
    total_results: int


class TrendingResponse(BaseModel):
    success: Literal[True] = True
    data: TrendingData


class CategoryInfo(BaseModel):
    id: Category
    name: str
    description: str


class CountryInfo(BaseModel):
    code: str
    name: str


class PreferencesResponse(BaseModel):
    preferences: UserPreferences


class PreferencesUpdate(BaseModel):
    preferences: UserPreferences


CATEGORY_CATALOG: list[CategoryInfo] = [
    CategoryInfo(id="business", name="Business", description="Business and financial news"),
    CategoryInfo(id="entertainment", name="Entertainment", description="Entertainment and celebrity news"),
    CategoryInfo(id="general", name="General", description="General news and current events"),
    CategoryInfo(id="health", name="Health", description="Health and medical news"),
    CategoryInfo(id="science", name="Science", description="Science and technology news"),
    CategoryInfo(id="sports", name="Sports", description="Sports news and updates"),
    CategoryInfo(id="technology", name="Technology", description="Technology and innovation news"),
]

COUNTRY_CATALOG: list[CountryInfo] = [
    CountryInfo(code="us", name="United States"),
    CountryInfo(code="gb", name="United Kingdom"),
    CountryInfo(code="ca", name="Canada"),
    CountryInfo(code="au", name="Australia"),
    CountryInfo(code="de", name="Germany"),
    CountryInfo(code="fr", name="France"),
    CountryInfo(code="in", name="India"),
    CountryInfo(code="jp", name="Japan"),
    CountryInfo(code="br", name="Brazil"),
    CountryInfo(code="mx", name="Mexico"),
]
