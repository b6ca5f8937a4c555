"""NewsAPI.org top-headlines connector."""

from __future__ import annotations

from typing import Any, Dict, Optional

from aggregation.models.domain import NewsQuery, NormalizedArticle

from .base import BaseConnector, _parse_timestamp, _text


class NewsAPIConnector(BaseConnector):
    source = "newsapi"
    api_key_param = "apiKey"

    def _build_params(self, query: NewsQuery) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "page": query.page,
            "pageSize": query.page_size,
            "language": query.language,
            "country": query.country,
        }
        if query.q:
            params["q"] = query.q
        if query.category:
            params["category"] = query.category
        return params

    def _total(self, payload: Dict[str, Any]) -> Any:
        return payload.get("totalResults")

    def _normalize_item(self, item: Dict[str, Any]) -> Optional[NormalizedArticle]:
        url = _text(item.get("url"))
        if not url:
            return None
        source = item.get("source") if isinstance(item.get("source"), dict) else {}
        return NormalizedArticle(
            title=_text(item.get("title")),
            description=_text(item.get("description")),
            content=_text(item.get("content")),
            url=url,
            image_url=_text(item.get("urlToImage")),
            published_at=_parse_timestamp(item.get("publishedAt")),
            source_name=_text(source.get("name")),
            source_id=_text(source.get("id")),
            author=_text(item.get("author")),
        )
