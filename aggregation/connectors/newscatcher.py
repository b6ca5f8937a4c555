"""NewsCatcher search connector."""

from __future__ import annotations

from typing import Any, Dict, Optional

from aggregation.models.domain import NewsQuery, NormalizedArticle

from .base import BaseConnector, _parse_timestamp, _text


class NewsCatcherConnector(BaseConnector):
    """NewsCatcher paginates with ``page``/``page_size`` and calls categories topics."""

    source = "newscatcher"
    api_key_param = "api_key"

    def _build_params(self, query: NewsQuery) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "page_size": query.page_size,
            "page": query.page,
            "lang": query.language,
            "country": query.country,
        }
        if query.q:
            params["q"] = query.q
        if query.category:
            params["topic"] = query.category
        return params

    def _total(self, payload: Dict[str, Any]) -> Any:
        return payload.get("total_hits")

    def _normalize_item(self, item: Dict[str, Any]) -> Optional[NormalizedArticle]:
        url = _text(item.get("link") or item.get("url"))
        if not url:
            return None
        return NormalizedArticle(
            title=_text(item.get("title")),
            description=_text(item.get("summary") or item.get("excerpt")),
            content=_text(item.get("summary")),
            url=url,
            image_url=_text(item.get("media")),
            published_at=_parse_timestamp(item.get("published_date")),
            source_name=_text(item.get("clean_url") or item.get("rights")),
            source_id=_text(item.get("_id")),
            author=_text(item.get("author")),
        )
