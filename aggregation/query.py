"""Canonicalization and validation of caller-supplied news query parameters."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from aggregation.models.domain import CATEGORIES, NewsQuery

MAX_PAGE = 100
MAX_PAGE_SIZE = 100
MAX_QUERY_LENGTH = 100

# Accepted spellings of the pagination fields
_PAGE_SIZE_KEYS = ("pageSize", "page_size")


class ValidationError(ValueError):
    """A single query parameter was malformed or out of range."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "reason": self.reason}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_int(field: str, value: Any, *, low: int, high: int) -> int:
    if isinstance(value, bool):
        raise ValidationError(field, "must be an integer")
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        # plain ASCII digits only: no signs, underscores or other numerals
        if not (text.isascii() and text.isdigit()):
            raise ValidationError(field, "must be an integer")
        number = int(text)
    if not low <= number <= high:
        raise ValidationError(field, f"must be between {low} and {high}")
    return number


def _parse_code(field: str, value: Any) -> str:
    code = str(value).strip().lower()
    if len(code) != 2:
        raise ValidationError(field, "must be a 2-character code")
    return code


def normalize(raw_params: Mapping[str, Any]) -> NewsQuery:
    """Validate raw (usually string) parameters and build a ``NewsQuery``.

    Blank values are treated as absent. Fields the caller omitted are left to
    the model defaults so ``NewsQuery.model_fields_set`` reflects what was
    actually supplied.
    """
    fields: Dict[str, Any] = {}

    q = raw_params.get("q")
    if not _blank(q):
        text = str(q).strip()
        if len(text) > MAX_QUERY_LENGTH:
            raise ValidationError("q", f"must be between 1 and {MAX_QUERY_LENGTH} characters")
        fields["q"] = text

    category = raw_params.get("category")
    if not _blank(category):
        value = str(category).strip()
        if value not in CATEGORIES:
            raise ValidationError("category", f"must be one of: {', '.join(CATEGORIES)}")
        fields["category"] = value

    for name in ("country", "language"):
        value = raw_params.get(name)
        if not _blank(value):
            fields[name] = _parse_code(name, value)

    page = raw_params.get("page")
    if not _blank(page):
        fields["page"] = _parse_int("page", page, low=1, high=MAX_PAGE)

    page_size: Optional[Any] = None
    for key in _PAGE_SIZE_KEYS:
        if not _blank(raw_params.get(key)):
            page_size = raw_params[key]
            break
    if page_size is not None:
        fields["page_size"] = _parse_int("pageSize", page_size, low=1, high=MAX_PAGE_SIZE)

    return NewsQuery(**fields)
