"""
Search and listing projection over products.

Builds Mongo-style filter documents from a SearchQuery (text, price range,
category, attribute equality), runs them through the document store, and
caches each result page under a hash of the full query for the query TTL.
Results are not invalidated by writes; staleness is bounded by that TTL.
Sorting is limited to fixed product columns; attribute values differ in type
from one category to the next and have no common order.
"""

import logging
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from connectors.document_store import DocumentStore
from models.catalog import Pagination, SearchResult
from models.enums import SortDirection
from utils.ids import is_object_id

from .cache import CacheAside, query_key
from .codec import to_product_view
from .errors import InvalidCategoryId, ValidationFailed, summarize_validation_errors
from .read_path import PRODUCTS, check_paging, page_count

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("name", "description", "price", "created_at", "updated_at")
SUGGESTION_TTL_SECONDS = 15 * 60


class SearchQuery(BaseModel):
    """Filter, sort and paging parameters for a product search."""

    query: str = ""
    min_price: float | None = Field(None, ge=0)
    max_price: float | None = Field(None, ge=0)
    category: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    sort: str = "created_at"
    sort_direction: SortDirection = SortDirection.DESC
    page: int = 1
    limit: int = 10

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("sort")
    @classmethod
    def sortable(cls, value: str) -> str:
        if value not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {value!r}; choose one of {', '.join(SORTABLE_FIELDS)}")
        return value

    @model_validator(mode="after")
    def price_range(self) -> "SearchQuery":
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        return self

    def cache_params(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def build_filter(query: SearchQuery) -> dict[str, Any]:
    """Translate a SearchQuery into a store filter document."""
    clauses: list[dict[str, Any]] = []

    if query.query:
        # Case-insensitive substring match; no relevance ranking.
        pattern = re.escape(query.query)
        clauses.append(
            {
                "$or": [
                    {"name": {"$regex": pattern, "$options": "i"}},
                    {"description": {"$regex": pattern, "$options": "i"}},
                ]
            }
        )

    price: dict[str, float] = {}
    if query.min_price is not None:
        price["$gte"] = query.min_price
    if query.max_price is not None:
        price["$lte"] = query.max_price
    if price:
        clauses.append({"price": price})

    if query.category:
        clauses.append({"category": query.category})

    for name, value in query.fields.items():
        clauses.append({"attribute_values": {"$elemMatch": {"name": name, "value": value}}})

    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def build_sort(query: SearchQuery) -> list[tuple[str, int]]:
    return [(query.sort, query.sort_direction.as_int), ("id", query.sort_direction.as_int)]


def parse_search_query(data: Any) -> SearchQuery:
    if isinstance(data, SearchQuery):
        query = data
    else:
        try:
            query = SearchQuery.model_validate(data or {})
        except ValidationError as e:
            errors = e.errors()
            raise ValidationFailed(
                f"Invalid search: {errors[0]['msg']}", details=summarize_validation_errors(errors)
            ) from e
    if query.category is not None and not is_object_id(query.category):
        raise InvalidCategoryId(f"Invalid category ID: {query.category!r}")
    return query


class ProductSearch:
    def __init__(
        self,
        store: DocumentStore,
        cache: CacheAside,
        max_page_size: int = 100,
        suggestion_ttl: int = SUGGESTION_TTL_SECONDS,
    ):
        self.store = store
        self.cache = cache
        self.max_page_size = max_page_size
        self.suggestion_ttl = suggestion_ttl

    async def search(self, data: SearchQuery | dict[str, Any] | None = None) -> SearchResult:
        query = parse_search_query(data)
        check_paging(query.page, query.limit, self.max_page_size)

        key = query_key("search", query.cache_params())
        cached = await self.cache.get(key)
        if cached is not None:
            logger.info(f"Retrieved search results from cache: {key}")
            return SearchResult.model_validate(cached)

        criteria = build_filter(query)
        total = await self.store.count(PRODUCTS, criteria)
        documents = await self.store.find(
            PRODUCTS,
            criteria,
            sort=build_sort(query),
            skip=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        result = SearchResult(
            products=[to_product_view(doc) for doc in documents],
            pagination=Pagination(
                total=total,
                page=query.page,
                limit=query.limit,
                pages=page_count(total, query.limit),
            ),
        )
        await self.cache.put(key, result.model_dump(mode="json"), self.cache.query_ttl)
        return result

    async def suggest(self, text: str, limit: int = 5) -> list[str]:
        """Product names starting with ``text`` (case-insensitive)."""
        text = (text or "").strip()
        if not text:
            return []
        check_paging(1, limit, self.max_page_size)

        key = query_key("suggestions", {"text": text, "limit": limit})
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        documents = await self.store.find(
            PRODUCTS,
            {"name": {"$regex": f"^{re.escape(text)}", "$options": "i"}},
            sort=[("name", 1)],
            limit=limit,
            projection=["name"],
        )
        names = [doc["name"] for doc in documents]
        await self.cache.put(key, names, self.suggestion_ttl)
        return names
