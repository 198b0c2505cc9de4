import pytest
import pytest_asyncio

# Module to test
from catalog.cache import query_key
from catalog.errors import InvalidCategoryId, ValidationFailed
from catalog.search import SearchQuery, build_filter, build_sort
from models.enums import SortDirection


@pytest_asyncio.fixture
async def catalog(services, admin, apparel):
    """Four apparel products and one gadget."""
    gadgets = await services.registry.create(
        {"name": "Gadgets", "fields": [{"name": "color", "type": "String"}]}, admin
    )
    rows = [
        ("Red Tee", "Soft cotton", 15, apparel.id, {"color": "red", "size": "M"}),
        ("Blue Tee", "Cotton blend", 18, apparel.id, {"color": "blue", "size": "L"}),
        ("Rain Jacket", "Waterproof shell", 80, apparel.id, {"color": "red", "size": "L"}),
        ("Wool Socks", "Warm (pack of 3)", 9, apparel.id, {"color": "grey", "size": "S"}),
        ("Red Lamp", "Desk lamp", 30, gadgets.id, {"color": "red"}),
    ]
    for name, description, price, category_id, fields in rows:
        await services.products.create(
            {"name": name, "description": description, "price": price, "category": category_id, "fields": fields},
            admin,
        )
    return {"apparel": apparel, "gadgets": gadgets}


def names(result):
    return sorted(p.name for p in result.products)


# --- Filter building --- #


def test_empty_query_matches_everything():
    assert build_filter(SearchQuery()) == {}


def test_filter_combines_clauses():
    query = SearchQuery(query="tee", min_price=10, max_price=20, fields={"color": "red"})
    criteria = build_filter(query)
    assert len(criteria["$and"]) == 3
    assert criteria["$and"][1] == {"price": {"$gte": 10, "$lte": 20}}
    assert criteria["$and"][2] == {"attribute_values": {"$elemMatch": {"name": "color", "value": "red"}}}


def test_text_is_escaped():
    criteria = build_filter(SearchQuery(query="(pack"))
    assert criteria["$or"][0]["name"]["$regex"] == r"\(pack"


def test_sort_has_id_tiebreak():
    query = SearchQuery(sort="price", sort_direction=SortDirection.ASC)
    assert build_sort(query) == [("price", 1), ("id", 1)]


# --- Search --- #


@pytest.mark.asyncio
async def test_text_search_is_case_insensitive_over_name_and_description(services, catalog):
    result = await services.search.search({"query": "COTTON"})
    assert names(result) == ["Blue Tee", "Red Tee"]
    assert result.pagination.total == 2


@pytest.mark.asyncio
async def test_regex_characters_are_literal(services, catalog):
    assert names(await services.search.search({"query": "(pack"})) == ["Wool Socks"]


@pytest.mark.asyncio
async def test_price_range(services, catalog):
    assert names(await services.search.search({"min_price": 15, "max_price": 30})) == [
        "Blue Tee",
        "Red Lamp",
        "Red Tee",
    ]


@pytest.mark.asyncio
async def test_category_and_attribute_filters(services, catalog):
    result = await services.search.search(
        {"category": catalog["apparel"].id, "fields": {"color": "red"}}
    )
    assert names(result) == ["Rain Jacket", "Red Tee"]

    result = await services.search.search({"fields": {"color": "red", "size": "L"}})
    assert names(result) == ["Rain Jacket"]


@pytest.mark.asyncio
async def test_sort_and_paginate(services, catalog):
    result = await services.search.search({"sort": "price", "sort_direction": "asc", "page": 2, "limit": 2})
    assert [p.name for p in result.products] == ["Blue Tee", "Red Lamp"]
    assert result.pagination.model_dump() == {"total": 5, "page": 2, "limit": 2, "pages": 3}


@pytest.mark.asyncio
async def test_sort_by_description(services, catalog):
    result = await services.search.search({"sort": "description", "sort_direction": "asc", "limit": 2})
    assert [p.description for p in result.products] == ["Cotton blend", "Desk lamp"]


@pytest.mark.asyncio
async def test_default_sort_is_newest_first(services, catalog):
    result = await services.search.search({})
    assert result.products[0].name == "Red Lamp"


@pytest.mark.asyncio
async def test_search_results_are_cached(services, catalog, cache_client, admin):
    params = {"query": "tee"}
    first = await services.search.search(params)
    key = query_key("search", SearchQuery(**params).cache_params())
    assert key in cache_client

    await services.products.create(
        {"name": "Green Tee", "price": 12, "category": catalog["apparel"].id, "fields": {"color": "green", "size": "M"}},
        admin,
    )
    assert names(await services.search.search(params)) == names(first)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"sort": "color"},
        {"min_price": 50, "max_price": 10},
        {"min_price": -1},
        {"page": 0},
        {"limit": 500},
    ],
)
async def test_invalid_search_parameters(services, params):
    with pytest.raises(ValidationFailed):
        await services.search.search(params)


@pytest.mark.asyncio
async def test_malformed_category_filter(services):
    with pytest.raises(InvalidCategoryId):
        await services.search.search({"category": "shoes"})


# --- Suggestions --- #


@pytest.mark.asyncio
async def test_suggestions_prefix_match(services, catalog, cache_client):
    assert await services.search.suggest("re") == ["Red Lamp", "Red Tee"]
    assert query_key("suggestions", {"text": "re", "limit": 5}) in cache_client
    assert await services.search.suggest("re", limit=1) == ["Red Lamp"]


@pytest.mark.asyncio
async def test_blank_suggestion_text(services, catalog):
    assert await services.search.suggest("   ") == []
