import pytest

# Module to test
from catalog.cache import CacheAside, canonical_params, product_key, query_key
from catalog.errors import InvalidIdentifier, ProductNotFound, ValidationFailed
from catalog.read_path import ProductReader, page_count

UNKNOWN_ID = "507f1f77bcf86cd799439011"


async def seed_products(services, admin, category_id, count):
    created = []
    for i in range(count):
        created.append(
            await services.products.create(
                {
                    "name": f"Tee {i:02d}",
                    "price": 10 + i,
                    "category": category_id,
                    "fields": {"color": "red", "size": "M"},
                },
                admin,
            )
        )
    return created


# --- Keys --- #


def test_query_key_is_order_independent_and_short():
    a = query_key("search", {"page": 1, "query": "tee", "fields": {"b": 2, "a": 1}})
    b = query_key("search", {"fields": {"a": 1, "b": 2}, "query": "tee", "page": 1})
    assert a == b
    assert a.startswith("search:")
    assert len(a.split(":", 1)[1]) == 16
    assert query_key("search", {"page": 2}) != query_key("search", {"page": 1})


def test_canonical_params_has_no_whitespace():
    assert canonical_params({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


def test_product_key():
    assert product_key("abc") == "product:abc"


@pytest.mark.parametrize("total, limit, expected", [(25, 10, 3), (20, 10, 2), (0, 10, 0), (1, 100, 1)])
def test_page_count(total, limit, expected):
    assert page_count(total, limit) == expected


# --- Single reads --- #


@pytest.mark.asyncio
async def test_get_by_id_populates_cache_with_entity_ttl(services, admin, apparel, cache_client):
    product = (await seed_products(services, admin, apparel.id, 1))[0]
    assert product_key(product.id) not in cache_client

    fetched = await services.reader.get_by_id(product.id)
    assert fetched == product
    assert product_key(product.id) in cache_client
    assert await cache_client.get(product_key(product.id)) == product.model_dump(mode="json")


@pytest.mark.asyncio
async def test_cache_hit_does_not_touch_store(services, admin, apparel, store, monkeypatch):
    product = (await seed_products(services, admin, apparel.id, 1))[0]
    await services.reader.get_by_id(product.id)

    async def unreachable(*args, **kwargs):
        raise AssertionError("store should not be read on a cache hit")

    monkeypatch.setattr(store, "get", unreachable)
    assert (await services.reader.get_by_id(product.id)).id == product.id


@pytest.mark.asyncio
async def test_skip_cache_neither_reads_nor_fills(services, admin, apparel, cache_client):
    product = (await seed_products(services, admin, apparel.id, 1))[0]
    await services.reader.get_by_id(product.id, skip_cache=True)
    assert product_key(product.id) not in cache_client


@pytest.mark.asyncio
async def test_get_by_id_errors(services):
    with pytest.raises(InvalidIdentifier):
        await services.reader.get_by_id("12345")
    with pytest.raises(ProductNotFound):
        await services.reader.get_by_id(UNKNOWN_ID)


@pytest.mark.asyncio
async def test_reader_without_cache_client(store, services, admin, apparel):
    product = (await seed_products(services, admin, apparel.id, 1))[0]
    reader = ProductReader(store, CacheAside(None))
    assert (await reader.get_by_id(product.id)).name == "Tee 00"


# --- Listing --- #


@pytest.mark.asyncio
async def test_second_page_of_25(services, admin, apparel):
    created = await seed_products(services, admin, apparel.id, 25)
    page = await services.products.list_products(page=2, limit=10)
    assert len(page.products) == 10
    assert page.total == 25
    assert page.pages == 3
    assert [p.id for p in page.products] == [p.id for p in created[10:20]]


@pytest.mark.asyncio
async def test_last_page_is_partial(services, admin, apparel):
    await seed_products(services, admin, apparel.id, 25)
    page = await services.products.list_products(page=3, limit=10)
    assert len(page.products) == 5


@pytest.mark.asyncio
async def test_listing_is_cached_for_query_ttl(services, admin, apparel, cache_client):
    await seed_products(services, admin, apparel.id, 3)
    first = await services.products.list_products(1, 10)
    key = query_key("products", {"page": 1, "limit": 10})
    assert key in cache_client

    # Writes do not invalidate listing pages; the TTL bounds staleness.
    await seed_products(services, admin, apparel.id, 1)
    assert (await services.products.list_products(1, 10)).total == first.total == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (1, 101)])
async def test_listing_rejects_bad_paging(services, page, limit):
    with pytest.raises(ValidationFailed):
        await services.products.list_products(page, limit)
