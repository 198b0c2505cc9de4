import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path to allow `import catalog`, `import utils`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from catalog.bootstrap import build_services  # noqa: E402
from config.config import CatalogConfig  # noqa: E402
from connectors.cache_client import InMemoryCache  # noqa: E402
from connectors.document_store import InMemoryDocumentStore  # noqa: E402
from models.api import Actor  # noqa: E402
from models.enums import ActorRole  # noqa: E402


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def cache_client() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def customer() -> Actor:
    return Actor(id="customer-1")


@pytest.fixture
def services(store, cache_client):
    """Catalog wired over the in-memory store and cache."""
    return build_services(store, cache_client, CatalogConfig())


@pytest_asyncio.fixture
async def apparel(services, admin):
    """A category exercising every field type; color and size are required."""
    return await services.registry.create(
        {
            "name": "Apparel",
            "description": "Clothing",
            "fields": [
                {"name": "color", "type": "String", "required": True},
                {"name": "size", "type": "String", "required": True},
                {"name": "weight", "type": "Number"},
                {"name": "released", "type": "Date"},
                {"name": "organic", "type": "Boolean"},
                {"name": "supplier", "type": "ObjectId"},
                {"name": "tags", "type": "Array"},
                {"name": "extra", "type": "Mixed"},
            ],
        },
        admin,
    )
