import pytest
from fastapi.testclient import TestClient

from product_api.config import Settings
from product_api.database import acquire_database, close_database
from product_api.main import create_app
from product_api.services.product_service import ProductService


# Test database (SQLite in-memory for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings():
    """Settings pointing the test database at a fresh in-memory SQLite."""
    return Settings(_env_file=None, TEST_DATABASE_URL=TEST_DATABASE_URL)


@pytest.fixture(scope="function")
def client(settings):
    """Create test client with fresh database for each test."""
    database = acquire_database(is_test=True, settings=settings)
    app = create_app(database)

    # Entering the client runs the lifespan, which creates the tables
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def database(settings):
    """Isolated storage handle with the products table in place."""
    database = acquire_database(is_test=True, settings=settings)
    await ProductService(database).ensure_schema()

    yield database

    await close_database(database)


@pytest.fixture
def service(database):
    return ProductService(database)


@pytest.fixture
def product_payload():
    return {
        "name": "Laptop Gaming",
        "description": "High performance gaming laptop",
        "price": 1500.99,
        "category": "Electronics",
        "stock": 10
    }
