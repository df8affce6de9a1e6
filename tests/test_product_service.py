"""Tests for ProductService against an isolated database."""
import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from product_api.database import acquire_database, close_database
from product_api.exceptions import StorageError, StorageUnavailableError, ValidationError
from product_api.models.product import Product
from product_api.schemas.product import ProductCreate, ProductUpdate
from product_api.services.product_service import ProductService


def product_data(**fields) -> ProductCreate:
    values = {
        "name": "Test Product",
        "description": "Test description",
        "price": Decimal("100.00"),
        "category": "General",
        "stock": 5,
    }
    values.update(fields)
    return ProductCreate(**values)


async def test_create_returns_stored_product(service):
    product = await service.create(product_data(name="Keyboard", price=Decimal("49.90"), stock=3))

    assert product.id is not None
    assert product.name == "Keyboard"
    assert product.description == "Test description"
    assert product.price == Decimal("49.90")
    assert product.category == "General"
    assert product.stock == 3
    assert product.created_at == product.updated_at


async def test_create_rounds_price_to_cents(service):
    product = await service.create(product_data(price=Decimal("10.005")))

    assert product.price == Decimal("10.01")


async def test_create_accepts_zero_values(service):
    product = await service.create(product_data(price=Decimal("0"), stock=0))

    assert product.price == 0
    assert product.stock == 0


@pytest.mark.parametrize("missing", ["name", "description", "price", "category", "stock"])
async def test_create_missing_field_is_rejected(service, missing):
    with pytest.raises(ValidationError, match="Missing required fields"):
        await service.create(product_data(**{missing: None}))

    assert await service.get_all() == []


async def test_create_empty_name_is_rejected(service):
    with pytest.raises(ValidationError):
        await service.create(product_data(name=""))

    assert await service.get_all() == []


@pytest.mark.parametrize("fields", [{"price": Decimal("-0.01")}, {"stock": -1}])
async def test_create_negative_value_is_rejected(service, fields):
    with pytest.raises(ValidationError, match="Price and stock must be non-negative"):
        await service.create(product_data(**fields))

    assert await service.get_all() == []


async def test_get_by_id(service):
    created = await service.create(product_data())

    found = await service.get_by_id(created.id)

    assert found.id == created.id
    assert found.name == created.name
    assert found.created_at == created.created_at


async def test_get_by_id_not_found(service):
    assert await service.get_by_id(12345) is None


async def test_get_all_newest_first(service):
    first = await service.create(product_data(name="A"))
    second = await service.create(product_data(name="B"))

    products = await service.get_all()

    assert [p.id for p in products] == [second.id, first.id]


async def test_get_by_category(service):
    laptop = await service.create(product_data(name="Laptop", category="Electronics"))
    await service.create(product_data(name="Chair", category="Furniture"))
    phone = await service.create(product_data(name="Phone", category="Electronics"))

    products = await service.get_by_category("Electronics")

    assert [p.id for p in products] == [phone.id, laptop.id]
    assert await service.get_by_category("electronics") == []
    assert await service.get_by_category("") == []


async def test_update_without_fields_is_noop(service):
    created = await service.create(product_data())

    updated = await service.update(created.id, ProductUpdate())

    assert updated.name == created.name
    assert updated.price == created.price
    assert updated.stock == created.stock
    assert updated.updated_at == created.updated_at


async def test_update_stock_only(service):
    created = await service.create(product_data(stock=5))
    await asyncio.sleep(0.01)

    updated = await service.update(created.id, ProductUpdate(stock=42))

    assert updated.stock == 42
    assert updated.name == created.name
    assert updated.description == created.description
    assert updated.price == created.price
    assert updated.category == created.category
    assert updated.created_at == created.created_at
    assert updated.updated_at > created.updated_at


async def test_update_not_found(service):
    assert await service.update(12345, ProductUpdate(stock=1)) is None


async def test_update_rejects_negative_price(service):
    created = await service.create(product_data())

    with pytest.raises(ValidationError):
        await service.update(created.id, ProductUpdate(price=Decimal("-1")))

    assert (await service.get_by_id(created.id)).price == created.price


async def test_update_rejects_empty_name(service):
    created = await service.create(product_data())

    with pytest.raises(ValidationError, match="name"):
        await service.update(created.id, ProductUpdate(name=""))


async def test_delete(service):
    created = await service.create(product_data())

    assert await service.delete(created.id) is True
    assert await service.get_by_id(created.id) is None
    assert await service.delete(created.id) is False


async def test_ensure_schema_is_idempotent(service):
    created = await service.create(product_data())

    await service.ensure_schema()

    assert (await service.get_by_id(created.id)).id == created.id


async def test_storage_rejects_negative_stock(database):
    """The table's CHECK constraint holds even when the service is bypassed."""
    async with database.session() as session:
        session.add(Product(
            name="Broken",
            description="Written around the service",
            price=Decimal("1.00"),
            category="General",
            stock=-1,
        ))
        with pytest.raises(IntegrityError):
            await session.commit()


async def test_query_failure_raises_storage_error(settings):
    """Without the table every query fails and is reported as a StorageError."""
    database = acquire_database(is_test=True, settings=settings)
    service = ProductService(database)

    try:
        with pytest.raises(StorageError, match="products"):
            await service.get_all()
    finally:
        await close_database(database)


@pytest.fixture
def rollbacks(monkeypatch):
    """Record every session rollback while still performing it."""
    calls = []
    original_rollback = AsyncSession.rollback

    async def tracking_rollback(self):
        calls.append(self)
        await original_rollback(self)

    monkeypatch.setattr(AsyncSession, "rollback", tracking_rollback)
    return calls


def fail_queries_with(monkeypatch, error):
    async def failing_scalars(self, *args, **kwargs):
        raise error

    monkeypatch.setattr(AsyncSession, "scalars", failing_scalars)


async def test_pool_timeout_raises_storage_unavailable(service, monkeypatch, rollbacks):
    fail_queries_with(monkeypatch, PoolTimeoutError("QueuePool limit of size 20 overflow 0 reached"))

    with pytest.raises(StorageUnavailableError):
        await service.get_all()

    assert len(rollbacks) == 1


async def test_driver_error_raises_storage_error_with_driver_message(service, monkeypatch, rollbacks):
    fail_queries_with(
        monkeypatch,
        OperationalError("SELECT * FROM products", {}, Exception("server closed the connection")),
    )

    with pytest.raises(StorageError) as exc_info:
        await service.get_by_category("Electronics")

    assert not isinstance(exc_info.value, StorageUnavailableError)
    assert exc_info.value.message == "server closed the connection"
    assert len(rollbacks) == 1


async def test_connection_refused_raises_storage_error(service, monkeypatch, rollbacks):
    fail_queries_with(monkeypatch, ConnectionRefusedError("Connection refused"))

    with pytest.raises(StorageError, match="Connection refused"):
        await service.get_all()

    assert len(rollbacks) == 1


async def test_create_rejects_oversized_values(service):
    with pytest.raises(ValidationError):
        await service.create(product_data(price=Decimal("1e30")))
    with pytest.raises(ValidationError):
        await service.create(product_data(stock=2 ** 31))

    assert await service.get_all() == []
