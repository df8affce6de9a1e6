from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import AsyncIterator, List, Optional
import logging

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from product_api.database import Base, Database
from product_api.exceptions import StorageError, StorageUnavailableError
from product_api.models.product import Product
from product_api.schemas.product import ProductCreate, ProductUpdate
from product_api.services.validation import validate_product_create, validate_product_changes

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_price(value) -> Decimal:
    """Quantize a price to two fractional digits."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _storage_error(action: str, error: Exception) -> StorageError:
    """Log a database failure and convert it to a StorageError."""
    if isinstance(error, PoolTimeoutError):
        logger.error(f"Connection pool exhausted while {action}: {error}")
        return StorageUnavailableError("Database is busy, please retry the request")

    logger.error(f"Error {action}: {error}")
    # Report the driver message only, never the SQL statement
    orig = getattr(error, "orig", None)
    return StorageError(str(orig) if orig is not None else str(error))


class ProductService:
    """
    Service class for Product CRUD operations.

    This is the only component that talks to the `products` table. Every
    operation opens its own session on the shared storage handle, so no
    connection is held between operations.

    Failures from the database are rolled back, logged and re-raised as
    StorageError (or StorageUnavailableError when the pool is exhausted).
    Nothing is retried.
    """

    UPDATABLE_FIELDS = ("name", "description", "price", "category", "stock")
    NEWEST_FIRST = (Product.created_at.desc(), Product.id.desc())

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        async with self.database.session() as session:
            try:
                yield session
            except (SQLAlchemyError, OSError) as e:
                await session.rollback()
                raise _storage_error(action, e) from e

    async def ensure_schema(self) -> None:
        """
        Create the products table if it doesn't exist.

        Safe to call on every start; existing tables are left untouched.
        """
        try:
            async with self.database.engine.begin() as conn:
                await conn.run_sync(
                    Base.metadata.create_all,
                    tables=[Product.__table__],
                    checkfirst=True,
                )
        except (SQLAlchemyError, OSError) as e:
            raise _storage_error("creating products table", e) from e

    async def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance with its ID and timestamps

        Raises:
            ValidationError: If a field is missing or price/stock is out of range
        """
        validate_product_create(product_data)

        now = _utcnow()
        product = Product(
            name=product_data.name,
            description=product_data.description,
            price=_to_price(product_data.price),
            category=product_data.category,
            stock=product_data.stock,
            created_at=now,
            updated_at=now,
        )

        async with self._session("creating product") as session:
            session.add(product)
            await session.commit()
            await session.refresh(product)

        logger.info(f"Product #{product.id} created in category '{product.category}'")
        return product

    async def get_all(self) -> List[Product]:
        """Get all products, newest first."""
        async with self._session("listing products") as session:
            result = await session.scalars(select(Product).order_by(*self.NEWEST_FIRST))
            return list(result.all())

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        """
        Get a product by ID.

        Returns:
            Product instance or None if not found
        """
        async with self._session(f"fetching product #{product_id}") as session:
            return await session.get(Product, product_id)

    async def get_by_category(self, category: str) -> List[Product]:
        """Get the products whose category matches exactly, newest first."""
        query = (
            select(Product)
            .where(Product.category == category)
            .order_by(*self.NEWEST_FIRST)
        )
        async with self._session(f"listing category '{category}'") as session:
            result = await session.scalars(query)
            return list(result.all())

    async def update(self, product_id: int, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update an existing product.

        Only fields in UPDATABLE_FIELDS that are not None are written. With no
        such fields the product is returned as is and updated_at is kept.

        Args:
            product_id: ID of product to update
            product_data: Update data

        Returns:
            Updated product or None if not found

        Raises:
            ValidationError: If a supplied field is empty or out of range
        """
        changes = {
            field: getattr(product_data, field)
            for field in self.UPDATABLE_FIELDS
            if getattr(product_data, field) is not None
        }
        validate_product_changes(changes)
        if "price" in changes:
            changes["price"] = _to_price(changes["price"])

        async with self._session(f"updating product #{product_id}") as session:
            product = await session.get(Product, product_id)

            if not product:
                return None

            if not changes:
                return product

            for field, value in changes.items():
                setattr(product, field, value)
            product.updated_at = _utcnow()

            await session.commit()
            await session.refresh(product)

        logger.info(f"Product #{product_id} updated: {', '.join(changes)}")
        return product

    async def delete(self, product_id: int) -> bool:
        """
        Delete a product.

        Returns:
            True if deleted, False if not found
        """
        async with self._session(f"deleting product #{product_id}") as session:
            result = await session.execute(delete(Product).where(Product.id == product_id))
            await session.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Product #{product_id} deleted")
        return deleted
