from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func

from product_api.database import Base


class Product(Base):
    """
    Product model representing an item in the catalog.

    Attributes:
        id: Unique identifier for the product
        name: Product name
        description: Free-form description
        price: Product price with two fractional digits (must be non-negative)
        category: Category name used for filtering
        stock: Available quantity (must be non-negative)
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Database-level constraints mirror the validation rules
    __table_args__ = (
        CheckConstraint('price >= 0', name='check_price_non_negative'),
        CheckConstraint('stock >= 0', name='check_stock_non_negative'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', category='{self.category}', stock={self.stock})>"
