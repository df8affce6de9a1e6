from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional


class ProductCreate(BaseModel):
    """
    Schema for creating a new product.

    Every field is required. They are declared optional here so that missing
    values reach the validation rules and are reported in the response
    envelope rather than as a framework error.
    """
    name: Optional[str] = Field(None, max_length=255, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Optional[Decimal] = Field(None, description="Product price (must be non-negative)")
    category: Optional[str] = Field(None, max_length=100, description="Category name")
    stock: Optional[int] = Field(None, description="Available stock (must be non-negative)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Laptop Gaming",
                "description": "High performance gaming laptop",
                "price": 1500.99,
                "category": "Electronics",
                "stock": 10,
            }
        }
    )


class ProductUpdate(BaseModel):
    """Schema for updating an existing product. All fields are optional."""
    name: Optional[str] = Field(None, max_length=255, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Optional[Decimal] = Field(None, description="Product price")
    category: Optional[str] = Field(None, max_length=100, description="Category name")
    stock: Optional[int] = Field(None, description="Available stock")


class ProductResponse(BaseModel):
    """Schema for product response including all fields."""
    id: int
    name: str
    description: str
    price: Decimal
    category: str
    stock: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Envelope(BaseModel):
    """Uniform wrapper returned by every endpoint."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class ProductEnvelope(Envelope):
    """Envelope carrying a single product."""
    data: Optional[ProductResponse] = None


class ProductListEnvelope(Envelope):
    """Envelope carrying a list of products."""
    data: Optional[list[ProductResponse]] = None
