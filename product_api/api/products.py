from fastapi import APIRouter, Depends, Response, status

from product_api.database import Database, get_database
from product_api.exceptions import ProductNotFoundError
from product_api.services.product_service import ProductService
from product_api.services.validation import parse_product_id, validate_product_create
from product_api.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductEnvelope,
    ProductListEnvelope,
)

router = APIRouter(prefix="/products", tags=["Products"])

NOT_FOUND_MESSAGE = "Product not found"


def get_product_service(database: Database = Depends(get_database)) -> ProductService:
    return ProductService(database)


@router.get(
    "",
    response_model=ProductListEnvelope,
    response_model_exclude_none=True,
    summary="List all products",
    description="Get every product, newest first."
)
async def list_products(service: ProductService = Depends(get_product_service)):
    """Get all products."""
    products = await service.get_all()

    return ProductListEnvelope(
        success=True,
        data=[ProductResponse.model_validate(p) for p in products],
        message="Products retrieved successfully"
    )


@router.get(
    "/category/{category}",
    response_model=ProductListEnvelope,
    response_model_exclude_none=True,
    summary="List products in a category",
    description="Get the products whose category matches exactly. An unknown category yields an empty list."
)
async def list_products_by_category(
    category: str,
    service: ProductService = Depends(get_product_service)
):
    products = await service.get_by_category(category)

    return ProductListEnvelope(
        success=True,
        data=[ProductResponse.model_validate(p) for p in products],
        message=f"Products in category '{category}' retrieved successfully"
    )


@router.get(
    "/{product_id}",
    response_model=ProductEnvelope,
    response_model_exclude_none=True,
    summary="Get product by ID",
    description="Get detailed information about a specific product."
)
async def get_product(
    product_id: str,
    service: ProductService = Depends(get_product_service)
):
    """
    Get a product by ID.

    Returns 400 if the ID is not an integer and 404 if no product has it.
    """
    product = await service.get_by_id(parse_product_id(product_id))

    if not product:
        raise ProductNotFoundError(NOT_FOUND_MESSAGE)

    return ProductEnvelope(
        success=True,
        data=ProductResponse.model_validate(product),
        message="Product retrieved successfully"
    )


@router.post(
    "",
    response_model=ProductEnvelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a new product with name, description, price, category and initial stock."
)
async def create_product(
    product_data: ProductCreate,
    service: ProductService = Depends(get_product_service)
):
    """
    Create a new product.

    - **name**: Product name (required)
    - **description**: Product description (required)
    - **price**: Product price, must be non-negative (required)
    - **category**: Category name (required)
    - **stock**: Initial stock quantity, must be non-negative (required)
    """
    validate_product_create(product_data)
    product = await service.create(product_data)

    return ProductEnvelope(
        success=True,
        data=ProductResponse.model_validate(product),
        message="Product created successfully"
    )


@router.put(
    "/{product_id}",
    response_model=ProductEnvelope,
    response_model_exclude_none=True,
    summary="Update a product",
    description="Update product details. Only provided fields will be updated."
)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    service: ProductService = Depends(get_product_service)
):
    """
    Update a product.

    Partial updates are supported - only include fields you want to change.
    """
    product = await service.update(parse_product_id(product_id), product_data)

    if not product:
        raise ProductNotFoundError(NOT_FOUND_MESSAGE)

    return ProductEnvelope(
        success=True,
        data=ProductResponse.model_validate(product),
        message="Product updated successfully"
    )


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a product",
    description="Delete a product by ID."
)
async def delete_product(
    product_id: str,
    service: ProductService = Depends(get_product_service)
):
    """Delete a product."""
    deleted = await service.delete(parse_product_id(product_id))

    if not deleted:
        raise ProductNotFoundError(NOT_FOUND_MESSAGE)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
