"""
Validation rules shared by the route layer and the product service.

A text field counts as missing when it is None or empty. Price and stock
count as missing only when None, so zero is accepted. Upper bounds follow
the NUMERIC(10,2) and INTEGER columns the values are stored in.
"""
import re
from decimal import Decimal
from typing import Any, Optional

from product_api.exceptions import ValidationError
from product_api.schemas.product import ProductCreate

REQUIRED_FIELDS = ("name", "description", "price", "category", "stock")
TEXT_FIELDS = ("name", "description", "category")

MAX_PRICE = Decimal("99999999.99")
MAX_STOCK = 2 ** 31 - 1

MIN_ID = -(2 ** 31)
MAX_ID = 2 ** 31 - 1
ID_PATTERN = re.compile(r"-?[0-9]+")

MISSING_FIELDS_MESSAGE = "Missing required fields: " + ", ".join(REQUIRED_FIELDS)
NEGATIVE_VALUES_MESSAGE = "Price and stock must be non-negative"
TOO_LARGE_MESSAGE = f"Price must be at most {MAX_PRICE} and stock at most {MAX_STOCK}"
INVALID_ID_MESSAGE = "Invalid product ID"


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value)


def _check_numbers(price: Optional[Decimal], stock: Optional[int]) -> None:
    """Range-check price and stock; None means the value was not supplied."""
    if price is not None and not Decimal(price).is_finite():
        raise ValidationError(TOO_LARGE_MESSAGE)

    if (price is not None and price < 0) or (stock is not None and stock < 0):
        raise ValidationError(NEGATIVE_VALUES_MESSAGE)

    if (price is not None and price > MAX_PRICE) or (stock is not None and stock > MAX_STOCK):
        raise ValidationError(TOO_LARGE_MESSAGE)


def validate_product_create(product_data: ProductCreate) -> None:
    """
    Check that all required fields are present and numbers are in range.

    Raises:
        ValidationError: If a field is missing or price/stock is negative or too large
    """
    if any(_is_missing(getattr(product_data, field, None)) for field in REQUIRED_FIELDS):
        raise ValidationError(MISSING_FIELDS_MESSAGE)

    _check_numbers(product_data.price, product_data.stock)


def validate_product_changes(changes: dict) -> None:
    """
    Check the supplied fields of a partial update.

    Raises:
        ValidationError: If a text field is empty or price/stock is out of range
    """
    empty = [field for field in TEXT_FIELDS if field in changes and not changes[field]]
    if empty:
        raise ValidationError(f"Fields cannot be empty: {', '.join(empty)}")

    _check_numbers(changes.get("price"), changes.get("stock"))


def parse_product_id(raw_id: str) -> int:
    """Parse a product ID taken from the URL path. Only plain ASCII digits are accepted."""
    if not ID_PATTERN.fullmatch(raw_id):
        raise ValidationError(INVALID_ID_MESSAGE)

    product_id = int(raw_id)

    # IDs are stored in a 32-bit INTEGER column
    if not MIN_ID <= product_id <= MAX_ID:
        raise ValidationError(INVALID_ID_MESSAGE)
    return product_id
