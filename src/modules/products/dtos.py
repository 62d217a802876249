"""Product DTOs for the Service Layer.

Pydantic v2 frozen models passed from the views to ``ProductService``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.products.models import ProductStatus


class ProductImageDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    alt: str = ""
    is_primary: bool = False


class ProductVariantDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class CreateProductDTO(BaseModel):
    """Validates price > 0 and stock >= 0."""

    model_config = ConfigDict(frozen=True)

    title: str
    price: Decimal
    category: str
    description: str = ""
    brand: str = ""
    compare_price: Optional[Decimal] = None
    sku: str = ""
    images: List[ProductImageDTO] = []
    variants: List[ProductVariantDTO] = []
    stock: int = 0
    status: ProductStatus = ProductStatus.ACTIVE

    @field_validator("title", "category")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("This field may not be blank.")
        return v.strip()

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock cannot be negative.")
        return v


class UpdateProductDTO(BaseModel):
    """Only supplied (non-``None``) fields are applied."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    compare_price: Optional[Decimal] = None
    sku: Optional[str] = None
    images: Optional[List[ProductImageDTO]] = None
    variants: Optional[List[ProductVariantDTO]] = None
    stock: Optional[int] = None
    status: Optional[ProductStatus] = None

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Stock cannot be negative.")
        return v


class CatalogFacets(BaseModel):
    """Distinct categories and brands among active products, sorted."""

    model_config = ConfigDict(frozen=True)

    categories: List[str]
    brands: List[str]
