"""Order DTOs for the Service Layer.

Pydantic v2 frozen models; the contract between the DRF serializers and
``OrderService``.  Product ids repeat freely across lines, stock is
checked against the cumulative quantity per product.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from modules.orders.constants import OrderStatus, PaymentMethod


class CustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ShippingAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    region: str = Field(min_length=1)
    city: str = Field(min_length=1)
    area: str = ""
    address: str = Field(min_length=1)
    landmark: str = ""
    notes: str = ""


class VariantDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class CreateOrderItemDTO(BaseModel):
    """``unit_price`` is resolved by the Service Layer from the catalog."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    variant: Optional[VariantDTO] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer: CustomerDTO
    shipping_address: ShippingAddressDTO
    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod
    discount_code: str = ""
    user_id: Optional[UUID] = None
    source: str = "website"
    ip_address: Optional[str] = None
    user_agent: str = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


class UpdateStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    message: str = ""
    courier_name: str = ""
    tracking_number: str = ""
    tracking_url: str = ""


class VerifyPaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction_id: str = ""
    sender_number: str = ""
    amount: Optional[Decimal] = None


class ReturnRequestDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str = Field(min_length=1)
