"""Review DTOs for the Service Layer (Pydantic v2, frozen)."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from modules.reviews.constants import MAX_RATING, MIN_RATING


class CreateReviewDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    order_id: Optional[UUID] = None
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    title: str = ""
    comment: str = Field(min_length=1)
    images: List[str] = []


class ModerateReviewDTO(BaseModel):
    """``status`` is checked by the service so any other value is a 400."""

    model_config = ConfigDict(frozen=True)

    status: str
    admin_response: str = ""


class RatingSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int
    total: int
