"""Pydantic schemas for API."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


# Client gallery (по коду доступа)
class PhotographerPublic(BaseModel):
    name: str
    business_name: str | None = None

    class Config:
        from_attributes = True


class GalleryPublicResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    package_photos_count: int
    additional_photo_price: Decimal
    expires_at: datetime | None = None
    client_name: str
    photographer: PhotographerPublic | None = None


class PhotoResponse(BaseModel):
    id: UUID
    filename: str
    thumbnail_url: str
    watermark_url: str | None = None
    upload_order: int

    class Config:
        from_attributes = True


class SelectionResponse(BaseModel):
    photo_id: UUID
    selected: bool
    selected_for_package: bool = False
    is_additional_purchase: bool = False


class SelectionSummaryResponse(BaseModel):
    package_count: int
    additional_count: int
    total_selections: int
    remaining_in_package: int
    total_cost: Decimal
    selections: list[SelectionResponse] = Field(default_factory=list)

    @classmethod
    def build(cls, summary, selections) -> "SelectionSummaryResponse":
        return cls(
            package_count=summary.totals.package_count,
            additional_count=summary.totals.additional_count,
            total_selections=summary.total_selections,
            remaining_in_package=summary.remaining_in_package,
            total_cost=summary.totals.total_cost,
            selections=[
                SelectionResponse(
                    photo_id=s.photo_id,
                    selected=True,
                    selected_for_package=s.selected_for_package,
                    is_additional_purchase=s.is_additional_purchase,
                )
                for s in selections
            ],
        )


class ToggleResponse(BaseModel):
    selection: SelectionResponse
    summary: SelectionSummaryResponse


class CheckoutResponse(BaseModel):
    redirect_url: str
    order_id: UUID
    session_id: str
    amount: Decimal
    additional_count: int


class OrderStatusResponse(BaseModel):
    id: UUID
    status: str  # pending | paid | failed
    total_amount: Decimal
    additional_count: int
    created_at: datetime
    paid_at: datetime | None = None

    class Config:
        from_attributes = True


# Przelewy24: уведомление на urlStatus
class P24Notification(BaseModel):
    merchantId: int
    posId: int
    sessionId: str = Field(..., min_length=1, max_length=100)
    amount: int
    originAmount: int | None = None
    currency: str = Field(..., min_length=3, max_length=3)
    orderId: int
    methodId: int | None = None
    statement: str | None = None
    sign: str


# Photographer
class GalleryCreate(BaseModel):
    client_id: UUID
    title: str = Field(..., min_length=1, max_length=256)
    description: str | None = None
    package_photos_count: int = Field(20, ge=1)
    additional_photo_price: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    expires_at: datetime | None = None
    status: str = Field("draft", pattern="^(draft|active|completed|expired)$")


class GalleryStatusUpdate(BaseModel):
    status: str = Field(..., pattern="^(draft|active|completed|expired)$")


class GalleryResponse(BaseModel):
    id: UUID
    client_id: UUID
    title: str
    description: str | None = None
    access_code: str
    status: str
    package_photos_count: int
    additional_photo_price: Decimal
    expires_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class PhotographerPhotoResponse(PhotoResponse):
    original_url: str
    file_size: int | None = None


class OrderResponse(OrderStatusResponse):
    gallery_id: UUID
    client_id: UUID
    session_id: str
    failure_reason: str | None = None


class ClientCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=256)
    phone: str | None = Field(None, max_length=32)
