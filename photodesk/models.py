"""SQLAlchemy models: photographer, client, gallery, photo, client_selection, orders.

Выбор клиента (ClientSelection) уникален по (photo_id, client_id): это единственный примитив
конкурентного контроля для переключения выбора. Заказ (Order) коррелирует с асинхронным
уведомлением Przelewy24 по session_id."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

GALLERY_DRAFT = "draft"
GALLERY_ACTIVE = "active"
GALLERY_COMPLETED = "completed"
GALLERY_EXPIRED = "expired"
GALLERY_STATUSES = (GALLERY_DRAFT, GALLERY_ACTIVE, GALLERY_COMPLETED, GALLERY_EXPIRED)

ORDER_PENDING = "pending"
ORDER_PAID = "paid"
ORDER_FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Photographer(Base):
    """Владелец галерей. Учётная запись живёт во внешнем identity provider, id совпадает с sub токена."""
    __tablename__ = "photographer"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    business_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    clients = relationship("Client", back_populates="photographer")
    galleries = relationship("Gallery", back_populates="photographer")


class Client(Base):
    __tablename__ = "client"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    photographer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("photographer.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(256), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    photographer = relationship("Photographer", back_populates="clients")

    __table_args__ = (
        Index("ix_client_photographer", "photographer_id"),
    )


class Gallery(Base):
    __tablename__ = "gallery"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    photographer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("photographer.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=GALLERY_DRAFT)  # draft | active | completed | expired
    package_photos_count: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    additional_photo_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    photographer = relationship("Photographer", back_populates="galleries")
    client = relationship("Client")
    photos = relationship("Photo", back_populates="gallery", order_by="Photo.upload_order")

    __table_args__ = (
        CheckConstraint("package_photos_count >= 1", name="ck_gallery_package_photos_count"),
        CheckConstraint("additional_photo_price >= 0", name="ck_gallery_additional_photo_price"),
    )


class Photo(Base):
    """Фото галереи. После создания не меняется, только удаляется."""
    __tablename__ = "photo"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    gallery_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gallery.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(String(256), nullable=False)
    storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)  # ключ объекта в MinIO
    original_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    watermark_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    upload_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    gallery = relationship("Gallery", back_populates="photos")

    __table_args__ = (
        Index("ix_photo_gallery_order", "gallery_id", "upload_order"),
    )


class ClientSelection(Base):
    """Выбор фото клиентом. Ровно один из флагов selected_for_package / is_additional_purchase истинен.
    Запись не обновляется: переключение = удаление или вставка."""
    __tablename__ = "client_selection"
    __table_args__ = (
        UniqueConstraint("photo_id", "client_id", name="uq_client_selection_photo_client"),
        CheckConstraint(
            "selected_for_package <> is_additional_purchase",
            name="ck_client_selection_one_kind",
        ),
        Index("ix_client_selection_gallery_client", "gallery_id", "client_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    photo_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("photo.id", ondelete="CASCADE"), nullable=False
    )
    gallery_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gallery.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False
    )
    selected_for_package: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_additional_purchase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Order(Base):
    """Попытка оплаты дополнительных фото. Статус: pending -> paid | failed, обратно не меняется."""
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    gallery_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gallery.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False
    )
    photographer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("photographer.id", ondelete="CASCADE"), nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    additional_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    p24_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    p24_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ORDER_PENDING)  # pending | paid | failed
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    gallery = relationship("Gallery")
    client = relationship("Client")

    __table_args__ = (
        Index("ix_orders_gallery_client", "gallery_id", "client_id"),
        Index("ix_orders_status_created", "status", "created_at"),
    )
