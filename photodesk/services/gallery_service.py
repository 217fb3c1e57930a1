"""Галереи: код доступа, доступность для клиента, фото."""
import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from photodesk.errors import GalleryUnavailable, NotFound
from photodesk.models import GALLERY_ACTIVE, GALLERY_DRAFT, GALLERY_STATUSES, Client, Gallery, Photo
from photodesk.services import minio_service

logger = logging.getLogger(__name__)

# Без 0/O и 1/I: код диктуют по телефону и переписывают с визитки
ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 8
ACCESS_CODE_MAX_ATTEMPTS = 10


def generate_access_code() -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def _as_utc(value: datetime) -> datetime:
    # SQLite возвращает naive datetime, в БД всё хранится в UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(gallery: Gallery, now: datetime | None = None) -> bool:
    if gallery.expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return _as_utc(gallery.expires_at) <= now


def ensure_accepts_selections(gallery: Gallery, now: datetime | None = None) -> None:
    """Выбор фото принимают только активные и не истекшие галереи."""
    if gallery.status != GALLERY_ACTIVE:
        raise GalleryUnavailable("Galeria jest niedostępna")
    if is_expired(gallery, now):
        raise GalleryUnavailable("Galeria wygasła")


async def get_gallery(db: AsyncSession, gallery_id: UUID) -> Gallery | None:
    result = await db.execute(
        select(Gallery).options(selectinload(Gallery.client)).where(Gallery.id == gallery_id)
    )
    return result.scalar_one_or_none()


async def get_gallery_for_photographer(
    db: AsyncSession,
    photographer_id: UUID,
    gallery_id: UUID,
) -> Gallery | None:
    result = await db.execute(
        select(Gallery).where(
            Gallery.id == gallery_id,
            Gallery.photographer_id == photographer_id,
        )
    )
    return result.scalar_one_or_none()


async def resolve_access_code(db: AsyncSession, code: str, now: datetime | None = None) -> Gallery:
    """Код доступа -> активная галерея с клиентом. Неизвестный или истекший код: ошибка без повтора."""
    result = await db.execute(
        select(Gallery)
        .options(selectinload(Gallery.client), selectinload(Gallery.photographer))
        .where(Gallery.access_code == code.strip().upper())
    )
    gallery = result.scalar_one_or_none()
    if not gallery:
        raise NotFound("Nie znaleziono galerii")
    ensure_accepts_selections(gallery, now)
    return gallery


async def create_gallery(
    db: AsyncSession,
    photographer_id: UUID,
    client_id: UUID,
    title: str,
    package_photos_count: int,
    additional_photo_price: Decimal,
    description: str | None = None,
    expires_at: datetime | None = None,
    status: str = GALLERY_DRAFT,
) -> Gallery:
    if package_photos_count < 1:
        raise ValueError("package_photos_count_must_be_positive")
    if additional_photo_price < 0:
        raise ValueError("additional_photo_price_must_not_be_negative")
    if status not in GALLERY_STATUSES:
        raise ValueError("unknown_status")
    client = (
        await db.execute(
            select(Client).where(Client.id == client_id, Client.photographer_id == photographer_id)
        )
    ).scalar_one_or_none()
    if not client:
        raise NotFound("Nie znaleziono klienta")
    for _ in range(ACCESS_CODE_MAX_ATTEMPTS):
        code = generate_access_code()
        taken = (
            await db.execute(select(Gallery.id).where(Gallery.access_code == code))
        ).scalar_one_or_none()
        if not taken:
            break
    else:
        raise RuntimeError("access_code_generation_failed")
    gallery = Gallery(
        photographer_id=photographer_id,
        client_id=client_id,
        title=title,
        description=description,
        access_code=code,
        status=status,
        package_photos_count=package_photos_count,
        additional_photo_price=additional_photo_price,
        expires_at=expires_at,
    )
    db.add(gallery)
    await db.flush()
    logger.info("Gallery created: id=%s photographer=%s", gallery.id, photographer_id)
    return gallery


async def set_gallery_status(db: AsyncSession, gallery: Gallery, status: str) -> Gallery:
    if status not in GALLERY_STATUSES:
        raise ValueError("unknown_status")
    gallery.status = status
    await db.flush()
    return gallery


async def list_photos(db: AsyncSession, gallery_id: UUID) -> list[Photo]:
    result = await db.execute(
        select(Photo)
        .where(Photo.gallery_id == gallery_id)
        .order_by(Photo.upload_order.asc(), Photo.created_at.asc())
    )
    return list(result.scalars().all())


async def get_photo_in_gallery(db: AsyncSession, gallery_id: UUID, photo_id: UUID) -> Photo | None:
    result = await db.execute(
        select(Photo).where(Photo.id == photo_id, Photo.gallery_id == gallery_id)
    )
    return result.scalar_one_or_none()


async def add_photo(
    db: AsyncSession,
    gallery: Gallery,
    filename: str,
    content_type: str,
    data: bytes,
    watermark_url: str | None = None,
) -> Photo:
    """Загружает оригинал в MinIO и регистрирует фото в конце галереи.
    Миниатюры и водяные знаки делает внешний сервис, до тех пор thumbnail = оригинал."""
    key = minio_service.upload_photo(str(gallery.id), filename, content_type, data)
    url = minio_service.object_url(key)
    max_order = await db.execute(
        select(func.coalesce(func.max(Photo.upload_order), 0)).where(Photo.gallery_id == gallery.id)
    )
    photo = Photo(
        gallery_id=gallery.id,
        filename=filename,
        storage_key=key,
        original_url=url,
        thumbnail_url=url,
        watermark_url=watermark_url,
        file_size=len(data),
        upload_order=(max_order.scalar() or 0) + 1,
    )
    db.add(photo)
    await db.flush()
    return photo


async def delete_photo(db: AsyncSession, photo: Photo) -> None:
    """Удаляет фото вместе с выборами клиента (FK ondelete=CASCADE) и объектом в MinIO."""
    key = photo.storage_key
    await db.delete(photo)
    await db.flush()
    if key:
        minio_service.delete_file(key)


async def list_galleries_for_photographer(db: AsyncSession, photographer_id: UUID) -> list[Gallery]:
    result = await db.execute(
        select(Gallery)
        .where(Gallery.photographer_id == photographer_id)
        .order_by(Gallery.created_at.desc())
    )
    return list(result.scalars().all())


async def create_client(
    db: AsyncSession,
    photographer_id: UUID,
    email: str,
    name: str,
    phone: str | None = None,
) -> Client:
    client = Client(photographer_id=photographer_id, email=email.lower().strip(), name=name, phone=phone)
    db.add(client)
    await db.flush()
    return client
