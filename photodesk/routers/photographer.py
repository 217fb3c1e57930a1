"""Кабинет фотографа: клиенты, галереи, фото, заказы. Только с JWT внешнего identity provider."""
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.database import get_db
from photodesk.errors import NotFound, StorageError
from photodesk.models import Gallery, Photographer
from photodesk.schemas import (
    ClientCreate,
    GalleryCreate,
    GalleryResponse,
    GalleryStatusUpdate,
    OrderResponse,
    PhotographerPhotoResponse,
    SelectionSummaryResponse,
)
from photodesk.services.auth_service import decode_jwt, get_or_create_photographer
from photodesk.services.gallery_service import (
    add_photo,
    create_client,
    create_gallery,
    delete_photo,
    get_gallery_for_photographer,
    get_photo_in_gallery,
    list_galleries_for_photographer,
    list_photos,
    set_gallery_status,
)
from photodesk.services.order_service import list_orders_for_photographer
from photodesk.services.selection_service import list_selections, selection_summary

router = APIRouter(prefix="/api/v1/photographer", tags=["photographer"])

MAX_PHOTO_BYTES = 50 * 1024 * 1024


async def get_current_photographer(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Photographer:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Wymagane logowanie")
    payload = decode_jwt(authorization[7:].strip())
    if not payload:
        raise HTTPException(status_code=401, detail="Nieprawidłowy lub wygasły token")
    photographer = await get_or_create_photographer(db, payload)
    if not photographer:
        raise HTTPException(status_code=401, detail="Nieprawidłowy token")
    return photographer


async def _own_gallery(db: AsyncSession, photographer: Photographer, gallery_id: UUID) -> Gallery:
    gallery = await get_gallery_for_photographer(db, photographer.id, gallery_id)
    if not gallery:
        raise HTTPException(status_code=404, detail="Nie znaleziono galerii")
    return gallery


@router.post("/clients")
async def create_client_endpoint(
    body: ClientCreate,
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    client = await create_client(db, photographer.id, body.email, body.name, body.phone)
    return {"id": str(client.id), "email": client.email, "name": client.name}


@router.get("/galleries", response_model=list[GalleryResponse])
async def list_galleries(
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    return await list_galleries_for_photographer(db, photographer.id)


@router.post("/galleries", response_model=GalleryResponse)
async def create_gallery_endpoint(
    body: GalleryCreate,
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_gallery(
            db,
            photographer_id=photographer.id,
            client_id=body.client_id,
            title=body.title,
            package_photos_count=body.package_photos_count,
            additional_photo_price=body.additional_photo_price,
            description=body.description,
            expires_at=body.expires_at,
            status=body.status,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/galleries/{gallery_id}/status", response_model=GalleryResponse)
async def update_gallery_status(
    gallery_id: UUID,
    body: GalleryStatusUpdate,
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    gallery = await _own_gallery(db, photographer, gallery_id)
    try:
        return await set_gallery_status(db, gallery, body.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/galleries/{gallery_id}/photos", response_model=list[PhotographerPhotoResponse])
async def list_gallery_photos(
    gallery_id: UUID,
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    gallery = await _own_gallery(db, photographer, gallery_id)
    return await list_photos(db, gallery.id)


@router.post("/galleries/{gallery_id}/photos", response_model=PhotographerPhotoResponse)
async def upload_photo(
    gallery_id: UUID,
    file: UploadFile = File(...),
    watermark_url: str | None = Form(None),
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    gallery = await _own_gallery(db, photographer, gallery_id)
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Dozwolone są tylko obrazy")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Pusty plik")
    if len(data) > MAX_PHOTO_BYTES:
        raise HTTPException(status_code=413, detail="Plik jest za duży")
    return await add_photo(
        db,
        gallery,
        filename=file.filename or "photo",
        content_type=file.content_type,
        data=data,
        watermark_url=watermark_url,
    )


@router.delete("/galleries/{gallery_id}/photos/{photo_id}", status_code=204)
async def delete_gallery_photo(
    gallery_id: UUID,
    photo_id: UUID,
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    gallery = await _own_gallery(db, photographer, gallery_id)
    photo = await get_photo_in_gallery(db, gallery.id, photo_id)
    if not photo:
        raise HTTPException(status_code=404, detail="Nie znaleziono zdjęcia")
    await delete_photo(db, photo)


@router.get("/galleries/{gallery_id}/selections", response_model=SelectionSummaryResponse)
async def get_client_selections(
    gallery_id: UUID,
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    gallery = await _own_gallery(db, photographer, gallery_id)
    try:
        selections = await list_selections(db, gallery.id, gallery.client_id)
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return SelectionSummaryResponse.build(selection_summary(gallery, selections), selections)


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    status: str | None = Query(None, pattern="^(pending|paid|failed)$"),
    photographer: Photographer = Depends(get_current_photographer),
    db: AsyncSession = Depends(get_db),
):
    return await list_orders_for_photographer(db, photographer.id, status)
