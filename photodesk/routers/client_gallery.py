"""Галерея клиента по коду доступа: просмотр, выбор фото, оплата дополнительных фото.

Код доступа однозначно задаёт галерею и её клиента, поэтому client_id от клиента не принимается."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.database import get_db
from photodesk.errors import (
    GalleryUnavailable,
    NoChargeableItems,
    NotFound,
    PaymentInitError,
    PhotodeskError,
    StorageError,
)
from photodesk.models import Gallery
from photodesk.schemas import (
    CheckoutResponse,
    GalleryPublicResponse,
    PhotographerPublic,
    PhotoResponse,
    SelectionResponse,
    SelectionSummaryResponse,
    ToggleResponse,
)
from photodesk.services.checkout_service import initiate_checkout
from photodesk.services.gallery_service import list_photos, resolve_access_code
from photodesk.services.selection_service import (
    SelectionResult,
    list_selections,
    selection_summary,
    toggle_selection,
)

router = APIRouter(prefix="/api/v1/galleries", tags=["client-gallery"])


def _to_http(e: PhotodeskError) -> HTTPException:
    if isinstance(e, GalleryUnavailable):
        return HTTPException(status_code=410, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, NoChargeableItems):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, PaymentInitError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, StorageError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


async def get_client_gallery(code: str, db: AsyncSession = Depends(get_db)) -> Gallery:
    try:
        return await resolve_access_code(db, code)
    except PhotodeskError as e:
        raise _to_http(e)


async def _summary_response(db: AsyncSession, gallery: Gallery) -> SelectionSummaryResponse:
    selections = await list_selections(db, gallery.id, gallery.client_id)
    return SelectionSummaryResponse.build(selection_summary(gallery, selections), selections)


def _selection_response(result: SelectionResult) -> SelectionResponse:
    return SelectionResponse(
        photo_id=result.photo_id,
        selected=result.selected,
        selected_for_package=result.selected_for_package,
        is_additional_purchase=result.is_additional_purchase,
    )


@router.get("/{code}", response_model=GalleryPublicResponse)
async def get_gallery_by_code(gallery: Gallery = Depends(get_client_gallery)):
    return GalleryPublicResponse(
        id=gallery.id,
        title=gallery.title,
        description=gallery.description,
        package_photos_count=gallery.package_photos_count,
        additional_photo_price=gallery.additional_photo_price,
        expires_at=gallery.expires_at,
        client_name=gallery.client.name,
        photographer=PhotographerPublic.model_validate(gallery.photographer) if gallery.photographer else None,
    )


@router.get("/{code}/photos", response_model=list[PhotoResponse])
async def get_gallery_photos(
    gallery: Gallery = Depends(get_client_gallery),
    db: AsyncSession = Depends(get_db),
):
    return await list_photos(db, gallery.id)


@router.get("/{code}/selections", response_model=SelectionSummaryResponse)
async def get_selections(
    gallery: Gallery = Depends(get_client_gallery),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await _summary_response(db, gallery)
    except PhotodeskError as e:
        raise _to_http(e)


@router.post("/{code}/photos/{photo_id}/toggle", response_model=ToggleResponse)
async def toggle_photo(
    photo_id: UUID,
    gallery: Gallery = Depends(get_client_gallery),
    db: AsyncSession = Depends(get_db),
):
    """Выбрать фото или снять выбор. В ответе итоговое состояние фото и пересчитанная сводка."""
    try:
        result = await toggle_selection(db, photo_id, gallery.id, gallery.client_id)
        summary = await _summary_response(db, gallery)
    except PhotodeskError as e:
        raise _to_http(e)
    return ToggleResponse(selection=_selection_response(result), summary=summary)


@router.post("/{code}/checkout", response_model=CheckoutResponse)
async def checkout(
    gallery: Gallery = Depends(get_client_gallery),
    db: AsyncSession = Depends(get_db),
):
    try:
        session = await initiate_checkout(db, gallery.id)
    except PhotodeskError as e:
        raise _to_http(e)
    return CheckoutResponse(
        redirect_url=session.redirect_url,
        order_id=session.order_id,
        session_id=session.session_id,
        amount=session.amount,
        additional_count=session.additional_count,
    )
