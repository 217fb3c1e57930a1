"""Оформление оплаты дополнительных фото через Przelewy24.

Заказ сохраняется (commit) до обращения к шлюзу: если процесс упадёт после регистрации
транзакции, уведомление шлюза всё равно найдёт заказ по session_id."""
import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.errors import NoChargeableItems, NotFound, PaymentInitError, StorageError
from photodesk.models import ORDER_FAILED, ORDER_PENDING, Gallery, Order
from photodesk.services import p24_client
from photodesk.services.gallery_service import ensure_accepts_selections, get_gallery
from photodesk.services.pricing import compute_totals, to_minor_units
from photodesk.services.selection_service import list_selections

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    redirect_url: str
    order_id: UUID
    session_id: str
    amount: Decimal
    additional_count: int


def new_session_id(gallery_id: UUID) -> str:
    """Уникален для каждой попытки: id галереи + случайный суффикс."""
    return f"GAL_{gallery_id.hex}_{secrets.token_hex(8)}"


def _description(gallery: Gallery, additional_count: int) -> str:
    return f"{gallery.title} ({additional_count} photos)"[:1024]


async def initiate_checkout(db: AsyncSession, gallery_id: UUID) -> CheckoutSession:
    gallery = await get_gallery(db, gallery_id)
    if not gallery or not gallery.client:
        raise NotFound("Nie znaleziono galerii lub klienta")
    ensure_accepts_selections(gallery)
    client = gallery.client

    selections = await list_selections(db, gallery.id, client.id)
    totals = compute_totals(selections, gallery.additional_photo_price)
    if totals.additional_count == 0 or totals.total_cost <= 0:
        raise NoChargeableItems("Brak dodatkowych zdjęć do opłacenia")

    session_id = new_session_id(gallery.id)
    order = Order(
        gallery_id=gallery.id,
        client_id=client.id,
        photographer_id=gallery.photographer_id,
        total_amount=totals.total_cost,
        additional_count=totals.additional_count,
        session_id=session_id,
        status=ORDER_PENDING,
    )
    db.add(order)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        logger.error("Order create failed: gallery=%s session=%s error=%s", gallery.id, session_id, e)
        raise StorageError("Nie udało się zapisać zamówienia, spróbuj ponownie") from e
    logger.info(
        "Order created: id=%s gallery=%s session=%s amount=%s",
        order.id,
        gallery.id,
        session_id,
        totals.total_cost,
    )

    registration = p24_client.build_registration(
        session_id=session_id,
        amount=to_minor_units(totals.total_cost),
        description=_description(gallery, totals.additional_count),
        email=client.email,
        client_name=client.name,
    )
    try:
        token = await p24_client.register_transaction(registration)
    except p24_client.P24Error as e:
        logger.error("P24 registration failed: order=%s reason=%s detail=%s", order.id, e, e.detail)
        order.status = ORDER_FAILED
        order.failure_reason = e.detail or str(e)
        try:
            await db.commit()
        except SQLAlchemyError as db_error:
            # заказ остаётся pending, его закроет sweep.py
            logger.error("Order failed status not saved: order=%s error=%s", order.id, db_error)
        raise PaymentInitError("Nie udało się rozpocząć płatności, spróbuj ponownie", gateway_detail=e.detail) from e

    order.p24_token = token
    try:
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Order token not saved: order=%s error=%s", order.id, e)
        raise StorageError("Nie udało się zapisać zamówienia, spróbuj ponownie") from e
    return CheckoutSession(
        redirect_url=p24_client.payment_url(token),
        order_id=order.id,
        session_id=session_id,
        amount=totals.total_cost,
        additional_count=totals.additional_count,
    )
