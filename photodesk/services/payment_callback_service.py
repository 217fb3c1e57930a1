"""Уведомление Przelewy24 о результате транзакции (urlStatus).

Порядок: подпись -> заказ по sessionId -> уже paid? ответить OK -> серверная проверка в шлюзе ->
pending -> paid (письмо клиенту ровно один раз) или pending -> failed.
Статус из тела уведомления не используется: эндпоинт публичный, тело может быть подделано."""
import logging
from dataclasses import dataclass
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.config import settings
from photodesk.errors import GatewayUnavailable, InvalidSignature, OrderNotFound, StorageError
from photodesk.models import ORDER_FAILED, ORDER_PAID, Order
from photodesk.schemas import P24Notification
from photodesk.services import email_service, p24_client
from photodesk.services.order_service import get_order_by_session_id, mark_failed, mark_paid
from photodesk.services.pricing import to_minor_units

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackResult:
    order_id: UUID
    status: str
    already_processed: bool = False

    @property
    def accepted(self) -> bool:
        return self.status == ORDER_PAID


async def _notify_paid(db: AsyncSession, order: Order) -> None:
    try:
        await email_service.send_delivery_email(db, order)
    except Exception:
        # заказ уже оплачен, письмо можно переотправить вручную
        logger.exception("Delivery email failed: order=%s", order.id)


async def _fail(db: AsyncSession, order: Order, reason: str) -> None:
    try:
        await mark_failed(db, order, reason)
        await db.commit()
    except SQLAlchemyError as e:
        logger.error("Order failed status not saved: order=%s reason=%s error=%s", order.id, reason, e)
        raise StorageError("order_update_failed") from e


async def handle_callback(db: AsyncSession, payload: dict) -> CallbackResult:
    if not p24_client.is_valid_notification(payload):
        logger.warning("P24 notification rejected, bad signature: session=%s", payload.get("sessionId"))
        raise InvalidSignature("invalid_signature")
    try:
        notification = P24Notification.model_validate(payload)
    except ValidationError as e:
        logger.warning("P24 notification rejected, malformed: session=%s error=%s", payload.get("sessionId"), e)
        raise InvalidSignature("malformed_notification") from e

    try:
        order = await get_order_by_session_id(db, notification.sessionId)
    except SQLAlchemyError as e:
        logger.error("Order lookup failed: session=%s error=%s", notification.sessionId, e)
        raise StorageError("order_lookup_failed") from e
    if not order:
        logger.warning("P24 notification for unknown session: %s", notification.sessionId)
        raise OrderNotFound("order_not_found")

    if order.status == ORDER_PAID:
        logger.info("P24 notification repeated for paid order=%s", order.id)
        return CallbackResult(order_id=order.id, status=ORDER_PAID, already_processed=True)
    if order.status == ORDER_FAILED:
        logger.error(
            "P24 notification for failed order=%s session=%s p24_order=%s, needs manual review",
            order.id,
            order.session_id,
            notification.orderId,
        )
        return CallbackResult(order_id=order.id, status=ORDER_FAILED, already_processed=True)

    expected_amount = to_minor_units(order.total_amount)
    if notification.amount != expected_amount or notification.currency != settings.p24_currency:
        logger.error(
            "P24 notification amount mismatch: order=%s expected=%s got=%s %s",
            order.id,
            expected_amount,
            notification.amount,
            notification.currency,
        )
        await _fail(db, order, "amount_mismatch")
        return CallbackResult(order_id=order.id, status=ORDER_FAILED)

    try:
        verified = await p24_client.verify_transaction(
            session_id=order.session_id,
            order_id=notification.orderId,
            amount=expected_amount,
            currency=notification.currency,
        )
    except p24_client.P24Error as e:
        raise GatewayUnavailable("verification_unavailable") from e

    if not verified:
        logger.error("P24 verification failed: order=%s p24_order=%s", order.id, notification.orderId)
        await _fail(db, order, "verification_failed")
        return CallbackResult(order_id=order.id, status=ORDER_FAILED)

    try:
        transitioned = await mark_paid(db, order, str(notification.orderId))
        if transitioned:
            await db.commit()
        else:
            # параллельное уведомление успело перевести заказ
            await db.refresh(order)
    except SQLAlchemyError as e:
        logger.error("Order paid status not saved: order=%s error=%s", order.id, e)
        raise StorageError("order_update_failed") from e
    if not transitioned:
        return CallbackResult(order_id=order.id, status=order.status, already_processed=True)
    logger.info("Payment confirmed: order=%s p24_order=%s", order.id, notification.orderId)
    await _notify_paid(db, order)
    return CallbackResult(order_id=order.id, status=ORDER_PAID)
