"""Заказы: поиск, переходы статуса, очистка зависших pending.

Переходы pending -> paid / pending -> failed делаются условным UPDATE ... WHERE status = 'pending'.
rowcount == 1 означает, что переход выполнил именно этот вызов: только он запускает побочные эффекты."""
import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.config import settings
from photodesk.models import ORDER_FAILED, ORDER_PAID, ORDER_PENDING, Order

logger = logging.getLogger(__name__)


async def get_order_by_session_id(db: AsyncSession, session_id: str) -> Order | None:
    result = await db.execute(select(Order).where(Order.session_id == session_id))
    return result.scalar_one_or_none()


async def list_orders_for_photographer(
    db: AsyncSession,
    photographer_id: UUID,
    status: str | None = None,
) -> list[Order]:
    q = select(Order).where(Order.photographer_id == photographer_id)
    if status:
        q = q.where(Order.status == status)
    result = await db.execute(q.order_by(Order.created_at.desc()))
    return list(result.scalars().all())


async def mark_paid(db: AsyncSession, order: Order, p24_order_id: str | None) -> bool:
    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == ORDER_PENDING)
        .values(status=ORDER_PAID, paid_at=datetime.now(timezone.utc), p24_order_id=p24_order_id)
    )
    await db.flush()
    return result.rowcount == 1


async def mark_failed(db: AsyncSession, order: Order, reason: str) -> bool:
    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == ORDER_PENDING)
        .values(status=ORDER_FAILED, failure_reason=reason)
    )
    await db.flush()
    return result.rowcount == 1


async def expire_stale_orders(db: AsyncSession, now: datetime | None = None) -> int:
    """Заказы, по которым шлюз так и не прислал уведомление после истечения timeLimit."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=settings.p24_time_limit_minutes + settings.stale_order_grace_minutes)
    result = await db.execute(
        update(Order)
        .where(Order.status == ORDER_PENDING, Order.created_at < cutoff)
        .values(status=ORDER_FAILED, failure_reason="expired_without_notification")
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    count = result.rowcount or 0
    if count:
        logger.info("Stale pending orders marked failed: %s", count)
    return count
