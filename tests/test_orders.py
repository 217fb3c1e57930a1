"""Order transitions, stale order sweep and the delivery email."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from photodesk.models import ORDER_FAILED, ORDER_PAID, ORDER_PENDING, Order
from photodesk.services import email_service
from photodesk.services.order_service import expire_stale_orders, mark_failed, mark_paid
from photodesk.services.selection_service import toggle_selection


@pytest.mark.asyncio
async def test_paid_transition_happens_once(db_session, pending_order):
    assert await mark_paid(db_session, pending_order, "316750112") is True
    assert await mark_paid(db_session, pending_order, "316750112") is False
    assert await mark_failed(db_session, pending_order, "late") is False
    await db_session.refresh(pending_order)
    assert pending_order.status == ORDER_PAID
    assert pending_order.failure_reason is None


@pytest.mark.asyncio
async def test_stale_pending_orders_expire(db_session, gallery, pending_order):
    old = Order(
        id=uuid4(),
        gallery_id=gallery.id,
        client_id=gallery.client_id,
        photographer_id=gallery.photographer_id,
        total_amount=Decimal("30.00"),
        additional_count=2,
        session_id=f"GAL_{gallery.id.hex}_old",
        status=ORDER_PENDING,
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
    )
    db_session.add(old)
    await db_session.commit()

    assert await expire_stale_orders(db_session) == 1
    await db_session.refresh(old)
    await db_session.refresh(pending_order)
    assert old.status == ORDER_FAILED
    assert old.failure_reason == "expired_without_notification"
    assert pending_order.status == ORDER_PENDING


@pytest.mark.asyncio
async def test_delivery_email_lists_selected_photos(db_session, gallery, photos, pending_order):
    for name in "AC":
        await toggle_selection(db_session, photos[name].id, gallery.id, gallery.client_id)
    presign = MagicMock(side_effect=lambda key, expires: f"https://signed/{key}")
    send = AsyncMock()
    with patch("photodesk.services.minio_service.get_file_url", new=presign), patch.object(
        email_service, "send_email", new=send
    ):
        await email_service.send_delivery_email(db_session, pending_order)

    to, subject, body = send.await_args.args
    assert to == "anna@example.com"
    assert "Wesele Anny" in subject
    assert "A.jpg: https://signed/" in body
    assert "C.jpg" in body
    assert "B.jpg" not in body
    assert presign.call_count == 2


@pytest.mark.asyncio
async def test_send_email_without_smtp_is_skipped():
    with patch("smtplib.SMTP") as smtp:
        await email_service.send_email("anna@example.com", "Temat", "Treść")
    smtp.assert_not_called()
