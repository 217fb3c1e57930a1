"""Tests for checkout: order creation, P24 registration, gateway failures."""
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from photodesk.config import settings
from photodesk.errors import GalleryUnavailable, NoChargeableItems, PaymentInitError, StorageError
from photodesk.models import GALLERY_COMPLETED, ORDER_FAILED, ORDER_PENDING, Order
from photodesk.services import p24_client
from photodesk.services.checkout_service import initiate_checkout
from photodesk.services.selection_service import toggle_selection


async def _select(db, gallery, photos, names):
    for name in names:
        await toggle_selection(db, photos[name].id, gallery.id, gallery.client_id)


async def _order_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(Order))).scalar()


@pytest.mark.asyncio
async def test_nothing_to_pay_creates_no_order(db_session, gallery, photos):
    await _select(db_session, gallery, photos, "AB")
    with pytest.raises(NoChargeableItems):
        await initiate_checkout(db_session, gallery.id)
    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
async def test_checkout_registers_transaction(db_session, gallery, photos):
    """Пакет 2, выбрано 3 фото по 15.00: к оплате 1500 грошей."""
    await _select(db_session, gallery, photos, "ABC")
    register = AsyncMock(return_value="TOKEN-123")
    with patch("photodesk.services.p24_client.register_transaction", new=register):
        session = await initiate_checkout(db_session, gallery.id)

    assert session.redirect_url == f"{settings.p24_base_url}/trnRequest/TOKEN-123"
    assert session.amount == Decimal("15.00")
    assert session.additional_count == 1
    assert session.session_id.startswith(f"GAL_{gallery.id.hex}_")

    registration = register.await_args.args[0]
    assert registration["amount"] == 1500
    assert registration["currency"] == "PLN"
    assert registration["sessionId"] == session.session_id
    assert registration["email"] == "anna@example.com"
    assert registration["urlStatus"] == settings.p24_status_url
    assert registration["sign"] == p24_client.registration_sign(session.session_id, 1500, "PLN")

    order = await db_session.get(Order, session.order_id)
    assert order.status == ORDER_PENDING
    assert order.total_amount == Decimal("15.00")
    assert order.p24_token == "TOKEN-123"


@pytest.mark.asyncio
async def test_gateway_rejection_fails_order(db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    register = AsyncMock(side_effect=p24_client.P24Error("gateway_status_400", detail='{"error":"Incorrect sign"}'))
    with patch("photodesk.services.p24_client.register_transaction", new=register):
        with pytest.raises(PaymentInitError) as exc_info:
            await initiate_checkout(db_session, gallery.id)

    assert exc_info.value.gateway_detail == '{"error":"Incorrect sign"}'
    orders = (await db_session.execute(select(Order))).scalars().all()
    assert len(orders) == 1
    assert orders[0].status == ORDER_FAILED
    assert orders[0].failure_reason == '{"error":"Incorrect sign"}'


@pytest.mark.asyncio
async def test_order_not_saved_surfaces_as_storage_error(db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    register = AsyncMock(return_value="TOKEN-123")
    failing_commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))
    with patch("photodesk.services.p24_client.register_transaction", new=register), patch.object(
        db_session, "commit", new=failing_commit
    ):
        with pytest.raises(StorageError):
            await initiate_checkout(db_session, gallery.id)
    register.assert_not_awaited()


@pytest.mark.asyncio
async def test_lost_connection_while_reading_selections(db_session, gallery, photos, flaky_selection_reads):
    await _select(db_session, gallery, photos, "ABC")
    await db_session.commit()
    register = AsyncMock(return_value="TOKEN-123")
    with patch("photodesk.services.p24_client.register_transaction", new=register):
        with flaky_selection_reads(failures=1):
            with pytest.raises(StorageError):
                await initiate_checkout(db_session, gallery.id)
    register.assert_not_awaited()
    assert await _order_count(db_session) == 0
    assert gallery.additional_photo_price == Decimal("15.00")


@pytest.mark.asyncio
async def test_gateway_detail_survives_failed_status_write(db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    register = AsyncMock(side_effect=p24_client.P24Error("gateway_status_400", detail='{"error":"Incorrect sign"}'))
    commit = AsyncMock(side_effect=[None, OperationalError("COMMIT", {}, Exception("disk I/O error"))])
    with patch("photodesk.services.p24_client.register_transaction", new=register), patch.object(
        db_session, "commit", new=commit
    ):
        with pytest.raises(PaymentInitError) as exc_info:
            await initiate_checkout(db_session, gallery.id)
    assert exc_info.value.gateway_detail == '{"error":"Incorrect sign"}'
    assert commit.await_count == 2


@pytest.mark.asyncio
async def test_checkout_endpoint_storage_error(async_client, db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    failing_commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))
    with patch.object(db_session, "commit", new=failing_commit):
        response = await async_client.post(f"/api/v1/galleries/{gallery.access_code}/checkout")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_each_checkout_gets_own_session(db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABCD")
    register = AsyncMock(side_effect=["T1", "T2"])
    with patch("photodesk.services.p24_client.register_transaction", new=register):
        first = await initiate_checkout(db_session, gallery.id)
        second = await initiate_checkout(db_session, gallery.id)
    assert first.session_id != second.session_id
    assert first.amount == second.amount == Decimal("30.00")
    assert await _order_count(db_session) == 2


@pytest.mark.asyncio
async def test_closed_gallery_cannot_checkout(db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    gallery.status = GALLERY_COMPLETED
    await db_session.commit()
    with pytest.raises(GalleryUnavailable):
        await initiate_checkout(db_session, gallery.id)
    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
async def test_checkout_endpoint(async_client, db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    register = AsyncMock(return_value="TOKEN-XYZ")
    with patch("photodesk.services.p24_client.register_transaction", new=register):
        response = await async_client.post(f"/api/v1/galleries/{gallery.access_code}/checkout")
    assert response.status_code == 200
    data = response.json()
    assert data["redirect_url"].endswith("/trnRequest/TOKEN-XYZ")
    assert Decimal(data["amount"]) == Decimal("15.00")
    assert data["additional_count"] == 1


@pytest.mark.asyncio
async def test_checkout_endpoint_nothing_to_pay(async_client, gallery, photos):
    response = await async_client.post(f"/api/v1/galleries/{gallery.access_code}/checkout")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_checkout_endpoint_gateway_error(async_client, db_session, gallery, photos):
    await _select(db_session, gallery, photos, "ABC")
    register = AsyncMock(side_effect=p24_client.P24Error("gateway_unreachable", detail="timeout"))
    with patch("photodesk.services.p24_client.register_transaction", new=register):
        response = await async_client.post(f"/api/v1/galleries/{gallery.access_code}/checkout")
    assert response.status_code == 502
