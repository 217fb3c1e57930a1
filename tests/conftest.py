"""Pytest fixtures: app, client, db session, seeded gallery, P24 notifications."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("P24_MERCHANT_ID", "11111")
os.environ.setdefault("P24_POS_ID", "11111")
os.environ.setdefault("P24_API_KEY", "test-api-key")
os.environ.setdefault("P24_CRC_KEY", "test-crc-key")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SMTP_HOST", "")

from collections.abc import AsyncGenerator
from contextlib import contextmanager
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from photodesk.database import get_db
from photodesk.main import app
from photodesk.models import GALLERY_ACTIVE, ORDER_PENDING, Base, Client, Gallery, Order, Photo, Photographer
from photodesk.services import p24_client

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    eng = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autocommit=False, autoflush=False
    )
    async with async_session() as session:
        yield session


@pytest.fixture
async def gallery(db_session) -> Gallery:
    """Активная галерея: пакет 2 фото, дополнительное фото 15.00."""
    photographer = Photographer(id=uuid4(), email="studio@example.com", name="Studio", business_name="Studio Foto")
    client = Client(id=uuid4(), photographer_id=photographer.id, email="anna@example.com", name="Anna Nowak")
    g = Gallery(
        id=uuid4(),
        photographer_id=photographer.id,
        client_id=client.id,
        title="Wesele Anny",
        access_code="ABCD2345",
        status=GALLERY_ACTIVE,
        package_photos_count=2,
        additional_photo_price=Decimal("15.00"),
    )
    db_session.add_all([photographer, client, g])
    await db_session.commit()
    return g


@pytest.fixture
async def photos(db_session, gallery) -> dict[str, Photo]:
    """Фото A..E в порядке загрузки."""
    out = {}
    for i, name in enumerate("ABCDE", start=1):
        p = Photo(
            id=uuid4(),
            gallery_id=gallery.id,
            filename=f"{name}.jpg",
            storage_key=f"galleries/{gallery.id}/{name}.jpg",
            original_url=f"http://minio/photos/{name}.jpg",
            thumbnail_url=f"http://minio/photos/{name}.jpg",
            upload_order=i,
        )
        db_session.add(p)
        out[name] = p
    await db_session.commit()
    return out


@pytest.fixture
async def pending_order(db_session, gallery) -> Order:
    order = Order(
        id=uuid4(),
        gallery_id=gallery.id,
        client_id=gallery.client_id,
        photographer_id=gallery.photographer_id,
        total_amount=Decimal("15.00"),
        additional_count=1,
        session_id=f"GAL_{gallery.id.hex}_0011223344556677",
        status=ORDER_PENDING,
    )
    db_session.add(order)
    await db_session.commit()
    return order


@pytest.fixture
def p24_notification():
    """Фабрика уведомлений P24 с корректной подписью (overrides применяются до подписи)."""
    def _make(session_id: str, amount: int = 1500, order_id: int = 316750112, **overrides) -> dict:
        body = {
            "merchantId": 11111,
            "posId": 11111,
            "sessionId": session_id,
            "amount": amount,
            "originAmount": amount,
            "currency": "PLN",
            "orderId": order_id,
            "methodId": 154,
            "statement": "p24-A12-B34-C56",
        }
        body.update(overrides)
        body["sign"] = p24_client.notification_sign(body)
        return body
    return _make


@pytest.fixture
def override_get_db(db_session):
    async def _get_db():
        yield db_session
    return _get_db


@pytest.fixture
async def async_client(override_get_db):
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def flaky_selection_reads(db_session):
    """Первые `failures` чтений записей client_selection падают с обрывом соединения."""
    @contextmanager
    def _patch(failures: int = 1):
        real_execute = db_session.execute
        calls = {"selection_reads": 0}

        async def execute(statement, *args, **kwargs):
            if str(statement).startswith("SELECT client_selection.id"):
                calls["selection_reads"] += 1
                if calls["selection_reads"] <= failures:
                    raise DBAPIError(
                        str(statement),
                        {},
                        ConnectionError("server closed the connection unexpectedly"),
                        connection_invalidated=True,
                    )
            return await real_execute(statement, *args, **kwargs)

        with patch.object(db_session, "execute", new=execute):
            yield calls
    return _patch
