"""Письмо клиенту после оплаты: ссылки на скачивание выбранных фото. Конфиг из .env."""
import asyncio
import logging
import smtplib
from datetime import timedelta
from email.mime.text import MIMEText
from email.utils import formataddr

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.config import settings
from photodesk.models import ClientSelection, Client, Gallery, Order, Photo
from photodesk.services import minio_service

logger = logging.getLogger(__name__)


def _send_sync(to: str, subject: str, body: str) -> None:
    if not settings.smtp_host:
        logger.warning("SMTP не настроен (SMTP_HOST пустой). Письмо не отправлено: To=%s Subject=%s", to, subject)
        return
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = formataddr(("Photodesk", settings.smtp_from))
    msg["To"] = to
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_user and settings.smtp_password:
                smtp.starttls()
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.sendmail(settings.smtp_from, [to], msg.as_string())
        logger.info("Письмо отправлено: To=%s Subject=%s", to, subject)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Ошибка отправки письма To=%s: %s", to, e)
        raise


async def send_email(to: str, subject: str, body: str) -> None:
    await asyncio.get_running_loop().run_in_executor(None, _send_sync, to, subject, body)


def _download_link(photo: Photo) -> str:
    if not photo.storage_key:
        return photo.original_url
    return minio_service.get_file_url(
        photo.storage_key,
        expires=timedelta(hours=settings.delivery_link_expire_hours),
    )


async def delivery_links(db: AsyncSession, order: Order) -> list[tuple[str, str]]:
    """(имя файла, ссылка) для всех фото, выбранных клиентом в галерее заказа."""
    result = await db.execute(
        select(Photo)
        .join(ClientSelection, ClientSelection.photo_id == Photo.id)
        .where(
            ClientSelection.gallery_id == order.gallery_id,
            ClientSelection.client_id == order.client_id,
        )
        .order_by(Photo.upload_order.asc())
    )
    return [(p.filename, _download_link(p)) for p in result.scalars().all()]


async def send_delivery_email(db: AsyncSession, order: Order) -> None:
    client = await db.get(Client, order.client_id)
    gallery = await db.get(Gallery, order.gallery_id)
    if not client or not gallery:
        logger.warning("Delivery email skipped, order=%s has no client or gallery", order.id)
        return
    links = await delivery_links(db, order)
    lines = "\n".join(f"{name}: {url}" for name, url in links)
    subject = f"Twoje zdjęcia: {gallery.title}"
    body = (
        f"Dziękujemy za płatność {order.total_amount} {settings.p24_currency}.\n\n"
        f"Linki do pobrania (ważne {settings.delivery_link_expire_hours} h):\n\n{lines}\n"
    )
    await send_email(client.email, subject, body)
