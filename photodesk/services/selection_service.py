"""Выбор фото клиентом: переключение (toggle) и сводка по пакету.

Переключение не читает состояние перед записью. Удаление условное (DELETE ... WHERE), а вставку
защищает уникальный ключ (photo_id, client_id): проигравший в гонке параллельный запрос
получает IntegrityError и принимает запись победителя вместо ошибки."""
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.errors import NotFound, StorageError
from photodesk.models import ClientSelection, Gallery
from photodesk.services.gallery_service import ensure_accepts_selections, get_gallery, get_photo_in_gallery
from photodesk.services.pricing import Totals, compute_totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionResult:
    photo_id: UUID
    selected: bool
    selected_for_package: bool = False
    is_additional_purchase: bool = False
    selection_id: UUID | None = None

    @classmethod
    def from_record(cls, record: ClientSelection) -> "SelectionResult":
        return cls(
            photo_id=record.photo_id,
            selected=True,
            selected_for_package=record.selected_for_package,
            is_additional_purchase=record.is_additional_purchase,
            selection_id=record.id,
        )


@dataclass(frozen=True)
class SelectionSummary:
    totals: Totals
    total_selections: int
    remaining_in_package: int


async def _count_package_selections(db: AsyncSession, gallery_id: UUID, client_id: UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(ClientSelection).where(
            ClientSelection.gallery_id == gallery_id,
            ClientSelection.client_id == client_id,
            ClientSelection.selected_for_package.is_(True),
        )
    )
    return result.scalar() or 0


async def _get_selection(db: AsyncSession, photo_id: UUID, client_id: UUID) -> ClientSelection | None:
    result = await db.execute(
        select(ClientSelection).where(
            ClientSelection.photo_id == photo_id,
            ClientSelection.client_id == client_id,
        )
    )
    return result.scalar_one_or_none()


async def _insert_or_adopt(
    db: AsyncSession,
    gallery: Gallery,
    photo_id: UUID,
    client_id: UUID,
) -> ClientSelection:
    """Вставляет выбор: в пакет, пока он не заполнен, иначе как дополнительную покупку.
    При конфликте уникального ключа возвращает уже существующую запись."""
    package_count = await _count_package_selections(db, gallery.id, client_id)
    for_package = package_count < gallery.package_photos_count
    selection = ClientSelection(
        photo_id=photo_id,
        gallery_id=gallery.id,
        client_id=client_id,
        selected_for_package=for_package,
        is_additional_purchase=not for_package,
    )
    try:
        async with db.begin_nested():
            db.add(selection)
    except IntegrityError:
        existing = await _get_selection(db, photo_id, client_id)
        if existing is None:
            raise
        logger.info(
            "Concurrent selection insert resolved: photo=%s client=%s adopted=%s",
            photo_id,
            client_id,
            existing.id,
        )
        return existing
    return selection


async def toggle_selection(
    db: AsyncSession,
    photo_id: UUID,
    gallery_id: UUID,
    client_id: UUID,
) -> SelectionResult:
    """Выбрано -> снять выбор, не выбрано -> выбрать. Возвращает итоговое состояние фото."""
    gallery = await get_gallery(db, gallery_id)
    if not gallery:
        raise NotFound("Nie znaleziono galerii")
    ensure_accepts_selections(gallery)
    if gallery.client_id != client_id:
        raise NotFound("Nie znaleziono klienta")
    try:
        photo = await get_photo_in_gallery(db, gallery_id, photo_id)
        if not photo:
            raise NotFound("Nie znaleziono zdjęcia")
        removed = await db.execute(
            delete(ClientSelection).where(
                ClientSelection.photo_id == photo_id,
                ClientSelection.client_id == client_id,
                ClientSelection.gallery_id == gallery_id,
            )
        )
        if removed.rowcount:
            logger.info("Selection removed: photo=%s client=%s", photo_id, client_id)
            return SelectionResult(photo_id=photo_id, selected=False)
        selection = await _insert_or_adopt(db, gallery, photo_id, client_id)
    except SQLAlchemyError as e:
        logger.error("Selection toggle failed: photo=%s client=%s error=%s", photo_id, client_id, e)
        raise StorageError("Nie udało się zapisać wyboru, spróbuj ponownie") from e
    logger.info(
        "Selection added: photo=%s client=%s package=%s",
        photo_id,
        client_id,
        selection.selected_for_package,
    )
    return SelectionResult.from_record(selection)


def _read_can_retry(db: AsyncSession, opens_transaction: bool) -> bool:
    # откат допустим, только если чтение открыло транзакцию и в сессии нет несохранённых изменений
    return opens_transaction and not (db.new or db.dirty or db.deleted)


async def list_selections(db: AsyncSession, gallery_id: UUID, client_id: UUID) -> list[ClientSelection]:
    """Чтение идемпотентно: при обрыве соединения повторяется один раз.

    Повтор откатывает сессию, поэтому выполняется только когда это чтение первое в транзакции.
    Если до него в запросе уже были записи, обрыв соединения их потерял: StorageError без повтора.
    После повтора ранее загруженные объекты сессии просрочены (expired) и перечитываются вызывающим."""
    query = (
        select(ClientSelection)
        .where(
            ClientSelection.gallery_id == gallery_id,
            ClientSelection.client_id == client_id,
        )
        .order_by(ClientSelection.created_at.asc())
    )
    opens_transaction = not db.in_transaction()
    try:
        result = await db.execute(query)
    except DBAPIError as e:
        if not (e.connection_invalidated and _read_can_retry(db, opens_transaction)):
            logger.error("Selection read failed: gallery=%s client=%s error=%s", gallery_id, client_id, e)
            raise StorageError("Błąd odczytu wyboru") from e
        logger.warning("Selection read lost connection, retrying once: gallery=%s", gallery_id)
        await db.rollback()
        try:
            result = await db.execute(query)
        except SQLAlchemyError as retry_error:
            logger.error("Selection read retry failed: gallery=%s error=%s", gallery_id, retry_error)
            raise StorageError("Błąd odczytu wyboru") from retry_error
    except SQLAlchemyError as e:
        raise StorageError("Błąd odczytu wyboru") from e
    return list(result.scalars().all())


def selection_summary(gallery: Gallery, selections: list[ClientSelection]) -> SelectionSummary:
    totals = compute_totals(selections, gallery.additional_photo_price)
    return SelectionSummary(
        totals=totals,
        total_selections=totals.package_count + totals.additional_count,
        remaining_in_package=max(0, gallery.package_photos_count - totals.package_count),
    )
