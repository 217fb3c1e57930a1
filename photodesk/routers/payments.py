"""Przelewy24: уведомление о транзакции (urlStatus) и статус заказа для страницы возврата.

Ответ шлюзу не раскрывает причину отказа: детали только в логе."""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.database import get_db
from photodesk.errors import GatewayUnavailable, InvalidSignature, OrderNotFound, StorageError
from photodesk.schemas import OrderStatusResponse
from photodesk.services.order_service import get_order_by_session_id
from photodesk.services.payment_callback_service import handle_callback

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["payments"])


@router.post("/payments/p24/status")
async def p24_status(request: Request, db: AsyncSession = Depends(get_db)):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if not isinstance(payload, dict):
        _log.warning("P24 notification rejected: body is not a JSON object")
        return JSONResponse(status_code=400, content={"error": "invalid request"})
    try:
        result = await handle_callback(db, payload)
    except InvalidSignature:
        return JSONResponse(status_code=400, content={"error": "invalid request"})
    except OrderNotFound:
        return JSONResponse(status_code=404, content={"error": "not found"})
    except GatewayUnavailable:
        _log.warning("P24 verification unavailable, session=%s left pending", payload.get("sessionId"))
        return JSONResponse(status_code=503, content={"error": "try again later"})
    except StorageError:
        # get_db коммитит после обычного ответа, сессию откатываем здесь
        await db.rollback()
        _log.warning("P24 notification not saved, session=%s left pending", payload.get("sessionId"))
        return JSONResponse(status_code=503, content={"error": "try again later"})
    if not result.accepted:
        return JSONResponse(status_code=400, content={"error": "payment not confirmed"})
    return {"status": "OK"}


@router.get("/orders/{session_id}", response_model=OrderStatusResponse)
async def get_order_status(session_id: str, db: AsyncSession = Depends(get_db)):
    """Страница возврата опрашивает статус: он меняется асинхронно после уведомления шлюза."""
    order = await get_order_by_session_id(db, session_id)
    if not order:
        raise HTTPException(status_code=404, detail="Nie znaleziono zamówienia")
    return order
