"""Przelewy24 REST API v1: подписи, регистрация и проверка транзакции.

Подпись: SHA-384 (hex) от компактного JSON с полем crc в конце, порядок полей задан протоколом."""
import hashlib
import hmac
import json
import logging

import httpx

from photodesk.config import settings

_log = logging.getLogger(__name__)


class P24Error(Exception):
    """Шлюз ответил ошибкой или непонятным ответом. detail: сырой ответ."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


def _sign(fields: dict) -> str:
    payload = json.dumps({**fields, "crc": settings.p24_crc_key}, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha384(payload.encode("utf-8")).hexdigest()


def registration_sign(session_id: str, amount: int, currency: str) -> str:
    return _sign({
        "sessionId": session_id,
        "merchantId": settings.p24_merchant_id,
        "amount": amount,
        "currency": currency,
    })


def notification_sign(notification: dict) -> str:
    # P24 присылает все поля; отсутствующее поле подписывается как null
    return _sign({
        "merchantId": notification.get("merchantId"),
        "posId": notification.get("posId"),
        "sessionId": notification.get("sessionId"),
        "amount": notification.get("amount"),
        "originAmount": notification.get("originAmount"),
        "currency": notification.get("currency"),
        "orderId": notification.get("orderId"),
        "methodId": notification.get("methodId"),
        "statement": notification.get("statement"),
    })


def verification_sign(session_id: str, order_id: int, amount: int, currency: str) -> str:
    return _sign({
        "sessionId": session_id,
        "orderId": order_id,
        "amount": amount,
        "currency": currency,
    })


def is_valid_notification(notification: dict) -> bool:
    sign = notification.get("sign")
    if not isinstance(sign, str) or not sign:
        return False
    return hmac.compare_digest(sign, notification_sign(notification))


def payment_url(token: str) -> str:
    return f"{settings.p24_base_url}/trnRequest/{token}"


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.p24_base_url,
        auth=(str(settings.p24_pos_id), settings.p24_api_key),
        timeout=settings.p24_timeout_seconds,
    )


def build_registration(
    session_id: str,
    amount: int,
    description: str,
    email: str,
    client_name: str,
) -> dict:
    return {
        "merchantId": settings.p24_merchant_id,
        "posId": settings.p24_pos_id,
        "sessionId": session_id,
        "amount": amount,
        "currency": settings.p24_currency,
        "description": description,
        "email": email,
        "client": client_name,
        "country": settings.p24_country,
        "language": settings.p24_language,
        "urlReturn": settings.p24_return_url(session_id),
        "urlStatus": settings.p24_status_url,
        "timeLimit": settings.p24_time_limit_minutes,
        "channel": settings.p24_channel,
        "encoding": "UTF-8",
        "sign": registration_sign(session_id, amount, settings.p24_currency),
    }


async def register_transaction(registration: dict) -> str:
    """Регистрирует транзакцию, возвращает токен для страницы оплаты."""
    try:
        async with _client() as client:
            r = await client.post("/api/v1/transaction/register", json=registration)
    except httpx.HTTPError as e:
        _log.warning("p24 register failed: session=%s error=%s", registration.get("sessionId"), e)
        raise P24Error("gateway_unreachable", detail=str(e)) from e
    if not r.is_success:
        raise P24Error(f"gateway_status_{r.status_code}", detail=r.text)
    try:
        token = (r.json().get("data") or {}).get("token")
    except (ValueError, AttributeError):
        raise P24Error("gateway_malformed_response", detail=r.text)
    if not token:
        raise P24Error("gateway_missing_token", detail=r.text)
    return token


async def verify_transaction(session_id: str, order_id: int, amount: int, currency: str) -> bool:
    """Серверная проверка транзакции нашими учётными данными. True только при data.status == success.
    Недоступность шлюза не ответ о платеже: P24Error, решение остаётся за вызывающим."""
    body = {
        "merchantId": settings.p24_merchant_id,
        "posId": settings.p24_pos_id,
        "sessionId": session_id,
        "amount": amount,
        "currency": currency,
        "orderId": order_id,
        "sign": verification_sign(session_id, order_id, amount, currency),
    }
    try:
        async with _client() as client:
            r = await client.put("/api/v1/transaction/verify", json=body)
    except httpx.HTTPError as e:
        _log.warning("p24 verify failed: session=%s error=%s", session_id, e)
        raise P24Error("gateway_unreachable", detail=str(e)) from e
    if not r.is_success:
        _log.warning("p24 verify rejected: session=%s status=%s body=%s", session_id, r.status_code, r.text)
        return False
    try:
        status = (r.json().get("data") or {}).get("status")
    except (ValueError, AttributeError):
        _log.warning("p24 verify malformed response: session=%s body=%s", session_id, r.text)
        return False
    return status == "success"
