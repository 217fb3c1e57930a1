"""FastAPI app: галерея клиента, выбор фото, оплата Przelewy24, кабинет фотографа."""
import logging
import sys

from fastapi import FastAPI

# Логи приложения (отказы подписи, ошибки шлюза, письма) в stderr, видны в docker logs
_app_log = logging.getLogger("photodesk")
_app_log.setLevel(logging.INFO)
if not _app_log.handlers:
    _h = logging.StreamHandler(sys.stderr)
    _h.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    _app_log.addHandler(_h)
_app_log.propagate = False

from photodesk.routers import client_gallery, payments, photographer

app = FastAPI(title="Photodesk", description="Client photo selection and checkout API")

app.include_router(client_gallery.router)
app.include_router(payments.router)
app.include_router(photographer.router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "photodesk"}
