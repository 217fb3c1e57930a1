"""Фотограф по JWT внешнего identity provider. Пароли и сессии здесь не хранятся."""
from uuid import UUID

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from photodesk.config import settings
from photodesk.models import Photographer


def decode_jwt(token: str) -> dict | None:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.PyJWTError:
        return None


async def get_or_create_photographer(db: AsyncSession, claims: dict) -> Photographer | None:
    """Первый запрос фотографа создаёт запись из claims токена (sub, email, name)."""
    try:
        photographer_id = UUID(str(claims.get("sub")))
    except ValueError:
        return None
    photographer = await db.get(Photographer, photographer_id)
    if photographer:
        return photographer
    email = (claims.get("email") or "").lower().strip()
    if not email:
        return None
    photographer = Photographer(
        id=photographer_id,
        email=email,
        name=claims.get("name") or email.split("@")[0],
        business_name=claims.get("business_name"),
    )
    db.add(photographer)
    await db.flush()
    return photographer
