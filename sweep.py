"""Помечает failed заказы, по которым Przelewy24 так и не прислал уведомление. Запуск по cron: python sweep.py."""
import asyncio
import logging

from photodesk.database import AsyncSessionLocal, engine
from photodesk.services.order_service import expire_stale_orders

logger = logging.getLogger("photodesk.sweep")


async def main() -> int:
    async with AsyncSessionLocal() as session:
        count = await expire_stale_orders(session)
        await session.commit()
    await engine.dispose()
    return count


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")
    logger.info("Expired orders: %s", asyncio.run(main()))
