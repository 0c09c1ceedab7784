"""
Background задачи сервиса леджера
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from indexer.config import settings
from indexer.database import SessionLocal, init_db
from indexer.services.ledger_service import get_ledger_service

logger = logging.getLogger(__name__)

# Глобальные переменные для управления задачами
_integrity_task: Optional[asyncio.Task] = None
_running = False


def run_integrity_check() -> dict:
    """Одна проверка целостности на отдельной сессии БД"""
    db = SessionLocal()
    try:
        return get_ledger_service(db).validate_integrity()
    finally:
        db.close()


async def periodic_integrity_task(interval: int = 3600) -> None:
    """
    Периодическая проверка целостности леджера

    Args:
        interval: Интервал между проверками в секундах (по умолчанию 1 час)
    """
    global _running

    logger.info(
        f"Запущена периодическая проверка леджера с интервалом {interval}с "
        f"({interval//60} мин)"
    )

    while _running:
        try:
            # Проверка блокирует леджер, поэтому уходит в поток
            result = await asyncio.to_thread(run_integrity_check)
            if not result["is_valid"]:
                logger.warning(
                    f"Обнаружены проблемы целостности леджера: {result['issues']}"
                )
            else:
                logger.info(
                    f"Проверка леджера успешна, высота {result['current_height']}"
                )
        except Exception as e:
            logger.error(f"Ошибка в периодической проверке леджера: {e}")

        # Ждем до следующей итерации
        await asyncio.sleep(interval)

    logger.info("Периодическая проверка леджера остановлена")


async def start_background_tasks() -> None:
    """Запуск фоновых задач"""
    global _integrity_task, _running

    if _integrity_task is not None:
        logger.warning("Background задачи уже запущены")
        return

    if not settings.INTEGRITY_CHECK_ENABLED:
        logger.info("Периодическая проверка леджера отключена")
        return

    _running = True
    _integrity_task = asyncio.create_task(
        periodic_integrity_task(interval=settings.INTEGRITY_CHECK_INTERVAL)
    )

    logger.info("Background задачи запущены")


async def stop_background_tasks() -> None:
    """Остановка фоновых задач"""
    global _integrity_task, _running

    if _integrity_task is None:
        return

    _running = False

    logger.info("Останавливаем background задачи...")

    try:
        if not _integrity_task.done():
            _integrity_task.cancel()
            try:
                await _integrity_task
            except asyncio.CancelledError:
                logger.info("Background задачи отменены")

    except Exception as e:
        logger.error(f"Ошибка при остановке background задач: {e}")

    finally:
        _integrity_task = None
        logger.info("Background задачи остановлены")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Контекстный менеджер жизненного цикла приложения

    Создает таблицы леджера и запускает background задачи при старте,
    останавливает их при завершении
    """
    # Startup
    logger.info("Запуск приложения...")

    try:
        init_db()
        await start_background_tasks()
        logger.info("Приложение запущено успешно")

        yield

    finally:
        # Shutdown
        logger.info("Остановка приложения...")
        await stop_background_tasks()
        logger.info("Приложение остановлено")
