"""
API endpoints для состояния леджера
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from indexer.api.deps import get_service
from indexer.config import settings
from indexer.schemas.ledger import IntegrityReport, LedgerStatus
from indexer.services.ledger_service import LedgerService, LedgerServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.get("/status", response_model=LedgerStatus)
def get_ledger_status(service: LedgerService = Depends(get_service)):
    """Текущая высота леджера и лимит отката"""
    try:
        return LedgerStatus(
            current_height=service.get_current_height(),
            max_rollback_depth=service.rollback_service.max_depth,
        )
    except LedgerServiceError as e:
        logger.error(f"Ошибка получения статуса леджера: {e}")
        detail = str(e) if settings.DEBUG else "Внутренняя ошибка сервера"
        raise HTTPException(status_code=500, detail=detail)


@router.get("/validate", response_model=IntegrityReport)
def validate_ledger(service: LedgerService = Depends(get_service)):
    """
    Проверка целостности леджера

    Returns:
        Отчет: непрерывность высот, балансы, согласованность трат
    """
    try:
        return IntegrityReport(**service.validate_integrity())
    except LedgerServiceError as e:
        logger.error(f"Ошибка проверки целостности: {e}")
        detail = str(e) if settings.DEBUG else "Внутренняя ошибка сервера"
        raise HTTPException(status_code=500, detail=detail)
