"""
API endpoints для балансов адресов
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from indexer.api.deps import get_service
from indexer.config import settings
from indexer.schemas.balance import BalanceResponse
from indexer.services.ledger_service import LedgerService, LedgerServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/balance", tags=["balance"])


@router.get("/{address}", response_model=BalanceResponse)
def get_balance(address: str, service: LedgerService = Depends(get_service)):
    """
    Получить баланс адреса

    Неизвестный адрес имеет нулевой баланс.
    """
    if not address.strip():
        raise HTTPException(status_code=400, detail="Адрес не может быть пустым")

    try:
        balance = service.get_balance(address)
    except LedgerServiceError as e:
        logger.error(f"Ошибка получения баланса {address}: {e}")
        detail = str(e) if settings.DEBUG else "Внутренняя ошибка сервера"
        raise HTTPException(status_code=500, detail=detail)

    return BalanceResponse(address=address, balance=balance)
