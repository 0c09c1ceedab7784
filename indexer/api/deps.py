"""
Общие зависимости и ответы API
"""

from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from indexer.config import settings
from indexer.database import get_db
from indexer.schemas.ledger import ErrorDetail
from indexer.services.ledger_service import LedgerService, get_ledger_service
from indexer.services.results import Rejection, RejectionReason


def get_service(db: Session = Depends(get_db)) -> LedgerService:
    """Сервис леджера для текущего запроса"""
    return get_ledger_service(db)


def rejection_response(rejection: Rejection) -> JSONResponse:
    """
    Преобразование отклонения в HTTP ответ

    Ошибки хранилища отдаются как 500, подробности скрываются вне DEBUG.
    Остальные отклонения - ошибки клиента (400).
    """
    if rejection.reason == RejectionReason.STORAGE_FAILURE:
        body = ErrorDetail(
            code=rejection.reason.value,
            message=rejection.message,
            details=rejection.details if settings.DEBUG else {},
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    body = ErrorDetail(**rejection.to_dict())
    return JSONResponse(status_code=400, content=body.model_dump())
