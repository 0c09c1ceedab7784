"""
Pydantic схемы для операций над леджером
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class RollbackResponse(BaseModel):
    """Ответ на успешный откат"""

    message: str
    target_height: int = Field(..., alias="targetHeight")
    previous_height: int = Field(..., alias="previousHeight")

    class Config:
        populate_by_name = True


class LedgerStatus(BaseModel):
    """Текущее состояние леджера"""

    current_height: int = Field(..., alias="currentHeight")
    max_rollback_depth: int = Field(..., alias="maxRollbackDepth")

    class Config:
        populate_by_name = True


class IntegrityReport(BaseModel):
    """Результат проверки целостности леджера"""

    is_valid: bool
    current_height: int
    checked_addresses: int
    issues: List[str] = []
    message: str


class ErrorDetail(BaseModel):
    """Описание отклонения запроса"""

    code: str
    message: str
    details: Dict[str, Any] = {}
