"""
Pydantic схемы для балансов адресов
"""

from pydantic import BaseModel, Field


class BalanceResponse(BaseModel):
    """Баланс адреса"""

    address: str
    balance: int = Field(..., description="Сумма непотраченных выходов")
