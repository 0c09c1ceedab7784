"""
Pydantic схемы для блоков и транзакций

Эти модели проверяют форму данных на границе сервиса и служат
типизированной моделью значений для ядра леджера.
"""

from typing import List

from pydantic import BaseModel, Field


class TransactionOutput(BaseModel):
    """Выход транзакции"""

    address: str = Field(..., min_length=1, description="Адрес получателя")
    value: int = Field(..., gt=0, description="Сумма в минимальных единицах")

    class Config:
        from_attributes = True


class TransactionInput(BaseModel):
    """Вход транзакции: ссылка на ранее созданный выход"""

    tx_id: str = Field(..., alias="txId", min_length=1, description="ID транзакции")
    index: int = Field(..., ge=0, description="Индекс выхода в транзакции")

    class Config:
        populate_by_name = True


class Transaction(BaseModel):
    """Транзакция"""

    id: str = Field(..., min_length=1, description="ID транзакции")
    inputs: List[TransactionInput] = Field(default_factory=list)
    outputs: List[TransactionOutput] = Field(default_factory=list)

    @property
    def is_coinbase(self) -> bool:
        """Транзакция без входов создает новую стоимость"""
        return len(self.inputs) == 0


class Block(BaseModel):
    """Блок, отправляемый на обработку"""

    id: str = Field(..., min_length=1, description="Hash блока")
    height: int = Field(..., ge=1, description="Высота блока")
    transactions: List[Transaction] = Field(default_factory=list)

    @property
    def transaction_ids(self) -> List[str]:
        return [tx.id for tx in self.transactions]


class ProcessBlockResponse(BaseModel):
    """Ответ на успешную обработку блока"""

    message: str
    block_id: str = Field(..., alias="blockId")
    height: int

    class Config:
        populate_by_name = True
