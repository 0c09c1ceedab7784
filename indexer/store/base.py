"""
Интерфейс хранилища выходов (UTXO) и балансов

Хранилище - единственный разделяемый изменяемый ресурс леджера.
Валидатор, применение блока и откат получают его через конструктор.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ContextManager, Dict, Iterable, List, Optional


class LedgerStoreError(Exception):
    """Инфраструктурная ошибка хранилища"""

    pass


class LedgerConflictError(LedgerStoreError):
    """Нарушение уникальности или проигранная гонка за выход/высоту"""

    pass


@dataclass
class StoredOutput:
    """Сохраненный выход транзакции"""

    txid: str
    index: int
    address: str
    value: int
    block_height: int
    spent: bool = False
    spent_by: Optional[str] = None
    spent_in_block_height: Optional[int] = None


@dataclass(frozen=True)
class StoredBlock:
    block_id: str
    height: int


class LedgerStore(ABC):
    """
    Хранилище леджера

    Все изменения выполняются внутри atomic(): либо единица работы
    фиксируется целиком, либо не остается ни одного ее следа.
    """

    @abstractmethod
    def atomic(self) -> ContextManager["LedgerStore"]:
        """
        Атомарная единица работы под блокировкой всего леджера

        Raises:
            LedgerStoreError: Если блокировку не удалось получить вовремя
                или фиксация не удалась
        """

    # Чтение

    @abstractmethod
    def get_current_height(self) -> int:
        """Высота последнего блока, 0 для пустого леджера"""

    @abstractmethod
    def resolve_input(self, txid: str, index: int) -> Optional[StoredOutput]:
        """Поиск выхода по ссылке входа, None если выход не существует"""

    @abstractmethod
    def transaction_exists(self, txid: str) -> bool:
        pass

    @abstractmethod
    def get_balance(self, address: str) -> int:
        """Материализованный баланс адреса, 0 для неизвестного адреса"""

    # Применение блока

    @abstractmethod
    def insert_block(self, block_id: str, height: int, n_tx: int) -> None:
        pass

    @abstractmethod
    def insert_transaction(
        self, txid: str, block_id: str, height: int, position: int
    ) -> None:
        pass

    @abstractmethod
    def insert_output(
        self, txid: str, index: int, address: str, value: int, height: int
    ) -> StoredOutput:
        pass

    @abstractmethod
    def mark_output_spent(
        self, txid: str, index: int, spender_txid: str, height: int
    ) -> StoredOutput:
        """
        Пометка выхода потраченным

        Raises:
            LedgerConflictError: Если выход не существует или уже потрачен
        """

    @abstractmethod
    def adjust_balance(self, address: str, delta: int, height: int) -> None:
        pass

    # Откат

    @abstractmethod
    def blocks_above(self, height: int) -> List[StoredBlock]:
        pass

    @abstractmethod
    def outputs_created_above(self, height: int) -> List[StoredOutput]:
        pass

    @abstractmethod
    def outputs_spent_above(self, height: int) -> List[StoredOutput]:
        """Выходы, потраченные транзакциями из блоков выше height"""

    @abstractmethod
    def unspend_output(self, txid: str, index: int) -> None:
        pass

    @abstractmethod
    def delete_blocks_above(self, height: int) -> int:
        """Удаление блоков выше height вместе с их транзакциями и выходами"""

    @abstractmethod
    def recompute_balances(
        self, addresses: Iterable[str], height: int
    ) -> Dict[str, int]:
        """
        Пересчет балансов из непотраченных выходов

        Строки адресов, у которых не осталось ни одного выхода, удаляются.

        Returns:
            Пересчитанные балансы по адресам
        """

    # Аудит

    @abstractmethod
    def list_heights(self) -> List[int]:
        pass

    @abstractmethod
    def stored_balances(self) -> Dict[str, int]:
        pass

    @abstractmethod
    def derived_balances(self) -> Dict[str, int]:
        """Суммы непотраченных выходов по адресам"""

    @abstractmethod
    def dangling_spends(self) -> List[StoredOutput]:
        """Выходы с несогласованным состоянием траты"""
