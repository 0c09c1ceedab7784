"""
Хранилище леджера в памяти

Реализует тот же интерфейс, что и SqlLedgerStore; используется в тестах
и для локальных экспериментов без базы данных.
"""

import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from indexer.store.base import (
    LedgerConflictError,
    LedgerStore,
    LedgerStoreError,
    StoredBlock,
    StoredOutput,
)

OutputKey = Tuple[str, int]


class InMemoryLedgerStore(LedgerStore):
    """Хранилище леджера на словарях"""

    def __init__(self, lock_timeout: float = 30.0):
        self.lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._blocks: Dict[int, StoredBlock] = {}
        self._transactions: Dict[str, int] = {}  # txid -> высота блока
        self._outputs: Dict[OutputKey, StoredOutput] = {}
        self._balances: Dict[str, int] = {}

    @contextmanager
    def atomic(self) -> Iterator["InMemoryLedgerStore"]:
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise LedgerStoreError(
                f"Не удалось получить блокировку леджера за {self.lock_timeout}с"
            )
        snapshot = self._snapshot()
        try:
            yield self
        except BaseException:
            # Откатываем все изменения единицы работы
            self._restore(snapshot)
            raise
        finally:
            self._lock.release()

    def _snapshot(self):
        """Полная копия состояния; не предназначено для больших леджеров"""
        return copy.deepcopy(
            (self._blocks, self._transactions, self._outputs, self._balances)
        )

    def _restore(self, snapshot) -> None:
        self._blocks, self._transactions, self._outputs, self._balances = snapshot

    # Чтение

    def get_current_height(self) -> int:
        return max(self._blocks, default=0)

    def resolve_input(self, txid: str, index: int) -> Optional[StoredOutput]:
        output = self._outputs.get((txid, index))
        return replace(output) if output else None

    def transaction_exists(self, txid: str) -> bool:
        return txid in self._transactions

    def get_balance(self, address: str) -> int:
        return self._balances.get(address, 0)

    # Применение блока

    def insert_block(self, block_id: str, height: int, n_tx: int) -> None:
        if height in self._blocks:
            raise LedgerConflictError(f"Блок на высоте {height} уже существует")
        if any(block.block_id == block_id for block in self._blocks.values()):
            raise LedgerConflictError(f"Блок {block_id} уже существует")
        self._blocks[height] = StoredBlock(block_id=block_id, height=height)

    def insert_transaction(
        self, txid: str, block_id: str, height: int, position: int
    ) -> None:
        if txid in self._transactions:
            raise LedgerConflictError(f"Транзакция {txid} уже существует")
        self._transactions[txid] = height

    def insert_output(
        self, txid: str, index: int, address: str, value: int, height: int
    ) -> StoredOutput:
        if txid not in self._transactions:
            raise LedgerConflictError(f"Транзакция {txid} не сохранена")
        if (txid, index) in self._outputs:
            raise LedgerConflictError(f"Выход {txid}:{index} уже существует")

        output = StoredOutput(
            txid=txid, index=index, address=address, value=value, block_height=height
        )
        self._outputs[(txid, index)] = output
        return replace(output)

    def mark_output_spent(
        self, txid: str, index: int, spender_txid: str, height: int
    ) -> StoredOutput:
        output = self._outputs.get((txid, index))
        if output is None:
            raise LedgerConflictError(f"Выход {txid}:{index} не найден")
        if output.spent:
            raise LedgerConflictError(f"Выход {txid}:{index} уже потрачен")

        output.spent = True
        output.spent_by = spender_txid
        output.spent_in_block_height = height
        return replace(output)

    def adjust_balance(self, address: str, delta: int, height: int) -> None:
        self._balances[address] = self._balances.get(address, 0) + delta

    # Откат

    def blocks_above(self, height: int) -> List[StoredBlock]:
        return [
            self._blocks[h] for h in sorted(self._blocks, reverse=True) if h > height
        ]

    def outputs_created_above(self, height: int) -> List[StoredOutput]:
        return [
            replace(output)
            for output in self._outputs.values()
            if output.block_height > height
        ]

    def outputs_spent_above(self, height: int) -> List[StoredOutput]:
        return [
            replace(output)
            for output in self._outputs.values()
            if output.spent
            and output.spent_in_block_height is not None
            and output.spent_in_block_height > height
        ]

    def unspend_output(self, txid: str, index: int) -> None:
        output = self._outputs.get((txid, index))
        if output is not None:
            output.spent = False
            output.spent_by = None
            output.spent_in_block_height = None

    def delete_blocks_above(self, height: int) -> int:
        doomed = [h for h in self._blocks if h > height]
        for h in doomed:
            del self._blocks[h]
        self._transactions = {
            txid: h for txid, h in self._transactions.items() if h <= height
        }
        self._outputs = {
            key: output
            for key, output in self._outputs.items()
            if output.block_height <= height
        }
        return len(doomed)

    def recompute_balances(
        self, addresses: Iterable[str], height: int
    ) -> Dict[str, int]:
        recomputed = {}
        for address in sorted(set(addresses)):
            owned = [o for o in self._outputs.values() if o.address == address]
            if not owned:
                self._balances.pop(address, None)
                recomputed[address] = 0
                continue
            total = sum(o.value for o in owned if not o.spent)
            self._balances[address] = total
            recomputed[address] = total
        return recomputed

    # Аудит

    def list_heights(self) -> List[int]:
        return sorted(self._blocks)

    def stored_balances(self) -> Dict[str, int]:
        return dict(self._balances)

    def derived_balances(self) -> Dict[str, int]:
        derived: Dict[str, int] = {}
        for output in self._outputs.values():
            if not output.spent:
                derived[output.address] = derived.get(output.address, 0) + output.value
        return derived

    def dangling_spends(self) -> List[StoredOutput]:
        return [
            replace(output)
            for output in self._outputs.values()
            if (output.spent and output.spent_by not in self._transactions)
            or (not output.spent and output.spent_by is not None)
        ]
