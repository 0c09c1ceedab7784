"""
Хранилище леджера на SQLAlchemy
"""

import logging
import threading
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from indexer.config import settings
from indexer.models.address import AddressBalance
from indexer.models.block import Block
from indexer.models.transaction import Transaction, TransactionOutput
from indexer.store.base import (
    LedgerConflictError,
    LedgerStore,
    LedgerStoreError,
    StoredBlock,
    StoredOutput,
)

logger = logging.getLogger(__name__)

# Ключ advisory-блокировки леджера в PostgreSQL
LEDGER_ADVISORY_LOCK_KEY = 7_310_001

# Блокировки процесса по URL базы данных
_ledger_locks: Dict[str, threading.Lock] = {}
_ledger_locks_guard = threading.Lock()


def _ledger_lock_for(url: str) -> threading.Lock:
    with _ledger_locks_guard:
        if url not in _ledger_locks:
            _ledger_locks[url] = threading.Lock()
        return _ledger_locks[url]


def _translate_errors(func: Callable) -> Callable:
    """Преобразование ошибок SQLAlchemy в ошибки хранилища"""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError as e:
            raise LedgerConflictError(
                f"Конфликт уникальности в {func.__name__}: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            raise LedgerStoreError(f"Ошибка БД в {func.__name__}: {e}") from e

    return wrapper


def _to_stored(output: TransactionOutput) -> StoredOutput:
    return StoredOutput(
        txid=output.txid,
        index=output.n,
        address=output.address,
        value=output.value,
        block_height=output.block_height,
        spent=bool(output.spent),
        spent_by=output.spent_by_txid,
        spent_in_block_height=output.spent_in_block_height,
    )


class SqlLedgerStore(LedgerStore):
    """Хранилище леджера поверх сессии SQLAlchemy"""

    def __init__(self, db: Session, lock_timeout: Optional[float] = None):
        self.db = db
        self.lock_timeout = (
            settings.LEDGER_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        )
        self._lock = _ledger_lock_for(str(db.get_bind().url))

    @contextmanager
    def atomic(self) -> Iterator["SqlLedgerStore"]:
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise LedgerStoreError(
                f"Не удалось получить блокировку леджера за {self.lock_timeout}с"
            )
        try:
            try:
                # Завершаем транзакцию, неявно открытую предыдущими чтениями
                if self.db.in_transaction():
                    self.db.commit()
                self._lock_database()
                yield self
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise LedgerConflictError(f"Конфликт при фиксации: {e.orig}") from e
            except SQLAlchemyError as e:
                self.db.rollback()
                raise LedgerStoreError(f"Ошибка фиксации единицы работы: {e}") from e
            except BaseException:
                self.db.rollback()
                raise
        finally:
            self._lock.release()

    def _lock_database(self) -> None:
        """Блокировка леджера на уровне транзакции БД"""
        if self.db.get_bind().dialect.name == "postgresql":
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": LEDGER_ADVISORY_LOCK_KEY},
            )

    def _get_output(self, txid: str, index: int) -> Optional[TransactionOutput]:
        return (
            self.db.query(TransactionOutput)
            .filter(TransactionOutput.txid == txid, TransactionOutput.n == index)
            .first()
        )

    # Чтение

    @_translate_errors
    def get_current_height(self) -> int:
        height = self.db.query(func.max(Block.height)).scalar()
        return height or 0

    @_translate_errors
    def resolve_input(self, txid: str, index: int) -> Optional[StoredOutput]:
        output = self._get_output(txid, index)
        return _to_stored(output) if output else None

    @_translate_errors
    def transaction_exists(self, txid: str) -> bool:
        return (
            self.db.query(Transaction.id).filter(Transaction.txid == txid).first()
            is not None
        )

    @_translate_errors
    def get_balance(self, address: str) -> int:
        balance = (
            self.db.query(AddressBalance.balance)
            .filter(AddressBalance.address == address)
            .scalar()
        )
        return balance or 0

    # Применение блока

    @_translate_errors
    def insert_block(self, block_id: str, height: int, n_tx: int) -> None:
        self.db.add(Block(hash=block_id, height=height, n_tx=n_tx))
        self.db.flush()

    @_translate_errors
    def insert_transaction(
        self, txid: str, block_id: str, height: int, position: int
    ) -> None:
        self.db.add(
            Transaction(
                txid=txid, block_hash=block_id, block_height=height, position=position
            )
        )
        self.db.flush()

    @_translate_errors
    def insert_output(
        self, txid: str, index: int, address: str, value: int, height: int
    ) -> StoredOutput:
        transaction_id = (
            self.db.query(Transaction.id).filter(Transaction.txid == txid).scalar()
        )
        if transaction_id is None:
            raise LedgerConflictError(f"Транзакция {txid} не сохранена")

        output = TransactionOutput(
            transaction_id=transaction_id,
            txid=txid,
            n=index,
            address=address,
            value=value,
            block_height=height,
            spent=False,
        )
        self.db.add(output)
        self.db.flush()
        return _to_stored(output)

    @_translate_errors
    def mark_output_spent(
        self, txid: str, index: int, spender_txid: str, height: int
    ) -> StoredOutput:
        output = self._get_output(txid, index)
        if output is None:
            raise LedgerConflictError(f"Выход {txid}:{index} не найден")

        # Условная запись: второй претендент на выход не обновит ни одной строки
        result = self.db.execute(
            update(TransactionOutput)
            .where(
                TransactionOutput.txid == txid,
                TransactionOutput.n == index,
                TransactionOutput.spent.is_(False),
            )
            .values(
                spent=True,
                spent_by_txid=spender_txid,
                spent_in_block_height=height,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise LedgerConflictError(f"Выход {txid}:{index} уже потрачен")

        return _to_stored(output)

    @_translate_errors
    def adjust_balance(self, address: str, delta: int, height: int) -> None:
        row = (
            self.db.query(AddressBalance)
            .filter(AddressBalance.address == address)
            .first()
        )
        if row is None:
            row = AddressBalance(address=address, balance=0, last_updated_height=height)
            self.db.add(row)

        row.balance = (row.balance or 0) + delta
        row.last_updated_height = height
        self.db.flush()

    # Откат

    @_translate_errors
    def blocks_above(self, height: int) -> List[StoredBlock]:
        blocks = (
            self.db.query(Block)
            .filter(Block.height > height)
            .order_by(Block.height.desc())
            .all()
        )
        return [StoredBlock(block_id=block.hash, height=block.height) for block in blocks]

    @_translate_errors
    def outputs_created_above(self, height: int) -> List[StoredOutput]:
        outputs = (
            self.db.query(TransactionOutput)
            .filter(TransactionOutput.block_height > height)
            .order_by(TransactionOutput.id)
            .all()
        )
        return [_to_stored(output) for output in outputs]

    @_translate_errors
    def outputs_spent_above(self, height: int) -> List[StoredOutput]:
        outputs = (
            self.db.query(TransactionOutput)
            .filter(
                TransactionOutput.spent.is_(True),
                TransactionOutput.spent_in_block_height > height,
            )
            .order_by(TransactionOutput.id)
            .all()
        )
        return [_to_stored(output) for output in outputs]

    @_translate_errors
    def unspend_output(self, txid: str, index: int) -> None:
        self.db.execute(
            update(TransactionOutput)
            .where(TransactionOutput.txid == txid, TransactionOutput.n == index)
            .values(spent=False, spent_by_txid=None, spent_in_block_height=None)
            .execution_options(synchronize_session="fetch")
        )

    @_translate_errors
    def delete_blocks_above(self, height: int) -> int:
        # Удаляем явно в порядке зависимостей, не полагаясь на каскад СУБД
        doomed_transactions = select(Transaction.id).where(
            Transaction.block_height > height
        )
        self.db.query(TransactionOutput).filter(
            TransactionOutput.transaction_id.in_(doomed_transactions)
        ).delete(synchronize_session=False)
        self.db.query(Transaction).filter(Transaction.block_height > height).delete(
            synchronize_session=False
        )
        deleted = (
            self.db.query(Block)
            .filter(Block.height > height)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        # Удаленные строки не должны оставаться в identity map сессии
        self.db.expunge_all()
        return deleted

    @_translate_errors
    def recompute_balances(
        self, addresses: Iterable[str], height: int
    ) -> Dict[str, int]:
        recomputed = {}
        for address in sorted(set(addresses)):
            output_count = (
                self.db.query(func.count(TransactionOutput.id))
                .filter(TransactionOutput.address == address)
                .scalar()
            )
            unspent_sum = (
                self.db.query(func.coalesce(func.sum(TransactionOutput.value), 0))
                .filter(
                    TransactionOutput.address == address,
                    TransactionOutput.spent.is_(False),
                )
                .scalar()
            )

            row = (
                self.db.query(AddressBalance)
                .filter(AddressBalance.address == address)
                .first()
            )
            if output_count == 0:
                if row is not None:
                    self.db.delete(row)
                recomputed[address] = 0
                continue

            if row is None:
                row = AddressBalance(address=address, last_updated_height=height)
                self.db.add(row)
            row.balance = int(unspent_sum)
            row.last_updated_height = height
            recomputed[address] = int(unspent_sum)

        self.db.flush()
        return recomputed

    # Аудит

    @_translate_errors
    def list_heights(self) -> List[int]:
        return [
            height
            for (height,) in self.db.query(Block.height).order_by(Block.height).all()
        ]

    @_translate_errors
    def stored_balances(self) -> Dict[str, int]:
        rows = self.db.query(AddressBalance.address, AddressBalance.balance).all()
        return {address: balance for address, balance in rows}

    @_translate_errors
    def derived_balances(self) -> Dict[str, int]:
        rows = (
            self.db.query(TransactionOutput.address, func.sum(TransactionOutput.value))
            .filter(TransactionOutput.spent.is_(False))
            .group_by(TransactionOutput.address)
            .all()
        )
        return {address: int(total) for address, total in rows}

    @_translate_errors
    def dangling_spends(self) -> List[StoredOutput]:
        known_txids = select(Transaction.txid)
        spent_by_missing = (
            self.db.query(TransactionOutput)
            .filter(
                TransactionOutput.spent.is_(True),
                (TransactionOutput.spent_by_txid.is_(None))
                | (~TransactionOutput.spent_by_txid.in_(known_txids)),
            )
            .all()
        )
        unspent_with_spender = (
            self.db.query(TransactionOutput)
            .filter(
                TransactionOutput.spent.is_(False),
                TransactionOutput.spent_by_txid.isnot(None),
            )
            .all()
        )
        return [_to_stored(output) for output in spent_by_missing + unspent_with_spender]
