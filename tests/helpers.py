"""
Вспомогательные функции для тестов леджера
"""

from typing import Iterable, Sequence, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from indexer.database import init_db
from indexer.schemas.block import Block, Transaction, TransactionInput, TransactionOutput
from indexer.services.integrity import compute_block_id
from indexer.store.memory import InMemoryLedgerStore
from indexer.store.sql import SqlLedgerStore


def make_tx(
    txid: str,
    outputs: Sequence[Tuple[str, int]],
    inputs: Iterable[Tuple[str, int]] = (),
) -> Transaction:
    """Транзакция из списков (адрес, сумма) и (txid, индекс)"""
    return Transaction(
        id=txid,
        inputs=[TransactionInput(tx_id=t, index=i) for t, i in inputs],
        outputs=[TransactionOutput(address=a, value=v) for a, v in outputs],
    )


def make_block(height: int, *transactions: Transaction, block_id: str = None) -> Block:
    """Блок с корректным ID, если block_id не задан явно"""
    if block_id is None:
        block_id = compute_block_id(height, [tx.id for tx in transactions])
    return Block(id=block_id, height=height, transactions=list(transactions))


def block_payload(block: Block) -> dict:
    """JSON тело запроса POST /blocks"""
    return block.model_dump(by_alias=True)


def make_sqlite_engine():
    """Движок SQLite в памяти с созданной схемой леджера"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return engine


def make_sql_store(engine=None) -> SqlLedgerStore:
    engine = engine or make_sqlite_engine()
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    return SqlLedgerStore(session, lock_timeout=5)


def make_memory_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(lock_timeout=5)


class StoreFactoryMixin:
    """Каждый подкласс тестов выбирает реализацию хранилища"""

    def make_store(self):
        raise NotImplementedError


class MemoryStoreMixin(StoreFactoryMixin):
    def make_store(self):
        return make_memory_store()


class SqlStoreMixin(StoreFactoryMixin):
    def make_store(self):
        store = make_sql_store()
        self.addCleanup(store.db.close)
        return store
