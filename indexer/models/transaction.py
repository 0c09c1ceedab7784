"""
SQLAlchemy модели для транзакций и их выходов (UTXO)
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from indexer.database import Base


class Transaction(Base):
    """Модель транзакции"""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    txid = Column(String(255), unique=True, nullable=False, index=True)
    block_hash = Column(
        String(64), ForeignKey("blocks.hash", ondelete="CASCADE"), index=True
    )
    block_height = Column(Integer, nullable=False, index=True)
    position = Column(Integer, nullable=False)  # Порядковый номер в блоке
    created_at = Column(DateTime, default=func.now())

    # Связи
    block = relationship("Block", back_populates="transactions")
    outputs = relationship(
        "TransactionOutput", back_populates="transaction", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Transaction(txid='{self.txid[:12]}...', block_height={self.block_height})>"


class TransactionOutput(Base):
    """Модель выхода транзакции"""

    __tablename__ = "transaction_outputs"
    __table_args__ = (UniqueConstraint("txid", "n", name="uq_output_txid_n"),)

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    txid = Column(String(255), nullable=False, index=True)  # Денормализовано для поиска входов
    n = Column(Integer, nullable=False)  # Индекс выхода в транзакции
    address = Column(String(255), nullable=False, index=True)
    value = Column(BigInteger, nullable=False)
    block_height = Column(Integer, nullable=False, index=True)

    # Состояние траты
    spent = Column(Boolean, nullable=False, default=False, index=True)
    spent_by_txid = Column(String(255), index=True)  # Транзакция, потратившая выход
    spent_in_block_height = Column(Integer, index=True)

    # Связь с транзакцией
    transaction = relationship("Transaction", back_populates="outputs")

    def __repr__(self):
        return (
            f"<TransactionOutput(txid='{self.txid[:12]}', n={self.n}, "
            f"address='{self.address}', value={self.value}, spent={self.spent})>"
        )
