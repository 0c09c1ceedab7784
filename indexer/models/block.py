"""
SQLAlchemy модель для блоков леджера
"""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from indexer.database import Base


class Block(Base):
    """Модель блока"""

    __tablename__ = "blocks"

    id = Column(Integer, primary_key=True, index=True)
    hash = Column(String(64), unique=True, nullable=False, index=True)
    height = Column(Integer, unique=True, nullable=False, index=True)
    n_tx = Column(Integer)  # Количество транзакций
    created_at = Column(DateTime, default=func.now())

    # Связь с транзакциями
    transactions = relationship("Transaction", back_populates="block")

    def __repr__(self):
        return f"<Block(height={self.height}, hash='{self.hash[:12]}...')>"
