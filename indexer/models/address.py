"""
SQLAlchemy модель для балансов адресов
"""

from sqlalchemy import BigInteger, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from indexer.database import Base


class AddressBalance(Base):
    """
    Материализованный баланс адреса

    Кэш: всегда равен сумме непотраченных выходов адреса
    """

    __tablename__ = "address_balances"

    id = Column(Integer, primary_key=True, index=True)
    address = Column(String(255), unique=True, nullable=False, index=True)
    balance = Column(BigInteger, nullable=False, default=0)
    last_updated_height = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<AddressBalance(address='{self.address}', balance={self.balance})>"
