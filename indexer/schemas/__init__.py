# Pydantic schemas package

from .balance import BalanceResponse
from .block import (
    Block,
    ProcessBlockResponse,
    Transaction,
    TransactionInput,
    TransactionOutput,
)
from .ledger import ErrorDetail, IntegrityReport, LedgerStatus, RollbackResponse

__all__ = [
    # Block schemas
    "Block",
    "Transaction",
    "TransactionInput",
    "TransactionOutput",
    "ProcessBlockResponse",
    # Balance schemas
    "BalanceResponse",
    # Ledger schemas
    "RollbackResponse",
    "LedgerStatus",
    "IntegrityReport",
    "ErrorDetail",
]
