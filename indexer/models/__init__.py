# Database models package

from .address import AddressBalance
from .block import Block
from .transaction import Transaction, TransactionOutput

__all__ = ["Block", "Transaction", "TransactionOutput", "AddressBalance"]
