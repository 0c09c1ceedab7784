"""UTXO Ledger Indexer: валидация, применение и откат блоков"""

__version__ = "0.1.0"
