"""
Функции вычисления и проверки идентификатора блока
"""

import hashlib
from typing import Iterable

from indexer.schemas.block import Block


def compute_block_id(height: int, transaction_ids: Iterable[str]) -> str:
    """
    Вычисление канонического идентификатора блока

    Строка высоты и ID транзакций склеиваются без разделителей,
    от результата берется SHA-256 в hex.

    Args:
        height: Высота блока
        transaction_ids: ID транзакций в порядке следования в блоке
    """
    data = str(height) + "".join(transaction_ids)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def verify_block_id(block: Block) -> bool:
    """Проверка, что заявленный ID блока совпадает с вычисленным"""
    return block.id == compute_block_id(block.height, block.transaction_ids)
