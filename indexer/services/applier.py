"""
Применение принятого блока к хранилищу
"""

import logging

from indexer.schemas.block import Block
from indexer.store.base import LedgerStore

logger = logging.getLogger(__name__)


class BlockApplier:
    """
    Применение блока к выходам и балансам

    Вызывается только после успешной валидации и только внутри
    store.atomic(): при любой ошибке единица работы отбрасывается целиком.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    def apply(self, block: Block) -> None:
        self.store.insert_block(block.id, block.height, len(block.transactions))

        # Порядок транзакций важен: выход транзакции k тратится в k+1
        for position, tx in enumerate(block.transactions):
            self.store.insert_transaction(tx.id, block.id, block.height, position)

            for tx_input in tx.inputs:
                spent = self.store.mark_output_spent(
                    tx_input.tx_id, tx_input.index, tx.id, block.height
                )
                self.store.adjust_balance(spent.address, -spent.value, block.height)

            for index, output in enumerate(tx.outputs):
                self.store.insert_output(
                    tx.id, index, output.address, output.value, block.height
                )
                self.store.adjust_balance(output.address, output.value, block.height)

        logger.debug(
            f"Блок {block.height} применен: транзакций={len(block.transactions)}"
        )
