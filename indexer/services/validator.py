"""
Валидатор блоков леджера

Разрешает входы блока и проверяет правила: целостность ID, порядок высот,
разрешимость входов и сохранение стоимости. Хранилище только читается.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from indexer.schemas.block import Block
from indexer.services.integrity import compute_block_id, verify_block_id
from indexer.services.results import RejectionReason, ValidationOutcome
from indexer.store.base import LedgerStore

logger = logging.getLogger(__name__)

NOT_FOUND = "not found"
ALREADY_SPENT = "already spent"


@dataclass(frozen=True)
class InputFailure:
    """Вход, который не удалось разрешить"""

    spender_tx_id: str
    ref_tx_id: str
    index: int
    problem: str

    def describe(self) -> str:
        return (
            f"{self.spender_tx_id}: выход {self.ref_tx_id}:{self.index} "
            f"{self.problem}"
        )


@dataclass
class InputResolution:
    """Сводка разрешения всех входов блока"""

    all_inputs_resolvable: bool = True
    total_input_value: int = 0
    failures: List[InputFailure] = field(default_factory=list)


def resolve_inputs(block: Block, store: LedgerStore) -> InputResolution:
    """
    Разрешение входов блока по хранилищу и по выходам самого блока

    Транзакции обходятся в порядке блока: выход транзакции k доступен
    входам транзакции k+1. Повторная трата одного выхода внутри блока
    считается неразрешимой.

    Args:
        block: Проверяемый блок
        store: Хранилище леджера
    """
    resolution = InputResolution()
    pending_outputs: Dict[Tuple[str, int], int] = {}
    consumed: Set[Tuple[str, int]] = set()

    for tx in block.transactions:
        for tx_input in tx.inputs:
            key = (tx_input.tx_id, tx_input.index)

            if key in consumed:
                problem = ALREADY_SPENT
            elif key in pending_outputs:
                problem = None
                resolution.total_input_value += pending_outputs[key]
            else:
                stored = store.resolve_input(tx_input.tx_id, tx_input.index)
                if stored is None:
                    problem = NOT_FOUND
                elif stored.spent:
                    problem = ALREADY_SPENT
                else:
                    problem = None
                    resolution.total_input_value += stored.value

            if problem:
                resolution.all_inputs_resolvable = False
                resolution.failures.append(
                    InputFailure(tx.id, tx_input.tx_id, tx_input.index, problem)
                )
            consumed.add(key)

        for index, output in enumerate(tx.outputs):
            pending_outputs[(tx.id, index)] = output.value

    if not resolution.all_inputs_resolvable:
        # Стоимость неразрешимых входов не имеет смысла
        resolution.total_input_value = 0

    return resolution


def regular_output_value(block: Block) -> int:
    """Сумма выходов транзакций, имеющих хотя бы один вход"""
    return sum(
        output.value
        for tx in block.transactions
        if not tx.is_coinbase
        for output in tx.outputs
    )


class LedgerValidator:
    """Проверка блока перед применением"""

    def __init__(self, store: LedgerStore):
        self.store = store

    def validate(
        self, block: Block, current_height: int, resolution: InputResolution
    ) -> ValidationOutcome:
        """
        Проверка блока; первая проваленная проверка определяет причину

        Args:
            block: Проверяемый блок
            current_height: Текущая высота леджера
            resolution: Результат resolve_inputs для этого блока
        """
        if not verify_block_id(block):
            expected_id = compute_block_id(block.height, block.transaction_ids)
            return ValidationOutcome.reject(
                RejectionReason.INVALID_BLOCK_ID,
                f"ID блока {block.id} не совпадает с ожидаемым {expected_id}",
                expected=expected_id,
                actual=block.id,
            )

        expected_height = current_height + 1
        if block.height != expected_height:
            return ValidationOutcome.reject(
                RejectionReason.INVALID_HEIGHT,
                f"Неверная высота блока: ожидается {expected_height}, "
                f"получено {block.height}",
                expected=expected_height,
                actual=block.height,
            )

        if not resolution.all_inputs_resolvable:
            problems = "; ".join(f.describe() for f in resolution.failures)
            return ValidationOutcome.reject(
                RejectionReason.INVALID_INPUTS,
                f"Входы ссылаются на несуществующие или потраченные выходы: {problems}",
                failures=[
                    {
                        "transaction": f.spender_tx_id,
                        "txId": f.ref_tx_id,
                        "index": f.index,
                        "problem": f.problem,
                    }
                    for f in resolution.failures
                ],
            )

        # Coinbase-транзакции исключены из баланса: их выходы - новая эмиссия
        output_value = regular_output_value(block)
        if resolution.total_input_value != output_value:
            return ValidationOutcome.reject(
                RejectionReason.INVALID_BALANCE,
                f"Сумма входов ({resolution.total_input_value}) не равна "
                f"сумме выходов ({output_value})",
                input_value=resolution.total_input_value,
                output_value=output_value,
            )

        duplicates = self._duplicate_transaction_ids(block)
        if duplicates:
            return ValidationOutcome.reject(
                RejectionReason.DUPLICATE_TRANSACTION,
                f"Транзакции уже существуют: {', '.join(duplicates)}",
                transactions=duplicates,
            )

        logger.debug(f"Блок {block.height} прошел валидацию")
        return ValidationOutcome.accept()

    def _duplicate_transaction_ids(self, block: Block) -> List[str]:
        seen: Set[str] = set()
        duplicates: List[str] = []
        for txid in block.transaction_ids:
            if txid in seen or self.store.transaction_exists(txid):
                if txid not in duplicates:
                    duplicates.append(txid)
            seen.add(txid)
        return duplicates
