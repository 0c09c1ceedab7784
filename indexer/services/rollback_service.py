"""
Откат леджера к заданной высоте
"""

import logging
from typing import Dict, Optional, Set

from indexer.config import settings
from indexer.services.results import (
    Rejection,
    RejectionReason,
    Result,
    RollbackResult,
)
from indexer.store.base import LedgerStore

logger = logging.getLogger(__name__)


class RollbackService:
    """
    Откат блоков выше целевой высоты

    Проверки выполняются до любых изменений, сам откат - одна атомарная
    единица работы. Балансы затронутых адресов в конце пересчитываются
    из оставшихся выходов.
    """

    def __init__(self, store: LedgerStore, max_depth: Optional[int] = None):
        self.store = store
        self.max_depth = settings.MAX_ROLLBACK_DEPTH if max_depth is None else max_depth

    def check_preconditions(
        self, target_height: int, current_height: int
    ) -> Optional[Rejection]:
        """
        Проверка допустимости отката

        Args:
            target_height: Целевая высота
            current_height: Текущая высота леджера
        """
        if target_height < 0:
            return Rejection(
                RejectionReason.NEGATIVE_HEIGHT,
                f"Высота отката не может быть отрицательной: {target_height}",
                {"target_height": target_height},
            )

        if target_height >= current_height:
            return Rejection(
                RejectionReason.HEIGHT_NOT_IN_PAST,
                f"Нельзя откатиться к высоте {target_height}: "
                f"текущая высота {current_height}",
                {"target_height": target_height, "current_height": current_height},
            )

        depth = current_height - target_height
        if depth > self.max_depth:
            return Rejection(
                RejectionReason.DEPTH_EXCEEDED,
                f"Нельзя откатить больше {self.max_depth} блоков "
                f"(запрошено {depth})",
                {"depth": depth, "max_depth": self.max_depth},
            )

        return None

    def rollback_to(self, target_height: int) -> Result[RollbackResult]:
        """
        Откат леджера к высоте target_height

        Raises:
            LedgerStoreError: Если единица работы не была зафиксирована
        """
        if target_height < 0:
            return Result.failure(self.check_preconditions(target_height, 0))

        with self.store.atomic():
            current_height = self.store.get_current_height()
            rejection = self.check_preconditions(target_height, current_height)
            if rejection:
                return Result.failure(rejection)

            self._reverse_blocks_above(target_height)

        return Result.success(
            RollbackResult(target_height=target_height, previous_height=current_height)
        )

    def _reverse_blocks_above(self, target_height: int) -> None:
        store = self.store
        blocks = store.blocks_above(target_height)
        affected: Set[str] = set()

        # Выходы откатываемых блоков: непотраченные уходят из балансов
        for output in store.outputs_created_above(target_height):
            affected.add(output.address)
            if not output.spent:
                store.adjust_balance(output.address, -output.value, target_height)
            elif (
                output.spent_in_block_height is None
                or output.spent_in_block_height <= target_height
            ):
                logger.warning(
                    f"Выход {output.txid}:{output.index} потрачен вне диапазона отката "
                    f"(высота траты {output.spent_in_block_height})"
                )

        # Выходы ниже цели, потраченные откатываемыми транзакциями, снова свободны
        for output in store.outputs_spent_above(target_height):
            if output.block_height > target_height:
                continue
            affected.add(output.address)
            store.unspend_output(output.txid, output.index)
            store.adjust_balance(output.address, output.value, target_height)

        incremental: Dict[str, int] = {
            address: store.get_balance(address) for address in affected
        }

        deleted = store.delete_blocks_above(target_height)
        recomputed = store.recompute_balances(affected, target_height)

        drift = {
            address: (incremental.get(address, 0), value)
            for address, value in recomputed.items()
            if incremental.get(address, 0) != value
        }
        if drift:
            logger.warning(f"Расхождение инкрементальных балансов при откате: {drift}")

        logger.info(
            f"Откат к высоте {target_height}: удалено блоков={deleted} "
            f"(ожидалось {len(blocks)}), затронуто адресов={len(affected)}"
        )
