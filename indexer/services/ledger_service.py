"""
Сервис леджера: обработка блоков, откат и балансы
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from indexer.database import get_db
from indexer.schemas.block import Block
from indexer.services.applier import BlockApplier
from indexer.services.results import (
    ProcessBlockResult,
    Rejection,
    RejectionReason,
    Result,
    RollbackResult,
)
from indexer.services.rollback_service import RollbackService
from indexer.services.validator import LedgerValidator, resolve_inputs
from indexer.store.base import LedgerConflictError, LedgerStore, LedgerStoreError
from indexer.store.sql import SqlLedgerStore

logger = logging.getLogger(__name__)


class LedgerServiceError(Exception):
    """Исключение для ошибок чтения состояния леджера"""

    pass


def _storage_failure(message: str, error: LedgerStoreError) -> Rejection:
    return Rejection(
        RejectionReason.STORAGE_FAILURE,
        message,
        {
            "error": str(error),
            "conflict": isinstance(error, LedgerConflictError),
        },
    )


class LedgerService:
    """Сервис леджера поверх внедренного хранилища"""

    def __init__(self, store: LedgerStore, max_rollback_depth: Optional[int] = None):
        self.store = store
        self.validator = LedgerValidator(store)
        self.applier = BlockApplier(store)
        self.rollback_service = RollbackService(store, max_depth=max_rollback_depth)

    def process_block(self, block: Block) -> Result[ProcessBlockResult]:
        """
        Валидация и применение блока в одной атомарной единице работы

        Args:
            block: Блок, прошедший проверку формы на границе

        Returns:
            Результат с ID и высотой блока либо отклонение
        """
        try:
            with self.store.atomic():
                current_height = self.store.get_current_height()
                resolution = resolve_inputs(block, self.store)
                outcome = self.validator.validate(block, current_height, resolution)

                if not outcome.accepted:
                    logger.warning(
                        f"Блок {block.height} отклонен: "
                        f"{outcome.rejection.reason.value}: {outcome.rejection.message}"
                    )
                    return Result.failure(outcome.rejection)

                self.applier.apply(block)

        except LedgerStoreError as e:
            logger.error(
                f"Ошибка хранилища при обработке блока {block.height} ({block.id}): {e}",
                exc_info=True,
            )
            return Result.failure(_storage_failure("Не удалось обработать блок", e))

        logger.info(
            f"Блок {block.height} принят: id={block.id}, "
            f"транзакций={len(block.transactions)}"
        )
        return Result.success(ProcessBlockResult(block_id=block.id, height=block.height))

    def rollback_to(self, target_height: int) -> Result[RollbackResult]:
        """
        Откат леджера к высоте target_height

        Args:
            target_height: Целевая высота (0 - пустой леджер)
        """
        try:
            result = self.rollback_service.rollback_to(target_height)
        except LedgerStoreError as e:
            logger.error(
                f"Ошибка хранилища при откате к высоте {target_height}: {e}",
                exc_info=True,
            )
            return Result.failure(_storage_failure("Не удалось выполнить откат", e))

        if not result.ok:
            logger.warning(
                f"Откат к высоте {target_height} отклонен: "
                f"{result.error.reason.value}: {result.error.message}"
            )
        else:
            logger.info(
                f"Откат выполнен: {result.value.previous_height} -> "
                f"{result.value.target_height}"
            )
        return result

    def get_balance(self, address: str) -> int:
        """Баланс адреса (0 для неизвестного адреса)"""
        try:
            return self.store.get_balance(address)
        except LedgerStoreError as e:
            logger.error(f"Ошибка получения баланса {address}: {e}")
            raise LedgerServiceError(f"Не удалось получить баланс: {e}")

    def get_current_height(self) -> int:
        """Текущая высота леджера"""
        try:
            return self.store.get_current_height()
        except LedgerStoreError as e:
            logger.error(f"Ошибка получения текущей высоты: {e}")
            raise LedgerServiceError(f"Не удалось получить высоту: {e}")

    def validate_integrity(self) -> Dict[str, Any]:
        """
        Проверка целостности леджера

        Проверяет непрерывность высот, совпадение материализованных
        балансов с суммами непотраченных выходов и отсутствие выходов,
        потраченных несуществующими транзакциями.

        Returns:
            Результат проверки
        """
        try:
            logger.info("Начинаем проверку целостности леджера")

            with self.store.atomic():
                heights = self.store.list_heights()
                stored = self.store.stored_balances()
                derived = self.store.derived_balances()
                dangling = self.store.dangling_spends()

            issues = []
            current_height = heights[-1] if heights else 0

            # Проверяем последовательность высот
            missing = sorted(set(range(1, current_height + 1)) - set(heights))
            for height in missing:
                issues.append(f"Пропущена высота блока: {height}")

            # Проверяем балансы
            addresses = sorted(set(stored) | set(derived))
            for address in addresses:
                if stored.get(address, 0) != derived.get(address, 0):
                    issues.append(
                        f"Баланс {address} не совпадает с выходами: "
                        f"сохранено {stored.get(address, 0)}, "
                        f"по выходам {derived.get(address, 0)}"
                    )

            # Проверяем состояние траты
            for output in dangling:
                issues.append(
                    f"Несогласованная трата выхода {output.txid}:{output.index} "
                    f"(spent={output.spent}, spent_by={output.spent_by})"
                )

            logger.info(
                f"Проверка завершена: высота={current_height}, "
                f"адресов={len(addresses)}, проблем={len(issues)}"
            )

            return {
                "is_valid": len(issues) == 0,
                "current_height": current_height,
                "checked_addresses": len(addresses),
                "issues": issues,
                "message": (
                    "Леджер валиден"
                    if len(issues) == 0
                    else f"Найдено {len(issues)} проблем"
                ),
            }

        except LedgerStoreError as e:
            logger.error(f"Ошибка проверки целостности леджера: {e}")
            raise LedgerServiceError(f"Ошибка проверки целостности: {e}")


def get_ledger_service(db: Session = None) -> LedgerService:
    """Получение экземпляра сервиса леджера поверх сессии БД"""
    if db is None:
        db = next(get_db())
    return LedgerService(SqlLedgerStore(db))
