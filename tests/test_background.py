"""
Тесты для фоновой проверки целостности
"""

import asyncio
import unittest
from unittest.mock import patch

from sqlalchemy.orm import sessionmaker

from indexer import background
from indexer.config import settings
from indexer.services.ledger_service import get_ledger_service
from tests.helpers import make_block, make_sqlite_engine, make_tx


class TestBackgroundTasks(unittest.TestCase):
    """Тесты для background задач"""

    def setUp(self):
        engine = make_sqlite_engine()
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        patcher = patch.object(background, "SessionLocal", self.SessionLocal)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_run_integrity_check(self):
        db = self.SessionLocal()
        try:
            service = get_ledger_service(db)
            service.process_block(make_block(1, make_tx("tx1", [("addr1", 10)])))
        finally:
            db.close()

        result = background.run_integrity_check()
        self.assertTrue(result["is_valid"])
        self.assertEqual(result["current_height"], 1)

    def test_disabled_check_not_started(self):
        async def scenario():
            with patch.object(settings, "INTEGRITY_CHECK_ENABLED", False):
                await background.start_background_tasks()
                self.assertIsNone(background._integrity_task)
                await background.stop_background_tasks()

        asyncio.run(scenario())

    def test_start_and_stop(self):
        async def scenario():
            with patch.object(settings, "INTEGRITY_CHECK_INTERVAL", 3600):
                await background.start_background_tasks()
                self.assertIsNotNone(background._integrity_task)
                await asyncio.sleep(0.1)
                await background.stop_background_tasks()
                self.assertIsNone(background._integrity_task)

        asyncio.run(scenario())

    def test_issues_logged_as_warning(self):
        async def scenario():
            with patch.object(
                background,
                "run_integrity_check",
                return_value={"is_valid": False, "issues": ["x"], "current_height": 0},
            ):
                background._running = True
                task = asyncio.create_task(background.periodic_integrity_task(3600))
                await asyncio.sleep(0.1)
                background._running = False
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        with self.assertLogs("indexer.background", level="WARNING") as logs:
            asyncio.run(scenario())
        self.assertTrue(any("проблемы целостности" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
