"""
Тесты для валидатора блоков и разрешения входов
"""

import unittest
from unittest.mock import MagicMock

from indexer.services.applier import BlockApplier
from indexer.services.results import RejectionReason
from indexer.services.validator import (
    ALREADY_SPENT,
    NOT_FOUND,
    LedgerValidator,
    regular_output_value,
    resolve_inputs,
)
from tests.helpers import make_block, make_memory_store, make_tx


class TestResolveInputs(unittest.TestCase):
    """Тесты для resolve_inputs"""

    def setUp(self):
        self.store = make_memory_store()
        genesis = make_block(1, make_tx("tx1", [("addr1", 10), ("addr2", 5)]))
        with self.store.atomic():
            BlockApplier(self.store).apply(genesis)

    def test_resolves_stored_outputs(self):
        block = make_block(
            2, make_tx("tx2", [("addr3", 15)], inputs=[("tx1", 0), ("tx1", 1)])
        )
        resolution = resolve_inputs(block, self.store)
        self.assertTrue(resolution.all_inputs_resolvable)
        self.assertEqual(resolution.total_input_value, 15)
        self.assertEqual(resolution.failures, [])

    def test_missing_output(self):
        block = make_block(2, make_tx("tx2", [("addr3", 1)], inputs=[("nope", 0)]))
        resolution = resolve_inputs(block, self.store)
        self.assertFalse(resolution.all_inputs_resolvable)
        self.assertEqual(resolution.total_input_value, 0)
        self.assertEqual(resolution.failures[0].problem, NOT_FOUND)

    def test_missing_index(self):
        block = make_block(2, make_tx("tx2", [("addr3", 1)], inputs=[("tx1", 2)]))
        resolution = resolve_inputs(block, self.store)
        self.assertEqual(resolution.failures[0].problem, NOT_FOUND)

    def test_spent_output(self):
        with self.store.atomic():
            self.store.insert_transaction("txs", "b", 1, 1)
            self.store.mark_output_spent("tx1", 0, "txs", 1)

        block = make_block(2, make_tx("tx2", [("addr3", 10)], inputs=[("tx1", 0)]))
        resolution = resolve_inputs(block, self.store)
        self.assertFalse(resolution.all_inputs_resolvable)
        self.assertEqual(resolution.failures[0].problem, ALREADY_SPENT)

    def test_intra_block_chaining(self):
        """Выход транзакции доступен следующим транзакциям того же блока"""
        block = make_block(
            2,
            make_tx("tx2", [("addr3", 10)], inputs=[("tx1", 0)]),
            make_tx("tx3", [("addr4", 10)], inputs=[("tx2", 0)]),
        )
        resolution = resolve_inputs(block, self.store)
        self.assertTrue(resolution.all_inputs_resolvable)
        self.assertEqual(resolution.total_input_value, 20)

    def test_forward_reference_is_not_found(self):
        """Ссылка на выход более поздней транзакции блока не разрешается"""
        block = make_block(
            2,
            make_tx("tx3", [("addr4", 10)], inputs=[("tx2", 0)]),
            make_tx("tx2", [("addr3", 10)], inputs=[("tx1", 0)]),
        )
        resolution = resolve_inputs(block, self.store)
        self.assertFalse(resolution.all_inputs_resolvable)
        self.assertEqual(resolution.failures[0].ref_tx_id, "tx2")
        self.assertEqual(resolution.failures[0].problem, NOT_FOUND)

    def test_double_spend_inside_block(self):
        block = make_block(
            2,
            make_tx("tx2", [("addr3", 10)], inputs=[("tx1", 0)]),
            make_tx("tx3", [("addr4", 10)], inputs=[("tx1", 0)]),
        )
        resolution = resolve_inputs(block, self.store)
        self.assertFalse(resolution.all_inputs_resolvable)
        self.assertEqual(len(resolution.failures), 1)
        self.assertEqual(resolution.failures[0].spender_tx_id, "tx3")
        self.assertEqual(resolution.failures[0].problem, ALREADY_SPENT)

    def test_resolution_does_not_mutate_store(self):
        store = MagicMock(wraps=self.store)
        block = make_block(2, make_tx("tx2", [("addr3", 10)], inputs=[("tx1", 0)]))
        resolve_inputs(block, store)
        store.mark_output_spent.assert_not_called()
        store.adjust_balance.assert_not_called()
        self.assertEqual(self.store.get_balance("addr1"), 10)


class TestLedgerValidator(unittest.TestCase):
    """Тесты для LedgerValidator.validate"""

    def setUp(self):
        self.store = make_memory_store()
        with self.store.atomic():
            BlockApplier(self.store).apply(
                make_block(1, make_tx("tx1", [("addr1", 10)]))
            )
        self.validator = LedgerValidator(self.store)

    def validate(self, block):
        return self.validator.validate(
            block, self.store.get_current_height(), resolve_inputs(block, self.store)
        )

    def test_accepts_valid_block(self):
        block = make_block(
            2, make_tx("tx2", [("addr2", 4), ("addr3", 6)], inputs=[("tx1", 0)])
        )
        outcome = self.validate(block)
        self.assertTrue(outcome.accepted)
        self.assertIsNone(outcome.rejection)

    def test_invalid_block_id(self):
        block = make_block(2, make_tx("tx2", [("addr2", 10)]), block_id="bad")
        outcome = self.validate(block)
        self.assertFalse(outcome.accepted)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_BLOCK_ID)
        self.assertEqual(outcome.rejection.details["actual"], "bad")

    def test_invalid_height(self):
        block = make_block(3, make_tx("tx2", [("addr2", 10)]))
        outcome = self.validate(block)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_HEIGHT)
        self.assertEqual(outcome.rejection.details["expected"], 2)
        self.assertEqual(outcome.rejection.details["actual"], 3)

    def test_invalid_inputs(self):
        block = make_block(2, make_tx("tx2", [("addr2", 10)], inputs=[("tx9", 0)]))
        outcome = self.validate(block)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_INPUTS)
        failure = outcome.rejection.details["failures"][0]
        self.assertEqual(failure["txId"], "tx9")
        self.assertEqual(failure["problem"], NOT_FOUND)

    def test_invalid_balance(self):
        block = make_block(2, make_tx("tx2", [("addr2", 11)], inputs=[("tx1", 0)]))
        outcome = self.validate(block)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_BALANCE)
        self.assertEqual(outcome.rejection.details["input_value"], 10)
        self.assertEqual(outcome.rejection.details["output_value"], 11)

    def test_check_order_block_id_first(self):
        """Неверный ID важнее неверной высоты и входов"""
        block = make_block(
            5, make_tx("tx2", [("addr2", 99)], inputs=[("tx9", 0)]), block_id="bad"
        )
        outcome = self.validate(block)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_BLOCK_ID)

    def test_check_order_height_before_inputs(self):
        block = make_block(5, make_tx("tx2", [("addr2", 99)], inputs=[("tx9", 0)]))
        outcome = self.validate(block)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_HEIGHT)

    def test_check_order_inputs_before_balance(self):
        block = make_block(2, make_tx("tx2", [("addr2", 99)], inputs=[("tx9", 0)]))
        outcome = self.validate(block)
        self.assertEqual(outcome.rejection.reason, RejectionReason.INVALID_INPUTS)

    def test_coinbase_outputs_excluded_from_balance(self):
        """Выходы coinbase не участвуют в сравнении сумм"""
        block = make_block(
            2,
            make_tx("cb2", [("miner", 50)]),
            make_tx("tx2", [("addr2", 10)], inputs=[("tx1", 0)]),
        )
        self.assertEqual(regular_output_value(block), 10)
        self.assertTrue(self.validate(block).accepted)

    def test_duplicate_transaction_in_ledger(self):
        block = make_block(2, make_tx("tx1", [("addr2", 1)]))
        outcome = self.validate(block)
        self.assertEqual(
            outcome.rejection.reason, RejectionReason.DUPLICATE_TRANSACTION
        )
        self.assertEqual(outcome.rejection.details["transactions"], ["tx1"])

    def test_duplicate_transaction_inside_block(self):
        block = make_block(
            2, make_tx("cb", [("addr2", 1)]), make_tx("cb", [("addr3", 1)])
        )
        outcome = self.validate(block)
        self.assertEqual(
            outcome.rejection.reason, RejectionReason.DUPLICATE_TRANSACTION
        )

    def test_rejection_to_dict(self):
        block = make_block(3, make_tx("tx2", [("addr2", 10)]))
        body = self.validate(block).rejection.to_dict()
        self.assertEqual(body["code"], "INVALID_HEIGHT")
        self.assertIn("message", body)
        self.assertIn("details", body)


if __name__ == "__main__":
    unittest.main()
