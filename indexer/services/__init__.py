# Business logic services package

from indexer.services.applier import BlockApplier
from indexer.services.integrity import compute_block_id, verify_block_id
from indexer.services.ledger_service import (
    LedgerService,
    LedgerServiceError,
    get_ledger_service,
)
from indexer.services.results import (
    ProcessBlockResult,
    Rejection,
    RejectionReason,
    Result,
    RollbackResult,
    ValidationOutcome,
)
from indexer.services.rollback_service import RollbackService
from indexer.services.validator import InputResolution, LedgerValidator, resolve_inputs

__all__ = [
    "BlockApplier",
    "compute_block_id",
    "verify_block_id",
    "LedgerService",
    "LedgerServiceError",
    "get_ledger_service",
    "ProcessBlockResult",
    "Rejection",
    "RejectionReason",
    "Result",
    "RollbackResult",
    "ValidationOutcome",
    "RollbackService",
    "InputResolution",
    "LedgerValidator",
    "resolve_inputs",
]
