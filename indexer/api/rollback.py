"""
API endpoints для отката леджера
"""

from fastapi import APIRouter, Depends, Query

from indexer.api.deps import get_service, rejection_response
from indexer.schemas.ledger import RollbackResponse
from indexer.services.ledger_service import LedgerService

router = APIRouter(prefix="/rollback", tags=["rollback"])


@router.post("", response_model=RollbackResponse)
def rollback(
    height: int = Query(..., description="Целевая высота отката"),
    service: LedgerService = Depends(get_service),
):
    """
    Откат леджера к высоте height

    Блоки выше целевой высоты удаляются, потраченные ими выходы
    снова становятся непотраченными.
    """
    result = service.rollback_to(height)
    if not result.ok:
        return rejection_response(result.error)

    return RollbackResponse(
        message=f"Леджер откачен к высоте {result.value.target_height}",
        target_height=result.value.target_height,
        previous_height=result.value.previous_height,
    )
