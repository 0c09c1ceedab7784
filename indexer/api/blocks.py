"""
API endpoints для приема блоков
"""

from fastapi import APIRouter, Depends

from indexer.api.deps import get_service, rejection_response
from indexer.schemas.block import Block, ProcessBlockResponse
from indexer.services.ledger_service import LedgerService

router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.post("", response_model=ProcessBlockResponse, status_code=201)
def process_block(block: Block, service: LedgerService = Depends(get_service)):
    """
    Валидация и применение нового блока

    Returns:
        ID и высота принятого блока; 400 с кодом причины при отклонении
    """
    result = service.process_block(block)
    if not result.ok:
        return rejection_response(result.error)

    return ProcessBlockResponse(
        message="Блок обработан",
        block_id=result.value.block_id,
        height=result.value.height,
    )
