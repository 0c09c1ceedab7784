"""
Главное FastAPI приложение UTXO Ledger Indexer
"""

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from indexer.api import balance, blocks, ledger, rollback
from indexer.api.deps import get_service
from indexer.background import lifespan
from indexer.config import settings
from indexer.services.ledger_service import LedgerService, LedgerServiceError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Создаем FastAPI приложение
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Индексатор UTXO леджера: прием блоков, балансы и откат",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# Настройка CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Подключение API роутеров
app.include_router(blocks.router, prefix=settings.API_V1_STR)
app.include_router(balance.router, prefix=settings.API_V1_STR)
app.include_router(rollback.router, prefix=settings.API_V1_STR)
app.include_router(ledger.router, prefix=settings.API_V1_STR)


@app.get("/health")
def health_check(service: LedgerService = Depends(get_service)):
    """Health check endpoint"""
    try:
        height = service.get_current_height()
    except LedgerServiceError as e:
        logger.error(f"Health check: леджер недоступен: {e}")
        return {"status": "degraded", "service": settings.PROJECT_NAME, "height": None}

    return {"status": "healthy", "service": settings.PROJECT_NAME, "height": height}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("indexer.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
