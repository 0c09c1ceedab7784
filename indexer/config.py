"""
Конфигурация приложения UTXO Ledger Indexer
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Настройки приложения"""

    # Общие настройки
    PROJECT_NAME: str = "UTXO Ledger Indexer"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api"

    # База данных
    DATABASE_URL: str = "sqlite:///./ledger.db"

    # Леджер
    MAX_ROLLBACK_DEPTH: int = 2000  # максимальная глубина отката в блоках
    LEDGER_LOCK_TIMEOUT: float = 30.0  # секунды ожидания блокировки леджера

    # CORS настройки
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:8000"]

    # Логирование
    LOG_LEVEL: str = "INFO"

    # Периодическая проверка целостности
    INTEGRITY_CHECK_ENABLED: bool = True
    INTEGRITY_CHECK_INTERVAL: int = 3600  # секунды

    # Debug режим
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


# Глобальный экземпляр настроек
settings = Settings()
