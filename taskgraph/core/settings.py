# taskgraph/core/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from pydantic import field_validator

class Settings(BaseSettings):
    """
    Основные переменные окружения и настройки приложения.
    Значения берутся из окружения или .env, у всех есть разумные дефолты.
    """
    # Snapshot persistence (best-effort, граф живёт в памяти)
    DATABASE_URL: str = "sqlite:///./taskgraph.db"
    PERSISTENCE_ENABLED: bool = False

    # Вложения
    UPLOAD_DIR: str = "uploads"

    # App meta
    LOG_LEVEL: str = "INFO"
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Авто-сплит строкового списка ALLOWED_ORIGINS из .env
    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return str(v).upper()

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

settings = Settings()
