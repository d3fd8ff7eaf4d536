from typing import List, Optional

from pydantic import PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Storage backend: "memory" (embedded, per-process) or "database" (SQLAlchemy)
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: Optional[str] = None
    AUTO_CREATE_TABLES: bool = False

    # Evidence image storage (uploads are disabled when these are unset)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    STORAGE_BUCKET: str = "report-images"
    MAX_UPLOAD_SIZE_BYTES: int = 5 * 1024 * 1024

    # --- Reward System Configuration ---
    POINTS_WASTE: PositiveInt = 10
    POINTS_FLOOD: PositiveInt = 15
    POINTS_ELECTRICITY: PositiveInt = 12

    # Identity
    ADMIN_EMAILS: List[str] = []
    BLOCK_DISPOSABLE_EMAILS: bool = True
    # Every worker must share JWT_SECRET to accept each other's session tokens
    JWT_SECRET: str = "dev-secret-change"
    SESSION_TTL_MINUTES: PositiveInt = 24 * 60
    PASSWORD_HASH_ITERATIONS: PositiveInt = 260_000

    LOG_LEVEL: str = "INFO"

    # Pydantic v2 config to read from .env file
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def points_table(self) -> dict:
        return {
            "waste": self.POINTS_WASTE,
            "flood": self.POINTS_FLOOD,
            "electricity": self.POINTS_ELECTRICITY,
        }

# Instantiate as a singleton to be imported across the app
settings = Settings()
