from __future__ import annotations
import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    EMBEDDING_PROVIDER: str = "local"  # "local" | "cohere"
    EMBEDDING_MODEL: str = "all-MiniLM-L6-v2"
    COHERE_API_KEY: str | None = None
    COHERE_MODEL: str = "embed-english-v3.0"
    COHERE_TIMEOUT: float = 10.0

    VECTOR_DB_ROOT: str = ".vector-db"
    DOCS_DIR: str = "docs"
    KNOWLEDGE_DIR: str = "context"

    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int | None = None  # unset: min(200, CHUNK_SIZE // 5)
    CHUNK_SEPARATOR: str = "\n\n"
    INDEX_BATCH_SIZE: int = 10

    DEFAULT_LIMIT: int = 20
    DEFAULT_SEMANTIC_WEIGHT: float = 0.7

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def vector_db_path(self, source: str) -> Path:
        """Snapshot location for one source: <root>/<source>/vectors.json"""
        return Path(self.VECTOR_DB_ROOT) / source / "vectors.json"


settings = Settings()


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure base logging for the CLI and the API server.
    """
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return logging.getLogger("kb_search")
