from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from the environment and an optional .env file."""

    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = ""
    NEO4J_DATABASE: str = "neo4j"
    NEO4J_MAX_CONNECTION_POOL_SIZE: int = 10
    NEO4J_CONNECTION_TIMEOUT: float = 30.0
    # Workflows retry a failed transaction once themselves
    NEO4J_MAX_TRANSACTION_RETRY_TIME: float = 0.0

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = None
    TOKEN_DENYLIST_TTL_SECONDS: int = 15 * 60

    RELATIONSHIP_MIN_COMPLETION: int = 25

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
