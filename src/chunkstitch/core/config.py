"""Configuration management for chunkstitch."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "chunkstitch"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage Configuration
    TEMP_CHUNK_DIR: str = "./temp_chunks"  # Chunks awaiting assembly
    UPLOADS_DIR: str = "./uploads"  # Assembled files

    # Upload Constraints
    # Size cap for non-file form fields (fileName, additionalParams, ...).
    # The chunk file part spools to disk past Starlette's own 1MB threshold.
    MAX_MEMORY_MB: int = 32
    MAX_TOTAL_CHUNKS: int = 100_000  # Upper bound on totalChunks per upload
    AUTO_CLEANUP: bool = True  # Purge chunks and index entry after assembly

    # HTTP
    CORS_ALLOW_ORIGINS: str = "*"  # Comma-separated

    @property
    def max_memory_bytes(self) -> int:
        """Convert MAX_MEMORY_MB to bytes."""
        return self.MAX_MEMORY_MB * 1024 * 1024

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS_ALLOW_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ALLOW_ORIGINS.split(",") if origin.strip()]


# Singleton settings instance
settings = Settings()
