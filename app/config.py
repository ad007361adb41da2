from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    APP_NAME: str = "Prompt CRM"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database: individual fields; URLs are built dynamically
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "prompt_crm"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    # Full URL override (e.g. sqlite+aiosqlite:///./prompt_crm.db for local runs)
    DATABASE_URL: str = ""
    # Create missing tables on startup; turn off when the schema is migrated externally
    DB_AUTO_CREATE: bool = True

    @property
    def database_url(self) -> str:
        """Async URL for SQLAlchemy (asyncpg driver unless overridden)."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # Storage: the public root holds uploads/<category>/<file>
    PUBLIC_ROOT: str = "./public"
    UPLOADS_DEFAULT_DIR: str = "uploads/images"

    # PDF export
    PDF_BODY_CHUNK_SIZE: int = 1000
    PDF_SAMPLE_CHUNK_SIZE: int = 500
    PDF_FONT_REGULAR: str = "Helvetica"
    PDF_FONT_BOLD: str = "Helvetica-Bold"
    PDF_FONT_ITALIC: str = "Helvetica-Oblique"
    PDF_FONT_MONO: str = "Courier"
    PDF_FONTS: str = ""  # Name=/path/to/font.ttf,Name-Bold=/path/to/bold.ttf
    PDF_MAX_ASSET_BYTES: int = 10 * 1024 * 1024
    PDF_GENERATION_TIMEOUT_SECONDS: float = 120.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def pdf_font_files(self) -> Dict[str, str]:
        fonts = {}
        for item in self.PDF_FONTS.split(","):
            name, sep, path = item.partition("=")
            if sep and name.strip() and path.strip():
                fonts[name.strip()] = path.strip()
        return fonts

    @property
    def uploads_root(self) -> Path:
        return Path(self.PUBLIC_ROOT) / "uploads"


settings = Settings()
