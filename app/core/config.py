# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Dict
import secrets
from pathlib import Path
import logging
from functools import lru_cache

# Configure logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Application info
    PROJECT_NAME: str = "Contact Sync Ledger"
    API_V1_STR: str = "/api/v1"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "CRM field change ledger for integration sync"

    # Set base directory for data files
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LOGS_DIR: Path = BASE_DIR / "logs"
    ASSET_UPLOAD_DIR: Path = DATA_DIR / "assets"

    # Database connection settings
    DATABASE_URL: Optional[str] = None
    DB_FILE: str = "sync_ledger.db"
    DB_ECHO: bool = False  # Don't log SQL in production

    # Security settings
    SECRET_KEY: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day
    COOKIE_SECURE: bool = False  # True behind HTTPS

    # REST API
    API_BATCH_MAX_LIMIT: int = 200
    DEFAULT_PAGE_SIZE: int = 30
    MAX_PAGE_SIZE: int = 1000

    # Integration handlers registered at startup, name -> supported object types
    SYNC_INTEGRATIONS: Dict[str, List[str]] = {}

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    WORKERS: int = 4
    RELOAD: bool = False  # Set to True in development
    LOG_LEVEL: str = "info"

    # CORS settings
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # Debug options
    DEBUG: bool = False

    @property
    def get_data_dir(self) -> Path:
        """Ensure data directory exists and return it"""
        if not self.DATA_DIR.exists():
            self.DATA_DIR.mkdir(parents=True)
        return self.DATA_DIR

    @property
    def get_logs_dir(self) -> Path:
        """Ensure logs directory exists and return it"""
        if not self.LOGS_DIR.exists():
            self.LOGS_DIR.mkdir(parents=True)
        return self.LOGS_DIR

    @property
    def DB_PATH(self) -> Path:
        return self.get_data_dir / self.DB_FILE

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Build SQLAlchemy database URI, SQLite file unless DATABASE_URL is set"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.DB_PATH}"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        self.get_data_dir
        self.get_logs_dir
        # Ensure SECRET_KEY is initialized and persistent
        self._ensure_secret_key()

    def _ensure_secret_key(self):
        """Ensure a consistent SECRET_KEY exists, stored in a file"""
        if self.SECRET_KEY:
            logger.info("Using provided SECRET_KEY")
            return

        secret_key_path = self.DATA_DIR / "secret_key.txt"

        if secret_key_path.exists():
            try:
                self.SECRET_KEY = secret_key_path.read_text().strip()
                logger.info("Loaded SECRET_KEY from file")
                return
            except OSError as e:
                logger.error(f"Failed to read SECRET_KEY from file: {e}")

        # Generate a new key and save it
        self.SECRET_KEY = secrets.token_urlsafe(32)
        try:
            secret_key_path.write_text(self.SECRET_KEY)
            logger.info("Generated and saved new SECRET_KEY")
        except OSError as e:
            logger.error(f"Failed to save SECRET_KEY to file: {e}")
            # Continue with in-memory key even if file write fails

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=True,
        extra="ignore"
    )


# Cache the settings instance
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Create settings instance for import
settings = get_settings()
