import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator, field_validator
from typing import Optional

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DEFAULT_DB_URI = f'sqlite:///{os.path.join(BASE_DIR, "mediashelf.db")}'


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',  # Ignore extra fields from .env
    )

    # Security configuration
    SECRET_KEY: str

    # Database
    DATABASE_URL: str = DEFAULT_DB_URI
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}

    @model_validator(mode='after')
    def set_database_config(self) -> 'Config':
        """Set SQLALCHEMY_DATABASE_URI from DATABASE_URL and configure engine options"""
        self.SQLALCHEMY_DATABASE_URI = self.DATABASE_URL

        if 'mysql' in self.DATABASE_URL or 'mariadb' in self.DATABASE_URL:
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                'pool_size': 10,
                'pool_recycle': 3600,
                'pool_pre_ping': True,
                'max_overflow': 20,
                'connect_args': {
                    'charset': 'utf8mb4',
                }
            }

        return self

    # File upload
    MAX_CONTENT_LENGTH: int = 16 * 1024 * 1024  # 16MB max request size
    MAX_IMPORT_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB for CSV imports

    @field_validator('MAX_CONTENT_LENGTH', 'MAX_IMPORT_FILE_SIZE', mode='before')
    def _parse_byte_sizes(cls, v):
        """Allow sizes to be specified in .env with inline comments like '16777216  # 16MB in bytes'.
        Strip comments and whitespace before parsing to int.
        """
        if v is None:
            return v
        if isinstance(v, str):
            v = v.split('#', 1)[0].strip()
        try:
            return int(v)
        except (TypeError, ValueError):
            return 16 * 1024 * 1024

    # Covers are stored under UPLOAD_FOLDER/covers, CSV uploads are spooled
    # under UPLOAD_FOLDER/imports until the import finishes.
    UPLOAD_FOLDER: str = os.path.join(BASE_DIR, 'uploads')

    # Internationalization
    LANGUAGES: list = ['en']
    BABEL_DEFAULT_LOCALE: str = 'en'
    BABEL_DEFAULT_TIMEZONE: str = 'UTC'

    # Metadata lookup
    METADATA_CACHE_TTL: int = 24 * 60 * 60  # 24 hours
    METADATA_CACHE_MAX_ENTRIES: int = 1000
    ISBN_PROVIDER_TIMEOUT: float = 5.0
    LCCN_PROVIDER_TIMEOUT: float = 5.0
    GOOGLE_BOOKS_API_KEY: Optional[str] = None

    # Cover downloads
    COVER_DOWNLOAD_TIMEOUT: float = 10.0
    COVER_MAX_SIZE: int = 5 * 1024 * 1024  # 5MB
    # Some providers refuse requests carrying the default python-requests agent
    COVER_USER_AGENT: str = 'Mozilla/5.0 (compatible; MediaShelf/1.0)'

    # Optional operational cap on rows processed per import (None = no cap)
    IMPORT_MAX_ROWS: Optional[int] = None

    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_SAMESITE: str = 'Lax'
    PERMANENT_SESSION_LIFETIME: int = 3600  # 1 hour session timeout
