"""Configuration module for Flask application."""
import os
import tempfile
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'dealerdesk')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'dealerdesk')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'dealerdesk')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Stock Configuration - single warehouse location handled by the core
    STOCK_LOCATION = os.getenv('STOCK_LOCATION', 'TRU')
    DEFAULT_UNIT_NAME = os.getenv('DEFAULT_UNIT_NAME', 'PCS')

    # Product import (spreadsheet) batching
    IMPORT_BATCH_SIZE = int(os.getenv('IMPORT_BATCH_SIZE', '50'))
    IMPORT_MAX_WORKERS = int(os.getenv('IMPORT_MAX_WORKERS', '8'))

    # Connection pool; every import worker holds one connection while the request holds another
    DB_POOL_SIZE = int(os.getenv('DB_POOL_SIZE', '10'))
    DB_MAX_OVERFLOW = int(os.getenv('DB_MAX_OVERFLOW', '20'))

    # Upload constraints
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', 5 * 1024 * 1024))  # 5MB
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE
    ALLOWED_IMPORT_EXTENSIONS = {'xlsx'}  # openpyxl reads .xlsx only


class TestingConfig(Config):
    """Configuration used by the test-suite (SQLite, sequential imports)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'TEST_DATABASE_URL',
        f"sqlite:///{os.path.join(tempfile.gettempdir(), 'dealerdesk-test.db')}"
    )
    SQLALCHEMY_ECHO = False
    # SQLite serializes writers; keep row operations on one worker thread
    IMPORT_MAX_WORKERS = 1
