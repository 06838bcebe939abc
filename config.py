"""Configuration module for Flask application."""
import os
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    JSON_SORT_KEYS = False

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'compras')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'compras')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'compras')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    DB_POOL_SIZE = int(os.getenv('DB_POOL_SIZE', '10'))
    DB_MAX_OVERFLOW = int(os.getenv('DB_MAX_OVERFLOW', '20'))

    # Store retries for transient connectivity failures
    STORE_RETRY_ATTEMPTS = int(os.getenv('STORE_RETRY_ATTEMPTS', '3'))
    STORE_RETRY_BACKOFF = float(os.getenv('STORE_RETRY_BACKOFF', '1'))

    # Purchasing rules
    # IVA applied to every line's discounted subtotal
    TAX_RATE = Decimal(os.getenv('TAX_RATE', '0.12'))
    DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'GTQ')
    DEFAULT_PAYMENT_TERMS = os.getenv('DEFAULT_PAYMENT_TERMS', '30 días')
    DEFAULT_COUNTRY = os.getenv('DEFAULT_COUNTRY', 'Guatemala')

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestingConfig(Config):
    """Configuration used by the test suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    STORE_RETRY_BACKOFF = 0
    TAX_RATE = Decimal('0.12')
    SENTRY_DSN = None
