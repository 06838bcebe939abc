"""Database configuration and initialization."""
import logging
import time
from functools import wraps

from flask import current_app, has_app_context
from sqlalchemy import BigInteger, Integer, create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from erpcompras.exceptions import StoreError

logger = logging.getLogger(__name__)

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER primary keys
BigIntegerPK = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        # Single shared connection so an in-memory database survives across sessions
        options.update(
            poolclass=StaticPool,
            connect_args={'check_same_thread': False},
        )
    else:
        options.update(
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=app.config.get('DB_POOL_SIZE', 10),
            max_overflow=app.config.get('DB_MAX_OVERFLOW', 20),
        )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    if db_session is not None:
        db_session.remove()
    if engine is not None:
        engine.dispose()

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(database_uri, **_engine_options(app))

    if engine.dialect.name == 'sqlite':
        @event.listens_for(engine, 'connect')
        def _enable_sqlite_fk(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_tables():
    """Create every mapped table that does not exist yet."""
    # Import models so they are registered on Base.metadata
    import erpcompras.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop every mapped table."""
    import erpcompras.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


def _retry_settings(retries, backoff):
    if has_app_context():
        if retries is None:
            retries = current_app.config.get('STORE_RETRY_ATTEMPTS', 3)
        if backoff is None:
            backoff = current_app.config.get('STORE_RETRY_BACKOFF', 1)
    return (retries if retries is not None else 3,
            backoff if backoff is not None else 1)


def execute_with_retry(operation, retries=None, backoff=None):
    """
    Run a read-only store operation, retrying transient connectivity errors.

    Only StoreError flagged as transient is retried; anything else is raised
    immediately. Waits backoff * attempt seconds between attempts.

    Args:
        operation: zero-argument callable
        retries: maximum attempts (defaults to STORE_RETRY_ATTEMPTS)
        backoff: base delay in seconds (defaults to STORE_RETRY_BACKOFF)
    """
    retries, backoff = _retry_settings(retries, backoff)

    for attempt in range(1, retries + 1):
        try:
            return operation()
        except StoreError as e:
            if not e.transient:
                raise
            logger.warning(f"Store error (attempt {attempt}/{retries}): {e.message}")
            if attempt == retries:
                logger.error("Store retries exhausted")
                raise StoreError(
                    'Base de datos temporalmente no disponible. Intente nuevamente.',
                    transient=True
                ) from e
            time.sleep(backoff * attempt)


def retry_transaction(func):
    """
    Re-run a whole transactional sequence on a transient store failure.

    The wrapped function must own its transaction (begin, commit and
    rollback on failure), so every retry starts from a clean session.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        return execute_with_retry(lambda: func(*args, **kwargs))
    return wrapper
