"""Database configuration and initialization."""
from sqlalchemy import create_engine, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT keys; SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer(), 'sqlite')

# Global session and engine
engine = None
session_factory = None
db_session = None


def engine_options(database_uri, echo=False, pool_size=10, max_overflow=20):
    """Keyword arguments for ``create_engine`` on ``database_uri``."""
    options = {'echo': echo, 'pool_pre_ping': True}
    if database_uri.startswith('sqlite'):
        # Import rows run on worker threads, each with its own session
        options['connect_args'] = {'check_same_thread': False}
    else:
        options.update(pool_size=pool_size, max_overflow=max_overflow)
    return options


def init_engine(database_uri, echo=False, pool_size=10, max_overflow=20):
    """Create the engine and session registry for ``database_uri``."""
    global engine, session_factory, db_session

    engine = create_engine(database_uri, **engine_options(database_uri, echo, pool_size, max_overflow))
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db_session = scoped_session(session_factory)

    Base.query = db_session.query_property()
    return engine


def init_db(app):
    """Initialize database connection."""
    pool_size = app.config.get('DB_POOL_SIZE', 10)
    max_overflow = app.config.get('DB_MAX_OVERFLOW', 20)
    # one connection stays with the request that started the import
    if app.config.get('IMPORT_MAX_WORKERS', 1) >= pool_size + max_overflow:
        raise ValueError('IMPORT_MAX_WORKERS must be below DB_POOL_SIZE + DB_MAX_OVERFLOW')

    init_engine(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False),
        pool_size=pool_size,
        max_overflow=max_overflow,
    )

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if db_session is None:
            return
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table registered on ``Base``."""
    import dealerdesk.models  # noqa: F401  (register mappers)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table registered on ``Base``."""
    import dealerdesk.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


def get_session_factory():
    """Get the plain session factory (one independent session per call)."""
    return session_factory
