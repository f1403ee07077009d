"""Database base configuration"""
from sqlalchemy import create_engine, event
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from issuerelay.config import settings

Base = declarative_base()


def make_engine(database_url: str):
    """Create an engine; SQLite connections are switched to WAL so reads never block writers."""
    is_sqlite = database_url.startswith("sqlite")
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )
    if is_sqlite and ":memory:" not in database_url and database_url != "sqlite://":

        @event.listens_for(engine, "connect")
        def _sqlite_wal(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL")
            finally:
                cursor.close()

    return engine


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Create the link tables if they do not exist yet (safe to call on every startup)."""
    # Ensure all models are imported so SQLAlchemy metadata is populated.
    import issuerelay.models  # noqa: F401  (import for side-effects)

    Base.metadata.create_all(bind=bind or engine)
