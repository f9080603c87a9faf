"""Database engine configuration."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from mathtutor.core.config import settings
from mathtutor.db.instrumentation import instrument_engine


def _enable_sqlite_transactions(engine: Engine) -> None:
    """Make pysqlite honour foreign keys and SAVEPOINTs.

    The driver's own transaction handling defers BEGIN and breaks nested
    transactions, so BEGIN is emitted explicitly instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str | None = None) -> Engine:
    """Create SQLAlchemy engine."""
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False}, echo=False)
        _enable_sqlite_transactions(engine)
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=5,
            max_overflow=10,
            echo=False,
        )

    instrument_engine(engine)
    return engine


# Global engine instance
engine = create_db_engine()
