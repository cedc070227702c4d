from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_sync.config import Settings, settings


class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url


def build_engine(config: Settings) -> Engine:
    """Create an engine for ``config.DATABASE_URL`` with the statement timeout applied."""
    url = config.DATABASE_URL
    kwargs = {}
    connect_args = {}

    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # sqlite3 busy timeout is in seconds
        connect_args["timeout"] = config.STATEMENT_TIMEOUT_MS / 1000
        if _is_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
    elif url.startswith("postgresql"):
        timeout = config.STATEMENT_TIMEOUT_MS
        connect_args["options"] = f"-c statement_timeout={timeout} -c lock_timeout={timeout}"

    engine = create_engine(url, connect_args=connect_args, **kwargs)

    if url.startswith("sqlite"):
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_sqlite_transaction)

    return engine


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Take over BEGIN from pysqlite so a SELECT already runs inside the transaction.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def _begin_sqlite_transaction(conn):
    # Writers ask for IMMEDIATE so they queue on the busy timeout instead of
    # failing when another writer commits between their read and their write.
    mode = conn.get_execution_options().get("sqlite_begin")
    conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")


WRITE_TRANSACTION = {"sqlite_begin": "IMMEDIATE"}


engine = build_engine(settings)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None):
    # Import all models so Base.metadata knows about them
    import inventory_sync.models.inventory_log  # noqa: F401
    import inventory_sync.models.product  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
