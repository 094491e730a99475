import logging
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from creditledger.core.config import get_settings


class Base(DeclarativeBase):
    pass


settings = get_settings()
logger = logging.getLogger(__name__)


def _is_sqlite_file(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:")


def _begin_immediate(engine: Engine) -> None:
    # SQLite ignores FOR UPDATE. Taking the write lock at BEGIN serializes
    # ledger writers the way the account row lock does on Postgres.
    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs) -> Engine:
    url = make_url(database_url)
    backend = url.get_backend_name()
    lock_timeout_ms = int(settings.db_lock_timeout_ms)

    if backend == "sqlite":
        kwargs.setdefault(
            "connect_args",
            {"check_same_thread": False, "timeout": lock_timeout_ms / 1000},
        )
    elif backend == "postgresql":
        # Publishes and edits wait on the account row lock; a stuck holder
        # should fail the request rather than hang it.
        kwargs.setdefault("connect_args", {"options": f"-c lock_timeout={lock_timeout_ms}"})
        kwargs.setdefault("pool_pre_ping", settings.db_pool_pre_ping)
        kwargs.setdefault("pool_recycle", settings.db_pool_recycle)
        kwargs.setdefault("pool_size", settings.db_pool_size)
        kwargs.setdefault("max_overflow", settings.db_max_overflow)
        kwargs.setdefault("pool_timeout", settings.db_pool_timeout)

    engine = create_engine(url, **kwargs)
    if _is_sqlite_file(url):
        _begin_immediate(engine)
    logger.info("Database engine ready: backend=%s lock_timeout_ms=%s", backend, lock_timeout_ms)
    return engine


engine = build_engine(str(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
