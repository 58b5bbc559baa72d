"""
Ledger store: engine, session factory and transaction helpers
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.orm.exc import StaleDataError
from .config import settings
from .exceptions import ConcurrentModification


def _use_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def build_engine(url: str, echo: bool = False):
    """Engine for the ledger; local SQLite files run in WAL mode"""
    is_sqlite = url.startswith("sqlite")
    ledger_engine = create_engine(
        url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        pool_pre_ping=True,
        echo=echo
    )
    if is_sqlite:
        event.listen(ledger_engine, "connect", _use_wal)
    return ledger_engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# One session per request, committed explicitly by the services
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _stale_to_conflict(db, operation):
    try:
        operation()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentModification("Order was changed by another writer, reload and retry") from e


def flush_or_conflict(db):
    """Flush, turning a stale version check into a ledger error"""
    _stale_to_conflict(db, db.flush)


def commit_or_conflict(db):
    """Commit, turning a stale version check into a ledger error"""
    _stale_to_conflict(db, db.commit)
