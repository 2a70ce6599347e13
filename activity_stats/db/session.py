# activity_stats/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from activity_stats.core.config import settings


def enable_sqlite_savepoints(bind):
    """
    Let SQLAlchemy emit BEGIN itself on a pysqlite engine.

    The driver otherwise opens transactions lazily on its own, which breaks
    the SAVEPOINTs the incremental stats updates run in.
    """

    @event.listens_for(bind, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(bind, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return bind


_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)
if _is_sqlite:
    enable_sqlite_savepoints(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        # Always close the session, even if the handler raised.
        db.close()
