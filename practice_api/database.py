import logging
from time import perf_counter

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL, DB_POOL_SIZE, DB_SLOW_QUERY_SECONDS

logger = logging.getLogger(__name__)


def build_engine(url: str, slow_query_seconds: float = DB_SLOW_QUERY_SECONDS):
    """Engine for the practice database, timing every statement when a threshold is set"""
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(url, pool_pre_ping=True, pool_size=DB_POOL_SIZE)

    if slow_query_seconds > 0:

        @event.listens_for(engine, "before_cursor_execute")
        def start_timer(conn, _cursor, _statement, _parameters, _context, _executemany):
            conn.info.setdefault("query_started", []).append(perf_counter())

        @event.listens_for(engine, "after_cursor_execute")
        def report_slow(conn, _cursor, statement, _parameters, _context, _executemany):
            elapsed = perf_counter() - conn.info["query_started"].pop()
            if elapsed >= slow_query_seconds:
                logger.warning(f"🐌 Slow query ({elapsed:.2f}s): {statement[:200]}")

    return engine


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
