from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reviewplates.config import is_sqlite_url, settings


def engine_options(database_url: str) -> dict:
    """Engine kwargs for the webhook workload.

    Each delivery runs in its own threadpool worker and commits once per
    plate, so the pool must cover concurrent deliveries plus the operator
    API. SQLite serializes writers: concurrent deliveries wait on the
    file lock instead of failing with "database is locked".
    """
    if not is_sqlite_url(database_url):
        return {
            "pool_pre_ping": True,
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
        }

    options: dict = {
        "pool_pre_ping": True,
        "connect_args": {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_s,
        },
    }
    # One shared connection, or every session would see its own empty database.
    if ":memory:" in database_url:
        options["poolclass"] = StaticPool
    return options


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, **engine_options(database_url))


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
