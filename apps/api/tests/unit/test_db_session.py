from sqlalchemy.pool import StaticPool

from reviewplates.config import settings
from reviewplates.db.session import engine_options


def test_postgres_pool_is_sized_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "database_pool_size", 20)
    monkeypatch.setattr(settings, "database_max_overflow", 5)

    options = engine_options("postgresql+psycopg://plates@db/reviewplates")

    assert options == {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 5}


def test_sqlite_file_waits_on_writer_lock(monkeypatch):
    monkeypatch.setattr(settings, "sqlite_busy_timeout_s", 12.5)

    options = engine_options("sqlite+pysqlite:///./plates.db")

    assert options["connect_args"] == {"check_same_thread": False, "timeout": 12.5}
    assert "poolclass" not in options
    assert "pool_size" not in options


def test_sqlite_memory_shares_one_connection():
    options = engine_options("sqlite+pysqlite:///:memory:")

    assert options["poolclass"] is StaticPool
