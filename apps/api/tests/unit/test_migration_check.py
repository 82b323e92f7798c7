from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect, text

import reviewplates.main as main_module
from reviewplates.config import settings
from reviewplates.db.migration_check import (
    assert_db_is_up_to_date,
    get_alembic_head_revision,
    get_current_db_revision,
    maybe_create_schema,
)
from reviewplates.main import app


@pytest.fixture
def sqlite_engine(tmp_path: Path):
    db_path = tmp_path / "migration-check.db"
    engine = create_engine(f"sqlite+pysqlite:///{db_path}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def startup_settings():
    names = ("app_mode", "testing", "auto_create_schema", "require_migrations")
    original = {name: getattr(settings, name) for name in names}
    original_engine = main_module.engine
    try:
        yield settings
    finally:
        main_module.engine = original_engine
        for name, value in original.items():
            setattr(settings, name, value)


def _stamp_head(engine) -> str:
    head = get_alembic_head_revision()
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        connection.execute(
            text("INSERT INTO alembic_version (version_num) VALUES (:rev)"), {"rev": head}
        )
    return head


def test_head_revision_is_the_ingest_tables_migration():
    assert get_alembic_head_revision() == "20261001_0001"


def test_assert_db_is_up_to_date_fails_when_alembic_version_missing(sqlite_engine):
    with pytest.raises(RuntimeError, match="Database schema not up to date"):
        assert_db_is_up_to_date(sqlite_engine)


def test_assert_db_is_up_to_date_passes_at_head(sqlite_engine):
    head = _stamp_head(sqlite_engine)

    assert get_current_db_revision(sqlite_engine) == head
    assert_db_is_up_to_date(sqlite_engine)


def test_maybe_create_schema_creates_ingest_tables(sqlite_engine, startup_settings):
    startup_settings.auto_create_schema = True
    startup_settings.app_mode = "demo"

    maybe_create_schema(sqlite_engine)

    tables = set(inspect(sqlite_engine).get_table_names())
    assert {"webhook_events", "orders", "plates"} <= tables


def test_maybe_create_schema_refuses_production(sqlite_engine, startup_settings):
    startup_settings.auto_create_schema = True
    startup_settings.app_mode = "production"

    with pytest.raises(RuntimeError, match="AUTO_CREATE_SCHEMA"):
        maybe_create_schema(sqlite_engine)


def test_app_startup_fails_fast_in_production_when_revision_missing(tmp_path, startup_settings):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'startup-fail.db'}")
    main_module.engine = engine
    startup_settings.app_mode = "production"
    startup_settings.testing = True
    startup_settings.auto_create_schema = False
    startup_settings.require_migrations = True

    try:
        with pytest.raises(RuntimeError, match="Database schema not up to date"):
            with TestClient(app):
                pass
    finally:
        engine.dispose()


def test_app_startup_passes_when_db_at_head(tmp_path, startup_settings):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'startup-head.db'}")
    _stamp_head(engine)
    main_module.engine = engine
    startup_settings.app_mode = "production"
    startup_settings.testing = True
    startup_settings.auto_create_schema = False
    startup_settings.require_migrations = True

    try:
        with TestClient(app):
            pass
    finally:
        engine.dispose()
