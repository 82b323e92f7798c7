from __future__ import annotations

from pathlib import Path
from typing import Optional

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from reviewplates.config import is_production_mode, settings
from reviewplates.db.base import Base
from reviewplates.observability import log_event

ALEMBIC_INI_PATH = Path(__file__).resolve().parents[2] / "alembic.ini"


def get_alembic_head_revision() -> str:
    script = ScriptDirectory.from_config(Config(str(ALEMBIC_INI_PATH)))
    return script.get_current_head()


def get_current_db_revision(engine: Engine) -> Optional[str]:
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def assert_db_is_up_to_date(engine: Engine) -> None:
    """Refuse to serve webhooks against a schema missing the unique indexes."""
    current = get_current_db_revision(engine)
    head = get_alembic_head_revision()
    if current != head:
        raise RuntimeError(
            f"Database schema not up to date (current={current}, head={head}). "
            "Run: alembic upgrade head"
        )


def maybe_create_schema(engine: Engine) -> None:
    if not settings.auto_create_schema:
        return
    if is_production_mode():
        raise RuntimeError(
            "REVIEWPLATES_AUTO_CREATE_SCHEMA must be disabled in REVIEWPLATES_APP_MODE=production"
        )

    Base.metadata.create_all(bind=engine)
    log_event("schema_auto_created")
