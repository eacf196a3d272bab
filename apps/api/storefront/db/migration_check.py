"""Schema guard run at start-up.

Production refuses to serve unless the database is stamped at the Alembic
head. Development and demo deployments may create the tables directly
from the models instead.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from storefront.config import is_production_mode, settings
from storefront.db.base import Base

ALEMBIC_INI_PATH = Path(__file__).resolve().parents[2] / "alembic.ini"
_ALEMBIC_VERSION_TABLE = "alembic_version"


def alembic_config() -> Config:
    return Config(str(ALEMBIC_INI_PATH))


def get_alembic_head_revision() -> str | None:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def get_current_db_revision(engine: Engine) -> str | None:
    if not inspect(engine).has_table(_ALEMBIC_VERSION_TABLE):
        return None
    with engine.connect() as connection:
        return connection.execute(
            text(f"SELECT version_num FROM {_ALEMBIC_VERSION_TABLE} LIMIT 1")
        ).scalar_one_or_none()


def assert_db_is_up_to_date(engine: Engine) -> None:
    current = get_current_db_revision(engine)
    head = get_alembic_head_revision()
    if current != head:
        raise RuntimeError(
            f"Database schema not up to date (at {current}, head is {head}). "
            "Run: alembic upgrade head"
        )


def upgrade_to_head(engine: Engine) -> None:
    """Apply pending migrations over ``engine`` instead of the configured URL."""
    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")


def maybe_create_schema(engine: Engine) -> None:
    if not settings.auto_create_schema:
        return
    if is_production_mode():
        raise RuntimeError("STOREFRONT_AUTO_CREATE_SCHEMA must be disabled in production")

    Base.metadata.create_all(bind=engine)


def prepare_schema(engine: Engine) -> None:
    if is_production_mode():
        assert_db_is_up_to_date(engine)
        return
    maybe_create_schema(engine)
