"""Bring the database schema up to date with Alembic on startup."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine.reflection import Inspector

from .database import SQLALCHEMY_DATABASE_URL

LOGGER = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent

# Newest first: the first revision whose check passes is stamped on a database
# that already has tables but no ``alembic_version`` row.
SchemaCheck = Callable[[Inspector], bool]
KNOWN_SCHEMAS: Sequence[tuple[str, SchemaCheck]] = (
    (
        "20240101_0001",
        lambda inspector: inspector.has_table("invoices")
        and inspector.has_table("charges")
        and "banish_date" in {column["name"] for column in inspector.get_columns("invoices")},
    ),
)


def build_alembic_config(database_url: Optional[str] = None) -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    config.set_main_option(
        "sqlalchemy.url",
        database_url or os.getenv("DATABASE_URL") or SQLALCHEMY_DATABASE_URL,
    )
    config.attributes["configure_logger"] = False
    return config


def detect_existing_revision(inspector: Inspector) -> Optional[str]:
    for revision, matches in KNOWN_SCHEMAS:
        if matches(inspector):
            return revision
    return None


def run_database_migrations(database_url: Optional[str] = None) -> None:
    """Upgrade the database to the latest revision.

    Databases created with ``Base.metadata.create_all`` have every table but
    no version row; they are stamped with the matching revision first so the
    upgrade does not try to recreate existing tables.
    """

    project_root = str(BACKEND_DIR.parent)
    if project_root not in sys.path:
        sys.path.insert(0, project_root)

    config = build_alembic_config(database_url)
    url = config.get_main_option("sqlalchemy.url")
    LOGGER.info("Running database migrations at %s", url)

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    try:
        inspector = inspect(engine)
        user_tables = [name for name in inspector.get_table_names() if name != "alembic_version"]

        if user_tables and not inspector.has_table("alembic_version"):
            revision = detect_existing_revision(inspector)
            if revision is None:
                LOGGER.warning(
                    "Found tables without Alembic metadata that match no known revision; "
                    "running a full upgrade"
                )
            else:
                LOGGER.info("Stamping existing schema as revision %s", revision)
                command.stamp(config, revision)
                if revision == ScriptDirectory.from_config(config).get_current_head():
                    return
    finally:
        engine.dispose()

    command.upgrade(config, "head")
