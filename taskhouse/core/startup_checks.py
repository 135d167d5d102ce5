from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from taskhouse.core.config import DATABASE_URL, JWT_SECRET_KEY, SESSION_SECRET

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"
STARTUP_PREFIX = "[STARTUP]"


def _current_env() -> str:
    return os.getenv("ENVIRONMENT", os.getenv("ENV", "dev")).strip().lower()


def validate_database_environment() -> None:
    if _current_env() in {"prod", "production"} and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def validate_secrets() -> None:
    missing = [
        name
        for name, value in (("JWT_SECRET_KEY", JWT_SECRET_KEY), ("SESSION_SECRET", SESSION_SECRET))
        if not value
    ]
    if missing:
        logger.critical("%s missing secrets=%s", STARTUP_PREFIX, ",".join(missing))
        raise RuntimeError(f"Missing required secrets: {', '.join(missing)}")


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    if _current_env() in {"test", "dev", "development", "local"} and DATABASE_URL.startswith("sqlite"):
        logger.info("%s skipped migration check env=%s", MIGRATIONS_PREFIX, _current_env())
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    alembic_cfg = Config(str(alembic_config_path))
    script_directory = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script_directory.get_heads())

    with engine.connect() as connection:
        inspector = inspect(connection)
        if "alembic_version" not in inspector.get_table_names():
            logger.critical("%s alembic_version table missing", MIGRATIONS_PREFIX)
            raise RuntimeError("Database has no migration state")

        current_rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()

    current_heads = {row[0] for row in current_rows if row and row[0]}
    if current_heads != expected_heads:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified", MIGRATIONS_PREFIX)
