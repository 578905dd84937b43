"""Alembic migration runner invoked from the application lifespan."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path

from phone_signin.config.settings import load_settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_CONFIG_PATH = PROJECT_ROOT / "alembic.ini"
ALEMBIC_EXECUTABLE = Path(sys.executable).with_name("alembic")
DB_PATH_ENV_VAR = "SIGNIN_DB_PATH"


class MigrationStartupError(RuntimeError):
    """Raised when the session store schema cannot be brought to head."""

    @classmethod
    def for_db_path_prepare_failure(
        cls,
        db_path: Path,
        *,
        details: str,
    ) -> MigrationStartupError:
        """Build error for a database directory that cannot be created."""
        message = (
            "Failed to prepare session store path "
            f"(db={db_path.as_posix()}): {details}"
        )
        return cls(message)

    @classmethod
    def for_upgrade_failure(
        cls,
        db_path: Path,
        *,
        details: str,
    ) -> MigrationStartupError:
        """Build error for a failed `alembic upgrade head` run."""
        message = (
            "Failed to migrate session store with "
            f"`alembic upgrade head` (db={db_path.as_posix()}): {details}"
        )
        return cls(message)

    @classmethod
    def for_missing_executable(cls, executable: Path) -> MigrationStartupError:
        """Build error for an environment without the Alembic CLI."""
        message = f"Missing Alembic executable required at startup: {executable}."
        return cls(message)


def run_startup_migrations(db_path: Path | None = None) -> None:
    """Upgrade the session store schema to Alembic head."""
    if db_path is None:
        db_path = load_settings().db_path
    db_path = db_path.expanduser()
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MigrationStartupError.for_db_path_prepare_failure(
            db_path,
            details=str(exc),
        ) from exc

    if not ALEMBIC_EXECUTABLE.exists():
        raise MigrationStartupError.for_missing_executable(ALEMBIC_EXECUTABLE)

    logger.info("Applying session store migrations (db=%s)", db_path)
    env = os.environ.copy()
    env[DB_PATH_ENV_VAR] = db_path.as_posix()

    try:
        result = subprocess.run(  # noqa: S603
            [
                ALEMBIC_EXECUTABLE.as_posix(),
                "-c",
                ALEMBIC_CONFIG_PATH.as_posix(),
                "upgrade",
                "head",
            ],
            cwd=PROJECT_ROOT,
            check=False,
            capture_output=True,
            text=True,
            env=env,
        )
    except OSError as exc:
        raise MigrationStartupError.for_upgrade_failure(
            db_path,
            details=str(exc),
        ) from exc
    if result.returncode != 0:
        output = result.stderr.strip() or result.stdout.strip() or "unknown error"
        raise MigrationStartupError.for_upgrade_failure(db_path, details=output)

    logger.info("Session store migrations complete (db=%s)", db_path)


class MigrationRunnerDependency:
    """Lifecycle dependency that holds startup until the schema is current."""

    _db_path: Path | None

    def __init__(self, db_path: Path | None = None) -> None:
        """Create runner; `db_path` defaults to the configured store path."""
        self._db_path = db_path

    async def startup(self) -> None:
        """Run migrations before the app accepts requests."""
        await asyncio.to_thread(run_startup_migrations, self._db_path)

    async def shutdown(self) -> None:
        """Nothing to release."""
        return
