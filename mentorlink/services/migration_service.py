import logging
import shutil
import subprocess
import sys
from pathlib import Path

from mentorlink.core.config import settings

logger = logging.getLogger(__name__)

# alembic.ini lives at the repository root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SQLITE_PREFIXES = ("sqlite+aiosqlite:///", "sqlite:///")


def _ensure_sqlite_directory(database_url: str) -> None:
    if ":memory:" in database_url:
        return
    for prefix in SQLITE_PREFIXES:
        if database_url.startswith(prefix):
            db_dir = Path(database_url[len(prefix) :]).parent
            if not db_dir.exists():
                logger.info(f"Creating database directory: {db_dir}")
                db_dir.mkdir(parents=True, exist_ok=True)
            return


def _alembic_command() -> list[str]:
    if shutil.which("alembic"):
        return ["alembic"]
    return [sys.executable, "-m", "alembic"]


async def run_migrations() -> None:
    """Brings the schema to head before the app serves requests."""
    logger.info("Running database migrations...")
    _ensure_sqlite_directory(settings.DATABASE_URL)

    try:
        result = subprocess.run(
            _alembic_command() + ["upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            cwd=str(PROJECT_ROOT),
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"Migration failed with exit code {e.returncode}")
        if e.stdout:
            logger.error(f"Stdout: {e.stdout}")
        if e.stderr:
            logger.error(f"Stderr: {e.stderr}")
        raise RuntimeError("Database migration failed") from e
    except OSError as e:
        logger.error(f"Could not launch alembic: {e}")
        raise RuntimeError("Database migration failed") from e

    logger.info("Migrations completed successfully")
    if result.stdout:
        logger.info(f"Alembic output: {result.stdout}")
