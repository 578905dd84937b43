"""Contract tests for the single-container runtime Dockerfile."""

from __future__ import annotations

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DOCKERFILE_PATH = PROJECT_ROOT / "Dockerfile"


def _read_dockerfile() -> str:
    if not DOCKERFILE_PATH.exists():
        raise AssertionError
    return DOCKERFILE_PATH.read_text(encoding="utf-8")


def test_runtime_dockerfile_uses_python_312_slim_and_uvicorn_factory() -> None:
    """Ensure runtime image is pinned to Python 3.12 slim and serves the factory."""
    dockerfile = _read_dockerfile()

    if "FROM python:3.12-slim" not in dockerfile:
        raise AssertionError
    if (
        'CMD ["python", "-m", "uvicorn", "phone_signin.api.app:create_app", '
        '"--factory"'
    ) not in dockerfile:
        raise AssertionError


def test_runtime_dockerfile_exposes_port_and_persists_db_under_data() -> None:
    """Ensure the container serves on 8787 and keeps the session store in /data."""
    dockerfile = _read_dockerfile()

    required_fragments = [
        "EXPOSE 8787",
        '"--host", "0.0.0.0"',
        '"--port", "8787"',
        "SIGNIN_DB_PATH=/data/signin.db",
        "COPY alembic ./alembic",
    ]
    for fragment in required_fragments:
        if fragment not in dockerfile:
            raise AssertionError
