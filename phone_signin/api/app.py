"""FastAPI application factory and lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, cast, override, runtime_checkable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import PlainTextResponse, Response

from phone_signin.api.routes.health import router as health_router
from phone_signin.api.routes.signin import router as signin_router
from phone_signin.api.runtime import SignInRuntimeDependency
from phone_signin.config.logging import init_logging
from phone_signin.config.settings import load_settings
from phone_signin.storage import (
    StorageRuntime,
    create_storage_runtime,
    dispose_storage_runtime,
)
from phone_signin.storage.migrations import MigrationRunnerDependency

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.datastructures import Headers

logger = logging.getLogger(__name__)

_DEPENDENCY_NAMES = ("db", "signin")


class StartupDependencyError(RuntimeError):
    """Raised when required startup dependencies are missing."""

    @classmethod
    def missing_container(cls) -> StartupDependencyError:
        """Build error for absent dependency container on app state."""
        message = "Missing startup dependency container: app.state.dependencies."
        return cls(message)

    @classmethod
    def missing_named_dependency(cls, name: str) -> StartupDependencyError:
        """Build error for absent named dependency in the container."""
        message = f"Missing startup dependency: {name}."
        return cls(message)


class StartupDependencyTypeError(TypeError):
    """Raised when a dependency lacks startup/shutdown lifecycle hooks."""

    @classmethod
    def invalid_dependency(cls, name: str) -> StartupDependencyTypeError:
        """Build error for dependency objects with wrong runtime type."""
        message = (
            f"Invalid startup dependency '{name}': expected startup/shutdown hooks."
        )
        return cls(message)


@runtime_checkable
class LifecycleDependency(Protocol):
    """Protocol for startup/shutdown-managed app dependencies."""

    async def startup(self) -> None:
        """Run dependency startup actions."""

    async def shutdown(self) -> None:
        """Run dependency shutdown actions."""


class AllowlistCORSMiddleware(CORSMiddleware):
    """CORS middleware that emits no CORS headers for blocked preflight origins."""

    @override
    def preflight_response(self, request_headers: Headers) -> Response:
        """Reject non-allowlisted preflight requests without CORS headers."""
        origin = request_headers.get("origin")
        if origin is not None and not self.is_allowed_origin(origin=origin):
            return PlainTextResponse("Disallowed CORS origin", status_code=400)
        return super().preflight_response(request_headers)


@dataclass(slots=True)
class StartupDependencies:
    """Container for dependency lifecycle hooks managed by app lifespan."""

    db: LifecycleDependency
    signin: LifecycleDependency


@dataclass(slots=True)
class NoopDependency:
    """Lifecycle dependency that does nothing; swapped in by tests."""

    name: str

    async def startup(self) -> None:
        """No-op startup hook."""
        logger.debug("Startup stub executed for %s", self.name)

    async def shutdown(self) -> None:
        """No-op shutdown hook."""
        logger.debug("Shutdown stub executed for %s", self.name)


def _default_dependencies(app: FastAPI) -> StartupDependencies:
    """Create the production startup dependencies."""
    return StartupDependencies(
        db=MigrationRunnerDependency(),
        signin=SignInRuntimeDependency(app),
    )


def _resolve_startup_dependencies(app: FastAPI) -> StartupDependencies:
    """Resolve and validate dependency hooks required for app startup."""
    raw_state = cast("object", app.state)
    raw_dependencies = getattr(raw_state, "dependencies", None)
    if raw_dependencies is None:
        raise StartupDependencyError.missing_container()

    dependency_container = cast("object", raw_dependencies)
    for name in _DEPENDENCY_NAMES:
        dependency = getattr(dependency_container, name, None)
        if dependency is None:
            raise StartupDependencyError.missing_named_dependency(name)
        if not isinstance(dependency, LifecycleDependency):
            raise StartupDependencyTypeError.invalid_dependency(name)

    return cast("StartupDependencies", raw_dependencies)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown events."""
    dependencies = _resolve_startup_dependencies(app)
    settings = load_settings()
    storage_runtime: StorageRuntime | None = None
    startup_order: tuple[LifecycleDependency, ...] = (
        dependencies.db,
        dependencies.signin,
    )
    started_dependencies: list[LifecycleDependency] = []

    logger.info(
        "Starting phone sign-in service (bind=%s, db=%s, api=%s)",
        settings.bind,
        settings.db_path,
        settings.api_url,
    )
    try:
        storage_runtime = create_storage_runtime(settings.db_path)
        app.state.storage_runtime = storage_runtime
        for dependency in startup_order:
            await dependency.startup()
            started_dependencies.append(dependency)
        yield
    finally:
        for dependency in reversed(started_dependencies):
            await dependency.shutdown()
        if storage_runtime is not None:
            await dispose_storage_runtime(storage_runtime)
        _clear_runtime_state(app)
        logger.info("Shutting down phone sign-in service")


def create_app() -> FastAPI:
    """Create and configure a new FastAPI application instance."""
    settings = load_settings()
    init_logging(settings.log_level)

    app = FastAPI(
        title="Phone Sign-In",
        description="Two-step phone number and SMS OTP sign-in",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )

    app.state.dependencies = _default_dependencies(app)
    _configure_cors(app=app, allow_origins=settings.cors_allow_origins)
    app.include_router(health_router)
    app.include_router(signin_router)
    return app


def _configure_cors(*, app: FastAPI, allow_origins: tuple[str, ...]) -> None:
    """Attach default-deny CORS policy with explicit allowlisted origins."""
    if not allow_origins:
        return

    app.add_middleware(
        AllowlistCORSMiddleware,
        allow_origins=list(allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )


def _clear_runtime_state(app: FastAPI) -> None:
    """Remove runtime objects from app state after lifespan shutdown."""
    state = cast("object", app.state)
    if hasattr(state, "storage_runtime"):
        delattr(state, "storage_runtime")
