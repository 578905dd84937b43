"""App-scoped wiring of provider, backend and persister into the registry."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, cast

from phone_signin.backend import ApplicationBackendClient
from phone_signin.challenge import ChallengeManager
from phone_signin.config.settings import load_settings
from phone_signin.provider import IdentityToolkitPhoneAuthProvider, PhoneAuthProvider
from phone_signin.signin import OtpSignInController, SignInAttemptRegistry
from phone_signin.storage import (
    ClientSessionStore,
    SessionPersister,
    StorageRuntime,
    resolve_token_cipher,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

    from phone_signin.backend import ApplicationBackend
    from phone_signin.config.settings import AppSettings
    from phone_signin.signin import SessionPersisterProtocol

logger = logging.getLogger(__name__)


class SignInRuntimeError(RuntimeError):
    """Raised when app state holds unusable sign-in collaborators."""

    @classmethod
    def missing_storage_runtime(cls) -> SignInRuntimeError:
        """Build error for lifespan ordering mistakes."""
        return cls("Missing app storage runtime: app.state.storage_runtime.")

    @classmethod
    def invalid_override(cls, name: str, expected: str) -> SignInRuntimeError:
        """Build error for app.state overrides lacking required methods."""
        return cls(f"Invalid app.state.{name}: expected {expected}.")


class SignInRuntimeDependency:
    """Lifecycle dependency that owns the attempt registry for the app."""

    _app: FastAPI
    _closers: list[Callable[[], Awaitable[None]]]
    _registry: SignInAttemptRegistry | None

    def __init__(self, app: FastAPI) -> None:
        """Bind dependency to the app whose state it populates."""
        self._app = app
        self._closers = []
        self._registry = None

    async def startup(self) -> None:
        """Build collaborators and publish `app.state.signin_registry`."""
        settings = load_settings()
        state = cast("object", self._app.state)

        provider = self._resolve_provider(state, settings)
        backend = self._resolve_backend(state, settings)
        persister = await self._resolve_persister(state, settings)

        def _controller_factory() -> OtpSignInController:
            return OtpSignInController(
                provider=provider,
                backend=backend,
                challenges=ChallengeManager(
                    provider=provider,
                    container_id=settings.recaptcha_container,
                ),
                persister=persister,
                country_code=settings.country_code,
            )

        self._registry = SignInAttemptRegistry(
            controller_factory=_controller_factory,
            ttl_seconds=settings.attempt_ttl_seconds,
        )
        self._app.state.signin_registry = self._registry
        logger.info(
            "Sign-in runtime ready (provider=%s, backend=%s)",
            type(provider).__name__,
            type(backend).__name__,
        )

    async def shutdown(self) -> None:
        """Close live attempts, then owned HTTP clients."""
        if self._registry is not None:
            await self._registry.close()
            self._registry = None
        closers = self._closers
        self._closers = []
        for closer in reversed(closers):
            await closer()
        state = cast("object", self._app.state)
        if hasattr(state, "signin_registry"):
            delattr(state, "signin_registry")

    def _resolve_provider(
        self,
        state: object,
        settings: AppSettings,
    ) -> PhoneAuthProvider:
        override = cast("object | None", getattr(state, "phone_auth_provider", None))
        if override is not None:
            if not isinstance(override, PhoneAuthProvider):
                raise SignInRuntimeError.invalid_override(
                    "phone_auth_provider",
                    "a PhoneAuthProvider",
                )
            return override
        provider = IdentityToolkitPhoneAuthProvider.from_settings(settings)
        self._closers.append(provider.aclose)
        return provider

    def _resolve_backend(
        self,
        state: object,
        settings: AppSettings,
    ) -> ApplicationBackend:
        override = cast("object | None", getattr(state, "application_backend", None))
        if override is not None:
            if not callable(getattr(override, "check_phone", None)) or not callable(
                getattr(override, "verify_otp", None),
            ):
                raise SignInRuntimeError.invalid_override(
                    "application_backend",
                    "check_phone(...) and verify_otp(...) methods",
                )
            return cast("ApplicationBackend", override)
        backend = ApplicationBackendClient.from_settings(settings)
        self._closers.append(backend.aclose)
        return backend

    async def _resolve_persister(
        self,
        state: object,
        settings: AppSettings,
    ) -> SessionPersisterProtocol:
        override = cast("object | None", getattr(state, "session_persister", None))
        if override is not None:
            if not callable(getattr(override, "persist", None)):
                raise SignInRuntimeError.invalid_override(
                    "session_persister",
                    "a persist(...) method",
                )
            return cast("SessionPersisterProtocol", override)
        runtime = cast("object | None", getattr(state, "storage_runtime", None))
        if not isinstance(runtime, StorageRuntime):
            raise SignInRuntimeError.missing_storage_runtime()
        store = ClientSessionStore(
            read_session_factory=runtime.read_session_factory,
            write_session_factory=runtime.write_session_factory,
        )
        cipher = await resolve_token_cipher(
            store=store,
            secret_file=settings.secret_file,
        )
        return SessionPersister(store=store, cipher=cipher)
