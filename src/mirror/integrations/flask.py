"""
Flask integration.

Usage:
    from mirror.integrations.flask import Mirror, prevent_impersonation

    mirror = Mirror(app, directory=MemoryPrincipalDirectory(users))

    @app.post("/impersonate/<int:user_id>")
    def impersonate(user_id):
        mirror.impersonator.start_by_key(user_id, leave_redirect_url=url_for("admin.users"))
        return redirect("/")

    @app.post("/account/password")
    @prevent_impersonation
    def change_password():
        ...

Config keys (all optional):
    MIRROR_ENABLED, MIRROR_TTL, MIRROR_DEFAULT_REDIRECT_URL, MIRROR_GUARD
    MIRROR_GUARDS       guard names for the built-in SessionGuards (default ["web"])
    MIRROR_SECRET_KEY   HMAC secret (default: app.secret_key)
"""

from __future__ import annotations

import time
from functools import wraps
from typing import Any, Callable, TypeVar

from flask import Flask, abort, current_app, flash, g, redirect, request, session

from mirror import gates
from mirror.auth import AuthManager, SessionGuard
from mirror.base import (
    AccessDeniedError,
    AuthGateway,
    ImpersonationExpiredError,
    MirrorError,
    PrincipalDirectory,
    SessionStore,
    TamperedSessionError,
)
from mirror.config import ENV_PREFIX, MirrorConfig
from mirror.events import EventDispatcher
from mirror.impersonator import Impersonator
from mirror.session import ImpersonationSession, MappingSessionStore

__all__ = ["Mirror", "prevent_impersonation", "require_impersonation"]

F = TypeVar("F", bound=Callable[..., Any])

AuthLoader = Callable[[SessionStore, PrincipalDirectory], AuthGateway]


class Mirror:
    """Wires an Impersonator into each Flask request."""

    def __init__(
        self,
        app: Flask | None = None,
        *,
        directory: PrincipalDirectory | Callable[[], PrincipalDirectory] | None = None,
        auth_loader: AuthLoader | None = None,
        events: EventDispatcher | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = directory
        self._auth_loader = auth_loader or self._session_guards
        self.events = events if events is not None else EventDispatcher()
        self.clock = clock
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.config.setdefault("MIRROR_GUARDS", ["web"])
        app.extensions["mirror"] = self
        app.before_request(self._check_ttl)
        app.context_processor(self._template_context)
        # Handled here so the cleared session is still saved on the response
        app.register_error_handler(TamperedSessionError, self._handle_tampered)
        app.register_error_handler(ImpersonationExpiredError, self._handle_expired)

    # -- per-request objects --------------------------------------------------

    def get_directory(self) -> PrincipalDirectory:
        directory = self._directory
        if directory is None:
            raise MirrorError("Mirror needs a principal directory")
        if not isinstance(directory, PrincipalDirectory) and callable(directory):
            return directory()
        return directory

    def get_config(self) -> MirrorConfig:
        return MirrorConfig.from_mapping(
            {k: v for k, v in current_app.config.items() if k.startswith(ENV_PREFIX)}
        )

    def _session_guards(
        self, store: SessionStore, directory: PrincipalDirectory
    ) -> AuthGateway:
        names = current_app.config["MIRROR_GUARDS"]
        return AuthManager({name: SessionGuard(name, store, directory) for name in names})

    def _build(self) -> Impersonator:
        secret = current_app.config.get("MIRROR_SECRET_KEY") or current_app.secret_key
        store = MappingSessionStore(session)
        directory = self.get_directory()
        return Impersonator(
            auth=self._auth_loader(store, directory),
            session=ImpersonationSession(store, secret, clock=self.clock),
            config=self.get_config(),
            directory=directory,
            events=self.events,
            request_url=request.url,
        )

    @property
    def impersonator(self) -> Impersonator:
        """The Impersonator for the current request."""
        if "mirror_impersonator" not in g:
            g.mirror_impersonator = self._build()
        return g.mirror_impersonator

    @property
    def auth(self) -> AuthGateway:
        return self.impersonator.auth

    # -- hooks ----------------------------------------------------------------

    def _check_ttl(self):
        expired = gates.check_ttl(self.impersonator)
        if expired is None:
            return None
        flash(expired.message, "warning")
        return redirect(expired.url)

    def _handle_tampered(self, error: TamperedSessionError):
        return error.message, AccessDeniedError.status_code

    def _handle_expired(self, error: ImpersonationExpiredError):
        flash(gates.EXPIRED_MESSAGE, "warning")
        return redirect(self.get_config().default_redirect_url)

    def _template_context(self) -> dict[str, Any]:
        return {
            "impersonating": lambda guard=None: gates.impersonating(
                self.impersonator, guard
            ),
            "can_impersonate": lambda guard=None: gates.can_impersonate(
                self.auth, guard
            ),
            "can_be_impersonated": lambda principal=None, guard=None: (
                gates.can_be_impersonated(self.auth, principal, guard)
            ),
            "impersonator": lambda: self.impersonator.get_impersonator(),
        }


def _mirror() -> Mirror:
    return current_app.extensions["mirror"]


def _gate(check: Callable[[Impersonator], None]) -> Callable[[F], F]:
    def decorator(view: F) -> F:
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                check(_mirror().impersonator)
            except AccessDeniedError as e:
                abort(e.status_code, description=e.message)
            return view(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


# Block a view during impersonation (e.g. password or billing changes)
prevent_impersonation = _gate(gates.ensure_not_impersonating)

# Only allow a view during impersonation (e.g. "return to my account")
require_impersonation = _gate(gates.ensure_impersonating)
