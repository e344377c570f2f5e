"""
mirror.impersonator - The impersonation state machine.

This module provides:
- Impersonator: start/stop/force_stop an episode and query its state
"""

from __future__ import annotations

import logging
from typing import Any

from mirror.base import (
    AlreadyImpersonatingError,
    AuthGateway,
    CannotBeImpersonatedError,
    CannotImpersonateError,
    ImpersonationExpiredError,
    NotEnabledError,
    NotImpersonatingError,
    PrincipalDirectory,
    PrincipalNotFoundError,
)
from mirror.config import MirrorConfig
from mirror.events import EventDispatcher, ImpersonationStarted, ImpersonationStopped
from mirror.policy import can_be_impersonated, can_impersonate
from mirror.session import ImpersonationRecord, ImpersonationSession

__all__ = ["Impersonator"]

log = logging.getLogger(__name__)


class Impersonator:
    """
    Lets the logged-in principal act as someone else and come back.

    One instance serves one request: it is built around that request's
    session state, guards and URL.

    Example:
        impersonator = Impersonator(auth, state, config, directory, request_url=url)

        impersonator.start(customer, leave_redirect_url="/admin/users")
        impersonator.is_impersonating()   # True
        impersonator.impersonator_id()    # the admin's id

        impersonator.stop()               # back to the admin
    """

    def __init__(
        self,
        auth: AuthGateway,
        session: ImpersonationSession,
        config: MirrorConfig,
        directory: PrincipalDirectory,
        events: EventDispatcher | None = None,
        request_url: str | None = None,
    ) -> None:
        self.auth = auth
        self.session = session
        self.config = config
        self.directory = directory
        self.events = events if events is not None else EventDispatcher()
        self.request_url = request_url

    def _current_guard_name(self) -> str:
        """Configured guard, else the first authenticated guard, else the default."""
        if self.config.guard:
            return self.config.guard

        for name in self.auth.guard_names():
            if self.auth.guard(name).check():
                return name

        return self.auth.default_guard_name()

    # -- transitions ----------------------------------------------------------

    def start(
        self,
        user: Any,
        leave_redirect_url: str | None = None,
        start_redirect_url: str | None = None,
    ) -> str | None:
        """
        Start impersonating ``user``.

        Args:
            user: The principal to become
            leave_redirect_url: Where to send the impersonator afterwards
                (defaults to the current request URL)
            start_redirect_url: Returned as-is for the caller to redirect to

        Returns:
            start_redirect_url

        Raises:
            NotEnabledError, AlreadyImpersonatingError, CannotImpersonateError,
            CannotBeImpersonatedError
        """
        self._ensure_enabled()
        self._ensure_not_already_impersonating()

        guard_name = self._current_guard_name()
        guard = self.auth.guard(guard_name)
        impersonator = guard.user()

        if not can_impersonate(impersonator):
            raise CannotImpersonateError()
        if not can_be_impersonated(user):
            raise CannotBeImpersonatedError()

        self.session.write(
            ImpersonationRecord(
                impersonator=impersonator.id,
                guard_name=guard_name,
                started_at=self.session.now(),
                leave_redirect_url=(
                    leave_redirect_url
                    if leave_redirect_url is not None
                    else self.request_url
                ),
            )
        )

        try:
            guard.login(user)
        except Exception:
            self.session.clear()
            raise

        log.info(
            "Impersonation started: %s -> %s (guard %s)",
            impersonator.id,
            user.id,
            guard_name,
        )
        self.events.dispatch(ImpersonationStarted(impersonator, user, guard_name))

        return start_redirect_url

    def start_by_key(
        self,
        key: int | str,
        leave_redirect_url: str | None = None,
        start_redirect_url: str | None = None,
    ) -> str | None:
        """Look the target up by primary key, then start()."""
        user = self.directory.find_by_id(key)

        if user is None:
            raise PrincipalNotFoundError(f"User with key [{key}] not found.")

        return self.start(user, leave_redirect_url, start_redirect_url)

    def start_by_email(
        self,
        email: str,
        leave_redirect_url: str | None = None,
        start_redirect_url: str | None = None,
    ) -> str | None:
        """Look the target up by email, then start()."""
        user = self.directory.find_by_email(email)

        if user is None:
            raise PrincipalNotFoundError(f"User with email [{email}] not found.")

        return self.start(user, leave_redirect_url, start_redirect_url)

    def stop(self) -> None:
        """
        Stop impersonating and restore the original principal.

        Raises:
            NotImpersonatingError, TamperedSessionError, ImpersonationExpiredError
        """
        self._ensure_is_impersonating()
        self.session.verify()
        self._ensure_not_expired()

        self._perform_stop()

    def force_stop(self) -> None:
        """Like stop(), but an expired episode is still stopped cleanly.

        Raises:
            NotImpersonatingError, TamperedSessionError
        """
        self._ensure_is_impersonating()
        self.session.verify()

        self._perform_stop()

    def _perform_stop(self) -> None:
        impersonator_id = self.session.get_impersonator()
        guard_name = self.session.get_guard_name()

        guard = self.auth.guard(guard_name)
        impersonated = guard.user()

        self.session.clear()

        guard.logout()
        guard.login_using_id(impersonator_id)

        impersonator = guard.user()

        log.info(
            "Impersonation stopped: %s returned from %s (guard %s)",
            impersonator_id,
            impersonated.id if impersonated is not None else None,
            guard_name,
        )
        self.events.dispatch(ImpersonationStopped(impersonator, impersonated, guard_name))

    # -- queries --------------------------------------------------------------

    def is_impersonating(self) -> bool:
        return self.session.is_impersonating()

    def is_expired(self) -> bool:
        """Whether the active episode is past the configured TTL."""
        return self.session.is_expired(self.config.ttl)

    def get_impersonator(self) -> Any | None:
        """The principal who started the episode, or None."""
        impersonator_id = self.session.get_impersonator()

        if impersonator_id is None:
            return None

        return self.directory.find_by_id(impersonator_id)

    def impersonator_id(self) -> int | str | None:
        return self.session.get_impersonator()

    def get_leave_redirect_url(self) -> str | None:
        return self.session.get_leave_redirect_url()

    # -- aliases --------------------------------------------------------------

    def as_(
        self,
        user: Any,
        leave_redirect_url: str | None = None,
        start_redirect_url: str | None = None,
    ) -> str | None:
        """Alias for start(). (``as`` is reserved in Python.)"""
        return self.start(user, leave_redirect_url, start_redirect_url)

    def leave(self) -> None:
        """Alias for stop()."""
        self.stop()

    def impersonating(self) -> bool:
        """Alias for is_impersonating()."""
        return self.is_impersonating()

    def impersonator(self) -> Any | None:
        """Alias for get_impersonator()."""
        return self.get_impersonator()

    # -- guards ---------------------------------------------------------------

    def _ensure_enabled(self) -> None:
        if not self.config.enabled:
            raise NotEnabledError()

    def _ensure_not_already_impersonating(self) -> None:
        if self.is_impersonating():
            raise AlreadyImpersonatingError()

    def _ensure_is_impersonating(self) -> None:
        if not self.is_impersonating():
            raise NotImpersonatingError()

    def _ensure_not_expired(self) -> None:
        if self.is_expired():
            log.info(
                "Impersonation by %s expired after TTL of %ss",
                self.session.get_impersonator(),
                self.config.ttl,
            )
            self.session.clear()
            raise ImpersonationExpiredError()
