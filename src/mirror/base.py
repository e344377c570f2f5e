"""Shared contracts and exceptions for mirror.

Defines the collaborator protocols the core talks to (session store, guards,
auth manager, principal directory) and the exception hierarchy raised by
ImpersonationSession, Impersonator and the request gates.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class MirrorError(Exception):
    """Base exception for mirror operations."""

    default_message = "Impersonation failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ImpersonationError(MirrorError):
    """Raised when an impersonation transition is not allowed."""


class NotEnabledError(ImpersonationError):
    default_message = "Impersonation is not enabled."


class AlreadyImpersonatingError(ImpersonationError):
    default_message = (
        "You are already impersonating a user. "
        "Please stop the current impersonation before starting a new one."
    )


class NotImpersonatingError(ImpersonationError):
    default_message = "You are not impersonating any user."


class CannotImpersonateError(ImpersonationError):
    default_message = "You do not have permission to impersonate users."


class CannotBeImpersonatedError(ImpersonationError):
    default_message = "This user cannot be impersonated."


class ImpersonationExpiredError(ImpersonationError):
    default_message = "The impersonation session has expired."


class TamperedSessionError(ImpersonationError):
    """Raised when the stored impersonation record fails its integrity check.

    The record has already been cleared by the time this is raised.
    """

    default_message = (
        "Impersonation session data has been tampered with. "
        "For security reasons, the session has been cleared."
    )


class PrincipalNotFoundError(ImpersonationError):
    """Raised when start_by_key/start_by_email cannot find the target."""

    default_message = "User not found."


class AccessDeniedError(MirrorError):
    """Raised by request gates. Carries an HTTP status for the calling layer."""

    status_code = 403
    default_message = "Forbidden."


class DirectoryError(MirrorError):
    """Raised when a principal lookup fails in the backing database."""

    def __init__(self, message: str | None = None, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


@runtime_checkable
class SessionStore(Protocol):
    """Key-value storage scoped to one principal's session."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def put(self, key: str, value: Any) -> None: ...

    def forget(self, key: str) -> None: ...

    def has(self, key: str) -> bool: ...


@runtime_checkable
class Guard(Protocol):
    """A named authentication mechanism that can report and switch the principal."""

    name: str

    def user(self) -> Any | None: ...

    def check(self) -> bool: ...

    def login(self, principal: Any) -> None: ...

    def logout(self) -> None: ...

    def login_using_id(self, identifier: int | str) -> Any | None: ...


class AuthGateway(Protocol):
    """Registry of guards in their declared order."""

    def guard(self, name: str) -> Guard: ...

    def guard_names(self) -> list[str]: ...

    def default_guard_name(self) -> str: ...


@runtime_checkable
class PrincipalDirectory(Protocol):
    """Looks up principals. Both methods return None when nothing matches."""

    def find_by_id(self, identifier: int | str) -> Any | None: ...

    def find_by_email(self, email: str) -> Any | None: ...
