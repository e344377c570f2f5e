"""
Named authentication guards.

AuthManager is the ordered guard registry the Impersonator asks "who is
logged in, and where?". SessionGuard is a minimal guard that keeps the logged
in principal's id in the session store, enough for apps that don't already
have a guard abstraction.
"""

from __future__ import annotations

from typing import Any, Mapping

from mirror.base import Guard, MirrorError, PrincipalDirectory, SessionStore

__all__ = ["AuthManager", "SessionGuard"]


class AuthManager:
    """Guards keyed by name, iterated in declaration order."""

    def __init__(self, guards: Mapping[str, Guard], default: str | None = None) -> None:
        if not guards:
            raise ValueError("At least one guard is required")
        self._guards = dict(guards)
        self._default = default if default is not None else next(iter(self._guards))
        if self._default not in self._guards:
            raise ValueError(f"Default guard [{self._default}] is not defined")

    def guard(self, name: str) -> Guard:
        try:
            return self._guards[name]
        except KeyError:
            raise MirrorError(f"Auth guard [{name}] is not defined.") from None

    def guard_names(self) -> list[str]:
        return list(self._guards)

    def default_guard_name(self) -> str:
        return self._default


class SessionGuard:
    """Remembers the authenticated principal's id under ``auth.<name>``."""

    def __init__(
        self, name: str, store: SessionStore, directory: PrincipalDirectory
    ) -> None:
        self.name = name
        self.store = store
        self.directory = directory
        self._key = f"auth.{name}"
        self._user: Any | None = None

    def id(self) -> int | str | None:
        return self.store.get(self._key)

    def user(self) -> Any | None:
        identifier = self.id()
        if identifier is None:
            self._user = None
            return None
        if self._user is None or self._user.id != identifier:
            self._user = self.directory.find_by_id(identifier)
        return self._user

    def check(self) -> bool:
        return self.user() is not None

    def login(self, principal: Any) -> None:
        self.store.put(self._key, principal.id)
        self._user = principal

    def logout(self) -> None:
        self.store.forget(self._key)
        self._user = None

    def login_using_id(self, identifier: int | str) -> Any | None:
        """Log in whoever the directory has under ``identifier``; None if nobody."""
        principal = self.directory.find_by_id(identifier)
        if principal is None:
            return None
        self.login(principal)
        return principal
