"""
Impersonation state stored in the principal's session.

ImpersonationSession owns every key under the ``mirror.`` prefix and nothing
else. It holds no policy: the Impersonator decides when to write, verify or
clear.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, MutableMapping

from mirror.base import SessionStore, TamperedSessionError
from mirror.session.integrity import IntegrityGuard

__all__ = [
    "ImpersonationRecord",
    "ImpersonationSession",
    "MappingSessionStore",
    "SESSION_KEYS",
]

log = logging.getLogger(__name__)

PREFIX = "mirror."
IMPERSONATING_KEY = PREFIX + "impersonating"
IMPERSONATED_BY_KEY = PREFIX + "impersonated_by"
GUARD_NAME_KEY = PREFIX + "guard_name"
INTEGRITY_KEY = PREFIX + "integrity"
STARTED_AT_KEY = PREFIX + "started_at"
LEAVE_REDIRECT_URL_KEY = PREFIX + "leave_redirect_url"

SESSION_KEYS = (
    IMPERSONATING_KEY,
    IMPERSONATED_BY_KEY,
    GUARD_NAME_KEY,
    INTEGRITY_KEY,
    STARTED_AT_KEY,
    LEAVE_REDIRECT_URL_KEY,
)


class MappingSessionStore:
    """SessionStore over any mutable mapping (a dict, ``flask.session``, ...)."""

    def __init__(self, mapping: MutableMapping[str, Any] | None = None) -> None:
        self.mapping = mapping if mapping is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.mapping.get(key, default)

    def put(self, key: str, value: Any) -> None:
        self.mapping[key] = value

    def forget(self, key: str) -> None:
        self.mapping.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self.mapping


@dataclass(frozen=True)
class ImpersonationRecord:
    """A complete episode, committed to the session in one write."""

    impersonator: int | str
    guard_name: str
    started_at: int
    leave_redirect_url: str | None = None


class ImpersonationSession:
    """
    Typed accessors over the raw impersonation keys.

    Example:
        state = ImpersonationSession(MappingSessionStore(session), app_secret)
        state.set_impersonator(1).set_guard_name("web").set_started_at(now)
        state.mark_as_impersonating().sign()

        state.verify()            # raises TamperedSessionError on mismatch
        state.is_expired(3600)
    """

    def __init__(
        self,
        store: SessionStore,
        secret: str | bytes,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.integrity = IntegrityGuard(secret)
        self._clock = clock

    def now(self) -> int:
        """Current unix timestamp in whole seconds."""
        return int(self._clock())

    # -- fields ---------------------------------------------------------------

    def set_impersonator(self, impersonator_id: int | str) -> ImpersonationSession:
        self.store.put(IMPERSONATED_BY_KEY, impersonator_id)
        return self

    def get_impersonator(self) -> int | str | None:
        return self.store.get(IMPERSONATED_BY_KEY)

    def mark_as_impersonating(self) -> ImpersonationSession:
        self.store.put(IMPERSONATING_KEY, True)
        return self

    def is_impersonating(self) -> bool:
        """True only when the stored flag is the boolean True itself."""
        return self.store.get(IMPERSONATING_KEY, False) is True

    def set_guard_name(self, guard_name: str) -> ImpersonationSession:
        self.store.put(GUARD_NAME_KEY, guard_name)
        return self

    def get_guard_name(self) -> str | None:
        return self.store.get(GUARD_NAME_KEY)

    def set_started_at(self, timestamp: int) -> ImpersonationSession:
        self.store.put(STARTED_AT_KEY, timestamp)
        return self

    def get_started_at(self) -> int | None:
        return self.store.get(STARTED_AT_KEY)

    def set_leave_redirect_url(self, url: str | None) -> ImpersonationSession:
        """Store the leave URL. None leaves the key untouched."""
        if url is not None:
            self.store.put(LEAVE_REDIRECT_URL_KEY, url)
        return self

    def get_leave_redirect_url(self) -> str | None:
        return self.store.get(LEAVE_REDIRECT_URL_KEY)

    def get_integrity_hash(self) -> str | None:
        return self.store.get(INTEGRITY_KEY)

    def write(self, record: ImpersonationRecord) -> ImpersonationSession:
        """Replace whatever is stored with a complete, signed record.

        The digest is computed before the store is touched, so a record that
        cannot be signed leaves the session as it was. The impersonating flag
        is set last, so a record is never flagged active before its digest
        exists.
        """
        digest = self.integrity.compute_digest(
            {
                "impersonator": record.impersonator,
                "guard_name": record.guard_name,
                "started_at": record.started_at,
                "leave_redirect_url": record.leave_redirect_url,
            }
        )

        self.clear()
        (
            self.set_impersonator(record.impersonator)
            .set_guard_name(record.guard_name)
            .set_started_at(record.started_at)
            .set_leave_redirect_url(record.leave_redirect_url)
        )
        self.store.put(INTEGRITY_KEY, digest)
        self.mark_as_impersonating()
        return self

    def clear(self) -> None:
        """Remove every impersonation key. Safe to call on an empty session."""
        for key in SESSION_KEYS:
            self.store.forget(key)

    # -- integrity ------------------------------------------------------------

    def _integrity_fields(self) -> dict[str, Any]:
        return {
            "impersonator": self.get_impersonator(),
            "guard_name": self.get_guard_name(),
            "started_at": self.get_started_at(),
            "leave_redirect_url": self.get_leave_redirect_url(),
        }

    def sign(self) -> ImpersonationSession:
        """Compute and store the digest for the fields currently stored."""
        digest = self.integrity.compute_digest(self._integrity_fields())
        self.store.put(INTEGRITY_KEY, digest)
        return self

    def verify(self) -> None:
        """Check the stored digest against the stored fields.

        Does nothing when no episode is active. On failure the record is
        cleared before TamperedSessionError is raised.

        Raises:
            TamperedSessionError: digest missing or not matching
        """
        if not self.is_impersonating():
            return

        stored = self.get_integrity_hash()

        if not stored:
            log.warning("Impersonation record has no integrity hash; clearing it")
            self.clear()
            raise TamperedSessionError()

        if not self.integrity.matches(stored, self._integrity_fields()):
            log.warning("Impersonation record failed its integrity check; clearing it")
            self.clear()
            raise TamperedSessionError()

    # -- expiry ---------------------------------------------------------------

    def is_expired(self, ttl: int | None) -> bool:
        """Whether the active episode has outlived ``ttl`` seconds.

        No TTL or no episode means not expired. An episode without a usable
        start time is always expired.
        """
        if ttl is None or not self.is_impersonating():
            return False

        started_at = self.get_started_at()

        if started_at is None:
            return True

        if isinstance(started_at, bool) or not isinstance(started_at, int):
            return True

        return (self.now() - started_at) > ttl
