"""
Per-request checks built on an Impersonator.

These are framework-neutral: web integrations turn ExpiredRedirect into a
redirect with a flash message and AccessDeniedError into a 403.

Usage:
    expired = check_ttl(impersonator)
    if expired:
        return redirect(expired.url)        # and show expired.message

    ensure_not_impersonating(impersonator)  # e.g. on "change password"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mirror.base import AccessDeniedError, AuthGateway
from mirror.impersonator import Impersonator
from mirror.policy import can_be_impersonated as _can_be_impersonated
from mirror.policy import can_impersonate as _can_impersonate

__all__ = [
    "EXPIRED_MESSAGE",
    "PREVENT_MESSAGE",
    "REQUIRE_MESSAGE",
    "ExpiredRedirect",
    "can_be_impersonated",
    "can_impersonate",
    "check_ttl",
    "ensure_impersonating",
    "ensure_not_impersonating",
    "impersonating",
]

log = logging.getLogger(__name__)

EXPIRED_MESSAGE = (
    "Your impersonation session has expired and you have been returned to your "
    "original account."
)
PREVENT_MESSAGE = "This action is not allowed while impersonating another user."
REQUIRE_MESSAGE = "This action requires active impersonation."


@dataclass(frozen=True)
class ExpiredRedirect:
    """Where to send the user after an expired episode was ended."""

    url: str
    message: str = EXPIRED_MESSAGE


def check_ttl(impersonator: Impersonator) -> ExpiredRedirect | None:
    """End an expired episode. Returns None when there is nothing to do.

    The record is verified first, so an edited start time cannot keep an
    episode alive.

    Raises:
        TamperedSessionError: the stored record fails its integrity check
    """
    if not impersonator.is_impersonating():
        return None

    impersonator.session.verify()

    if not impersonator.is_expired():
        return None

    url = impersonator.get_leave_redirect_url() or impersonator.config.default_redirect_url
    impersonator_id = impersonator.impersonator_id()

    impersonator.force_stop()

    log.info("Expired impersonation ended for %s; redirecting to %s", impersonator_id, url)
    return ExpiredRedirect(url=url)


def ensure_not_impersonating(impersonator: Impersonator) -> None:
    """Raises AccessDeniedError while an episode is active."""
    if impersonator.is_impersonating():
        raise AccessDeniedError(PREVENT_MESSAGE)


def ensure_impersonating(impersonator: Impersonator) -> None:
    """Raises AccessDeniedError unless an episode is active."""
    if not impersonator.is_impersonating():
        raise AccessDeniedError(REQUIRE_MESSAGE)


# =============================================================================
# TEMPLATE PREDICATES
# =============================================================================


def impersonating(impersonator: Impersonator, guard: str | None = None) -> bool:
    """Whether an episode is active, optionally only one started on ``guard``."""
    if guard is None:
        return impersonator.is_impersonating()
    return (
        impersonator.is_impersonating()
        and impersonator.session.get_guard_name() == guard
    )


def can_impersonate(auth: AuthGateway, guard: str | None = None) -> bool:
    """Whether the principal logged in on ``guard`` may impersonate."""
    user = auth.guard(guard or auth.default_guard_name()).user()
    return _can_impersonate(user)


def can_be_impersonated(
    auth: AuthGateway, principal: Any | None = None, guard: str | None = None
) -> bool:
    """Whether ``principal`` (default: the logged in one) may be impersonated."""
    if principal is None:
        principal = auth.guard(guard or auth.default_guard_name()).user()
    return _can_be_impersonated(principal)
