"""
Per-principal impersonation policy.

A principal class may define ``can_impersonate()`` and/or
``can_be_impersonated()``. Whatever it leaves out is permitted.

Usage:
    class User(Impersonatable):
        def can_impersonate(self) -> bool:
            return self.is_staff

        def can_be_impersonated(self) -> bool:
            return not self.is_superuser
"""

from __future__ import annotations

from typing import Any

__all__ = ["Impersonatable", "can_be_impersonated", "can_impersonate"]


class Impersonatable:
    """Mixin with the permissive defaults. Override either method to restrict."""

    def can_impersonate(self) -> bool:
        return True

    def can_be_impersonated(self) -> bool:
        return True


def _check(principal: Any, capability: str) -> bool:
    if principal is None:
        return False
    predicate = getattr(principal, capability, None)
    if predicate is None:
        return True
    return bool(predicate())


def can_impersonate(principal: Any) -> bool:
    """Whether ``principal`` may impersonate others. None is never allowed."""
    return _check(principal, "can_impersonate")


def can_be_impersonated(principal: Any) -> bool:
    """Whether ``principal`` may be impersonated. None is never allowed."""
    return _check(principal, "can_be_impersonated")
