"""
mirror - Safe, tamper-evident user impersonation for session-based apps.

This package provides:
- Impersonator: start/stop an impersonation episode and query it
- ImpersonationSession: the signed impersonation record in the session
- Policy helpers, guards, principal directories and per-request gates
"""

from mirror.auth import AuthManager, SessionGuard
from mirror.base import (
    AccessDeniedError,
    AlreadyImpersonatingError,
    CannotBeImpersonatedError,
    CannotImpersonateError,
    DirectoryError,
    ImpersonationError,
    ImpersonationExpiredError,
    MirrorError,
    NotEnabledError,
    NotImpersonatingError,
    PrincipalNotFoundError,
    TamperedSessionError,
)
from mirror.config import MirrorConfig
from mirror.directory import (
    DirectoryPrincipal,
    MemoryPrincipalDirectory,
    PostgresPrincipalDirectory,
)
from mirror.events import EventDispatcher, ImpersonationStarted, ImpersonationStopped
from mirror.impersonator import Impersonator
from mirror.policy import Impersonatable, can_be_impersonated, can_impersonate
from mirror.session import (
    ImpersonationRecord,
    ImpersonationSession,
    IntegrityGuard,
    MappingSessionStore,
)

__all__ = [
    # Orchestration
    "Impersonator",
    "ImpersonationSession",
    "ImpersonationRecord",
    "IntegrityGuard",
    "MappingSessionStore",
    "MirrorConfig",
    # Collaborators
    "AuthManager",
    "SessionGuard",
    "DirectoryPrincipal",
    "MemoryPrincipalDirectory",
    "PostgresPrincipalDirectory",
    "EventDispatcher",
    "ImpersonationStarted",
    "ImpersonationStopped",
    # Policy
    "Impersonatable",
    "can_impersonate",
    "can_be_impersonated",
    # Errors
    "MirrorError",
    "ImpersonationError",
    "NotEnabledError",
    "AlreadyImpersonatingError",
    "NotImpersonatingError",
    "CannotImpersonateError",
    "CannotBeImpersonatedError",
    "ImpersonationExpiredError",
    "TamperedSessionError",
    "PrincipalNotFoundError",
    "AccessDeniedError",
    "DirectoryError",
]
