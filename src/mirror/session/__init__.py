"""mirror.session - Tamper-evident impersonation state."""

from mirror.session.integrity import COVERED_FIELDS, IntegrityGuard
from mirror.session.state import (
    SESSION_KEYS,
    ImpersonationRecord,
    ImpersonationSession,
    MappingSessionStore,
)

__all__ = [
    "COVERED_FIELDS",
    "IntegrityGuard",
    "ImpersonationRecord",
    "ImpersonationSession",
    "MappingSessionStore",
    "SESSION_KEYS",
]
