"""
HMAC integrity digest for the impersonation record.

The digest binds who is impersonating, which guard, when the episode started
and where to return, so none of them can be edited on its own.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Mapping

__all__ = ["COVERED_FIELDS", "IntegrityGuard"]

# Order is part of the canonical payload
COVERED_FIELDS = ("impersonator", "guard_name", "started_at", "leave_redirect_url")


class IntegrityGuard:
    """Computes and checks HMAC-SHA-256 digests with a server-held secret."""

    def __init__(self, secret: str | bytes) -> None:
        if not secret:
            raise ValueError("An application secret is required to sign impersonation data")
        self._key = secret.encode() if isinstance(secret, str) else bytes(secret)

    @staticmethod
    def build_payload(fields: Mapping[str, Any]) -> str:
        """Serialize the covered fields deterministically. Missing values become null."""
        return json.dumps(
            {name: fields.get(name) for name in COVERED_FIELDS},
            separators=(",", ":"),
        )

    def compute_digest(self, fields: Mapping[str, Any]) -> str:
        payload = self.build_payload(fields).encode()
        return hmac.new(self._key, payload, hashlib.sha256).hexdigest()

    def matches(self, stored: Any, fields: Mapping[str, Any]) -> bool:
        """Constant-time comparison of a stored digest against the fields."""
        if not isinstance(stored, str):
            return False
        expected = self.compute_digest(fields)
        return hmac.compare_digest(stored.encode(), expected.encode())
