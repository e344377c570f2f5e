"""mirror.impersonator - Impersonation state machine."""

from mirror.impersonator.client import Impersonator

__all__ = ["Impersonator"]
