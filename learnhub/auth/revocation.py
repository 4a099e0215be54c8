"""Revocation registry for access tokens.

A logged-out token is remembered until its own ``exp``; after that the
signature check rejects it anyway, so the entry only costs memory until the
next sweep.
"""

from datetime import datetime

from learnhub.core.registry import TTLRegistry


class TokenRevocationRegistry:
    """Set of revoked token strings with per-token expiry."""

    def __init__(self, registry: TTLRegistry | None = None) -> None:
        self.registry = registry if registry is not None else TTLRegistry()

    def revoke(self, token: str, expires_at: datetime) -> None:
        self.registry.add(token, expires_at)

    def is_revoked(self, token: str) -> bool:
        return self.registry.contains(token)

    def sweep(self) -> int:
        """Drop entries whose tokens have expired."""
        return self.registry.sweep()
