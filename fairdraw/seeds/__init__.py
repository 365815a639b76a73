"""Seed generation strategies.

Callers depend only on ``new_seed() -> SeedPair``; which provider produced
the seed does not matter to the commit-reveal protocol.
"""

from __future__ import annotations

from typing import Protocol

from ..config import SeedProviderSettings
from .local import LocalSeedProvider, SeedPair, generate_seed
from .remote import RandomnessClient, RemoteSeedProvider


class SeedProvider(Protocol):
    def new_seed(self) -> SeedPair: ...


def provider_from_settings(settings: SeedProviderSettings) -> SeedProvider:
    """Return a remote provider when a host is configured, else a local one."""
    if settings.enabled:
        return RemoteSeedProvider(RandomnessClient.from_settings(settings))
    return LocalSeedProvider()


__all__ = [
    "LocalSeedProvider",
    "RandomnessClient",
    "RemoteSeedProvider",
    "SeedPair",
    "SeedProvider",
    "generate_seed",
    "provider_from_settings",
]
