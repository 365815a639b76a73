"""Locally generated seeds."""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from ..draw.commitment import hash_seed


@dataclass(frozen=True)
class SeedPair:
    """A secret seed and the hash an operator commits to."""

    seed: str
    seed_hash: str

    @classmethod
    def from_seed(cls, seed: str) -> "SeedPair":
        return cls(seed=seed, seed_hash=hash_seed(seed))


def generate_seed() -> SeedPair:
    """Return 32 random bytes as hex together with their SHA-256."""
    return SeedPair.from_seed(secrets.token_hex(32))


class LocalSeedProvider:
    def new_seed(self) -> SeedPair:
        return generate_seed()


__all__ = ["LocalSeedProvider", "SeedPair", "generate_seed"]
