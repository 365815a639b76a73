"""Fairness-auditable prize draws with commit-reveal seeds and a hash-linked audit log."""

from .audit import AuditChain, Block
from .draw import DrawEngine, SeedCommitment, TierConfig, hash_seed, select_winners
from .errors import DrawError

__all__ = [
    "AuditChain",
    "Block",
    "DrawEngine",
    "DrawError",
    "SeedCommitment",
    "TierConfig",
    "hash_seed",
    "select_winners",
]
