"""Session lifecycle, commit-reveal protocol and winner selection."""

from .commitment import SeedCommitment, hash_seed
from .engine import DrawEngine
from .selection import derive_material, select_winners
from .session import DrawSession, SessionState
from .tiers import DEFAULT_TIERS, PrizeTier, TierConfig

__all__ = [
    "DEFAULT_TIERS",
    "DrawEngine",
    "DrawSession",
    "PrizeTier",
    "SeedCommitment",
    "SessionState",
    "TierConfig",
    "derive_material",
    "hash_seed",
    "select_winners",
]
