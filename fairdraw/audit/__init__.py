"""Hash-linked audit log used by the draw engine."""

from .chain import AuditChain, Block, MonotonicClock
from .payloads import (
    Genesis,
    Payload,
    SeedRevealed,
    SessionCreated,
    TierDrawn,
    UserEntered,
    UsersImported,
)

__all__ = [
    "AuditChain",
    "Block",
    "Genesis",
    "MonotonicClock",
    "Payload",
    "SeedRevealed",
    "SessionCreated",
    "TierDrawn",
    "UserEntered",
    "UsersImported",
]
