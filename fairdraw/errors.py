"""Typed errors raised by the draw engine.

Every caller-correctable failure derives from :class:`DrawError` and carries a
stable ``code`` that a routing layer can translate into a response without
matching on message text.
"""

from __future__ import annotations

from typing import Optional


class DrawError(Exception):
    """Base class for draw engine errors."""

    code = "draw_error"


class SessionNotFound(DrawError, KeyError):
    code = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session '{session_id}' not found")
        self.session_id = session_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class AlreadyCommitted(DrawError, ValueError):
    code = "already_committed"


class AlreadyRevealed(DrawError, ValueError):
    code = "already_revealed"


class SeedHashMismatch(DrawError, ValueError):
    code = "seed_hash_mismatch"


class AlreadyDrawn(DrawError, ValueError):
    """The session has completed its draw and accepts no further changes."""

    code = "already_drawn"


class TierAlreadyDrawn(DrawError, ValueError):
    code = "tier_already_drawn"

    def __init__(self, tier: str) -> None:
        super().__init__(f"Tier '{tier}' already drawn")
        self.tier = tier


class SeedNotRevealed(DrawError, ValueError):
    code = "seed_not_revealed"


class InvalidWinnerCount(DrawError, ValueError):
    code = "invalid_winner_count"


class NoParticipantsRemaining(DrawError, ValueError):
    code = "no_participants_remaining"


class DuplicateParticipant(DrawError, ValueError):
    code = "duplicate_participant"


class PersistenceFailure(DrawError, RuntimeError):
    """The snapshot could not be written; the operation did not take effect."""

    code = "persistence_failure"


class ChainIntegrityError(DrawError, RuntimeError):
    """An audit chain failed hash or link verification."""

    code = "chain_integrity"

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        super().__init__(message)
        self.index = index


__all__ = [
    "AlreadyCommitted",
    "AlreadyDrawn",
    "AlreadyRevealed",
    "ChainIntegrityError",
    "DrawError",
    "DuplicateParticipant",
    "InvalidWinnerCount",
    "NoParticipantsRemaining",
    "PersistenceFailure",
    "SeedHashMismatch",
    "SeedNotRevealed",
    "SessionNotFound",
    "TierAlreadyDrawn",
]
