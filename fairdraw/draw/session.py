"""In-memory draw session aggregate."""

from __future__ import annotations

import enum
import secrets
import string
from typing import Any, Container, Iterable, Mapping, Optional

from .commitment import SeedCommitment

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


class SessionState(str, enum.Enum):
    OPEN = "open"
    SEED_REVEALED = "seed_revealed"
    DRAWING = "drawing"
    COMPLETED = "completed"


def generate_session_id(
    existing: Container[str] = (),
    prefix: str = "S",
    length: int = 12,
    max_attempts: int = 32,
) -> str:
    """Return a session identifier that is not already in ``existing``."""

    for _ in range(max_attempts):
        suffix = "".join(secrets.choice(BASE62_ALPHABET) for _ in range(length))
        candidate = f"{prefix}-{suffix}"
        if candidate not in existing:
            return candidate
    raise RuntimeError("Unable to generate a unique session identifier after multiple attempts")


class DrawSession:
    """A single draw: its commitment, enrolled participants and winners.

    Attributes
    ----------
    id : str
        Unique session identifier.
    name : str
        Operator supplied label.
    commitment : SeedCommitment
        Committed seed hash and, after reveal, the seed.
    participants : list[str]
        Participants in enrollment order. Entries are never removed.
    tier_winners : dict[str, list[str]]
        Winners per tier in draw order. A tier key exists once it was drawn,
        even when its result is empty.
    draw_complete : bool
        Set once every configured tier was drawn; the session is then frozen.
    """

    def __init__(
        self,
        id: str,
        name: str,
        commitment: SeedCommitment,
        participants: Optional[Iterable[str]] = None,
        tier_winners: Optional[Mapping[str, Iterable[str]]] = None,
        draw_complete: bool = False,
    ) -> None:
        self.id = id
        self.name = name
        self.commitment = commitment
        self.participants: list[str] = []
        self._enrolled: set[str] = set()
        for participant in participants or ():
            self.add_participant(participant)
        self.tier_winners: dict[str, list[str]] = {}
        self.all_winners: list[str] = []
        for tier, winners in (tier_winners or {}).items():
            self.record_tier(tier, list(winners))
        self.draw_complete = draw_complete

    @property
    def state(self) -> SessionState:
        if self.draw_complete:
            return SessionState.COMPLETED
        if self.tier_winners:
            return SessionState.DRAWING
        if self.commitment.is_revealed:
            return SessionState.SEED_REVEALED
        return SessionState.OPEN

    @property
    def winner_set(self) -> set[str]:
        return set(self.all_winners)

    def is_enrolled(self, participant_id: str) -> bool:
        return participant_id in self._enrolled

    def add_participant(self, participant_id: str) -> bool:
        """Append ``participant_id``; return ``False`` if already enrolled."""
        if participant_id in self._enrolled:
            return False
        self._enrolled.add(participant_id)
        self.participants.append(participant_id)
        return True

    def remaining(self) -> list[str]:
        """Participants that have not won any tier yet, in enrollment order."""
        won = self.winner_set
        return [p for p in self.participants if p not in won]

    def record_tier(self, tier: str, winners: list[str]) -> None:
        """Store the winners of ``tier``.

        Raises
        ------
        ValueError
            If the tier already has a result, a winner is not enrolled, or a
            winner already won another tier.
        """
        if tier in self.tier_winners:
            raise ValueError(f"Tier '{tier}' already has a result")
        won = self.winner_set
        if len(set(winners)) != len(winners):
            raise ValueError(f"Tier '{tier}' lists a winner twice")
        for winner in winners:
            if winner not in self._enrolled:
                raise ValueError(f"Winner '{winner}' is not enrolled")
            if winner in won:
                raise ValueError(f"Winner '{winner}' already won another tier")
        self.tier_winners[tier] = list(winners)
        self.all_winners.extend(winners)

    def copy(self) -> "DrawSession":
        return DrawSession(
            id=self.id,
            name=self.name,
            commitment=self.commitment.copy(),
            participants=self.participants,
            tier_winners=self.tier_winners,
            draw_complete=self.draw_complete,
        )

    # -------- serialization --------
    def summary_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "seedHash": self.commitment.committed_hash,
            "revealedSeed": self.commitment.revealed_seed,
            "drawn": self.draw_complete,
            "state": self.state.value,
        }

    def winners_json(self) -> dict[str, Any]:
        return {
            "all": list(self.all_winners),
            "tiers": {tier: list(winners) for tier, winners in self.tier_winners.items()},
        }

    @classmethod
    def from_json(
        cls,
        summary: Mapping[str, Any],
        participants: Iterable[str] = (),
        winners: Optional[Mapping[str, Any]] = None,
    ) -> "DrawSession":
        """Rebuild a session from the three snapshot sections.

        Raises
        ------
        ValueError
            If the stored data breaks a session invariant, including a
            revealed seed that does not match the committed hash.
        """
        commitment = SeedCommitment(
            committed_hash=summary["seedHash"],
            revealed_seed=summary.get("revealedSeed"),
        )
        tiers = (winners or {}).get("tiers") or {}
        session = cls(
            id=str(summary["id"]),
            name=summary.get("name", ""),
            commitment=commitment,
            participants=participants,
            tier_winners=tiers,
            draw_complete=bool(summary.get("drawn", False)),
        )
        stored_all = (winners or {}).get("all")
        if stored_all is not None and sorted(stored_all) != sorted(session.all_winners):
            raise ValueError(f"Session '{session.id}' winners do not match its tier results")
        return session

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawSession(id={id}, name={name}, participants={count}, state={state})>".format(
            id=self.id,
            name=self.name,
            count=len(self.participants),
            state=self.state.value,
        )


__all__ = ["DrawSession", "SessionState", "generate_session_id"]
