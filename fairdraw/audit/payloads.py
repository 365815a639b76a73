"""Payload variants recorded on audit blocks.

Each variant has a fixed field order. ``to_json`` returns a plain dict in
that order so the canonical JSON used for hashing is identical wherever the
chain is recomputed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class Genesis:
    message: str = "Genesis Block"

    def to_json(self) -> dict[str, Any]:
        return {"message": self.message}


@dataclass(frozen=True)
class SessionCreated:
    session_id: str
    name: str
    seed_hash: str

    type = "SESSION_CREATED"

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "name": self.name,
            "seedHash": self.seed_hash,
        }


@dataclass(frozen=True)
class UserEntered:
    session_id: str
    user: str

    type = "USER_ENTERED"

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "sessionId": self.session_id, "user": self.user}


@dataclass(frozen=True)
class UsersImported:
    session_id: str
    users: tuple[str, ...]

    type = "USERS_IMPORTED"

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "users": list(self.users),
        }


@dataclass(frozen=True)
class SeedRevealed:
    session_id: str
    seed: str

    type = "SEED_REVEALED"

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "sessionId": self.session_id, "seed": self.seed}


@dataclass(frozen=True)
class TierDrawn:
    """Outcome of one tier draw.

    ``rand_base`` is the hex digest of the selection material so that anyone
    holding the chain can rerun the selection.
    """

    session_id: str
    tier: str
    winners: tuple[str, ...]
    rand_base: str

    type = "TIER_DRAWN"

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "tier": self.tier,
            "winners": list(self.winners),
            "randBase": self.rand_base,
        }


Payload = Union[Genesis, SessionCreated, UserEntered, UsersImported, SeedRevealed, TierDrawn]


def payload_from_json(data: Mapping[str, Any]) -> Payload:
    """Rebuild a payload variant from its JSON form.

    Raises
    ------
    ValueError
        If ``data`` is not an object, names an unknown type or lacks a
        required field.
    """

    if not isinstance(data, Mapping):
        raise ValueError("Audit payload must be an object")
    kind = data.get("type")
    if kind is None:
        if "message" in data:
            return Genesis(message=data["message"])
        raise ValueError("Audit payload has no 'type' field")
    try:
        if kind == "SESSION_CREATED":
            return SessionCreated(
                session_id=data["sessionId"], name=data["name"], seed_hash=data["seedHash"]
            )
        if kind == "USER_ENTERED":
            return UserEntered(session_id=data["sessionId"], user=data["user"])
        if kind == "USERS_IMPORTED":
            return UsersImported(session_id=data["sessionId"], users=tuple(data["users"]))
        if kind == "SEED_REVEALED":
            return SeedRevealed(session_id=data["sessionId"], seed=data["seed"])
        if kind == "TIER_DRAWN":
            return TierDrawn(
                session_id=data["sessionId"],
                tier=data["tier"],
                winners=tuple(data["winners"]),
                rand_base=data["randBase"],
            )
    except KeyError as exc:
        raise ValueError(f"Audit payload '{kind}' is missing field {exc}") from exc
    raise ValueError(f"Unknown audit payload type '{kind}'")


__all__ = [
    "Genesis",
    "Payload",
    "SeedRevealed",
    "SessionCreated",
    "TierDrawn",
    "UserEntered",
    "UsersImported",
    "payload_from_json",
]
