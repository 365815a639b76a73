"""Recompute draws from a published audit chain.

Everything needed to rerun a draw is on the chain: the committed hash, the
enrollment events, the revealed seed and, for each ``TIER_DRAWN`` block, the
hash of the block before it (the chain tip the engine used). This module
replays those events without touching engine state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .audit.chain import AuditChain
from .audit.payloads import SeedRevealed, SessionCreated, TierDrawn, UserEntered, UsersImported
from .draw.commitment import hash_seed
from .draw.selection import derive_material, select_winners
from .draw.tiers import SINGLE_DRAW_TIER, TierConfig
from .errors import ChainIntegrityError


@dataclass
class DrawReplay:
    """Recorded versus recomputed outcome of one ``TIER_DRAWN`` block."""

    block_index: int
    session_id: str
    tier: str
    recorded_winners: list[str]
    expected_winners: list[str]
    recorded_material: str
    expected_material: str
    expected_count: Optional[int] = None

    @property
    def ok(self) -> bool:
        if self.expected_count is not None and len(self.recorded_winners) != self.expected_count:
            return False
        return (
            self.recorded_winners == self.expected_winners
            and self.recorded_material == self.expected_material
        )


@dataclass
class _ReplayState:
    seed_hash: str
    participants: list[str] = field(default_factory=list)
    seed: Optional[str] = None
    winners: set[str] = field(default_factory=set)


def replay_chain(
    raw_blocks: Iterable[Mapping[str, Any]],
    tiers: Optional[TierConfig] = None,
) -> list[DrawReplay]:
    """Replay every draw recorded in ``raw_blocks``.

    Without ``tiers`` each draw is recomputed for the number of winners it
    records, so a draw cut short at the end still matches its own prefix.
    With ``tiers`` every configured tier must also record its quota, clamped
    to the participants still in the running. Pass it only when draws use
    the configured quotas rather than explicit counts.

    Raises
    ------
    ChainIntegrityError
        If the blocks do not form a valid chain, a revealed seed does not
        match its commitment, or an event refers to an unknown session.
    """

    chain = AuditChain.from_list(raw_blocks)
    states: dict[str, _ReplayState] = {}
    replays: list[DrawReplay] = []

    for block in chain.blocks[1:]:
        data = block.data
        if isinstance(data, SessionCreated):
            states[data.session_id] = _ReplayState(seed_hash=data.seed_hash)
            continue

        state = states.get(getattr(data, "session_id", ""))
        if state is None:
            raise ChainIntegrityError(
                f"Block {block.index} refers to an unknown session", index=block.index
            )

        if isinstance(data, UserEntered):
            if data.user not in state.participants:
                state.participants.append(data.user)
        elif isinstance(data, UsersImported):
            for user in data.users:
                if user not in state.participants:
                    state.participants.append(user)
        elif isinstance(data, SeedRevealed):
            if hash_seed(data.seed) != state.seed_hash:
                raise ChainIntegrityError(
                    f"Seed revealed in block {block.index} does not match its commitment",
                    index=block.index,
                )
            state.seed = data.seed
        elif isinstance(data, TierDrawn):
            if state.seed is None:
                raise ChainIntegrityError(
                    f"Block {block.index} draws before the seed was revealed",
                    index=block.index,
                )
            if data.tier == SINGLE_DRAW_TIER:
                suffix = str(len(state.participants))
            else:
                suffix = data.tier
            material = derive_material(block.previous_hash, state.seed, suffix)
            remaining = [p for p in state.participants if p not in state.winners]
            k = len(data.winners)
            expected = select_winners(remaining, material, k) if k <= len(remaining) else []
            quota = tiers.quota(data.tier) if tiers is not None else None
            expected_count = None if quota is None else min(quota, len(remaining))
            replays.append(
                DrawReplay(
                    block_index=block.index,
                    session_id=data.session_id,
                    tier=data.tier,
                    recorded_winners=list(data.winners),
                    expected_winners=expected,
                    recorded_material=data.rand_base,
                    expected_material=material.hex(),
                    expected_count=expected_count,
                )
            )
            state.winners.update(data.winners)

    return replays


def verify_draws(
    raw_blocks: Iterable[Mapping[str, Any]],
    tiers: Optional[TierConfig] = None,
) -> list[DrawReplay]:
    """Like :func:`replay_chain` but raise on the first draw that does not match."""
    replays = replay_chain(raw_blocks, tiers)
    for replay in replays:
        if not replay.ok:
            raise ChainIntegrityError(
                f"Draw for tier '{replay.tier}' in block {replay.block_index} "
                "does not match its recomputation",
                index=replay.block_index,
            )
    return replays


__all__ = ["DrawReplay", "replay_chain", "verify_draws"]
