"""Draw engine: session lifecycle, commit-reveal and tiered draws."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Union

from ..audit.chain import AuditChain, Block, MonotonicClock
from ..audit.payloads import (
    Payload,
    SeedRevealed,
    SessionCreated,
    TierDrawn,
    UserEntered,
    UsersImported,
)
from ..errors import (
    AlreadyDrawn,
    AlreadyRevealed,
    DuplicateParticipant,
    InvalidWinnerCount,
    NoParticipantsRemaining,
    PersistenceFailure,
    SeedNotRevealed,
    SessionNotFound,
    TierAlreadyDrawn,
)
from .commitment import SeedCommitment
from .selection import derive_material, select_winners
from .session import DrawSession, generate_session_id
from .tiers import SINGLE_DRAW_TIER, TierConfig

if TYPE_CHECKING:
    from ..persistence import SnapshotStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _require_text(value: str, what: str) -> str:
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError(f"{what} must be valid Unicode text") from None
    return value


def _clean_participant(value: Any) -> str:
    return _require_text(str(value).strip(), "participant id")


class DrawEngine:
    """Owns the session registry and the audit chain.

    Every mutating operation follows the same order: validate against the
    current session, stage a modified copy together with the next audit
    block, persist a snapshot containing both, then publish them. A failure
    at any point leaves memory untouched.

    Parameters
    ----------
    store : Optional[SnapshotStore], default: None
        Persistence collaborator. Defaults to an in-memory store.
    tiers : Optional[TierConfig], default: None
        Ordered prize tiers. Defaults to :data:`~fairdraw.draw.tiers.DEFAULT_TIERS`.
    clock : Optional[Callable[[], int]], default: None
        Millisecond timestamp source for blocks.
    """

    def __init__(
        self,
        store: Optional["SnapshotStore"] = None,
        *,
        tiers: Optional[TierConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if store is None:
            from ..persistence import MemorySnapshotStore

            store = MemorySnapshotStore()
        self._store = store
        self._tiers = tiers if tiers is not None else TierConfig()
        self._clock = clock if isinstance(clock, MonotonicClock) else MonotonicClock(clock)
        self._sessions: dict[str, DrawSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._chain = self._restore(self._store.load())

    # -------- startup --------
    def _restore(self, snapshot: Optional[dict[str, Any]]) -> AuditChain:
        if not snapshot:
            chain = AuditChain(clock=self._clock)
            chain.create_genesis()
            logger.info("Started new audit chain")
            return chain

        raw_chain = snapshot.get("chain")
        if raw_chain:
            chain = AuditChain.from_list(raw_chain, clock=self._clock)
        else:
            # Snapshots written without a chain start a fresh log.
            chain = AuditChain(clock=self._clock)
            chain.create_genesis()
            logger.warning("Snapshot has no audit chain; started a new one")

        participants = snapshot.get("participants") or {}
        winners = snapshot.get("winners") or {}
        for session_id, summary in (snapshot.get("sessions") or {}).items():
            session = DrawSession.from_json(
                summary,
                participants.get(session_id, ()),
                winners.get(session_id),
            )
            self._sessions[session.id] = session
        logger.info(
            "Restored %d sessions and %d audit blocks", len(self._sessions), len(chain)
        )
        return chain

    # -------- internals --------
    @property
    def tiers(self) -> TierConfig:
        return self._tiers

    def _session_lock(self, session_id: str) -> threading.Lock:
        with self._registry_lock:
            if session_id not in self._sessions:
                raise SessionNotFound(session_id)
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def _get(self, session_id: str) -> DrawSession:
        with self._registry_lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise SessionNotFound(session_id) from None

    def _snapshot(self, staged: DrawSession, block: Block) -> dict[str, Any]:
        with self._registry_lock:
            sessions = dict(self._sessions)
        sessions[staged.id] = staged
        return {
            "version": SNAPSHOT_VERSION,
            "sessions": {sid: s.summary_json() for sid, s in sessions.items()},
            "participants": {sid: list(s.participants) for sid, s in sessions.items()},
            "winners": {sid: s.winners_json() for sid, s in sessions.items()},
            "chain": self._chain.to_list() + [block.to_json()],
        }

    def _publish(self, staged: DrawSession, payload: Payload) -> Block:
        """Persist and then publish ``staged`` together with its audit block."""
        with self._chain.lock:
            block = self._chain.prepare(payload)
            snapshot = self._snapshot(staged, block)
            try:
                self._store.save(snapshot)
            except PersistenceFailure:
                raise
            except Exception as exc:
                logger.critical("Snapshot save failed for block %d: %s", block.index, exc)
                raise PersistenceFailure(f"Failed to persist draw state: {exc}") from exc
            self._chain.commit(block)
            with self._registry_lock:
                self._sessions[staged.id] = staged
            return block

    # -------- lifecycle operations --------
    def create_session(self, name: str, committed_hash: str) -> str:
        """Open a new session bound to ``committed_hash``.

        Raises
        ------
        ValueError
            If ``name`` is blank or ``committed_hash`` is not a SHA-256 hex digest.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("name is required")
        _require_text(name, "name")
        commitment = SeedCommitment()
        commitment.commit(committed_hash)

        with self._chain.lock:
            with self._registry_lock:
                session_id = generate_session_id(self._sessions)
            session = DrawSession(id=session_id, name=name, commitment=commitment)
            self._publish(
                session,
                SessionCreated(
                    session_id=session_id,
                    name=name,
                    seed_hash=commitment.committed_hash,
                ),
            )
        logger.info("Created session %s (%s)", session_id, name)
        return session_id

    @staticmethod
    def _ensure_enrolling(session: DrawSession) -> None:
        if session.draw_complete:
            raise AlreadyDrawn("session already drawn")
        if session.commitment.is_revealed:
            raise AlreadyRevealed("Enrollment is closed once the seed is revealed")

    def enter(self, session_id: str, participant_id: str, *, strict: bool = False) -> list[str]:
        """Enroll ``participant_id`` and return the participant list.

        Enrolling someone twice is a no-op unless ``strict`` is set, in which
        case :class:`DuplicateParticipant` is raised.
        """
        participant = _clean_participant(participant_id)
        if not participant:
            raise ValueError("participant id is required")

        with self._session_lock(session_id):
            session = self._get(session_id)
            self._ensure_enrolling(session)
            if session.is_enrolled(participant):
                if strict:
                    raise DuplicateParticipant(f"'{participant}' is already enrolled")
                return list(session.participants)
            staged = session.copy()
            staged.add_participant(participant)
            self._publish(staged, UserEntered(session_id=session_id, user=participant))
            logger.debug("Enrolled %s in session %s", participant, session_id)
            return list(staged.participants)

    def import_participants(
        self, session_id: str, ids: Iterable[Any]
    ) -> tuple[list[str], list[str]]:
        """Enroll many participants at once.

        Blank entries and duplicates (already enrolled or repeated in ``ids``)
        are skipped. A single ``USERS_IMPORTED`` block records the batch.

        Returns
        -------
        tuple[list[str], list[str]]
            The full participant list and the identifiers actually added.
        """
        with self._session_lock(session_id):
            session = self._get(session_id)
            self._ensure_enrolling(session)
            staged = session.copy()
            added: list[str] = []
            for raw in ids:
                participant = _clean_participant(raw)
                if participant and staged.add_participant(participant):
                    added.append(participant)
            if not added:
                return list(session.participants), []
            self._publish(
                staged, UsersImported(session_id=session_id, users=tuple(added))
            )
            logger.info("Imported %d participants into session %s", len(added), session_id)
            return list(staged.participants), added

    def reveal_seed(self, session_id: str, secret: Union[str, bytes]) -> bool:
        """Reveal the committed seed, unlocking draws.

        Raises
        ------
        AlreadyDrawn
            If the session is complete.
        AlreadyRevealed
            If a seed was already accepted.
        SeedHashMismatch
            If ``secret`` does not hash to the committed value.
        TypeError
            If ``secret`` is neither ``str`` nor ``bytes`` (bytes are read as UTF-8).
        """
        with self._session_lock(session_id):
            session = self._get(session_id)
            if session.draw_complete:
                raise AlreadyDrawn("session already drawn")
            seed = session.commitment.check(secret)
            staged = session.copy()
            staged.commitment.reveal(seed)
            self._publish(staged, SeedRevealed(session_id=session_id, seed=seed))
        logger.info("Seed revealed for session %s", session_id)
        return True

    def _resolve_count(self, tier_name: str, count: Optional[int]) -> int:
        if count is None:
            quota = self._tiers.quota(tier_name)
            return 1 if quota is None else quota
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise InvalidWinnerCount("winner count must be a positive integer")
        return count

    def _draw(
        self,
        session_id: str,
        tier_name: str,
        count: int,
        clamp: bool,
        material_suffix: Callable[[DrawSession], str],
        completes: Callable[[DrawSession], bool],
    ) -> list[str]:
        with self._session_lock(session_id):
            session = self._get(session_id)
            seed = session.commitment.revealed_seed
            if seed is None:
                raise SeedNotRevealed("seed not revealed")
            if tier_name in session.tier_winners:
                raise TierAlreadyDrawn(tier_name)
            if session.draw_complete:
                raise AlreadyDrawn("session already drawn")

            remaining = session.remaining()
            if count > 0 and not remaining:
                raise NoParticipantsRemaining("no participants remaining")
            if count > len(remaining) and not clamp:
                raise InvalidWinnerCount(
                    f"Requested {count} winners but only {len(remaining)} remain"
                )
            k = min(count, len(remaining))

            with self._chain.lock:
                tip = self._chain.latest_hash()
                material = derive_material(tip, seed, material_suffix(session))
                winners = select_winners(remaining, material, k)
                staged = session.copy()
                staged.record_tier(tier_name, winners)
                staged.draw_complete = completes(staged)
                self._publish(
                    staged,
                    TierDrawn(
                        session_id=session_id,
                        tier=tier_name,
                        winners=tuple(winners),
                        rand_base=material.hex(),
                    ),
                )
        logger.info(
            "Drew %d winners for tier %s in session %s", len(winners), tier_name, session_id
        )
        return winners

    def draw_tier(
        self,
        session_id: str,
        tier_name: str,
        count: Optional[int] = None,
        *,
        clamp: bool = True,
    ) -> list[str]:
        """Draw winners for one tier from participants who have not won yet.

        Parameters
        ----------
        session_id : str
            Session to draw in.
        tier_name : str
            Tier to draw. Each tier is drawn at most once per session.
        count : Optional[int], default: None
            Winners wanted. When omitted the configured quota is used (1 for
            tiers that are not configured).
        clamp : bool, default: True
            When ``True`` the count is reduced to the number of remaining
            participants; otherwise a larger count raises
            :class:`InvalidWinnerCount`.

        Returns
        -------
        list[str]
            Winners in draw order.

        Notes
        -----
        The selection material is ``SHA-256(chain_tip + seed + tier_name)``
        where ``chain_tip`` is the hash the new ``TIER_DRAWN`` block links to,
        so the draw can be recomputed from the published chain.
        """
        tier_name = (tier_name or "").strip()
        if not tier_name:
            raise ValueError("tier is required")
        if tier_name == SINGLE_DRAW_TIER:
            raise ValueError(f"Tier name '{SINGLE_DRAW_TIER}' is reserved for single_draw")
        resolved = self._resolve_count(tier_name, count)
        return self._draw(
            session_id,
            tier_name,
            resolved,
            clamp,
            material_suffix=lambda _session: tier_name,
            completes=lambda staged: self._tiers.is_complete(list(staged.tier_winners)),
        )

    def single_draw(self, session_id: str, count: int = 1) -> list[str]:
        """Draw ``count`` winners into the ``default`` tier and close the session."""
        resolved = self._resolve_count(SINGLE_DRAW_TIER, count)
        return self._draw(
            session_id,
            SINGLE_DRAW_TIER,
            resolved,
            True,
            material_suffix=lambda session: str(len(session.participants)),
            completes=lambda _staged: True,
        )

    # -------- queries --------
    def get_session(self, session_id: str) -> DrawSession:
        """Return a copy of the session."""
        return self._get(session_id).copy()

    def get_sessions(self) -> dict[str, dict[str, Any]]:
        with self._registry_lock:
            sessions = list(self._sessions.values())
        return {session.id: session.summary_json() for session in sessions}

    def get_participants(self, session_id: str) -> list[str]:
        return list(self._get(session_id).participants)

    def get_winners(self, session_id: str) -> dict[str, Any]:
        return self._get(session_id).winners_json()

    def get_chain(self) -> list[dict[str, Any]]:
        return self._chain.to_list()

    def latest_hash(self) -> str:
        return self._chain.latest_hash()

    def verify_chain(self) -> bool:
        return self._chain.verify()


__all__ = ["DrawEngine", "SNAPSHOT_VERSION"]
