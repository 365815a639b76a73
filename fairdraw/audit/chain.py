"""Append-only, hash-linked audit chain.

Every block stores its index, a millisecond timestamp, a payload and the hash
of the previous block. The block hash is SHA-256 over the canonical JSON of
those four fields, so the stored hash never feeds into itself. The chain is
not consensus driven; it is a tamper-evident log that lets outside observers
confirm commitments and results.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from ..errors import ChainIntegrityError
from .payloads import Genesis, Payload, payload_from_json

logger = logging.getLogger(__name__)

GENESIS_PREVIOUS_HASH = "0"


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class MonotonicClock:
    """Timestamp source that never goes backwards.

    Timestamps are informational only; ordering is carried by index and
    hash links.
    """

    def __init__(self, source: Optional[Callable[[], int]] = None) -> None:
        self._source = source or _wall_clock_ms
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            now = int(self._source())
            if now < self._last:
                now = self._last
            self._last = now
            return now

    def observe(self, timestamp: int) -> None:
        """Raise the floor so stamps never precede ``timestamp``."""
        with self._lock:
            if timestamp > self._last:
                self._last = timestamp


def canonical_json(index: int, timestamp: int, data: Mapping[str, Any], previous_hash: str) -> str:
    """Serialize block content the way ``JSON.stringify`` would."""
    return json.dumps(
        {
            "index": index,
            "timestamp": timestamp,
            "data": data,
            "previousHash": previous_hash,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_hash(index: int, timestamp: int, data: Mapping[str, Any], previous_hash: str) -> str:
    blob = canonical_json(index, timestamp, data, previous_hash)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Block:
    """A single, immutable audit record."""

    index: int
    timestamp: int
    data: Payload
    previous_hash: str
    hash: str

    def compute_hash(self) -> str:
        return compute_hash(self.index, self.timestamp, self.data.to_json(), self.previous_hash)

    def to_json(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "data": self.data.to_json(),
            "previousHash": self.previous_hash,
            "hash": self.hash,
        }

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "Block":
        if not isinstance(raw, Mapping):
            raise ValueError("Audit block must be an object")
        try:
            return cls(
                index=int(raw["index"]),
                timestamp=int(raw["timestamp"]),
                data=payload_from_json(raw["data"]),
                previous_hash=raw["previousHash"],
                hash=raw["hash"],
            )
        except KeyError as exc:
            raise ValueError(f"Audit block is missing field {exc}") from exc


class AuditChain:
    """Ordered list of :class:`Block` objects starting with a genesis block.

    ``lock`` serializes appends. Callers that must read the tail and append
    as one step (the draw engine binds randomness to the tip) hold it around
    both; it is re-entrant so :meth:`append` can be called inside.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._blocks: list[Block] = []
        self._clock = clock if clock is not None else MonotonicClock()
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> list[Block]:
        """Return a copy of the current block list."""
        with self.lock:
            return list(self._blocks)

    def create_genesis(self) -> Block:
        """Create the genesis block.

        Raises
        ------
        RuntimeError
            If the chain already has blocks.
        """
        with self.lock:
            if self._blocks:
                raise RuntimeError("Genesis block already created for this chain")
            data = Genesis()
            timestamp = self._clock()
            block = Block(
                index=0,
                timestamp=timestamp,
                data=data,
                previous_hash=GENESIS_PREVIOUS_HASH,
                hash=compute_hash(0, timestamp, data.to_json(), GENESIS_PREVIOUS_HASH),
            )
            self._blocks.append(block)
            return block

    def prepare(self, payload: Payload) -> Block:
        """Build the block that would follow the current tail, without adding it."""
        with self.lock:
            if not self._blocks:
                raise RuntimeError("Chain has no genesis block")
            tail = self._blocks[-1]
            index = tail.index + 1
            timestamp = self._clock()
            return Block(
                index=index,
                timestamp=timestamp,
                data=payload,
                previous_hash=tail.hash,
                hash=compute_hash(index, timestamp, payload.to_json(), tail.hash),
            )

    def commit(self, block: Block) -> Block:
        """Publish a block built by :meth:`prepare`.

        Raises
        ------
        ChainIntegrityError
            If the tail moved since the block was prepared.
        """
        with self.lock:
            tail = self._blocks[-1]
            if block.index != tail.index + 1 or block.previous_hash != tail.hash:
                raise ChainIntegrityError(
                    "Prepared block no longer links to the chain tail", index=block.index
                )
            self._blocks.append(block)
            logger.debug("Appended audit block %d (%s)", block.index, block.hash)
            return block

    def append(self, payload: Payload) -> Block:
        with self.lock:
            return self.commit(self.prepare(payload))

    def latest_hash(self) -> str:
        with self.lock:
            return self._blocks[-1].hash

    def first_invalid_index(self) -> Optional[int]:
        """Return the first index whose hash or link fails, or ``None``."""
        blocks = self.blocks
        if blocks and blocks[0].compute_hash() != blocks[0].hash:
            return 0
        for i in range(1, len(blocks)):
            current = blocks[i]
            if current.previous_hash != blocks[i - 1].hash:
                return i
            if current.compute_hash() != current.hash:
                return i
        return None

    def verify(self) -> bool:
        return self.first_invalid_index() is None

    def to_list(self) -> list[dict[str, Any]]:
        return [block.to_json() for block in self.blocks]

    @classmethod
    def from_list(
        cls,
        raw_blocks: Iterable[Mapping[str, Any]],
        clock: Optional[Callable[[], int]] = None,
    ) -> "AuditChain":
        """Rebuild a chain from its JSON form and verify it.

        Raises
        ------
        ChainIntegrityError
            If the blocks are not a valid chain starting at index 0.
        """
        chain = cls(clock=clock)
        try:
            blocks = [Block.from_json(raw) for raw in raw_blocks]
        except (TypeError, ValueError) as exc:
            raise ChainIntegrityError(f"Stored chain is malformed: {exc}") from exc
        if not blocks:
            raise ChainIntegrityError("Stored chain is empty", index=0)
        for position, block in enumerate(blocks):
            if block.index != position:
                raise ChainIntegrityError(
                    f"Block at position {position} has index {block.index}", index=position
                )
        if blocks[0].previous_hash != GENESIS_PREVIOUS_HASH:
            raise ChainIntegrityError("Genesis block does not start the chain", index=0)
        chain._blocks = blocks
        try:
            bad = chain.first_invalid_index()
        except UnicodeEncodeError as exc:
            raise ChainIntegrityError(f"Stored chain holds text that is not valid Unicode: {exc}") from exc
        if bad is not None:
            raise ChainIntegrityError(f"Stored chain fails verification at block {bad}", index=bad)
        if isinstance(chain._clock, MonotonicClock):
            chain._clock.observe(blocks[-1].timestamp)
        return chain


__all__ = [
    "AuditChain",
    "Block",
    "GENESIS_PREVIOUS_HASH",
    "MonotonicClock",
    "canonical_json",
    "compute_hash",
]
