"""Commit-reveal seed protocol."""

from __future__ import annotations

import hashlib
import re
from typing import Optional, Union

from ..errors import AlreadyCommitted, AlreadyRevealed, SeedHashMismatch

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def hash_seed(secret: str) -> str:
    """Return the SHA-256 hex digest of ``secret`` encoded as UTF-8."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def normalize_secret(secret: Union[str, bytes]) -> str:
    """Return ``secret`` as text; bytes are decoded as UTF-8.

    Raises
    ------
    TypeError
        If ``secret`` is neither ``str`` nor ``bytes``.
    SeedHashMismatch
        If ``secret`` is not valid UTF-8 text. No committed hash can match it.
    """

    if isinstance(secret, (bytes, bytearray)):
        try:
            return bytes(secret).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SeedHashMismatch("seed hash mismatch") from exc
    if not isinstance(secret, str):
        raise TypeError("seed must be str or bytes")
    try:
        secret.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise SeedHashMismatch("seed hash mismatch") from exc
    return secret


def normalize_digest(value: str) -> str:
    """Validate a committed hash and return it lower-cased.

    Raises
    ------
    TypeError
        If ``value`` is not a string.
    ValueError
        If ``value`` is not a 64 character hex digest.
    """

    if not isinstance(value, str):
        raise TypeError("seed hash must be a string")
    normalized = value.strip().lower()
    if not _DIGEST_RE.match(normalized):
        raise ValueError("seed hash must be a 64 character SHA-256 hex digest")
    return normalized


class SeedCommitment:
    """Committed seed hash and, once revealed, the matching secret.

    The commitment moves one way only: committed, then revealed. Neither value
    can be replaced afterwards.
    """

    def __init__(
        self,
        committed_hash: Optional[str] = None,
        revealed_seed: Optional[str] = None,
    ) -> None:
        self._committed_hash: Optional[str] = None
        self._revealed_seed: Optional[str] = None
        if committed_hash is not None:
            self.commit(committed_hash)
        if revealed_seed is not None:
            self.reveal(revealed_seed)

    @property
    def committed_hash(self) -> Optional[str]:
        return self._committed_hash

    @property
    def revealed_seed(self) -> Optional[str]:
        return self._revealed_seed

    @property
    def is_revealed(self) -> bool:
        return self._revealed_seed is not None

    def commit(self, seed_hash: str) -> None:
        if self._committed_hash is not None:
            raise AlreadyCommitted("A seed hash has already been committed")
        self._committed_hash = normalize_digest(seed_hash)

    def check(self, secret: Union[str, bytes]) -> str:
        """Raise unless ``secret`` may be revealed; never mutates.

        Returns the secret as text, ready to be stored or published.
        """
        if self._committed_hash is None:
            raise SeedHashMismatch("No seed hash has been committed")
        if self._revealed_seed is not None:
            raise AlreadyRevealed("Seed has already been revealed")
        text = normalize_secret(secret)
        if hash_seed(text) != self._committed_hash:
            raise SeedHashMismatch("seed hash mismatch")
        return text

    def reveal(self, secret: Union[str, bytes]) -> None:
        self._revealed_seed = self.check(secret)

    def copy(self) -> "SeedCommitment":
        clone = SeedCommitment()
        clone._committed_hash = self._committed_hash
        clone._revealed_seed = self._revealed_seed
        return clone


__all__ = ["SeedCommitment", "hash_seed", "normalize_digest", "normalize_secret"]
