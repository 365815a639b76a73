"""Deterministic winner selection.

Given the same candidate order, material and count, :func:`select_winners`
returns the same winners on any conforming implementation, so a draw can be
audited from the published chain, seed and participant list.
"""

from __future__ import annotations

import hashlib
from typing import Sequence, TypeVar

from ..errors import InvalidWinnerCount

T = TypeVar("T")


def derive_material(*parts: str) -> bytes:
    """Return SHA-256 over the UTF-8 concatenation of ``parts``."""
    return hashlib.sha256("".join(parts).encode("utf-8")).digest()


def _step_value(material: bytes, step: int) -> int:
    # Counter is one byte; steps 256 and up wrap around.
    digest = hashlib.sha256(material + bytes([step & 0xFF])).digest()
    return int.from_bytes(digest[:4], "big")


def select_winners(candidates: Sequence[T], material: bytes, k: int) -> list[T]:
    """Pick ``k`` distinct winners with a partial Fisher-Yates shuffle.

    Parameters
    ----------
    candidates : Sequence[T]
        Distinct identifiers in enrollment order. Not mutated.
    material : bytes
        Random base the per-step values are derived from.
    k : int
        Number of winners, ``0 <= k <= len(candidates)``.

    Returns
    -------
    list[T]
        Winners in the order they were fixed.

    Raises
    ------
    InvalidWinnerCount
        If ``k`` is outside ``[0, len(candidates)]``.
    ValueError
        If ``candidates`` contains duplicates.
    """

    n = len(candidates)
    if k < 0 or k > n:
        raise InvalidWinnerCount(f"Cannot select {k} winners from {n} candidates")
    if len(set(candidates)) != n:
        raise ValueError("candidates must be distinct")
    if k == 0:
        return []

    pool = list(candidates)
    for i in range(k):
        j = i + _step_value(material, i) % (n - i)
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:k]


__all__ = ["derive_material", "select_winners"]
