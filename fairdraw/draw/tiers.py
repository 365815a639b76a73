"""Prize tier configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence


@dataclass(frozen=True)
class PrizeTier:
    """A named prize category and its winner quota."""

    name: str
    count: int


DEFAULT_TIERS: tuple[PrizeTier, ...] = (
    PrizeTier("special", 1),
    PrizeTier("first", 5),
    PrizeTier("second", 5),
    PrizeTier("third", 20),
)

SINGLE_DRAW_TIER = "default"


class TierConfig:
    """Ordered, fixed set of prize tiers for a deployment."""

    def __init__(self, tiers: Iterable[PrizeTier] = DEFAULT_TIERS) -> None:
        self._tiers: tuple[PrizeTier, ...] = tuple(tiers)
        if not self._tiers:
            raise ValueError("Tier configuration must define at least one tier")
        seen: set[str] = set()
        for tier in self._tiers:
            if not tier.name:
                raise ValueError("tier name must not be empty")
            if tier.name in seen:
                raise ValueError(f"Tier '{tier.name}' is configured twice")
            if tier.count < 0:
                raise ValueError(f"Tier '{tier.name}' has a negative winner count")
            seen.add(tier.name)

    def __iter__(self):
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    def __contains__(self, name: object) -> bool:
        return any(tier.name == name for tier in self._tiers)

    @property
    def names(self) -> list[str]:
        return [tier.name for tier in self._tiers]

    def quota(self, name: str) -> Optional[int]:
        """Return the configured winner count for ``name`` or ``None``."""
        for tier in self._tiers:
            if tier.name == name:
                return tier.count
        return None

    def is_complete(self, drawn: Sequence[str]) -> bool:
        """Return ``True`` once every configured tier appears in ``drawn``."""
        drawn_set = set(drawn)
        return all(tier.name in drawn_set for tier in self._tiers)

    @classmethod
    def parse(cls, text: str) -> "TierConfig":
        """Parse ``"special:1,first:5"`` into a :class:`TierConfig`.

        Raises
        ------
        ValueError
            If an entry is not ``name:count`` with a non-negative integer count.
        """

        tiers: list[PrizeTier] = []
        for raw in text.split(","):
            entry = raw.strip()
            if not entry:
                continue
            name, sep, count_text = entry.partition(":")
            name = name.strip()
            if not sep or not name:
                raise ValueError(f"Invalid tier entry '{entry}'; expected name:count")
            try:
                count = int(count_text.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid winner count in tier entry '{entry}'") from exc
            tiers.append(PrizeTier(name, count))
        return cls(tiers)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "TierConfig({})".format(
            ",".join(f"{tier.name}:{tier.count}" for tier in self._tiers)
        )


__all__ = ["DEFAULT_TIERS", "PrizeTier", "SINGLE_DRAW_TIER", "TierConfig"]
