"""Runtime settings read from the environment (and ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .db.utils import resolve_sqlite_url
from .draw.tiers import TierConfig

ROOT_DIR = Path(__file__).resolve().parents[1]

DEFAULT_DB_URL = "sqlite:///./fairdraw.db"
DEFAULT_TIERS_TEXT = "special:1,first:5,second:5,third:20"
DEFAULT_SEED_METHOD = "thanos_getRandom"


@dataclass(frozen=True)
class SeedProviderSettings:
    """Connection details for an optional remote randomness service."""

    host: Optional[str] = None
    port: int = 80
    token: Optional[str] = None
    method: str = DEFAULT_SEED_METHOD
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.host)


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DB_URL
    tiers: TierConfig = field(default_factory=TierConfig)
    snapshot_key: str = "default"
    seed_provider: SeedProviderSettings = field(default_factory=SeedProviderSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (``os.environ`` after loading ``.env``).

        Raises
        ------
        ValueError
            If a numeric variable or ``DRAW_TIERS`` cannot be parsed.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        def _number(name: str, default: str, kind):
            raw = environ.get(name, default)
            try:
                return kind(raw)
            except ValueError as exc:
                raise ValueError(f"Environment variable '{name}' is not a valid number: {raw!r}") from exc

        seed_provider = SeedProviderSettings(
            host=environ.get("SEED_PROVIDER_HOST") or None,
            port=_number("SEED_PROVIDER_PORT", "80", int),
            token=environ.get("SEED_PROVIDER_TOKEN") or None,
            method=environ.get("SEED_PROVIDER_METHOD", DEFAULT_SEED_METHOD),
            timeout=_number("SEED_PROVIDER_TIMEOUT", "10", float),
        )
        return cls(
            database_url=resolve_sqlite_url(environ.get("DB_URL", DEFAULT_DB_URL), ROOT_DIR),
            tiers=TierConfig.parse(environ.get("DRAW_TIERS", DEFAULT_TIERS_TEXT)),
            snapshot_key=environ.get("SNAPSHOT_KEY", "default"),
            seed_provider=seed_provider,
        )


__all__ = ["SeedProviderSettings", "Settings"]
