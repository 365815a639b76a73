"""Database model holding the draw engine's whole-state snapshot."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from fairdraw.db.utils import dt_iso

from .base import Base


class DrawStateSnapshot(Base):
    """Latest serialized engine state, stored as one row per key.

    The engine writes sessions, participants, winners and the audit chain as
    a single JSON document so a write either lands completely or not at all.
    """

    __tablename__ = "draw_state_snapshots"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    """Snapshot slot; one engine deployment uses one key."""

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    """Opaque snapshot produced by the engine."""

    chain_length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of audit blocks in ``payload``; kept for quick inspection."""

    session_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of sessions in ``payload``."""

    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp of the last successful write."""

    def __init__(
        self,
        *,
        key: str,
        payload: dict,
        chain_length: int = 0,
        session_count: int = 0,
        saved_at: Optional[datetime] = None,
    ) -> None:
        self.key = key
        self.payload = payload
        self.chain_length = chain_length
        self.session_count = session_count
        if saved_at is not None:
            self.saved_at = saved_at

    def to_json(self) -> dict[str, Any]:
        """Return row metadata without the payload body."""
        return {
            "key": self.key,
            "chain_length": self.chain_length,
            "session_count": self.session_count,
            "saved_at": dt_iso(self.saved_at),
        }

    @classmethod
    def get_by_key(cls, session: Session, key: str) -> Optional["DrawStateSnapshot"]:
        return session.scalar(select(cls).where(cls.key == key))

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawStateSnapshot(key={key}, chain_length={length}, saved_at={saved})>".format(
            key=self.key,
            length=self.chain_length,
            saved=self.saved_at,
        )


__all__ = ["DrawStateSnapshot"]
